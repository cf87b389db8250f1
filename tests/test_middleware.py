"""Middleware tests: request ID, CORS, error handling, rate limiting."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from teaedu.database import get_session
from teaedu.middleware.logging import REDACTED, redact_secrets
from teaedu.middleware.rate_limit import RateLimitMiddleware
from teaedu.rewards.exceptions import RETRY_LATER_MESSAGE
from tests.conftest import auth_headers


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36  # UUID format


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    """Custom request ID is echoed back in response."""
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_no_rate_limit_without_redis(client: AsyncClient) -> None:
    """Without Redis the limiter steps aside."""
    for _ in range(5):
        response = await client.get("/version")
        assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_rate_limit_blocks_excess(monkeypatch: pytest.MonkeyPatch) -> None:
    """Requests over the window limit get 429 with Retry-After."""
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[4, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    monkeypatch.setattr("teaedu.middleware.rate_limit.get_redis", lambda: redis)

    middleware = RateLimitMiddleware(app=MagicMock(), requests_per_window=3, window_seconds=60)
    request = MagicMock()
    request.url.path = "/api/v1/rewards/claim"
    request.method = "POST"
    request.client.host = "10.0.0.1"
    call_next = AsyncMock()

    response = await middleware.dispatch(request, call_next)

    assert response.status_code == 429
    assert response.headers["retry-after"] == "60"
    call_next.assert_not_awaited()


@pytest.mark.asyncio
async def test_cors_allows_any_origin(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"Origin": "https://anywhere.example"})
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_404_returns_json(client: AsyncClient) -> None:
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.json()["detail"] == "Not Found"


@pytest.mark.asyncio
async def test_validation_error_returns_json(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/progress/quizzes/module-1-quiz/submit", json={"answers": "abc"}, headers=auth_headers("user-1")
    )
    assert response.status_code == 422
    assert response.json()["detail"] == "Validation error"


def test_log_processor_redacts_credentials() -> None:
    event = {"event": "token_transfer_sent", "authorization": "Bearer abc", "private_key": "0x" + "1" * 64, "to": "0xabc"}
    out = redact_secrets(None, "info", event)
    assert out["authorization"] == REDACTED
    assert out["private_key"] == REDACTED
    assert out["to"] == "0xabc"


@pytest.mark.asyncio
async def test_malformed_request_id_replaced(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "bad id with spaces"})
    assert response.headers["x-request-id"] != "bad id with spaces"
    assert len(response.headers["x-request-id"]) == 36


@pytest.mark.asyncio
async def test_unhandled_error_on_reward_route_uses_envelope(app: FastAPI) -> None:
    """Reward routes answer crashes with the claim envelope and no exception text."""

    async def broken_session():
        raise RuntimeError("connection refused: postgres://secret@db")
        yield  # pragma: no cover

    app.dependency_overrides[get_session] = broken_session
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/api/v1/rewards/eligibility", headers=auth_headers("user-1"))

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": RETRY_LATER_MESSAGE}
    assert "secret" not in response.text

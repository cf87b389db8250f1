"""Global error handlers.

Two response shapes exist:

- ``{"detail": ...}`` for the REST API (HTTP errors, validation, crashes)
- ``{"success": false, "error": ...}`` for reward routes, which the web
  client reads as a single envelope

Neither ever carries a stack trace or exception text for a 500.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from teaedu.rewards.exceptions import RETRY_LATER_MESSAGE, ClaimError

logger = structlog.get_logger()

_ENVELOPE_PREFIXES = ("/functions/v1/", "/api/v1/rewards/")


def _uses_envelope(request: Request) -> bool:
    return request.url.path.startswith(_ENVELOPE_PREFIXES)


def _envelope(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        if _uses_envelope(request):
            return _envelope(422, "Invalid request")
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": exc.errors()},
        )

    @app.exception_handler(ClaimError)
    async def claim_exception_handler(request: Request, exc: ClaimError) -> JSONResponse:
        """Policy rejections are user-facing (4xx); infrastructure failures log detail and answer generically."""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "reward_claim_rejected",
            path=request.url.path,
            code=exc.code,
            status_code=exc.status_code,
            error=str(exc),
        )
        return _envelope(exc.status_code, exc.public_message)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        if _uses_envelope(request):
            return _envelope(500, RETRY_LATER_MESSAGE)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

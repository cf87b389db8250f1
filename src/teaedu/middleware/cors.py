"""CORS middleware configuration."""

from fastapi import FastAPI
from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response

from teaedu.config import Settings

# Headers sent by the browser auth client alongside the bearer token
_ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type", "x-request-id"]


class EmptyPreflightCORSMiddleware(CORSMiddleware):
    """CORS middleware whose successful preflight answers carry an empty body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Configure CORS. Browser clients authenticate with bearer tokens, never cookies."""
    app.add_middleware(
        EmptyPreflightCORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=_ALLOWED_HEADERS,
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )

"""Middleware stack.

Outermost first: CORS, request id, rate limit. Starlette wraps the app in
reverse-add order, so they are added innermost first; CORS being outermost
keeps CORS headers on 429s and on claim error envelopes.
"""

from fastapi import FastAPI

from teaedu.config import Settings
from teaedu.middleware.cors import setup_cors
from teaedu.middleware.error_handler import setup_error_handlers
from teaedu.middleware.logging import setup_logging
from teaedu.middleware.rate_limit import RateLimitMiddleware
from teaedu.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    setup_logging(settings)
    setup_error_handlers(app)
    if settings.rate_limit_requests > 0:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)

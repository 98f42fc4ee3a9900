"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from boop.config import Settings
from boop.middleware.error_handler import setup_error_handlers
from boop.middleware.logging import setup_logging
from boop.middleware.rate_limit import RateLimitMiddleware
from boop.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    Starlette runs middleware in reverse-add order (last added = outermost).
    CORS is added last so it also wraps 429 responses from the rate limiter.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )

"""Middleware registration."""

from fastapi import FastAPI

from aura.config import Settings
from aura.middleware.cors import setup_cors
from aura.middleware.error_handler import setup_error_handlers
from aura.middleware.logging import setup_logging
from aura.middleware.rate_limit import RateLimitMiddleware
from aura.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and HTTP middleware.

    Starlette runs middleware in reverse-add order, so CORS is added last to
    wrap everything, including 429 responses from the rate limiter.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)

"""Middleware registration."""

from fastapi import FastAPI

from trademind.config import Settings
from trademind.middleware.cors import setup_cors
from trademind.middleware.error_handler import setup_error_handlers
from trademind.middleware.logging import setup_logging
from trademind.middleware.rate_limit import RateLimitMiddleware
from trademind.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and middleware.

    Starlette runs middleware in reverse-add order, so CORS is added last to
    wrap 429s from the rate limiter. The request id is bound before rate
    limiting so throttled requests are still traceable.
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

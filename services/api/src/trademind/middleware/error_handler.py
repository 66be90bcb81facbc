"""Global error handler: consistent JSON error responses."""

import redis.exceptions
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from trademind.gamification.errors import StorageUnavailableError

logger = structlog.get_logger()

# Backing store unreachable or timed out: the client may retry.
STORAGE_UNAVAILABLE_ERRORS: tuple[type[Exception], ...] = (
    StorageUnavailableError,
    OperationalError,
    InterfaceError,
    redis.exceptions.ConnectionError,
    redis.exceptions.TimeoutError,
    TimeoutError,
)
RETRY_AFTER_SECONDS = 5


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent JSON format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle validation errors with consistent JSON format."""
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": exc.errors()},
        )

    async def storage_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
        """Storage outages are retryable, not server bugs."""
        logger.warning(
            "storage_unavailable",
            path=request.url.path,
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=503,
            content={"detail": "Service temporarily unavailable. Try again later."},
            headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
        )

    for exc_class in STORAGE_UNAVAILABLE_ERRORS:
        app.add_exception_handler(exc_class, storage_unavailable_handler)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

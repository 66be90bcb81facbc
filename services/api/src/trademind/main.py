"""FastAPI application factory for the TradeMind gamification API."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from trademind.config import get_settings
from trademind.database import close_db, init_db
from trademind.gamification.router import router as gamification_router
from trademind.health.router import router as health_router
from trademind.middleware import setup_middleware
from trademind.redis_client import close_redis, init_redis
from trademind.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database pool and Redis client, release them on shutdown."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    logger.info(
        "startup_complete",
        environment=settings.environment,
        version=settings.app_version,
        identity_verification=bool(settings.identity_verification_key),
        cron_secret_configured=bool(settings.cron_secret),
    )

    try:
        yield
    finally:
        await close_redis()
        await close_db()
        logger.info("shutdown_complete")


def create_app() -> FastAPI:
    """Build the app: middleware, probes, gamification and user routes."""
    settings = get_settings()

    app = FastAPI(
        title="TradeMind Gamification API",
        description="Trade stats, weekly streaks, badges and leaderboard for TradeMind",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(gamification_router)
    app.include_router(users_router)

    return app


app = create_app()

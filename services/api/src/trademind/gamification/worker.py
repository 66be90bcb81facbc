"""Gamification arq worker: scheduled weekly evaluation.

Import path for arq CLI: arq trademind.gamification.worker.WorkerSettings
"""

from __future__ import annotations

import logging
import redis.asyncio as aioredis
from arq import cron
from arq.connections import RedisSettings

from trademind.config import get_settings
from trademind.database import close_db, get_session_factory, init_db
from trademind.gamification.weekly import run_weekly_evaluation
from trademind.middleware.logging import setup_logging

logger = logging.getLogger(__name__)


async def gamification_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize Redis + DB connections on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)

    ctx["redis"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=10,
        socket_timeout=settings.redis_socket_timeout_seconds,
    )
    logger.info("Gamification worker started")


async def gamification_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    redis_client: aioredis.Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Gamification worker shut down")


async def weekly_evaluation(ctx: dict) -> dict:  # type: ignore[type-arg]
    """Scheduled task: evaluate last week every Monday 00:05 UTC."""
    settings = get_settings()
    async with get_session_factory()() as db:
        return await run_weekly_evaluation(
            db, ctx.get("redis"), sharpe_window_days=settings.sharpe_window_days,
        )


class WorkerSettings:
    """arq worker settings for the gamification scheduler."""

    functions = [weekly_evaluation]
    cron_jobs = [
        cron(weekly_evaluation, weekday="mon", hour=0, minute=5, unique=True),
    ]
    on_startup = gamification_startup
    on_shutdown = gamification_shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    max_jobs = 1
    job_timeout = 3600

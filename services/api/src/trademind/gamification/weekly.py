"""Weekly evaluation: close the week's streaks, refresh Sharpe, award badges.

Should run right after Monday 00:00 UTC for the week that just ended.
Safe to re-run: users already evaluated for the week are skipped.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trademind.db.models import UserGamification
from trademind.gamification.badge_service import check_and_award
from trademind.gamification.sharpe import estimate
from trademind.gamification.streak import get_last_week_iso
from trademind.gamification.streak_service import update_streak

logger = structlog.get_logger()


async def run_weekly_evaluation(
    db: AsyncSession,
    redis: object,
    now: datetime | None = None,
    week_iso: str | None = None,
    sharpe_window_days: int = 30,
) -> dict[str, Any]:
    """Evaluate every user with a gamification record.

    A week is a winning week when its profit is positive. A failure for one
    user is logged and counted; the run continues with the next user.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    week = week_iso or get_last_week_iso(now)

    rows = await db.execute(
        select(UserGamification.user_id).order_by(UserGamification.user_id)
    )
    users = list(rows.scalars())
    await db.rollback()

    results = {
        "week": week,
        "users_processed": 0,
        "streaks_updated": 0,
        "sharpe_calculated": 0,
        "badges_awarded": 0,
        "skipped": 0,
        "errors": 0,
    }

    for user_id in users:
        try:
            # Winning week is decided from the row locked by update_streak
            streak = await update_streak(db, user_id, None, week, redis=redis, now=now)
            if streak is None or not streak.applied:
                results["skipped"] += 1
                continue
            if streak.winning:
                results["streaks_updated"] += 1

            sharpe = await estimate(db, user_id, window_days=sharpe_window_days, now=now)
            if sharpe is not None:
                await db.execute(
                    update(UserGamification)
                    .where(UserGamification.user_id == user_id)
                    .values(sharpe_ratio=Decimal(str(sharpe)), updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                await db.commit()
                results["sharpe_calculated"] += 1

            new_badges = await check_and_award(db, redis, user_id)
            results["badges_awarded"] += len(new_badges)
            results["users_processed"] += 1
        except Exception:
            logger.exception("weekly_evaluation_user_failed", user_id=user_id, week=week)
            await db.rollback()
            results["errors"] += 1

    logger.info("weekly_evaluation_complete", **results)
    return results

"""Weekly streak evaluation, at most once per user per ISO week."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trademind.db.models import UserGamification
from trademind.gamification.streak import advance_streak, is_valid_week_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakUpdate:
    """Streak state after an evaluation. ``applied`` is False for a repeated period."""

    current: int
    longest: int
    applied: bool
    winning: bool = False


async def update_streak(
    db: AsyncSession,
    user_id: str,
    is_winning_period: bool | None,
    period: str,
    redis: object = None,
    now: datetime | None = None,
) -> StreakUpdate | None:
    """Advance or reset the user's streak for ``period`` (ISO week, e.g. '2026-W41').

    With ``is_winning_period`` None the period counts as won when the locked
    row's ``weekly_profit`` is positive, so trades committed up to the lock
    are included. Closing a period also zeroes ``weekly_profit`` for the week
    ahead. Returns None if the user has no record. Re-running the same
    period leaves the record untouched.
    """
    if not is_valid_week_iso(period):
        raise ValueError(f"Invalid ISO week: {period!r}")
    if now is None:
        now = datetime.now(timezone.utc)

    result = await db.execute(
        select(UserGamification)
        .where(UserGamification.user_id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    gam = result.scalar_one_or_none()
    if gam is None:
        await db.rollback()
        return None

    if gam.last_evaluated_week == period:
        unchanged = StreakUpdate(gam.current_streak, gam.longest_streak, applied=False)
        await db.rollback()
        logger.info("Streak for %s already evaluated for %s", user_id, period)
        return unchanged

    if is_winning_period is None:
        is_winning_period = Decimal(gam.weekly_profit or 0) > 0

    previous = gam.current_streak
    gam.current_streak, gam.longest_streak = advance_streak(
        gam.current_streak, gam.longest_streak, is_winning_period
    )
    if is_winning_period:
        gam.last_winning_week = now.date()
    gam.weekly_profit = Decimal("0")
    gam.last_evaluated_week = period
    gam.updated_at = now
    update = StreakUpdate(gam.current_streak, gam.longest_streak, applied=True, winning=is_winning_period)
    await db.commit()

    if not is_winning_period and previous > 0:
        await _emit_streak_broken(redis, user_id, previous)

    return update


async def _emit_streak_broken(redis: object, user_id: str, streak_length: int) -> None:
    """Tell the dashboard a streak ended."""
    if redis is None:
        return
    try:
        await redis.publish(  # type: ignore[attr-defined]
            "pubsub:streak_update",
            json.dumps({
                "user_id": user_id,
                "event": "streak_broken",
                "streak_length": streak_length,
            }),
        )
    except Exception:
        logger.warning("Failed to publish streak_broken notification", exc_info=True)

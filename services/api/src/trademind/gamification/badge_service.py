"""Badge award service with duplicate prevention and notification."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from trademind.db.models import UserBadge
from trademind.gamification.badges import eligible_badges
from trademind.gamification.stats_service import get_earned_badges, get_stats

logger = logging.getLogger(__name__)


async def check_and_award(db: AsyncSession, redis: object, user_id: str) -> list[dict[str, Any]]:
    """Award every badge whose threshold the user now meets.

    Returns the newly earned badges (catalog entries plus ``earned_at``).
    Already-earned badges are skipped and nothing is ever revoked.
    Each badge is committed on its own so one lost race cannot undo others.
    """
    record = await get_stats(db, user_id)
    if record is None:
        return []

    earned = set(await get_earned_badges(db, user_id))
    newly_earned: list[dict[str, Any]] = []

    for definition in eligible_badges(record, earned):
        now = datetime.now(timezone.utc)
        db.add(UserBadge(
            user_id=user_id,
            badge_type=definition["type"],
            badge_name=definition["name"],
            earned_at=now,
        ))
        try:
            await db.commit()
        except IntegrityError:
            # Race condition: badge already awarded by a concurrent request
            await db.rollback()
            continue

        awarded = {**definition, "earned_at": now}
        newly_earned.append(awarded)
        await _emit_badge_earned(redis, user_id, awarded)

    if newly_earned:
        logger.info("Awarded badges to %s: %s", user_id, [b["type"] for b in newly_earned])
    return newly_earned


async def _emit_badge_earned(redis: object, user_id: str, badge: dict[str, Any]) -> None:
    """Push a badge-earned event to the dashboard via Redis pub/sub."""
    if redis is None:
        return
    try:
        await redis.publish(  # type: ignore[attr-defined]
            "pubsub:badge_earned",
            json.dumps({
                "user_id": user_id,
                "badge_type": badge["type"],
                "badge_name": badge["name"],
                "icon": badge["icon"],
            }),
        )
    except Exception:
        logger.warning("Failed to publish badge_earned notification", exc_info=True)

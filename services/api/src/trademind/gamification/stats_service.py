"""Per-user trade statistics: atomic upsert on trade close and summary reads."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from trademind.db.models import UserBadge, UserGamification
from trademind.gamification.badges import BADGE_DEFINITIONS, badge_progress
from trademind.gamification.errors import InvalidTradeOutcomeError
from trademind.gamification.sharpe import round_half_up

logger = structlog.get_logger()

_CENT = Decimal("0.01")
# NUMERIC(12, 2) upper bound
_MAX_ABS_PNL = Decimal("10000000000")


def validate_pnl(pnl: object) -> Decimal:
    """Coerce a trade P&L to cents, rejecting anything that is not a finite number."""
    if isinstance(pnl, bool) or not isinstance(pnl, (int, float, Decimal)):
        raise InvalidTradeOutcomeError("PnL must be a number")
    if isinstance(pnl, float) and not math.isfinite(pnl):
        raise InvalidTradeOutcomeError("PnL must be finite")
    value = Decimal(str(pnl)) if isinstance(pnl, float) else Decimal(pnl)
    if not value.is_finite():
        raise InvalidTradeOutcomeError("PnL must be finite")
    value = value.quantize(_CENT, rounding=ROUND_HALF_UP)
    if abs(value) >= _MAX_ABS_PNL:
        raise InvalidTradeOutcomeError("PnL is out of range")
    return value


def win_rate(total_wins: int, total_trades: int) -> float:
    """Win percentage with one decimal place."""
    if total_trades <= 0:
        return 0.0
    return round_half_up(total_wins / total_trades * 100, 1)


async def get_stats(db: AsyncSession, user_id: str) -> UserGamification | None:
    """Fetch the user's gamification row, bypassing any stale identity-map copy."""
    result = await db.execute(
        select(UserGamification)
        .where(UserGamification.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def upsert_on_trade(
    db: AsyncSession,
    user_id: str,
    pnl: object,
    is_win: bool | None = None,
) -> UserGamification:
    """Add one closed trade to the user's counters, creating the row on first trade.

    The increment is a single UPDATE so concurrent closes for one user
    commute. When the row does not exist yet it is inserted; losing an
    insert race to a concurrent request falls back to the UPDATE.

    Raises InvalidTradeOutcomeError before touching storage.
    """
    amount = validate_pnl(pnl)
    if is_win is None:
        is_win = amount > 0
    wins = 1 if is_win else 0
    now = datetime.now(timezone.utc)

    increment = (
        update(UserGamification)
        .where(UserGamification.user_id == user_id)
        .values(
            total_trades=UserGamification.total_trades + 1,
            total_wins=UserGamification.total_wins + wins,
            total_profit=UserGamification.total_profit + amount,
            weekly_profit=UserGamification.weekly_profit + amount,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )

    result = await db.execute(increment)
    if result.rowcount == 0:
        db.add(UserGamification(
            user_id=user_id,
            current_streak=0,
            longest_streak=0,
            total_trades=1,
            total_wins=wins,
            total_profit=amount,
            weekly_profit=amount,
            created_at=now,
            updated_at=now,
        ))
        try:
            await db.flush()
        except IntegrityError:
            # Another request created the row first
            await db.rollback()
            await db.execute(increment)

    await db.commit()
    logger.info("trade_recorded", user_id=user_id, pnl=str(amount), is_win=is_win)

    record = await get_stats(db, user_id)
    if record is None:  # pragma: no cover - row was just written
        msg = f"Gamification record missing after upsert for {user_id}"
        raise RuntimeError(msg)
    return record


async def get_earned_badges(db: AsyncSession, user_id: str) -> dict[str, datetime]:
    """Map of badge_type -> earned_at for the user."""
    result = await db.execute(
        select(UserBadge.badge_type, UserBadge.earned_at).where(UserBadge.user_id == user_id)
    )
    return {row.badge_type: row.earned_at for row in result}


def build_badge_list(
    earned: dict[str, datetime],
    record: UserGamification | None,
) -> list[dict[str, Any]]:
    """Full badge catalog annotated with earned time and progress."""
    badges = []
    for definition in BADGE_DEFINITIONS:
        earned_at = earned.get(definition["type"])
        badges.append({
            "type": definition["type"],
            "name": definition["name"],
            "icon": definition["icon"],
            "requirement": definition["requirement"],
            "earned_at": earned_at,
            "progress": 100 if earned_at else badge_progress(definition, record),
        })
    return badges


async def build_stats_summary(db: AsyncSession, user_id: str) -> dict[str, Any]:
    """Everything the dashboard's gamification card shows, in one dict.

    Users without a record get zeroed stats rather than an error.
    """
    from trademind.gamification.leaderboard_service import get_user_rank
    from trademind.users.service import get_display_name

    record = await get_stats(db, user_id)
    earned = await get_earned_badges(db, user_id)
    display_name = await get_display_name(db, user_id)

    if record is None:
        return {
            "user_id": user_id,
            "display_name": display_name,
            "current_streak": 0,
            "longest_streak": 0,
            "total_wins": 0,
            "total_trades": 0,
            "total_profit": 0.0,
            "weekly_profit": 0.0,
            "win_rate": 0.0,
            "sharpe_ratio": None,
            "badges": build_badge_list(earned, None),
            "leaderboard_rank": None,
        }

    return {
        "user_id": user_id,
        "display_name": display_name,
        "current_streak": record.current_streak,
        "longest_streak": record.longest_streak,
        "total_wins": record.total_wins,
        "total_trades": record.total_trades,
        "total_profit": float(record.total_profit),
        "weekly_profit": float(record.weekly_profit),
        "win_rate": win_rate(record.total_wins, record.total_trades),
        "sharpe_ratio": float(record.sharpe_ratio) if record.sharpe_ratio is not None else None,
        "badges": build_badge_list(earned, record),
        "leaderboard_rank": await get_user_rank(db, user_id),
    }

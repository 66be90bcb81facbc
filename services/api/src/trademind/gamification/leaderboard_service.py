"""Weekly leaderboard: ranked in SQL, full board cached in Redis per week.

Ordering is total and deterministic:
  weekly_profit: weekly profit DESC, sharpe DESC (nulls last), user_id ASC
  sharpe:        sharpe DESC, weekly profit DESC, user_id ASC (users with a sharpe only)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from trademind.db.models import UserGamification, UserSettings
from trademind.gamification.stats_service import win_rate
from trademind.gamification.streak import get_current_week_iso

logger = logging.getLogger(__name__)

METRICS = ("weekly_profit", "sharpe")


def build_leaderboard_key(metric: str, week_iso: str | None = None) -> str:
    """Build the Redis cache key for a week's ranked board."""
    if metric not in METRICS:
        raise ValueError(f"Unknown metric: {metric}")
    return f"leaderboard:{metric}:{week_iso or get_current_week_iso()}"


def default_display_name(user_id: str) -> str:
    """Fallback name for users who never picked one: 'Trader' + 4 id characters."""
    return f"Trader{user_id.rsplit(':', 1)[-1][:4]}"


def _ranked_query(metric: str) -> Select[Any]:
    """SELECT of every ranked user with a 1-based ``rank`` column."""
    g = UserGamification
    if metric == "sharpe":
        order_by = [g.sharpe_ratio.desc(), g.weekly_profit.desc(), g.user_id.asc()]
    elif metric == "weekly_profit":
        order_by = [g.weekly_profit.desc(), g.sharpe_ratio.desc().nulls_last(), g.user_id.asc()]
    else:
        raise ValueError(f"Unknown metric: {metric}")

    stmt = select(
        g.user_id,
        g.weekly_profit,
        g.sharpe_ratio,
        g.total_wins,
        g.total_trades,
        UserSettings.display_name,
        func.row_number().over(order_by=order_by).label("rank"),
    ).outerjoin(UserSettings, UserSettings.user_id == g.user_id)

    if metric == "sharpe":
        stmt = stmt.where(g.sharpe_ratio.is_not(None))
    return stmt


def _row_to_entry(row: Any) -> dict[str, Any]:  # noqa: ANN401
    return {
        "rank": int(row.rank),
        "user_id": row.user_id,
        "display_name": row.display_name or default_display_name(row.user_id),
        "sharpe_ratio": float(row.sharpe_ratio) if row.sharpe_ratio is not None else None,
        "weekly_return": float(row.weekly_profit),
        "win_rate": win_rate(row.total_wins, row.total_trades),
    }


async def _load_board(db: AsyncSession, metric: str) -> list[dict[str, Any]]:
    """Every ranked user, in rank order, from a single query."""
    ranked = _ranked_query(metric).subquery()
    result = await db.execute(select(ranked).order_by(ranked.c.rank))
    return [_row_to_entry(row) for row in result]


async def _load_user_entry(db: AsyncSession, metric: str, user_id: str) -> dict[str, Any] | None:
    ranked = _ranked_query(metric).subquery()
    result = await db.execute(select(ranked).where(ranked.c.user_id == user_id))
    row = result.first()
    return _row_to_entry(row) if row is not None else None


async def _cached_board(
    redis: object, db: AsyncSession, metric: str, cache_ttl: int,
) -> list[dict[str, Any]]:
    """Full ranked board from Redis, falling back to (and refilling from) the database."""
    if redis is None or cache_ttl <= 0:
        return await _load_board(db, metric)

    key = build_leaderboard_key(metric)
    try:
        cached = await redis.get(key)  # type: ignore[attr-defined]
        if cached:
            return json.loads(cached)
    except Exception:
        logger.warning("Leaderboard cache read failed for %s", key, exc_info=True)

    board = await _load_board(db, metric)
    try:
        await redis.set(key, json.dumps(board), ex=cache_ttl)  # type: ignore[attr-defined]
    except Exception:
        logger.warning("Leaderboard cache write failed for %s", key, exc_info=True)
    return board


async def get_leaderboard(
    db: AsyncSession,
    redis: object,
    requesting_user_id: str,
    limit: int = 50,
    metric: str = "weekly_profit",
    cache_ttl: int = 0,
) -> dict[str, Any]:
    """Top ``limit`` users plus the requester's own rank.

    Entries, requester and total all come from the same ranked snapshot,
    so ranks within one response never collide. ``requester`` is only
    filled when the requesting user is ranked but outside the returned
    slice; ``requester_rank`` is set whenever they are ranked at all.
    """
    if limit < 1:
        raise ValueError("limit must be positive")

    board = await _cached_board(redis, db, metric, cache_ttl)
    for entry in board:
        entry["is_current_user"] = entry["user_id"] == requesting_user_id

    entries = board[:limit]
    mine = next((e for e in board if e["is_current_user"]), None)
    requester = mine if mine is not None and mine["rank"] > limit else None

    return {
        "metric": metric,
        "entries": entries,
        "requester": requester,
        "requester_rank": mine["rank"] if mine is not None else None,
        "total": len(board),
        "generated_at": datetime.now(timezone.utc),
    }


async def get_user_rank(db: AsyncSession, user_id: str, metric: str = "weekly_profit") -> int | None:
    """1-based rank of a user, or None if they are not on the board."""
    entry = await _load_user_entry(db, metric, user_id)
    return entry["rank"] if entry is not None else None

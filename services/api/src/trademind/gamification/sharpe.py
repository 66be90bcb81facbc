"""Sharpe proxy for the weekly leaderboard.

Not a textbook Sharpe ratio: it is unannualized, uses a fixed 0.04
risk-free proxy against raw per-trade P&L, and is clamped to [-2, 5].
Stored values depend on this exact formula.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trademind.db.models import Position

MIN_TRADES = 5
RISK_FREE_RATE = 0.04
ZERO_VARIANCE_SHARPE = 3.0
SHARPE_FLOOR = -2.0
SHARPE_CEILING = 5.0


def round_half_up(value: float, digits: int = 2) -> float:
    """Round halves toward +inf, matching the dashboard's Math.round."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def estimate_sharpe(pnls: Iterable[float | Decimal | None]) -> float | None:
    """Estimate the Sharpe proxy from realized P&L values.

    Returns None with fewer than 5 trades. Order of ``pnls`` does not matter.
    """
    returns = [float(p) if p is not None else 0.0 for p in pnls]
    if len(returns) < MIN_TRADES:
        return None

    mean = sum(returns) / len(returns)
    variance = sum((r - mean) ** 2 for r in returns) / len(returns)
    std_dev = math.sqrt(variance)

    if std_dev == 0:
        return ZERO_VARIANCE_SHARPE if mean > 0 else 0.0

    sharpe = (mean - RISK_FREE_RATE) / std_dev
    return max(SHARPE_FLOOR, min(SHARPE_CEILING, round_half_up(sharpe)))


async def fetch_closed_pnls(
    db: AsyncSession,
    user_id: str,
    window_days: int = 30,
    now: datetime | None = None,
) -> list[Decimal | None]:
    """Realized P&L of the user's positions closed within the trailing window."""
    if now is None:
        now = datetime.now(timezone.utc)
    since = now - timedelta(days=window_days)
    result = await db.execute(
        select(Position.exit_pnl).where(
            Position.user_id == user_id,
            Position.status == "closed",
            Position.closed_at > since,
        )
    )
    return list(result.scalars())


async def estimate(
    db: AsyncSession,
    user_id: str,
    window_days: int = 30,
    now: datetime | None = None,
) -> float | None:
    """Sharpe proxy for a user's trailing closed trades, or None if too few."""
    return estimate_sharpe(await fetch_closed_pnls(db, user_id, window_days, now))

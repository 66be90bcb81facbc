"""Badge catalog and threshold rules.

Each badge has a trigger type naming the stat it watches and a threshold.
``manual`` badges are listed in the catalog but never auto-awarded.
These slugs MUST match the dashboard's BadgeGrid component.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

BADGE_DEFINITIONS: list[dict[str, Any]] = [
    {
        "type": "first_trade",
        "name": "First Trade",
        "icon": "\U0001f3af",
        "requirement": "Complete your first trade",
        "trigger_type": "trade_count",
        "threshold": 1,
    },
    {
        "type": "streak_5",
        "name": "5 Week Streak",
        "icon": "\U0001f525",
        "requirement": "5 consecutive winning weeks",
        "trigger_type": "streak",
        "threshold": 5,
    },
    {
        "type": "streak_10",
        "name": "Pro Trader",
        "icon": "\U0001f3c6",
        "requirement": "10 consecutive winning weeks",
        "trigger_type": "streak",
        "threshold": 10,
    },
    {
        "type": "profit_500",
        "name": "$500 Club",
        "icon": "\U0001f4b5",
        "requirement": "Total profits exceed $500",
        "trigger_type": "total_profit",
        "threshold": 500,
    },
    {
        "type": "profit_1000",
        "name": "$1K Winner",
        "icon": "\U0001f4b0",
        "requirement": "Total profits exceed $1,000",
        "trigger_type": "total_profit",
        "threshold": 1000,
    },
    {
        "type": "profit_5000",
        "name": "$5K Legend",
        "icon": "\U0001f911",
        "requirement": "Total profits exceed $5,000",
        "trigger_type": "total_profit",
        "threshold": 5000,
    },
    {
        "type": "trades_25",
        "name": "Experienced",
        "icon": "\U0001f4c8",
        "requirement": "25 trades completed",
        "trigger_type": "trade_count",
        "threshold": 25,
    },
    {
        "type": "trades_100",
        "name": "Veteran",
        "icon": "\U0001f396️",
        "requirement": "100 trades completed",
        "trigger_type": "trade_count",
        "threshold": 100,
    },
    {
        "type": "ai_guardian",
        "name": "AI Guardian",
        "icon": "\U0001f6e1️",
        "requirement": "AI blocked 5 risky trades",
        "trigger_type": "manual",
        "threshold": None,
    },
    {
        "type": "theta_master",
        "name": "Theta Master",
        "icon": "⏰",
        "requirement": "Earn $1,000 from theta decay",
        "trigger_type": "manual",
        "threshold": None,
    },
]

BADGES_BY_TYPE: dict[str, dict[str, Any]] = {b["type"]: b for b in BADGE_DEFINITIONS}


def _stat_value(trigger_type: str, stats: Any) -> Decimal | int:  # noqa: ANN401
    """Read the stat a trigger type watches. ``stats`` is any object with record attributes."""
    if trigger_type == "trade_count":
        return stats.total_trades or 0
    if trigger_type == "total_profit":
        return Decimal(stats.total_profit or 0)
    if trigger_type == "streak":
        return stats.current_streak or 0
    raise ValueError(f"Unknown trigger type: {trigger_type}")


def is_satisfied(definition: dict[str, Any], stats: Any) -> bool:  # noqa: ANN401
    """Return True if the badge threshold is met by the given stats."""
    if definition["trigger_type"] == "manual":
        return False
    return _stat_value(definition["trigger_type"], stats) >= definition["threshold"]


def eligible_badges(stats: Any, earned: set[str] | frozenset[str] = frozenset()) -> list[dict[str, Any]]:  # noqa: ANN401
    """Badges whose threshold is met and that are not yet in ``earned``, in catalog order."""
    return [
        b for b in BADGE_DEFINITIONS
        if b["type"] not in earned and is_satisfied(b, stats)
    ]


def badge_progress(definition: dict[str, Any], stats: Any | None) -> int:  # noqa: ANN401
    """Progress toward a badge as a whole percentage (0-100).

    Manual badges and users without stats report 0.
    """
    if stats is None or definition["trigger_type"] == "manual":
        return 0
    value = _stat_value(definition["trigger_type"], stats)
    if value <= 0:
        return 0
    pct = Decimal(value) / Decimal(definition["threshold"]) * 100
    return int(min(Decimal(100), pct).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

"""Pydantic request/response models for gamification endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field


# --- Trade outcome ---


class TradeOutcome(BaseModel):
    """A closed trade reported by the positions subsystem."""

    pnl: float = Field(strict=True, allow_inf_nan=False)
    is_win: bool | None = None  # Defaults to pnl > 0
    symbol: str | None = Field(default=None, max_length=32)
    strategy: str | None = Field(default=None, max_length=32)


class NewBadgeResponse(BaseModel):
    type: str
    name: str
    icon: str


class RecordTradeResponse(BaseModel):
    success: bool = True
    pnl: float
    is_win: bool
    symbol: str | None = None
    strategy: str | None = None
    total_trades: int
    total_wins: int
    new_badges: list[NewBadgeResponse] = []


# --- Badges ---


class BadgeResponse(BaseModel):
    type: str
    name: str
    icon: str
    requirement: str
    earned_at: datetime | None = None
    progress: int = 0


class BadgeCatalogEntry(BaseModel):
    type: str
    name: str
    icon: str
    requirement: str


class BadgeCatalogResponse(BaseModel):
    badges: list[BadgeCatalogEntry]


# --- Stats ---


class GamificationStatsResponse(BaseModel):
    user_id: str
    display_name: str | None = None
    current_streak: int
    longest_streak: int
    total_wins: int
    total_trades: int
    total_profit: float
    weekly_profit: float
    win_rate: float
    sharpe_ratio: float | None = None
    badges: list[BadgeResponse]
    leaderboard_rank: int | None = None


# --- Leaderboard ---


class LeaderboardEntryResponse(BaseModel):
    rank: int
    display_name: str
    sharpe_ratio: float | None = None
    weekly_return: float
    win_rate: float
    is_current_user: bool = False


class LeaderboardResponse(BaseModel):
    metric: Literal["weekly_profit", "sharpe"]
    leaderboard: list[LeaderboardEntryResponse]
    requester: LeaderboardEntryResponse | None = None  # Only when outside the top slice
    requester_rank: int | None = None
    total: int
    week_start: date
    week_end: date


# --- Weekly evaluation ---


class WeeklyEvaluationResponse(BaseModel):
    success: bool = True
    timestamp: datetime
    week: str
    users_processed: int
    streaks_updated: int
    sharpe_calculated: int
    badges_awarded: int
    skipped: int
    errors: int

"""ORM models for gamification state.

``positions`` is owned by the execution backend; it is mapped here
read-only so the Sharpe estimator can query closed trades.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from trademind.db.base import Base


# ---------------------------------------------------------------------------
# Gamification
# ---------------------------------------------------------------------------


class UserGamification(Base):
    """Denormalized gamification summary: single row per user, O(1) reads."""

    __tablename__ = "user_gamification"
    __table_args__ = (
        CheckConstraint("total_wins <= total_trades", name="user_gamification_wins_le_trades"),
        CheckConstraint("current_streak <= longest_streak", name="user_gamification_streak_le_longest"),
    )

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_winning_week: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_evaluated_week: Mapped[str | None] = mapped_column(String(10), nullable=True)
    total_wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_trades: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_profit: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0"
    )
    weekly_profit: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0"
    )
    sharpe_ratio: Mapped[Decimal | None] = mapped_column(Numeric(6, 3), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class UserBadge(Base):
    """Badges earned by users: UNIQUE(user_id, badge_type) prevents duplicates."""

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_type", name="user_badges_user_id_badge_type_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    badge_type: Mapped[str] = mapped_column(String(50), nullable=False)
    badge_name: Mapped[str] = mapped_column(String(100), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# User settings
# ---------------------------------------------------------------------------


class UserSettings(Base):
    """Per-user preferences. Only the leaderboard display name lives here."""

    __tablename__ = "user_settings"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Positions (external)
# ---------------------------------------------------------------------------


class Position(Base):
    """Broker position written by the execution backend."""

    __tablename__ = "positions"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    strategy: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="open")
    exit_pnl: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

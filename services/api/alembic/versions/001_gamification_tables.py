"""Gamification tables.

Creates user_gamification, user_badges and user_settings. The tables may
already exist from the dashboard's ad-hoc initializer, so every statement
is idempotent and the streak-period marker is added to older tables.

Revision ID: 001_gamification_tables
Revises:
Create Date: 2026-10-12
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_gamification_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- User Gamification ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_gamification (
            user_id VARCHAR(128) PRIMARY KEY,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_winning_week DATE,
            last_evaluated_week VARCHAR(10),
            total_wins INTEGER NOT NULL DEFAULT 0,
            total_trades INTEGER NOT NULL DEFAULT 0,
            total_profit NUMERIC(12, 2) NOT NULL DEFAULT 0,
            weekly_profit NUMERIC(12, 2) NOT NULL DEFAULT 0,
            sharpe_ratio NUMERIC(6, 3),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_gamification_wins_le_trades CHECK (total_wins <= total_trades),
            CONSTRAINT user_gamification_streak_le_longest CHECK (current_streak <= longest_streak)
        )
    """)
    op.execute("""
        ALTER TABLE user_gamification
        ADD COLUMN IF NOT EXISTS last_evaluated_week VARCHAR(10)
    """)
    # Older tables defaulted sharpe to 0; NULL now means "not enough trades yet"
    op.execute("ALTER TABLE user_gamification ALTER COLUMN sharpe_ratio DROP DEFAULT")
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_gamification_weekly
        ON user_gamification(weekly_profit DESC, sharpe_ratio DESC NULLS LAST, user_id)
    """)

    # --- User Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(128) NOT NULL,
            badge_type VARCHAR(50) NOT NULL,
            badge_name VARCHAR(100) NOT NULL,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_badges_user_id_badge_type_key UNIQUE (user_id, badge_type)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_user_badges_user_id
        ON user_badges(user_id)
    """)

    # --- User Settings ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_settings (
            user_id VARCHAR(128) PRIMARY KEY,
            display_name VARCHAR(50),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        ALTER TABLE user_settings
        ADD COLUMN IF NOT EXISTS display_name VARCHAR(50)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_badges CASCADE")
    op.execute("DROP TABLE IF EXISTS user_settings CASCADE")
    op.execute("DROP TABLE IF EXISTS user_gamification CASCADE")

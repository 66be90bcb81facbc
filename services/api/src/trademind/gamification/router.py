"""Gamification API endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from trademind.auth.dependencies import get_current_user_id, verify_cron_secret
from trademind.config import get_settings
from trademind.database import get_session
from trademind.gamification.badge_service import check_and_award
from trademind.gamification.badges import BADGE_DEFINITIONS
from trademind.gamification.errors import InvalidTradeOutcomeError
from trademind.gamification.leaderboard_service import get_leaderboard
from trademind.gamification.schemas import (
    BadgeCatalogEntry,
    BadgeCatalogResponse,
    GamificationStatsResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    NewBadgeResponse,
    RecordTradeResponse,
    TradeOutcome,
    WeeklyEvaluationResponse,
)
from trademind.gamification.stats_service import build_stats_summary, upsert_on_trade, validate_pnl
from trademind.gamification.streak import get_week_boundaries, is_valid_week_iso
from trademind.gamification.weekly import run_weekly_evaluation
from trademind.redis_client import get_redis_dep

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


# ── Public endpoints ──


@router.get("/gamification/badges", response_model=BadgeCatalogResponse)
async def list_badges() -> BadgeCatalogResponse:
    """Get all badge definitions."""
    return BadgeCatalogResponse(
        badges=[
            BadgeCatalogEntry(
                type=b["type"], name=b["name"], icon=b["icon"], requirement=b["requirement"],
            )
            for b in BADGE_DEFINITIONS
        ]
    )


# ── Authenticated endpoints ──


@router.get("/gamification/stats", response_model=GamificationStatsResponse)
async def get_my_stats(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> GamificationStatsResponse:
    """Current user's streaks, counters, badges with progress, and rank."""
    return GamificationStatsResponse(**await build_stats_summary(db, user_id))


@router.post("/gamification/trades", response_model=RecordTradeResponse)
async def record_trade(
    outcome: TradeOutcome,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
) -> RecordTradeResponse:
    """Record a closed trade and return any badges it unlocked."""
    try:
        record = await upsert_on_trade(db, user_id, outcome.pnl, outcome.is_win)
    except InvalidTradeOutcomeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    total_trades, total_wins = record.total_trades, record.total_wins
    # Default win decision uses the stored cent amount, not the raw float
    is_win = outcome.is_win if outcome.is_win is not None else validate_pnl(outcome.pnl) > 0

    # Trade is committed; badge errors only log
    try:
        new_badges = await check_and_award(db, redis, user_id)
    except Exception:
        logger.exception("badge_evaluation_failed", user_id=user_id)
        await db.rollback()
        new_badges = []

    return RecordTradeResponse(
        pnl=outcome.pnl,
        is_win=is_win,
        symbol=outcome.symbol,
        strategy=outcome.strategy,
        total_trades=total_trades,
        total_wins=total_wins,
        new_badges=[NewBadgeResponse(type=b["type"], name=b["name"], icon=b["icon"]) for b in new_badges],
    )


@router.get("/gamification/leaderboard", response_model=LeaderboardResponse)
async def read_leaderboard(
    limit: int | None = Query(None, ge=1, le=100),
    metric: str = Query("weekly_profit", pattern="^(weekly_profit|sharpe)$"),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
) -> LeaderboardResponse:
    """This week's leaderboard with the caller's own rank."""
    settings = get_settings()
    board = await get_leaderboard(
        db,
        redis,
        user_id,
        limit=limit or settings.leaderboard_default_limit,
        metric=metric,
        cache_ttl=settings.leaderboard_cache_ttl_seconds,
    )
    week_start, next_week_start = get_week_boundaries()

    return LeaderboardResponse(
        metric=board["metric"],
        leaderboard=[LeaderboardEntryResponse(**e) for e in board["entries"]],
        requester=LeaderboardEntryResponse(**board["requester"]) if board["requester"] else None,
        requester_rank=board["requester_rank"],
        total=board["total"],
        week_start=week_start.date(),
        week_end=(next_week_start - timedelta(days=1)).date(),
    )


# ── Scheduler ──


@router.post(
    "/cron/weekly-evaluation",
    response_model=WeeklyEvaluationResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def weekly_evaluation(
    week: str | None = Query(None, description="ISO week to close, e.g. 2026-W41. Defaults to last week."),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
) -> WeeklyEvaluationResponse:
    """Close a week: update streaks, refresh Sharpe values, award badges."""
    if week is not None and not is_valid_week_iso(week):
        raise HTTPException(status_code=400, detail="Invalid ISO week")

    results = await run_weekly_evaluation(
        db, redis, week_iso=week, sharpe_window_days=get_settings().sharpe_window_days,
    )
    return WeeklyEvaluationResponse(timestamp=datetime.now(timezone.utc), **results)

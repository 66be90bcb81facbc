"""Integration tests for gamification API endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from trademind.gamification.badges import BADGE_DEFINITIONS

ALICE = "did:privy:alice123"
BOB = "did:privy:bob45678"
CRON = {"Authorization": "Bearer test-cron-secret"}


class TestBadgeCatalog:
    """GET /api/v1/gamification/badges is public."""

    @pytest.mark.asyncio
    async def test_list_badges(self, client: AsyncClient):
        response = await client.get("/api/v1/gamification/badges")
        assert response.status_code == 200
        badges = response.json()["badges"]
        assert [b["type"] for b in badges] == [b["type"] for b in BADGE_DEFINITIONS]
        assert set(badges[0]) == {"type", "name", "icon", "requirement"}


class TestAuthRequired:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("GET", "/api/v1/gamification/stats"),
            ("GET", "/api/v1/gamification/leaderboard"),
            ("POST", "/api/v1/gamification/trades"),
        ],
    )
    async def test_unauthenticated_is_401(self, client: AsyncClient, method, path):
        response = await client.request(method, path, json={"pnl": 1.0})
        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized"}

    @pytest.mark.asyncio
    async def test_invalid_token_is_401(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/gamification/stats", headers={"Authorization": "Bearer nope"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_cookie_session(self, client: AsyncClient, token_factory):
        client.cookies.set("privy-token", token_factory(ALICE))
        response = await client.get("/api/v1/gamification/stats")
        client.cookies.clear()
        assert response.status_code == 200
        assert response.json()["user_id"] == ALICE


class TestRecordTrade:
    @pytest.mark.asyncio
    async def test_first_trade_awards_badge(self, client: AsyncClient, headers_for):
        response = await client.post(
            "/api/v1/gamification/trades",
            json={"pnl": 42.5, "symbol": "SPY", "strategy": "iron_condor"},
            headers=headers_for(ALICE),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["is_win"] is True
        assert data["total_trades"] == 1
        assert data["total_wins"] == 1
        assert [b["type"] for b in data["new_badges"]] == ["first_trade"]

    @pytest.mark.asyncio
    async def test_second_trade_no_duplicate_badge(self, client: AsyncClient, headers_for):
        await client.post("/api/v1/gamification/trades", json={"pnl": 5.0}, headers=headers_for(ALICE))
        response = await client.post(
            "/api/v1/gamification/trades", json={"pnl": -3.0}, headers=headers_for(ALICE),
        )
        data = response.json()
        assert data["is_win"] is False
        assert data["total_trades"] == 2
        assert data["total_wins"] == 1
        assert data["new_badges"] == []

    @pytest.mark.asyncio
    async def test_sub_cent_profit_is_not_a_win(self, client: AsyncClient, headers_for):
        response = await client.post(
            "/api/v1/gamification/trades", json={"pnl": 0.004}, headers=headers_for(ALICE),
        )
        data = response.json()
        assert data["is_win"] is False
        assert data["total_wins"] == 0

        stats = (await client.get("/api/v1/gamification/stats", headers=headers_for(ALICE))).json()
        assert stats["total_profit"] == 0.0
        assert stats["total_wins"] == 0

    @pytest.mark.asyncio
    async def test_explicit_is_win_is_kept(self, client: AsyncClient, headers_for):
        response = await client.post(
            "/api/v1/gamification/trades", json={"pnl": -2.0, "is_win": True}, headers=headers_for(ALICE),
        )
        data = response.json()
        assert data["is_win"] is True
        assert data["total_wins"] == 1

    @pytest.mark.asyncio
    async def test_profit_threshold_badges(self, client: AsyncClient, headers_for):
        response = await client.post(
            "/api/v1/gamification/trades", json={"pnl": 1200.0}, headers=headers_for(ALICE),
        )
        types = [b["type"] for b in response.json()["new_badges"]]
        assert types == ["first_trade", "profit_500", "profit_1000"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"pnl": "12"}, {"pnl": None}, {}, {"pnl": True}])
    async def test_invalid_pnl_rejected(self, client: AsyncClient, headers_for, body):
        response = await client.post("/api/v1/gamification/trades", json=body, headers=headers_for(ALICE))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_out_of_range_pnl_is_400(self, client: AsyncClient, headers_for):
        response = await client.post(
            "/api/v1/gamification/trades", json={"pnl": 1e11}, headers=headers_for(ALICE),
        )
        assert response.status_code == 400

        stats = await client.get("/api/v1/gamification/stats", headers=headers_for(ALICE))
        assert stats.json()["total_trades"] == 0


class TestStats:
    @pytest.mark.asyncio
    async def test_new_user_zeroed(self, client: AsyncClient, headers_for):
        response = await client.get("/api/v1/gamification/stats", headers=headers_for(BOB))
        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == BOB
        assert data["total_trades"] == 0
        assert data["win_rate"] == 0.0
        assert data["leaderboard_rank"] is None
        assert len(data["badges"]) == len(BADGE_DEFINITIONS)

    @pytest.mark.asyncio
    async def test_stats_after_trades(self, client: AsyncClient, headers_for):
        for pnl in [100.0, -20.0, 30.0]:
            await client.post("/api/v1/gamification/trades", json={"pnl": pnl}, headers=headers_for(ALICE))

        data = (await client.get("/api/v1/gamification/stats", headers=headers_for(ALICE))).json()
        assert data["total_trades"] == 3
        assert data["total_wins"] == 2
        assert data["total_profit"] == 110.0
        assert data["weekly_profit"] == 110.0
        assert data["win_rate"] == 66.7
        assert data["leaderboard_rank"] == 1
        first = next(b for b in data["badges"] if b["type"] == "first_trade")
        assert first["earned_at"] is not None
        assert first["progress"] == 100


class TestLeaderboard:
    @pytest.mark.asyncio
    async def test_leaderboard_with_requester(self, client: AsyncClient, headers_for):
        await client.post("/api/v1/gamification/trades", json={"pnl": 50.0}, headers=headers_for(ALICE))
        await client.post("/api/v1/gamification/trades", json={"pnl": 80.0}, headers=headers_for(BOB))

        response = await client.get("/api/v1/gamification/leaderboard", headers=headers_for(ALICE))
        assert response.status_code == 200
        data = response.json()
        assert data["metric"] == "weekly_profit"
        assert data["total"] == 2
        assert [e["rank"] for e in data["leaderboard"]] == [1, 2]
        assert data["leaderboard"][0]["display_name"] == "Traderbob4"
        assert data["leaderboard"][0]["is_current_user"] is False
        assert data["leaderboard"][1]["is_current_user"] is True
        assert data["requester_rank"] == 2
        assert data["requester"] is None
        assert "user_id" not in data["leaderboard"][0]

    @pytest.mark.asyncio
    async def test_requester_outside_limit(self, client: AsyncClient, headers_for):
        await client.post("/api/v1/gamification/trades", json={"pnl": 50.0}, headers=headers_for(ALICE))
        await client.post("/api/v1/gamification/trades", json={"pnl": 80.0}, headers=headers_for(BOB))

        data = (await client.get(
            "/api/v1/gamification/leaderboard", params={"limit": 1}, headers=headers_for(ALICE),
        )).json()
        assert len(data["leaderboard"]) == 1
        assert data["requester"]["rank"] == 2
        assert data["requester"]["is_current_user"] is True

    @pytest.mark.asyncio
    async def test_week_bounds(self, client: AsyncClient, headers_for):
        data = (await client.get("/api/v1/gamification/leaderboard", headers=headers_for(ALICE))).json()
        from datetime import date

        start = date.fromisoformat(data["week_start"])
        end = date.fromisoformat(data["week_end"])
        assert start.weekday() == 0
        assert (end - start).days == 6

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 101}, {"metric": "xp"}])
    async def test_invalid_query(self, client: AsyncClient, headers_for, params):
        response = await client.get(
            "/api/v1/gamification/leaderboard", params=params, headers=headers_for(ALICE),
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_sharpe_metric_empty_without_estimates(self, client: AsyncClient, headers_for):
        await client.post("/api/v1/gamification/trades", json={"pnl": 50.0}, headers=headers_for(ALICE))
        data = (await client.get(
            "/api/v1/gamification/leaderboard", params={"metric": "sharpe"}, headers=headers_for(ALICE),
        )).json()
        assert data["metric"] == "sharpe"
        assert data["leaderboard"] == []
        assert data["requester_rank"] is None


class TestWeeklyEvaluationEndpoint:
    @pytest.mark.asyncio
    async def test_requires_cron_secret(self, client: AsyncClient):
        response = await client.post("/api/v1/cron/weekly-evaluation")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_secret(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/cron/weekly-evaluation", headers={"Authorization": "Bearer wrong"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_user_token_is_not_cron_secret(self, client: AsyncClient, headers_for):
        response = await client.post("/api/v1/cron/weekly-evaluation", headers=headers_for(ALICE))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_runs_evaluation(self, client: AsyncClient, headers_for):
        await client.post("/api/v1/gamification/trades", json={"pnl": 50.0}, headers=headers_for(ALICE))

        response = await client.post(
            "/api/v1/cron/weekly-evaluation", params={"week": "2026-W09"}, headers=CRON,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["week"] == "2026-W09"
        assert data["users_processed"] == 1
        assert data["streaks_updated"] == 1

        stats = (await client.get("/api/v1/gamification/stats", headers=headers_for(ALICE))).json()
        assert stats["current_streak"] == 1
        assert stats["weekly_profit"] == 0.0

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, client: AsyncClient, headers_for):
        await client.post("/api/v1/gamification/trades", json={"pnl": 50.0}, headers=headers_for(ALICE))
        await client.post("/api/v1/cron/weekly-evaluation", params={"week": "2026-W09"}, headers=CRON)
        response = await client.post(
            "/api/v1/cron/weekly-evaluation", params={"week": "2026-W09"}, headers=CRON,
        )
        assert response.json()["skipped"] == 1

        stats = (await client.get("/api/v1/gamification/stats", headers=headers_for(ALICE))).json()
        assert stats["current_streak"] == 1

    @pytest.mark.asyncio
    async def test_invalid_week(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/cron/weekly-evaluation", params={"week": "yesterday"}, headers=CRON,
        )
        assert response.status_code == 400

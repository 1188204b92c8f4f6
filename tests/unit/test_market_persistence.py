# tests/unit/test_market_persistence.py
"""Unit tests for MarketRepository using a mocked AsyncSession."""
from dataclasses import asdict
from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.om_market.infrastructure.persistence import MarketRepository
from tests.factories import make_market


def _result(rows):
    result = MagicMock()
    result.fetchone.return_value = rows[0] if rows else None
    result.fetchall.return_value = rows
    return result


def _row(**kwargs):
    return SimpleNamespace(**asdict(make_market(**kwargs)))


@pytest.fixture
def db():
    return MagicMock()


class TestGetMarket:
    @pytest.mark.asyncio
    async def test_found(self, db):
        db.execute = AsyncMock(return_value=_result([_row(id="mkt-9", yes_reserves=7)]))
        market = await MarketRepository().get_market_by_id(db, "mkt-9")
        assert market.id == "mkt-9"
        assert market.yes_reserves == 7

    @pytest.mark.asyncio
    async def test_not_found(self, db):
        db.execute = AsyncMock(return_value=_result([]))
        assert await MarketRepository().get_market_by_id(db, "nope") is None

    @pytest.mark.asyncio
    async def test_by_onchain_id_binds_text(self, db):
        db.execute = AsyncMock(return_value=_result([_row()]))
        await MarketRepository().get_market_by_onchain_id(db, 12)
        params = db.execute.call_args.args[1]
        assert params == {"onchain_id": "12"}


class TestListMarkets:
    @pytest.mark.asyncio
    async def test_parses_cursor_timestamp(self, db):
        db.execute = AsyncMock(return_value=_result([_row(), _row(id="mkt-2")]))
        markets = await MarketRepository().list_markets(
            db, "open", None, "2026-01-01T00:00:00+00:00", "mkt-3", 21
        )
        params = db.execute.call_args.args[1]
        assert params["cursor_ts"] == datetime(2026, 1, 1, tzinfo=UTC)
        assert params["limit"] == 21
        assert [m.id for m in markets] == ["mkt-1", "mkt-2"]

    @pytest.mark.asyncio
    async def test_no_cursor(self, db):
        db.execute = AsyncMock(return_value=_result([]))
        await MarketRepository().list_markets(db, None, None, None, None, 5)
        assert db.execute.call_args.args[1]["cursor_ts"] is None


class TestSnapshots:
    @pytest.mark.asyncio
    async def test_maps_rows(self, db):
        row = SimpleNamespace(
            market_id="mkt-1", yes_price=0.6, no_price=0.4, yes_reserves=4, no_reserves=6,
            volume_cumulative=10, trade_count_cumulative=1, captured_at=datetime.now(UTC),
        )
        db.execute = AsyncMock(return_value=_result([row]))
        snaps = await MarketRepository().list_snapshots(db, "mkt-1", 100)
        assert snaps[0].yes_price == 0.6
        assert snaps[0].trade_count_cumulative == 1


class TestWrites:
    @pytest.mark.asyncio
    async def test_mark_resolved(self, db):
        db.execute = AsyncMock(
            return_value=_result([_row(status="resolved", resolution_outcome="yes")])
        )
        when = datetime.now(UTC)
        market = await MarketRepository().mark_resolved(db, "mkt-1", "yes", when)
        assert market.status == "resolved"
        assert db.execute.call_args.args[1] == {
            "market_id": "mkt-1", "outcome": "yes", "resolved_at": when,
        }

    @pytest.mark.asyncio
    async def test_create_market_seeds_both_sides(self, db):
        db.execute = AsyncMock(return_value=_result([_row()]))
        await MarketRepository().create_market(
            db, market_id="mkt-1", title="t", description=None, category=None, slug="t",
            initial_reserves=1_000_000_000, fee_bps=200, resolution_deadline=None,
            market_id_onchain=3,
        )
        params = db.execute.call_args.args[1]
        assert params["yes_reserves"] == params["no_reserves"] == 1_000_000_000
        assert params["market_id_onchain"] == "3"

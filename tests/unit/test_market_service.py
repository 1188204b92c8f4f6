# tests/unit/test_market_service.py
"""Unit tests for MarketApplicationService using mock repository and store."""
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from src.om_common.enums import MarketStatus, TradeSide
from src.om_common.errors import (
    InvalidAmountError,
    MarketNotFoundError,
    MarketNotOpenError,
    StoreError,
)
from src.om_market.application.service import MarketApplicationService
from src.om_market.domain.models import MarketSnapshot
from src.om_pricing.domain.models import Reserves
from tests.factories import make_market, make_onchain


def _db_down() -> OperationalError:
    return OperationalError("SELECT", {}, Exception("connection refused"))


@pytest.fixture
def db():
    return MagicMock()


@pytest.fixture
def mock_repo():
    return MagicMock()


@pytest.fixture
def store():
    store = MagicMock()
    store.get_market_for_trade = AsyncMock(
        return_value=make_onchain(yes_reserves=40_000_000, no_reserves=60_000_000)
    )
    store.get_display_reserves = AsyncMock(side_effect=lambda m: m.reserves)
    return store


class TestListMarkets:
    @pytest.mark.asyncio
    async def test_returns_list_response(self, db, mock_repo, store):
        mock_repo.list_markets = AsyncMock(
            return_value=[make_market(id=f"m-{i}") for i in range(3)]
        )
        svc = MarketApplicationService(repo=mock_repo)

        resp = await svc.list_markets(db, store, None, None, None, 20)

        assert len(resp.items) == 3
        assert resp.has_more is False
        assert resp.next_cursor is None
        assert resp.items[0].pricing.yes_price == 0.5
        assert store.get_display_reserves.await_count == 3

    @pytest.mark.asyncio
    async def test_has_more_when_over_limit(self, db, mock_repo, store):
        mock_repo.list_markets = AsyncMock(
            return_value=[make_market(id=f"m-{i}") for i in range(21)]
        )
        svc = MarketApplicationService(repo=mock_repo)

        resp = await svc.list_markets(db, store, None, None, None, 20)

        assert resp.has_more is True
        assert len(resp.items) == 20
        assert resp.next_cursor is not None
        assert mock_repo.list_markets.call_args.args[5] == 21

    @pytest.mark.asyncio
    async def test_default_status_is_open(self, db, mock_repo, store):
        mock_repo.list_markets = AsyncMock(return_value=[])
        svc = MarketApplicationService(repo=mock_repo)
        await svc.list_markets(db, store, None, None, None, 20)
        assert mock_repo.list_markets.call_args.args[1] == "open"

    @pytest.mark.asyncio
    async def test_status_all_passes_none_to_repo(self, db, mock_repo, store):
        mock_repo.list_markets = AsyncMock(return_value=[])
        svc = MarketApplicationService(repo=mock_repo)
        await svc.list_markets(db, store, "ALL", None, None, 20)
        assert mock_repo.list_markets.call_args.args[1] is None

    @pytest.mark.asyncio
    async def test_unseeded_mirror_priced_from_chain_cache(self, db, mock_repo, store):
        mock_repo.list_markets = AsyncMock(
            return_value=[make_market(yes_reserves=0, no_reserves=0)]
        )
        store.get_display_reserves = AsyncMock(return_value=Reserves(25_000_000, 75_000_000))

        resp = await MarketApplicationService(repo=mock_repo).list_markets(
            db, store, None, None, None, 20
        )

        assert resp.items[0].yes_reserves == 0
        assert resp.items[0].pricing.yes_price == pytest.approx(0.75)

    @pytest.mark.asyncio
    async def test_db_failure_degrades_to_empty_page(self, db, mock_repo, store):
        mock_repo.list_markets = AsyncMock(side_effect=_db_down())

        resp = await MarketApplicationService(repo=mock_repo).list_markets(
            db, store, None, None, None, 20
        )

        assert resp.items == []
        assert resp.has_more is False
        store.get_display_reserves.assert_not_awaited()


class TestGetMarket:
    @pytest.mark.asyncio
    async def test_detail_has_odds_and_roi(self, db, mock_repo, store):
        mock_repo.get_market_by_id = AsyncMock(
            return_value=make_market(yes_reserves=75_000_000, no_reserves=25_000_000)
        )
        detail = await MarketApplicationService(repo=mock_repo).get_market(db, store, "mkt-1")
        assert detail.pricing.yes_price == pytest.approx(0.25)
        assert detail.pricing.yes_odds == pytest.approx(4.0)
        assert detail.pricing.yes_roi_pct == pytest.approx(300.0)
        assert detail.liquidity_display == "100.000000"

    @pytest.mark.asyncio
    async def test_no_display_reserves_means_no_pricing(self, db, mock_repo, store):
        mock_repo.get_market_by_id = AsyncMock(return_value=make_market(yes_reserves=0))
        store.get_display_reserves = AsyncMock(return_value=None)
        detail = await MarketApplicationService(repo=mock_repo).get_market(db, store, "mkt-1")
        assert detail.pricing is None

    @pytest.mark.asyncio
    async def test_not_found(self, db, mock_repo, store):
        mock_repo.get_market_by_id = AsyncMock(return_value=None)
        with pytest.raises(MarketNotFoundError):
            await MarketApplicationService(repo=mock_repo).get_market(db, store, "nope")

    @pytest.mark.asyncio
    async def test_db_failure_is_store_error(self, db, mock_repo, store):
        mock_repo.get_market_by_id = AsyncMock(side_effect=_db_down())
        with pytest.raises(StoreError):
            await MarketApplicationService(repo=mock_repo).get_market(db, store, "mkt-1")


class TestSnapshots:
    @pytest.mark.asyncio
    async def test_lists_history(self, db, mock_repo):
        mock_repo.get_market_by_id = AsyncMock(return_value=make_market())
        mock_repo.list_snapshots = AsyncMock(return_value=[
            MarketSnapshot("mkt-1", 0.5, 0.5, 5, 5, 0, 0, datetime.now(UTC)),
            MarketSnapshot("mkt-1", 0.6, 0.4, 4, 6, 10, 1, datetime.now(UTC)),
        ])
        resp = await MarketApplicationService(repo=mock_repo).get_snapshots(db, "mkt-1", 100)
        assert [s.yes_price for s in resp.items] == [0.5, 0.6]

    @pytest.mark.asyncio
    async def test_history_read_failure_is_empty(self, db, mock_repo):
        mock_repo.get_market_by_id = AsyncMock(return_value=make_market())
        mock_repo.list_snapshots = AsyncMock(side_effect=_db_down())
        resp = await MarketApplicationService(repo=mock_repo).get_snapshots(db, "mkt-1", 100)
        assert resp.items == []

    @pytest.mark.asyncio
    async def test_unknown_market(self, db, mock_repo):
        mock_repo.get_market_by_id = AsyncMock(return_value=None)
        with pytest.raises(MarketNotFoundError):
            await MarketApplicationService(repo=mock_repo).get_snapshots(db, "nope", 100)


class TestQuote:
    @pytest.mark.asyncio
    async def test_uses_fresh_chain_record(self, db, mock_repo, store):
        mock_repo.get_market_by_id = AsyncMock(return_value=make_market())
        quote = await MarketApplicationService(repo=mock_repo).quote(
            db, store, "mkt-1", TradeSide.YES, 1_000_000
        )
        store.get_market_for_trade.assert_awaited_once_with(1)
        assert quote.yes_reserves_before == 40_000_000
        assert quote.shares_out > 0
        assert quote.price_after > quote.price_before

    @pytest.mark.asyncio
    async def test_closed_on_chain_but_open_in_mirror(self, db, mock_repo, store):
        mock_repo.get_market_by_id = AsyncMock(return_value=make_market())
        store.get_market_for_trade = AsyncMock(
            return_value=make_onchain(status=MarketStatus.CLOSED)
        )
        with pytest.raises(MarketNotOpenError) as exc:
            await MarketApplicationService(repo=mock_repo).quote(
                db, store, "mkt-1", TradeSide.YES, 1_000_000
            )
        assert exc.value.status == "closed"

    @pytest.mark.asyncio
    async def test_undeployed_market_uses_mirror(self, db, mock_repo, store):
        mock_repo.get_market_by_id = AsyncMock(return_value=make_market(market_id_onchain=None))
        quote = await MarketApplicationService(repo=mock_repo).quote(
            db, store, "mkt-1", TradeSide.NO, 1_000_000
        )
        store.get_market_for_trade.assert_not_awaited()
        assert quote.yes_reserves_before == 50_000_000

    @pytest.mark.asyncio
    async def test_zero_amount(self, db, mock_repo, store):
        mock_repo.get_market_by_id = AsyncMock(return_value=make_market())
        with pytest.raises(InvalidAmountError):
            await MarketApplicationService(repo=mock_repo).quote(
                db, store, "mkt-1", TradeSide.YES, 0
            )

    @pytest.mark.asyncio
    async def test_closed_market(self, db, mock_repo, store):
        mock_repo.get_market_by_id = AsyncMock(return_value=make_market(status="closed"))
        with pytest.raises(MarketNotOpenError):
            await MarketApplicationService(repo=mock_repo).quote(
                db, store, "mkt-1", TradeSide.YES, 1_000_000
            )

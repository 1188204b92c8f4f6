# tests/unit/test_admin_service.py
"""Unit tests for AdminService market creation and resolution."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from config.settings import settings
from src.om_admin.application.schemas import CreateMarketRequest
from src.om_admin.application.service import AdminService, slugify
from src.om_common.errors import (
    InvalidAmountError,
    InvalidResolutionError,
    MarketNotFoundError,
    RequestValidationFailed,
    StoreError,
)
from tests.factories import make_market


@pytest.fixture
def db():
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def repo():
    repo = MagicMock()
    repo.get_market_by_id = AsyncMock(return_value=make_market())
    repo.mark_resolved = AsyncMock(
        side_effect=lambda db, market_id, outcome, at: make_market(
            status="resolved", resolution_outcome=outcome, resolved_at=at
        )
    )
    repo.create_market = AsyncMock(return_value=make_market(market_id_onchain="7"))
    return repo


def test_slugify() -> None:
    assert slugify("Will BTC hit $100k in 2026?") == "will-btc-hit-100k-in-2026"


class TestResolve:
    @pytest.mark.asyncio
    async def test_yes_outcome_builds_resolve_transaction(self, db, repo) -> None:
        resp = await AdminService(repo=repo).resolve_market(db, "mkt-1", "yes")

        assert resp.market.status == "resolved"
        assert resp.market.resolution_outcome == "yes"
        assert resp.transaction.function == "resolve_market"
        assert resp.transaction.inputs == ["1u64", "true"]
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_outcome(self, db, repo) -> None:
        resp = await AdminService(repo=repo).resolve_market(db, "mkt-1", "no")
        assert resp.transaction.inputs == ["1u64", "false"]

    @pytest.mark.asyncio
    async def test_invalid_outcome_has_no_transaction(self, db, repo) -> None:
        resp = await AdminService(repo=repo).resolve_market(db, "mkt-1", "invalid")
        assert resp.market.resolution_outcome == "invalid"
        assert resp.transaction is None

    @pytest.mark.asyncio
    async def test_closed_market_can_be_resolved(self, db, repo) -> None:
        repo.get_market_by_id.return_value = make_market(status="closed")
        resp = await AdminService(repo=repo).resolve_market(db, "mkt-1", "no")
        assert resp.market.status == "resolved"

    @pytest.mark.asyncio
    async def test_unknown_outcome(self, db, repo) -> None:
        with pytest.raises(InvalidResolutionError, match="must be"):
            await AdminService(repo=repo).resolve_market(db, "mkt-1", "YES!")
        repo.get_market_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_market(self, db, repo) -> None:
        repo.get_market_by_id.return_value = None
        with pytest.raises(MarketNotFoundError):
            await AdminService(repo=repo).resolve_market(db, "nope", "yes")

    @pytest.mark.asyncio
    async def test_already_resolved(self, db, repo) -> None:
        repo.get_market_by_id.return_value = make_market(status="resolved")
        with pytest.raises(InvalidResolutionError, match='status "resolved"'):
            await AdminService(repo=repo).resolve_market(db, "mkt-1", "yes")
        repo.mark_resolved.assert_not_awaited()


class TestCreateMarket:
    @pytest.mark.asyncio
    async def test_creates_mirror_row_and_transaction(self, db, repo) -> None:
        req = CreateMarketRequest(
            title="Will it snow?", initial_liquidity="250.5", market_id_onchain=7
        )
        resp = await AdminService(repo=repo).create_market(db, req)

        kwargs = repo.create_market.call_args.kwargs
        assert kwargs["slug"] == "will-it-snow"
        assert kwargs["initial_reserves"] == 250_500_000
        assert kwargs["fee_bps"] == 200
        assert resp.transaction.inputs == ["7u64", "250500000u128", "250500000u128"]
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_onchain_id_has_no_transaction(self, db, repo) -> None:
        resp = await AdminService(repo=repo).create_market(db, CreateMarketRequest(title="Q"))
        assert repo.create_market.call_args.kwargs["initial_reserves"] == 1_000_000_000
        assert resp.transaction is None

    @pytest.mark.asyncio
    async def test_liquidity_scaled_by_asset_decimals(self, db, repo, monkeypatch) -> None:
        monkeypatch.setattr(settings, "ASSET_DECIMALS", 2)
        req = CreateMarketRequest(title="Q", initial_liquidity="250.5")
        await AdminService(repo=repo).create_market(db, req)
        assert repo.create_market.call_args.kwargs["initial_reserves"] == 25_050

    @pytest.mark.asyncio
    @pytest.mark.parametrize("liquidity", ["0", "-5", "0.0000001"])
    async def test_non_positive_liquidity(self, db, repo, liquidity) -> None:
        req = CreateMarketRequest(title="Q", initial_liquidity=liquidity)
        with pytest.raises(InvalidAmountError):
            await AdminService(repo=repo).create_market(db, req)
        repo.create_market.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unparseable_liquidity(self, db, repo) -> None:
        req = CreateMarketRequest(title="Q", initial_liquidity="lots")
        with pytest.raises(RequestValidationFailed):
            await AdminService(repo=repo).create_market(db, req)

    @pytest.mark.asyncio
    async def test_duplicate_slug_rolls_back(self, db, repo) -> None:
        repo.create_market.side_effect = IntegrityError("INSERT", {}, Exception())
        with pytest.raises(StoreError):
            await AdminService(repo=repo).create_market(db, CreateMarketRequest(title="Q"))
        db.rollback.assert_awaited_once()

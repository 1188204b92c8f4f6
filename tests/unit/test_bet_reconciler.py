# tests/unit/test_bet_reconciler.py
"""Bet state machine with mocked store, wallet, status source and writer."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.om_chain.domain.models import TransactionStatusResult
from src.om_common.enums import BetState, MarketStatus, TradeSide, TxStatus
from src.om_common.errors import (
    BetValidationError,
    ChainRejectedError,
    ChainUnavailableError,
    ConfirmationTimeoutError,
    MappingParseError,
    StoreError,
)
from src.om_pricing.domain.models import Reserves
from src.om_trade.application.reconciler import BetReconciler, validate_bet
from src.om_trade.domain.models import BetAttempt, BetIntent
from tests.factories import make_market, make_onchain, make_trade

WALLET = "aleo1wallet"

PENDING = TransactionStatusResult(status=TxStatus.PENDING)
ACCEPTED = TransactionStatusResult(status=TxStatus.ACCEPTED)


def _intent(**kwargs) -> BetIntent:
    defaults = dict(market_id="mkt-1", amount=1_000_000, side=TradeSide.YES, wallet_address=WALLET)
    defaults.update(kwargs)
    return BetIntent(**defaults)


@pytest.fixture
def db():
    return MagicMock()


@pytest.fixture
def store():
    store = MagicMock()
    store.fetch_mirrored_market = AsyncMock(return_value=make_market())
    store.get_market_for_trade = AsyncMock(return_value=make_onchain())
    return store


@pytest.fixture
def writer():
    writer = MagicMock()
    writer.record = AsyncMock(return_value=make_trade())
    return writer


@pytest.fixture
def signer():
    signer = MagicMock()
    signer.execute = AsyncMock(return_value="at1tx")
    return signer


@pytest.fixture
def status_source():
    source = MagicMock()
    source.get_status = AsyncMock(return_value=ACCEPTED)
    return source


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def reconciler(store, writer, signer, status_source, sleep):
    return BetReconciler(
        store, writer, signer, status_source,
        sleep=sleep, max_attempts=3, interval_s=2.0, min_bet_micro=1_000_000,
    )


def _states(attempt: BetAttempt) -> list[BetState]:
    return [t.to_state for t in attempt.history]


class TestValidation:
    def test_returns_onchain_id(self):
        assert validate_bet(_intent(), make_market(market_id_onchain="12"), 1_000_000) == 12

    @pytest.mark.parametrize(
        "intent, market, fragment",
        [
            (_intent(wallet_address=None), make_market(), "wallet"),
            (_intent(side=None), make_market(), "side"),
            (_intent(), make_market(status="resolved"), "not open"),
            (_intent(amount=999_999), make_market(), "Minimum bet"),
            (_intent(), make_market(market_id_onchain=None), "not deployed"),
        ],
    )
    def test_rejections(self, intent, market, fragment):
        with pytest.raises(BetValidationError) as exc:
            validate_bet(intent, market, 1_000_000)
        assert fragment in exc.value.reason


class TestRejectedLocally:
    @pytest.mark.asyncio
    async def test_resolved_market_never_reaches_chain(
        self, reconciler, store, signer, db
    ):
        store.fetch_mirrored_market = AsyncMock(return_value=make_market(status="resolved"))

        attempt = await reconciler.run(db, _intent())

        assert attempt.state is BetState.REJECTED
        assert isinstance(attempt.error, BetValidationError)
        assert _states(attempt) == [BetState.VALIDATING, BetState.REJECTED]
        store.get_market_for_trade.assert_not_awaited()
        signer.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_amount_below_minimum(self, reconciler, store, db):
        attempt = await reconciler.run(db, _intent(amount=500_000))
        assert attempt.state is BetState.REJECTED
        store.get_market_for_trade.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_while_idle_reads_nothing(self, reconciler, store, signer, db):
        attempt = BetAttempt(intent=_intent())
        assert attempt.cancel() is True

        await reconciler.resume(db, attempt)

        assert attempt.state is BetState.REJECTED
        assert _states(attempt) == [BetState.VALIDATING, BetState.REJECTED]
        store.fetch_mirrored_market.assert_not_awaited()
        store.get_market_for_trade.assert_not_awaited()
        signer.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_before_submit(self, reconciler, signer, db):
        attempt = BetAttempt(intent=_intent())
        await reconciler.prepare(db, attempt)
        assert attempt.cancel() is True

        await reconciler.resume(db, attempt)

        assert attempt.state is BetState.REJECTED
        signer.execute.assert_not_awaited()


class TestMirrorAndChainDisagree:
    @pytest.mark.asyncio
    async def test_store_failure_during_validation_fails_attempt(self, reconciler, store, db):
        store.fetch_mirrored_market = AsyncMock(side_effect=StoreError("OperationalError"))

        attempt = await reconciler.prepare(db, BetAttempt(intent=_intent()))

        assert attempt.state is BetState.FAILED
        assert attempt.is_terminal
        assert isinstance(attempt.error, StoreError)
        store.get_market_for_trade.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resolved_on_chain_but_open_in_mirror_is_rejected(
        self, reconciler, store, signer, db
    ):
        store.get_market_for_trade = AsyncMock(
            return_value=make_onchain(status=MarketStatus.RESOLVED)
        )

        attempt = await reconciler.run(db, _intent())

        assert attempt.state is BetState.REJECTED
        assert "not open on-chain" in attempt.error.message
        assert attempt.transaction is None
        signer.execute.assert_not_awaited()


class TestQuoting:
    @pytest.mark.asyncio
    async def test_prepare_builds_tx_from_fresh_reserves(self, reconciler, store, db):
        store.get_market_for_trade = AsyncMock(
            return_value=make_onchain(yes_reserves=40_000_000, no_reserves=60_000_000)
        )
        attempt = await reconciler.prepare(db, BetAttempt(intent=_intent()))

        assert attempt.state is BetState.QUOTING
        assert attempt.transaction.inputs == [
            "1u64", "40000000u128", "60000000u128", "1000000u128", "true",
        ]
        assert attempt.quote.reserves_before == Reserves(40_000_000, 60_000_000)
        store.get_market_for_trade.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_chain_unavailable_fails(self, reconciler, store, signer, db):
        store.get_market_for_trade = AsyncMock(side_effect=ChainUnavailableError("down"))
        attempt = await reconciler.run(db, _intent())
        assert attempt.state is BetState.FAILED
        assert isinstance(attempt.error, ChainUnavailableError)
        signer.execute.assert_not_awaited()


class TestConfirmation:
    @pytest.mark.asyncio
    async def test_happy_path_records_trade(
        self, reconciler, status_source, writer, sleep, db
    ):
        status_source.get_status = AsyncMock(side_effect=[PENDING, PENDING, ACCEPTED])

        attempt = await reconciler.run(db, _intent())

        assert attempt.state is BetState.RECORDED
        assert _states(attempt) == [
            BetState.VALIDATING, BetState.QUOTING, BetState.SUBMITTING,
            BetState.CONFIRMING, BetState.RECORDED,
        ]
        assert attempt.transaction_id == "at1tx"
        assert attempt.confirmed_on_chain is True
        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 2.0]

        new_trade = writer.record.await_args.args[1]
        assert new_trade.market_id == "mkt-1"
        assert new_trade.side is TradeSide.YES
        assert new_trade.shares == 980_392
        assert new_trade.amount == 1_000_000
        assert new_trade.yes_reserves_after == 49_019_608
        assert new_trade.no_reserves_after == 51_000_000
        assert new_trade.price_before == 0.5
        assert new_trade.price_after > 0.5
        assert new_trade.tx_hash == "at1tx"

    @pytest.mark.asyncio
    async def test_finalized_counts_as_success(self, reconciler, status_source, db):
        status_source.get_status = AsyncMock(
            return_value=TransactionStatusResult(status=TxStatus.FINALIZED)
        )
        attempt = await reconciler.run(db, _intent())
        assert attempt.state is BetState.RECORDED

    @pytest.mark.asyncio
    async def test_rejection_reason_verbatim(self, reconciler, status_source, writer, db):
        status_source.get_status = AsyncMock(
            return_value=TransactionStatusResult(
                status=TxStatus.REJECTED, error="assert_eq failed: reserves changed"
            )
        )
        attempt = await reconciler.run(db, _intent())

        assert attempt.state is BetState.FAILED
        assert isinstance(attempt.error, ChainRejectedError)
        assert attempt.error.message == "assert_eq failed: reserves changed"
        writer.record.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_timeout_is_bounded(self, reconciler, status_source, writer, sleep, db):
        status_source.get_status = AsyncMock(return_value=PENDING)

        attempt = await reconciler.run(db, _intent())

        assert attempt.state is BetState.FAILED
        assert isinstance(attempt.error, ConfirmationTimeoutError)
        assert status_source.get_status.await_count == 3
        assert sleep.await_count == 2
        writer.record.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_status_poll_errors_keep_polling(self, reconciler, status_source, db):
        status_source.get_status = AsyncMock(
            side_effect=[ChainUnavailableError("flaky"), ACCEPTED]
        )
        attempt = await reconciler.run(db, _intent())
        assert attempt.state is BetState.RECORDED

    @pytest.mark.asyncio
    async def test_unparseable_status_keeps_polling(self, reconciler, status_source, db):
        status_source.get_status = AsyncMock(
            side_effect=[MappingParseError("status", "<html>"), PENDING, ACCEPTED]
        )
        attempt = await reconciler.run(db, _intent())
        assert attempt.state is BetState.RECORDED
        assert status_source.get_status.await_count == 3

    @pytest.mark.asyncio
    async def test_wallet_refusal_fails(self, reconciler, signer, status_source, db):
        signer.execute = AsyncMock(side_effect=ChainRejectedError("User rejected"))
        attempt = await reconciler.run(db, _intent())
        assert attempt.state is BetState.FAILED
        status_source.get_status.assert_not_awaited()


class TestStoreFailureAfterConfirmation:
    @pytest.mark.asyncio
    async def test_surfaced_not_reversed(self, reconciler, writer, signer, db, caplog):
        writer.record = AsyncMock(side_effect=StoreError("OperationalError"))

        with caplog.at_level("ERROR"):
            attempt = await reconciler.run(db, _intent())

        assert attempt.state is BetState.FAILED
        assert attempt.confirmed_on_chain is True
        assert attempt.transaction_id == "at1tx"
        assert isinstance(attempt.error, StoreError)
        signer.execute.assert_awaited_once()
        assert "not recorded" in caplog.text


class TestBetAttempt:
    def test_cannot_cancel_after_submission(self):
        attempt = BetAttempt(intent=_intent())
        for state in (BetState.VALIDATING, BetState.QUOTING, BetState.SUBMITTING):
            attempt.advance(state)
        assert attempt.cancel() is False
        assert attempt.cancel_requested is False

    def test_illegal_transition(self):
        attempt = BetAttempt(intent=_intent())
        with pytest.raises(ValueError):
            attempt.advance(BetState.RECORDED)

    def test_terminal_states(self):
        attempt = BetAttempt(intent=_intent())
        attempt.advance(BetState.VALIDATING)
        attempt.advance(BetState.REJECTED, "no wallet")
        assert attempt.is_terminal
        assert attempt.history[-1].detail == "no wallet"

    @pytest.mark.asyncio
    async def test_resume_needs_wallet(self, store, writer, db):
        with pytest.raises(RuntimeError):
            await BetReconciler(store, writer).resume(db, BetAttempt(intent=_intent()))

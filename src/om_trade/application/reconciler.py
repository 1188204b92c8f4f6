"""Bet reconciliation state machine.

    IDLE → VALIDATING → QUOTING → SUBMITTING → CONFIRMING → RECORDED
                 ↘ REJECTED (local, no chain call)      ↘ FAILED

VALIDATING and QUOTING never touch funds: a rejection there is fixable by the
user. QUOTING reads reserves fresh from the chain because place_bet_cpmm
verifies the reserves it is given. Once the wallet accepts the transaction
the bet cannot be cancelled, and a store failure after confirmation is
reported without touching the chain transaction.
"""

import asyncio
import logging
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.om_chain.domain.models import TransactionStatusSource, WalletSigner
from src.om_chain.domain.transactions import build_place_bet_transaction
from src.om_common.enums import BetState, MarketStatus, TxStatus
from src.om_common.errors import (
    AppError,
    BetValidationError,
    ChainRejectedError,
    ChainUnavailableError,
    ConfirmationTimeoutError,
    InvalidAmountError,
    MappingParseError,
    MarketNotFoundError,
    MarketNotTradeableError,
)
from src.om_common.micro import format_micro
from src.om_common.retry import Sleep
from src.om_market.domain.models import Market
from src.om_pricing.domain.cpmm import quote_trade
from src.om_reserves.application.service import ReserveStateStore
from src.om_trade.domain.models import BetAttempt, BetIntent, NewTrade, Trade

logger = logging.getLogger(__name__)

_CANCELLED = "Bet cancelled"

# Errors the user can fix before anything is sent to the chain.
_LOCAL_ERRORS = (
    BetValidationError,
    MarketNotFoundError,
    InvalidAmountError,
    MarketNotTradeableError,
)


class TradeWriter(Protocol):
    async def record(self, db: AsyncSession, trade: NewTrade) -> Trade: ...


def validate_bet(intent: BetIntent, market: Market, min_bet_micro: int) -> int:
    """Local checks; returns the on-chain market id to trade against."""
    if not intent.wallet_address:
        raise BetValidationError("Connect a wallet to place a bet")
    if intent.side is None:
        raise BetValidationError("Select a side (yes or no)")
    if market.status != MarketStatus.OPEN.value:
        raise BetValidationError(f"Market is not open (status={market.status})")
    if intent.amount < min_bet_micro:
        minimum = format_micro(min_bet_micro, decimals=settings.ASSET_DECIMALS)
        raise BetValidationError(f"Minimum bet is {minimum}")
    onchain_id = market.onchain_id
    if onchain_id is None:
        raise BetValidationError("Market is not deployed on-chain")
    return onchain_id


class BetReconciler:
    def __init__(
        self,
        store: ReserveStateStore,
        writer: TradeWriter,
        signer: WalletSigner | None = None,
        status_source: TransactionStatusSource | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        max_attempts: int | None = None,
        interval_s: float | None = None,
        min_bet_micro: int | None = None,
    ) -> None:
        self._store = store
        self._writer = writer
        self._signer = signer
        self._status_source = status_source
        self._sleep = sleep
        self._max_attempts = (
            max_attempts if max_attempts is not None else settings.CONFIRM_MAX_ATTEMPTS
        )
        self._interval_s = interval_s if interval_s is not None else settings.CONFIRM_INTERVAL_S
        self._min_bet_micro = (
            min_bet_micro if min_bet_micro is not None else settings.MIN_BET_MICRO
        )

    # ------------------------------------------------------------------
    # Pre-chain phases
    # ------------------------------------------------------------------

    async def prepare(self, db: AsyncSession, attempt: BetAttempt) -> BetAttempt:
        """VALIDATING + QUOTING. Stops at QUOTING with a transaction ready to sign."""
        intent = attempt.intent
        try:
            self._enter(attempt, BetState.VALIDATING)
            self._check_cancelled(attempt)
            market = await self._store.fetch_mirrored_market(db, intent.market_id)
            onchain_id = validate_bet(intent, market, self._min_bet_micro)

            self._check_cancelled(attempt)
            self._enter(attempt, BetState.QUOTING)
            # The mirror may lag the chain; only the fresh record decides tradeability.
            onchain = await self._store.get_market_for_trade(onchain_id)
            if onchain.status is not MarketStatus.OPEN:
                raise BetValidationError(
                    f"Market is not open on-chain (status={onchain.status.value})"
                )
            reserves = onchain.reserves
            assert intent.side is not None
            attempt.quote = quote_trade(reserves, intent.side, intent.amount)
            attempt.transaction = build_place_bet_transaction(
                onchain_id, reserves, intent.amount, intent.side
            )
        except _LOCAL_ERRORS as e:
            self._stop(attempt, BetState.REJECTED, e)
        except AppError as e:
            self._stop(attempt, BetState.FAILED, e)
        return attempt

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    async def run(self, db: AsyncSession, intent: BetIntent) -> BetAttempt:
        return await self.resume(db, BetAttempt(intent=intent))

    async def resume(self, db: AsyncSession, attempt: BetAttempt) -> BetAttempt:
        """Drive an attempt to a terminal state. Returns it; errors are on attempt.error."""
        if self._signer is None or self._status_source is None:
            raise RuntimeError("BetReconciler needs a signer and a status source to submit")

        if attempt.state is BetState.IDLE:
            await self.prepare(db, attempt)
        if attempt.is_terminal:
            return attempt
        if attempt.cancel_requested:
            self._stop(attempt, BetState.REJECTED, BetValidationError(_CANCELLED))
            return attempt

        assert attempt.transaction is not None and attempt.quote is not None
        try:
            self._enter(attempt, BetState.SUBMITTING)
            attempt.transaction_id = await self._signer.execute(attempt.transaction)

            self._enter(attempt, BetState.CONFIRMING, attempt.transaction_id)
            await self._await_confirmation(attempt.transaction_id)
        except AppError as e:
            self._stop(attempt, BetState.FAILED, e)
            return attempt

        attempt.confirmed_on_chain = True
        await self._record(db, attempt)
        return attempt

    async def _await_confirmation(self, transaction_id: str) -> None:
        for n in range(1, self._max_attempts + 1):
            try:
                result = await self._status_source.get_status(transaction_id)  # type: ignore[union-attr]
            except (ChainUnavailableError, MappingParseError) as e:
                # Outcome still unknown; keep polling until the attempt budget runs out.
                logger.warning("Status poll %d for %s failed: %s", n, transaction_id, e.message)
            else:
                if result.status in (TxStatus.ACCEPTED, TxStatus.FINALIZED):
                    return
                if result.status in (TxStatus.REJECTED, TxStatus.FAILED):
                    raise ChainRejectedError(
                        result.error or f"Transaction {result.status.value}", transaction_id
                    )
            if n < self._max_attempts:
                await self._sleep(self._interval_s)
        raise ConfirmationTimeoutError(transaction_id, self._max_attempts)

    async def _record(self, db: AsyncSession, attempt: BetAttempt) -> None:
        quote = attempt.quote
        assert quote is not None
        new_trade = NewTrade(
            market_id=attempt.intent.market_id,
            side=quote.side,
            shares=quote.shares_out,
            amount=quote.amount_in,
            price_before=quote.price_before,
            price_after=quote.price_after,
            yes_reserves_after=quote.reserves_after.yes,
            no_reserves_after=quote.reserves_after.no,
            tx_hash=attempt.transaction_id,
        )
        try:
            attempt.trade = await self._writer.record(db, new_trade)
        except AppError as e:
            # The chain transaction stands; only the mirror is behind.
            logger.error(
                "Confirmed bet %s on market %s was not recorded: %s",
                attempt.transaction_id, attempt.intent.market_id, e.message,
            )
            self._stop(attempt, BetState.FAILED, e)
            return
        self._enter(attempt, BetState.RECORDED, attempt.trade.id)

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    def _enter(self, attempt: BetAttempt, state: BetState, detail: str | None = None) -> None:
        attempt.advance(state, detail)
        logger.info("Bet on market %s: %s", attempt.intent.market_id, state.value)

    def _check_cancelled(self, attempt: BetAttempt) -> None:
        if attempt.cancel_requested:
            raise BetValidationError(_CANCELLED)

    def _stop(self, attempt: BetAttempt, state: BetState, error: AppError) -> None:
        attempt.error = error
        attempt.advance(state, error.message)
        logger.info(
            "Bet on market %s: %s (%s)", attempt.intent.market_id, state.value, error.message
        )

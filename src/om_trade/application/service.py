"""TradeApplicationService: trade log writes and bet preparation.

record() validates against the mirrored market, then inserts the trade,
moves the market row and appends a price snapshot in one transaction.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.om_common.enums import MarketStatus, TradeSide
from src.om_common.errors import (
    InvalidTradeRecordError,
    MarketNotFoundError,
    MarketNotOpenError,
    StoreError,
)
from src.om_common.id_generator import parse_id
from src.om_market.domain.models import Market
from src.om_market.domain.repository import MarketRepositoryProtocol
from src.om_market.infrastructure.persistence import MarketRepository
from src.om_pricing.domain.cpmm import price_of
from src.om_pricing.domain.models import Prices, Reserves
from src.om_reserves.application.service import ReserveStateStore
from src.om_trade.application.reconciler import BetReconciler
from src.om_trade.application.schemas import (
    BetPrepareRequest,
    BetPrepareResponse,
    TradeCreateRequest,
    TradeListResponse,
    TradeOut,
)
from src.om_trade.domain.models import BetAttempt, BetIntent, NewTrade, Trade
from src.om_trade.domain.repository import TradeRepositoryProtocol
from src.om_trade.infrastructure.persistence import TradeRepository

logger = logging.getLogger(__name__)


def to_new_trade(req: TradeCreateRequest) -> NewTrade:
    if req.side not in (TradeSide.YES.value, TradeSide.NO.value):
        raise InvalidTradeRecordError('Side must be "yes" or "no"')
    if req.shares <= 0 or req.amount <= 0:
        raise InvalidTradeRecordError("shares and amount must be positive")
    for name, price in (("price_before", req.price_before), ("price_after", req.price_after)):
        if not 0 <= price <= 1:
            raise InvalidTradeRecordError(f"{name} must be between 0 and 1")
    if (req.yes_reserves_after is None) != (req.no_reserves_after is None):
        raise InvalidTradeRecordError("yes_reserves_after and no_reserves_after go together")
    if req.yes_reserves_after is not None and (
        req.yes_reserves_after <= 0 or (req.no_reserves_after or 0) <= 0
    ):
        raise InvalidTradeRecordError("reserves after the trade must be positive")
    return NewTrade(
        market_id=req.market_id,
        side=TradeSide(req.side),
        shares=req.shares,
        amount=req.amount,
        price_before=req.price_before,
        price_after=req.price_after,
        yes_reserves_after=req.yes_reserves_after,
        no_reserves_after=req.no_reserves_after,
        tx_hash=req.tx_hash or None,
    )


def _market_after(market: Market, trade: NewTrade) -> tuple[Reserves, Prices]:
    if trade.yes_reserves_after is None or trade.no_reserves_after is None:
        reserves = market.reserves
    else:
        reserves = Reserves(yes=trade.yes_reserves_after, no=trade.no_reserves_after)
    if reserves.yes > 0 and reserves.no > 0:
        return reserves, price_of(reserves)
    return reserves, Prices(yes=market.yes_price, no=market.no_price)


class TradeApplicationService:
    def __init__(
        self,
        repo: TradeRepositoryProtocol | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
    ) -> None:
        self._repo: TradeRepositoryProtocol = repo or TradeRepository()
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()

    async def _existing(self, db: AsyncSession, tx_hash: str | None) -> Trade | None:
        if tx_hash is None:
            return None
        try:
            return await self._repo.get_trade_by_tx_hash(db, tx_hash)
        except SQLAlchemyError as e:
            logger.error("Trade lookup for tx %s failed: %s", tx_hash, e)
            raise StoreError(type(e).__name__) from e

    async def record(self, db: AsyncSession, trade: NewTrade) -> Trade:
        """Record a confirmed trade. Replaying a known tx_hash returns the stored row."""
        existing = await self._existing(db, trade.tx_hash)
        if existing is not None:
            logger.info("Trade for tx %s already recorded as %s", trade.tx_hash, existing.id)
            return existing

        market = await self._markets.get_market_by_id(db, trade.market_id)
        if market is None:
            raise MarketNotFoundError(trade.market_id)
        if market.status != MarketStatus.OPEN.value:
            raise MarketNotOpenError(trade.market_id, market.status)

        reserves, prices = _market_after(market, trade)
        try:
            recorded = await self._repo.insert_trade(db, trade)
            if recorded is None:
                # Lost a race with a concurrent write of the same tx_hash.
                await db.rollback()
                existing = await self._existing(db, trade.tx_hash)
                if existing is None:
                    raise StoreError("TradeConflict")
                logger.info("Trade for tx %s already recorded as %s", trade.tx_hash, existing.id)
                return existing
            updated = await self._repo.apply_trade_to_market(
                db, trade.market_id, reserves, prices, trade.amount
            )
            await self._repo.insert_snapshot(db, updated)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Trade write for market %s failed: %s", trade.market_id, e)
            raise StoreError(type(e).__name__) from e

        logger.info(
            "Recorded trade %s on market %s: %s %d for %d shares",
            recorded.id, trade.market_id, trade.side.value, trade.amount, trade.shares,
        )
        return recorded

    async def record_trade(self, db: AsyncSession, req: TradeCreateRequest) -> TradeOut:
        return TradeOut.from_domain(await self.record(db, to_new_trade(req)))

    async def list_trades(
        self,
        db: AsyncSession,
        market_id: str | None,
        cursor: str | None,
        limit: int,
    ) -> TradeListResponse:
        cursor_id = parse_id(cursor) if cursor else None
        trades = await self._repo.list_trades(db, market_id, cursor_id, limit + 1)
        has_more = len(trades) > limit
        page = trades[:limit]
        return TradeListResponse(
            items=[TradeOut.from_domain(t) for t in page],
            has_more=has_more,
            next_cursor=page[-1].id if has_more and page else None,
        )

    async def prepare_bet(
        self,
        db: AsyncSession,
        store: ReserveStateStore,
        market_id: str,
        req: BetPrepareRequest,
    ) -> BetPrepareResponse:
        """Validate and quote server-side; the wallet signs the returned transaction."""
        attempt = BetAttempt(
            intent=BetIntent(
                market_id=market_id,
                amount=req.amount,
                side=req.side,
                wallet_address=req.wallet_address,
            )
        )
        await BetReconciler(store, writer=self).prepare(db, attempt)
        if attempt.error is not None:
            raise attempt.error
        return BetPrepareResponse.from_attempt(attempt)

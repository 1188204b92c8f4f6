"""MarketApplicationService: thin composition layer.

All methods are read-only; no commit/rollback needed.
The caller (router) passes db session; service delegates to repository.
Pricing shown to users goes through ReserveStateStore.get_display_reserves;
quotes read the chain fresh. A failed list or history read degrades to an
empty page, a failed single-market read is a StoreError.
"""

import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.om_common.enums import MarketStatus, TradeSide
from src.om_common.errors import MarketNotFoundError, MarketNotOpenError, StoreError
from src.om_market.application.schemas import (
    MarketDetail,
    MarketListItem,
    MarketListResponse,
    QuoteResponse,
    SnapshotListResponse,
    SnapshotOut,
    cursor_decode,
    cursor_encode,
)
from src.om_market.domain.models import Market
from src.om_market.domain.repository import MarketRepositoryProtocol
from src.om_market.infrastructure.persistence import MarketRepository
from src.om_pricing.domain.cpmm import quote_trade
from src.om_reserves.application.service import ReserveStateStore

logger = logging.getLogger(__name__)


class MarketApplicationService:
    def __init__(self, repo: MarketRepositoryProtocol | None = None) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()

    async def _get(self, db: AsyncSession, market_id: str) -> Market:
        try:
            market = await self._repo.get_market_by_id(db, market_id)
        except SQLAlchemyError as e:
            logger.error("Market read %s failed: %s", market_id, e)
            raise StoreError(type(e).__name__) from e
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    async def list_markets(
        self,
        db: AsyncSession,
        store: ReserveStateStore,
        status: str | None,
        category: str | None,
        cursor: str | None,
        limit: int,
    ) -> MarketListResponse:
        # status=None → default open; status='ALL' → no filter
        sql_status = None if status == "ALL" else (status or MarketStatus.OPEN.value)
        cursor_ts, cursor_id = cursor_decode(cursor)

        # Fetch limit+1 to detect has_more without COUNT(*)
        try:
            markets = await self._repo.list_markets(
                db, sql_status, category, cursor_ts, cursor_id, limit + 1
            )
        except SQLAlchemyError as e:
            logger.warning("Market list read failed, returning no data: %s", e)
            return MarketListResponse(items=[], next_cursor=None, has_more=False)
        has_more = len(markets) > limit
        page = markets[:limit]

        displays = await asyncio.gather(*(store.get_display_reserves(m) for m in page))
        items = [MarketListItem.from_domain(m, d) for m, d in zip(page, displays)]
        next_cursor = cursor_encode(page[-1]) if has_more and page else None
        return MarketListResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def get_market(
        self, db: AsyncSession, store: ReserveStateStore, market_id: str
    ) -> MarketDetail:
        market = await self._get(db, market_id)
        return MarketDetail.from_domain(market, await store.get_display_reserves(market))

    async def get_snapshots(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> SnapshotListResponse:
        await self._get(db, market_id)
        try:
            snapshots = await self._repo.list_snapshots(db, market_id, limit)
        except SQLAlchemyError as e:
            logger.warning("Snapshot read for %s failed, returning no data: %s", market_id, e)
            snapshots = []
        return SnapshotListResponse(
            market_id=market_id,
            items=[SnapshotOut.from_domain(s) for s in snapshots],
        )

    async def quote(
        self,
        db: AsyncSession,
        store: ReserveStateStore,
        market_id: str,
        side: TradeSide,
        amount: int,
    ) -> QuoteResponse:
        """Advisory quote. Deployed markets are priced from the fresh chain record."""
        market = await self._get(db, market_id)
        if market.status != MarketStatus.OPEN.value:
            raise MarketNotOpenError(market_id, market.status)
        onchain_id = market.onchain_id
        if onchain_id is None:
            reserves = market.reserves
        else:
            onchain = await store.get_market_for_trade(onchain_id)
            if onchain.status is not MarketStatus.OPEN:
                raise MarketNotOpenError(market_id, onchain.status.value)
            reserves = onchain.reserves
        return QuoteResponse.from_quote(market_id, quote_trade(reserves, side, amount))

# src/om_trade/domain/repository.py
"""Repository Protocol for the append-only trade log and its market side effects."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.om_market.domain.models import Market
from src.om_pricing.domain.models import Prices, Reserves
from src.om_trade.domain.models import NewTrade, Trade


class TradeRepositoryProtocol(Protocol):
    async def insert_trade(self, db: AsyncSession, trade: NewTrade) -> Trade | None: ...

    async def get_trade_by_tx_hash(self, db: AsyncSession, tx_hash: str) -> Trade | None: ...

    async def apply_trade_to_market(
        self,
        db: AsyncSession,
        market_id: str,
        reserves: Reserves,
        prices: Prices,
        amount: int,
    ) -> Market: ...

    async def insert_snapshot(self, db: AsyncSession, market: Market) -> None: ...

    async def list_trades(
        self,
        db: AsyncSession,
        market_id: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Trade]: ...

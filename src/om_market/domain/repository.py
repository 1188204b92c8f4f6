# src/om_market/domain/repository.py
"""Repository Protocol: dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.om_market.domain.models import Market, MarketSnapshot


class MarketRepositoryProtocol(Protocol):
    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]: ...

    async def get_market_by_id(
        self,
        db: AsyncSession,
        market_id: str,
    ) -> Market | None: ...

    async def get_market_by_onchain_id(
        self,
        db: AsyncSession,
        onchain_id: int,
    ) -> Market | None: ...

    async def list_snapshots(
        self,
        db: AsyncSession,
        market_id: str,
        limit: int,
    ) -> list[MarketSnapshot]: ...

    async def mark_resolved(
        self,
        db: AsyncSession,
        market_id: str,
        outcome: str,
        resolved_at: datetime,
    ) -> Market | None: ...

    async def create_market(
        self,
        db: AsyncSession,
        market_id: str,
        title: str,
        description: str | None,
        category: str | None,
        slug: str,
        initial_reserves: int,
        fee_bps: int,
        resolution_deadline: datetime | None,
        market_id_onchain: int | None,
    ) -> Market: ...

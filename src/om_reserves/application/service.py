"""ReserveStateStore: authoritative reserves, chain first.

Policy:
  - Anything that commits funds calls get_market_for_trade() (or its
    reserves-only form get_reserves_for_trade()): always a fresh chain read,
    never the mirror or the cache.
  - Display reads call get_display_reserves(): mirror row preferred, then a
    TTL-cached chain read; failures degrade to None instead of blocking.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.om_chain.domain.models import OnchainMarket
from src.om_chain.infrastructure.client import ChainClient, get_chain_client
from src.om_common.errors import (
    AppError,
    MarketNotFoundError,
    OnchainMarketNotFoundError,
    StoreError,
)
from src.om_market.application.schemas import (
    DriftReport,
    OnchainMarketOut,
    ScanEntry,
    ScanResponse,
)
from src.om_market.domain.models import Market
from src.om_market.domain.repository import MarketRepositoryProtocol
from src.om_market.infrastructure.persistence import MarketRepository
from src.om_pricing.domain.models import Reserves
from src.om_reserves.domain.cache import ReserveCache

logger = logging.getLogger(__name__)


class ReserveStateStore:
    def __init__(
        self,
        chain: ChainClient,
        repo: MarketRepositoryProtocol | None = None,
        cache: ReserveCache | None = None,
    ) -> None:
        self._chain = chain
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._cache = cache or ReserveCache(ttl_s=settings.RESERVES_CACHE_TTL_S)

    # ------------------------------------------------------------------
    # Chain (authoritative)
    # ------------------------------------------------------------------

    async def fetch_onchain_market(self, onchain_id: int) -> OnchainMarket:
        market = await self._chain.fetch_onchain_market(onchain_id)
        self._cache.put(onchain_id, market.reserves)
        return market

    async def get_market_for_trade(self, onchain_id: int) -> OnchainMarket:
        """Fresh chain record (reserves and status) for a funds-moving transaction."""
        return await self.fetch_onchain_market(onchain_id)

    async def get_reserves_for_trade(self, onchain_id: int) -> Reserves:
        return (await self.get_market_for_trade(onchain_id)).reserves

    async def fetch_balance(self, address: str) -> int:
        return await self._chain.fetch_balance(address)

    # ------------------------------------------------------------------
    # Mirror (display)
    # ------------------------------------------------------------------

    async def fetch_mirrored_market(self, db: AsyncSession, market_id: str) -> Market:
        try:
            market = await self._repo.get_market_by_id(db, market_id)
        except SQLAlchemyError as e:
            logger.error("Mirror read for market %s failed: %s", market_id, e)
            raise StoreError(type(e).__name__) from e
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    async def get_display_reserves(self, market: Market) -> Reserves | None:
        if market.yes_reserves > 0 and market.no_reserves > 0:
            return market.reserves
        onchain_id = market.onchain_id
        if onchain_id is None:
            return None
        cached = self._cache.get(onchain_id)
        if cached is not None:
            return cached
        try:
            return await self.get_reserves_for_trade(onchain_id)
        except AppError as e:
            logger.info("No display reserves for market %s: %s", market.id, e.message)
            return None

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def reconcile_market(self, db: AsyncSession, market_id: str) -> DriftReport:
        """Compare the mirror row with chain state for one market."""
        market = await self.fetch_mirrored_market(db, market_id)
        onchain: OnchainMarket | None = None
        differences: list[str] = []

        onchain_id = market.onchain_id
        if onchain_id is None:
            differences.append("market has no on-chain id")
        else:
            try:
                onchain = await self.fetch_onchain_market(onchain_id)
            except OnchainMarketNotFoundError:
                differences.append(f"on-chain market {onchain_id} does not exist")

        if onchain is not None:
            if onchain.yes_reserves != market.yes_reserves:
                differences.append(
                    f"yes_reserves: chain={onchain.yes_reserves} mirror={market.yes_reserves}"
                )
            if onchain.no_reserves != market.no_reserves:
                differences.append(
                    f"no_reserves: chain={onchain.no_reserves} mirror={market.no_reserves}"
                )
            if onchain.status.value != market.status:
                differences.append(
                    f"status: chain={onchain.status.value} mirror={market.status}"
                )

        if differences:
            logger.warning("Market %s drift: %s", market_id, "; ".join(differences))

        return DriftReport(
            market_id=market.id,
            onchain=OnchainMarketOut.from_domain(onchain) if onchain else None,
            mirror_yes_reserves=market.yes_reserves,
            mirror_no_reserves=market.no_reserves,
            mirror_status=market.status,
            in_sync=not differences,
            differences=differences,
        )

    async def scan(self, db: AsyncSession, max_id: int) -> ScanResponse:
        """Scan speculative on-chain IDs and join them with mirror rows."""
        result = await self._chain.scan_markets(max_id)
        found: list[ScanEntry] = []
        for onchain in sorted(result.markets, key=lambda m: m.id):
            self._cache.put(onchain.id, onchain.reserves)
            mirror: Market | None = None
            try:
                mirror = await self._repo.get_market_by_onchain_id(db, onchain.id)
            except SQLAlchemyError as e:
                logger.warning("Mirror lookup failed for on-chain market %d: %s", onchain.id, e)
            found.append(
                ScanEntry(
                    onchain=OnchainMarketOut.from_domain(onchain),
                    mirror_market_id=mirror.id if mirror else None,
                    mirror_slug=mirror.slug if mirror else None,
                )
            )
        return ScanResponse(
            scanned=max_id,
            found=found,
            missing=sorted(result.missing),
            malformed=result.malformed,
        )


_store: ReserveStateStore | None = None


def get_reserve_store() -> ReserveStateStore:
    """FastAPI dependency: one store per process so the display cache is shared."""
    global _store  # noqa: PLW0603
    if _store is None:
        _store = ReserveStateStore(get_chain_client())
    return _store

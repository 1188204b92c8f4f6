# src/om_admin/application/service.py
"""Admin application service: market creation and resolution.

Both write the mirror row and hand back the matching program transaction
for an operator wallet to sign. Who may call these is decided outside
this service.
"""

import logging
import re

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.om_admin.application.schemas import (
    CreateMarketRequest,
    CreateMarketResponse,
    ResolveResponse,
)
from src.om_chain.domain.transactions import (
    build_create_market_transaction,
    build_resolve_market_transaction,
)
from src.om_common.datetime_utils import utc_now
from src.om_common.enums import MarketStatus, ResolutionOutcome, TradeSide
from src.om_common.errors import (
    InvalidAmountError,
    InvalidResolutionError,
    MarketNotFoundError,
    RequestValidationFailed,
    StoreError,
)
from src.om_common.id_generator import generate_id
from src.om_common.micro import display_to_micro
from src.om_market.application.schemas import MarketDetail, TransactionOut
from src.om_market.domain.repository import MarketRepositoryProtocol
from src.om_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)

DEFAULT_FEE_BPS = 200
_RESOLVABLE = (MarketStatus.OPEN.value, MarketStatus.CLOSED.value)


def slugify(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


class AdminService:
    def __init__(self, repo: MarketRepositoryProtocol | None = None) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()

    async def create_market(
        self, db: AsyncSession, req: CreateMarketRequest
    ) -> CreateMarketResponse:
        try:
            initial = display_to_micro(req.initial_liquidity, settings.ASSET_DECIMALS)
        except ValueError as e:
            raise RequestValidationFailed(f"initial_liquidity: {e}") from e
        if initial <= 0:
            raise InvalidAmountError(initial, "initial liquidity must be positive")

        try:
            market = await self._repo.create_market(
                db,
                market_id=generate_id(),
                title=req.title,
                description=req.description,
                category=req.category,
                slug=slugify(req.title),
                initial_reserves=initial,
                fee_bps=DEFAULT_FEE_BPS,
                resolution_deadline=req.resolution_deadline,
                market_id_onchain=req.market_id_onchain,
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreError(type(e).__name__) from e

        logger.info("Created market %s (%s)", market.id, market.slug)
        tx = None
        if req.market_id_onchain is not None:
            tx = build_create_market_transaction(req.market_id_onchain, initial, initial)
        return CreateMarketResponse(
            market=MarketDetail.from_domain(market),
            transaction=TransactionOut.from_domain(tx) if tx else None,
        )

    async def resolve_market(
        self, db: AsyncSession, market_id: str, outcome: str
    ) -> ResolveResponse:
        try:
            resolution = ResolutionOutcome(outcome)
        except ValueError:
            raise InvalidResolutionError(
                'resolution_outcome must be "yes", "no", or "invalid"'
            ) from None

        market = await self._repo.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        if market.status not in _RESOLVABLE:
            raise InvalidResolutionError(f'Cannot resolve market with status "{market.status}"')

        try:
            updated = await self._repo.mark_resolved(db, market_id, resolution.value, utc_now())
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreError(type(e).__name__) from e
        if updated is None:
            raise MarketNotFoundError(market_id)

        logger.info("Resolved market %s as %s", market_id, resolution.value)
        # An invalid outcome has no winning side on-chain.
        tx = None
        onchain_id = updated.onchain_id
        if resolution is not ResolutionOutcome.INVALID and onchain_id is not None:
            tx = build_resolve_market_transaction(onchain_id, TradeSide(resolution.value))
        return ResolveResponse(
            market=MarketDetail.from_domain(updated),
            transaction=TransactionOut.from_domain(tx) if tx else None,
        )

"""Domain models for om_market: pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime

from src.om_pricing.domain.models import Reserves


@dataclass
class Market:
    """Mirrored market row. Reserves here are a display cache; the chain owns them."""

    id: str
    market_id_onchain: str | None
    title: str
    description: str | None
    category: str | None
    slug: str | None
    status: str
    yes_reserves: int
    no_reserves: int
    yes_price: float
    no_price: float
    fee_bps: int
    total_volume: int
    volume_24h: int
    trade_count: int
    liquidity: int
    resolution_deadline: datetime | None
    resolution_outcome: str | None
    resolved_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @property
    def reserves(self) -> Reserves:
        return Reserves(yes=self.yes_reserves, no=self.no_reserves)

    @property
    def onchain_id(self) -> int | None:
        return int(self.market_id_onchain) if self.market_id_onchain else None


@dataclass
class MarketSnapshot:
    """Price-history point appended with every recorded trade."""

    market_id: str
    yes_price: float
    no_price: float
    yes_reserves: int
    no_reserves: int
    volume_cumulative: int
    trade_count_cumulative: int
    captured_at: datetime

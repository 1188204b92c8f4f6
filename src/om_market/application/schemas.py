"""Pydantic schemas for om_market API responses.

Cursor format for markets (VARCHAR PK, not sequential):
  {"ts": "<created_at ISO>", "id": "<market_id>"}
  Encoded as Base64 JSON string.

Prices, odds and ROI are derived from the mirrored reserves on every read;
a market with zero reserves is not tradeable yet and reports them as null.
"""

import base64
import json

from pydantic import BaseModel

from config.settings import settings
from src.om_chain.domain.models import OnchainMarket, TransactionRequest
from src.om_common.datetime_utils import iso_or_none
from src.om_common.errors import InvalidPriceError, MarketNotTradeableError
from src.om_common.micro import micro_to_display
from src.om_market.domain.models import Market, MarketSnapshot
from src.om_pricing.domain.cpmm import odds_of, price_of, roi
from src.om_pricing.domain.models import Prices, Reserves, TradeQuote

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_market: Market) -> str:
    """Encode composite cursor from last market in page."""
    payload = {
        "ts": last_market.created_at.isoformat(),
        "id": last_market.id,
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[str | None, str | None]:
    """Decode composite cursor -> (ts_iso, market_id), or (None, None) on error."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        return data["ts"], data["id"]
    except (ValueError, KeyError, TypeError):
        return None, None


# ---------------------------------------------------------------------------
# Pricing view
# ---------------------------------------------------------------------------


class PricingOut(BaseModel):
    yes_price: float
    no_price: float
    yes_odds: float
    no_odds: float
    yes_roi_pct: float
    no_roi_pct: float

    @classmethod
    def from_prices(cls, prices: Prices) -> "PricingOut":
        return cls(
            yes_price=prices.yes,
            no_price=prices.no,
            yes_odds=odds_of(prices.yes),
            no_odds=odds_of(prices.no),
            yes_roi_pct=roi(prices.yes),
            no_roi_pct=roi(prices.no),
        )


def pricing_for(reserves: Reserves) -> PricingOut | None:
    if reserves.yes <= 0 or reserves.no <= 0:
        return None
    try:
        return PricingOut.from_prices(price_of(reserves))
    except (MarketNotTradeableError, InvalidPriceError):
        return None


# ---------------------------------------------------------------------------
# Market list / detail
# ---------------------------------------------------------------------------


class MarketListItem(BaseModel):
    id: str
    title: str
    category: str | None
    slug: str | None
    status: str
    yes_reserves: int
    no_reserves: int
    pricing: PricingOut | None
    total_volume: int
    trade_count: int

    @classmethod
    def from_domain(cls, m: Market, display: Reserves | None = None) -> "MarketListItem":
        """`display` overrides the mirror reserves for pricing (see get_display_reserves)."""
        return cls(
            id=m.id,
            title=m.title,
            category=m.category,
            slug=m.slug,
            status=m.status,
            yes_reserves=m.yes_reserves,
            no_reserves=m.no_reserves,
            pricing=pricing_for(display if display is not None else m.reserves),
            total_volume=m.total_volume,
            trade_count=m.trade_count,
        )


class MarketListResponse(BaseModel):
    items: list[MarketListItem]
    next_cursor: str | None
    has_more: bool


class MarketDetail(BaseModel):
    id: str
    market_id_onchain: str | None
    title: str
    description: str | None
    category: str | None
    slug: str | None
    status: str
    yes_reserves: int
    no_reserves: int
    pricing: PricingOut | None
    fee_bps: int
    total_volume: int
    volume_24h: int
    trade_count: int
    liquidity: int
    liquidity_display: str
    resolution_deadline: str | None
    resolution_outcome: str | None
    resolved_at: str | None
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, m: Market, display: Reserves | None = None) -> "MarketDetail":
        return cls(
            id=m.id,
            market_id_onchain=m.market_id_onchain,
            title=m.title,
            description=m.description,
            category=m.category,
            slug=m.slug,
            status=m.status,
            yes_reserves=m.yes_reserves,
            no_reserves=m.no_reserves,
            pricing=pricing_for(display if display is not None else m.reserves),
            fee_bps=m.fee_bps,
            total_volume=m.total_volume,
            volume_24h=m.volume_24h,
            trade_count=m.trade_count,
            liquidity=m.liquidity,
            liquidity_display=str(micro_to_display(m.liquidity, settings.ASSET_DECIMALS)),
            resolution_deadline=iso_or_none(m.resolution_deadline),
            resolution_outcome=m.resolution_outcome,
            resolved_at=iso_or_none(m.resolved_at),
            created_at=m.created_at.isoformat(),
            updated_at=m.updated_at.isoformat(),
        )


# ---------------------------------------------------------------------------
# Price history
# ---------------------------------------------------------------------------


class SnapshotOut(BaseModel):
    yes_price: float
    no_price: float
    yes_reserves: int
    no_reserves: int
    volume_cumulative: int
    trade_count_cumulative: int
    captured_at: str

    @classmethod
    def from_domain(cls, s: MarketSnapshot) -> "SnapshotOut":
        return cls(
            yes_price=s.yes_price,
            no_price=s.no_price,
            yes_reserves=s.yes_reserves,
            no_reserves=s.no_reserves,
            volume_cumulative=s.volume_cumulative,
            trade_count_cumulative=s.trade_count_cumulative,
            captured_at=s.captured_at.isoformat(),
        )


class SnapshotListResponse(BaseModel):
    market_id: str
    items: list[SnapshotOut]


# ---------------------------------------------------------------------------
# Quote / chain views
# ---------------------------------------------------------------------------


class QuoteResponse(BaseModel):
    market_id: str
    side: str
    amount: int
    shares_out: int
    price_before: float
    price_after: float
    price_impact: float
    avg_price: float
    yes_reserves_before: int
    no_reserves_before: int
    yes_reserves_after: int
    no_reserves_after: int
    new_yes_price: float
    new_no_price: float

    @classmethod
    def from_quote(cls, market_id: str, q: TradeQuote) -> "QuoteResponse":
        return cls(
            market_id=market_id,
            side=q.side.value,
            amount=q.amount_in,
            shares_out=q.shares_out,
            price_before=q.price_before,
            price_after=q.price_after,
            price_impact=q.price_impact,
            avg_price=q.avg_price,
            yes_reserves_before=q.reserves_before.yes,
            no_reserves_before=q.reserves_before.no,
            yes_reserves_after=q.reserves_after.yes,
            no_reserves_after=q.reserves_after.no,
            new_yes_price=q.prices_after.yes,
            new_no_price=q.prices_after.no,
        )


class OnchainMarketOut(BaseModel):
    id: int
    creator: str
    market_type: int
    yes_reserves: int
    no_reserves: int
    status: str
    pricing: PricingOut | None

    @classmethod
    def from_domain(cls, m: OnchainMarket) -> "OnchainMarketOut":
        return cls(
            id=m.id,
            creator=m.creator,
            market_type=m.market_type,
            yes_reserves=m.yes_reserves,
            no_reserves=m.no_reserves,
            status=m.status.value,
            pricing=pricing_for(m.reserves),
        )


class DriftReport(BaseModel):
    """Chain vs mirror comparison for one market."""

    market_id: str
    onchain: OnchainMarketOut | None
    mirror_yes_reserves: int
    mirror_no_reserves: int
    mirror_status: str
    in_sync: bool
    differences: list[str]


class ScanEntry(BaseModel):
    onchain: OnchainMarketOut
    mirror_market_id: str | None
    mirror_slug: str | None


class ScanResponse(BaseModel):
    scanned: int
    found: list[ScanEntry]
    missing: list[int]
    malformed: dict[int, str]


class BalanceResponse(BaseModel):
    address: str
    balance: int
    balance_display: str


class TransactionOut(BaseModel):
    program: str
    function: str
    inputs: list[str]
    fee: int
    privateFee: bool

    @classmethod
    def from_domain(cls, tx: TransactionRequest) -> "TransactionOut":
        return cls(**tx.to_wallet_payload())

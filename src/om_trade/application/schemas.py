"""Pydantic schemas for trades and bet preparation."""

from pydantic import BaseModel, Field

from src.om_common.enums import TradeSide
from src.om_market.application.schemas import QuoteResponse, TransactionOut
from src.om_trade.domain.models import BetAttempt, Trade


class TradeCreateRequest(BaseModel):
    """Record of a bet the client already settled on-chain."""

    market_id: str
    side: str
    shares: int
    amount: int
    price_before: float
    price_after: float
    yes_reserves_after: int | None = None
    no_reserves_after: int | None = None
    tx_hash: str | None = None


class TradeOut(BaseModel):
    id: str
    market_id: str
    side: str
    shares: int
    amount: int
    price_before: float
    price_after: float
    yes_reserves_after: int | None
    no_reserves_after: int | None
    tx_hash: str | None
    created_at: str

    @classmethod
    def from_domain(cls, t: Trade) -> "TradeOut":
        return cls(
            id=t.id,
            market_id=t.market_id,
            side=t.side,
            shares=t.shares,
            amount=t.amount,
            price_before=t.price_before,
            price_after=t.price_after,
            yes_reserves_after=t.yes_reserves_after,
            no_reserves_after=t.no_reserves_after,
            tx_hash=t.tx_hash,
            created_at=t.created_at.isoformat(),
        )


class TradeListResponse(BaseModel):
    items: list[TradeOut]
    has_more: bool
    next_cursor: str | None


class BetPrepareRequest(BaseModel):
    wallet_address: str | None = None
    side: TradeSide | None = None
    amount: int = Field(..., description="Stake in micro-units")


class BetPrepareResponse(BaseModel):
    state: str
    history: list[str]
    quote: QuoteResponse
    transaction: TransactionOut

    @classmethod
    def from_attempt(cls, attempt: BetAttempt) -> "BetPrepareResponse":
        assert attempt.quote is not None and attempt.transaction is not None
        return cls(
            state=attempt.state.value,
            history=[t.to_state.value for t in attempt.history],
            quote=QuoteResponse.from_quote(attempt.intent.market_id, attempt.quote),
            transaction=TransactionOut.from_domain(attempt.transaction),
        )

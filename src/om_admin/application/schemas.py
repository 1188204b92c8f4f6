"""Pydantic schemas for admin endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.om_market.application.schemas import MarketDetail, TransactionOut


class CreateMarketRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    category: str | None = None
    resolution_deadline: datetime | None = None
    initial_liquidity: str = Field("1000", description="Per-side reserves in display units")
    market_id_onchain: int | None = Field(None, ge=1)


class CreateMarketResponse(BaseModel):
    market: MarketDetail
    transaction: TransactionOut | None


class ResolveRequest(BaseModel):
    resolution_outcome: str


class ResolveResponse(BaseModel):
    market: MarketDetail
    transaction: TransactionOut | None

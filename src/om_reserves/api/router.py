"""Chain read endpoints.

GET  /chain/markets                       scan speculative on-chain market IDs
GET  /chain/balances/{address}            public stablecoin balance
POST /chain/balances/{address}/shield     transfer_public_to_private record
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.om_chain.domain.transactions import build_shield_transaction
from src.om_common.database import get_db_session
from src.om_common.micro import format_micro
from src.om_common.response import ApiResponse, success_response
from src.om_market.application.schemas import BalanceResponse, TransactionOut
from src.om_reserves.application.service import ReserveStateStore, get_reserve_store

router = APIRouter(prefix="/chain", tags=["chain"])


class ShieldRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in micro-units")


@router.get("/markets")
async def scan_markets(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    store: Annotated[ReserveStateStore, Depends(get_reserve_store)],
    max_id: int = Query(settings.SCAN_MAX_MARKET_ID, ge=1, le=200),
) -> ApiResponse:
    result = await store.scan(db, max_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/balances/{address}")
async def get_balance(
    address: str,
    request: Request,
    store: Annotated[ReserveStateStore, Depends(get_reserve_store)],
) -> ApiResponse:
    balance = await store.fetch_balance(address)
    result = BalanceResponse(
        address=address,
        balance=balance,
        balance_display=format_micro(balance, "USDCx", decimals=settings.ASSET_DECIMALS),
    )
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/balances/{address}/shield")
async def prepare_shield(
    address: str,
    body: ShieldRequest,
    request: Request,
) -> ApiResponse:
    tx = build_shield_transaction(address, body.amount)
    resp = success_response(TransactionOut.from_domain(tx).model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp

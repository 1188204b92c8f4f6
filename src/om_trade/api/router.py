"""Trade log and bet preparation endpoints.

POST /trades                                  append a settled trade (201)
GET  /trades                                  newest first, cursor pagination
POST /markets/{market_id}/bets/prepare        validate + quote, return tx to sign
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.om_common.database import get_db_session
from src.om_common.response import ApiResponse, success_response
from src.om_reserves.application.service import ReserveStateStore, get_reserve_store
from src.om_trade.application.schemas import BetPrepareRequest, TradeCreateRequest
from src.om_trade.application.service import TradeApplicationService

router = APIRouter(prefix="/trades", tags=["trades"])
bets_router = APIRouter(prefix="/markets", tags=["bets"])

_service = TradeApplicationService()


@router.post("", status_code=201)
async def record_trade(
    body: TradeCreateRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.record_trade(db, body)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("")
async def list_trades(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    market_id: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_trades(db, market_id, cursor, limit)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@bets_router.post("/{market_id}/bets/prepare")
async def prepare_bet(
    market_id: str,
    body: BetPrepareRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    store: Annotated[ReserveStateStore, Depends(get_reserve_store)],
) -> ApiResponse:
    result = await _service.prepare_bet(db, store, market_id, body)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp

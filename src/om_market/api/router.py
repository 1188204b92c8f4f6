"""om_market REST endpoints.

GET /markets                           list with cursor pagination
GET /markets/{market_id}               full detail with derived prices
GET /markets/{market_id}/quote         advisory CPMM quote
GET /markets/{market_id}/snapshots     price history
GET /markets/{market_id}/onchain       chain vs mirror drift report
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.om_common.database import get_db_session
from src.om_common.enums import TradeSide
from src.om_common.response import ApiResponse, success_response
from src.om_market.application.service import MarketApplicationService
from src.om_reserves.application.service import ReserveStateStore, get_reserve_store

router = APIRouter(prefix="/markets", tags=["markets"])

_service = MarketApplicationService()


@router.get("")
async def list_markets(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    store: Annotated[ReserveStateStore, Depends(get_reserve_store)],
    status: str | None = Query(
        None, description="Filter by status. Default: open. Use ALL for no filter."
    ),
    category: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_markets(db, store, status, category, cursor, limit)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{market_id}")
async def get_market(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    store: Annotated[ReserveStateStore, Depends(get_reserve_store)],
) -> ApiResponse:
    result = await _service.get_market(db, store, market_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{market_id}/quote")
async def get_quote(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    store: Annotated[ReserveStateStore, Depends(get_reserve_store)],
    side: TradeSide = Query(...),
    amount: int = Query(..., description="Amount in micro-units"),
) -> ApiResponse:
    result = await _service.quote(db, store, market_id, side, amount)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{market_id}/snapshots")
async def get_snapshots(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(500, ge=1, le=5000),
) -> ApiResponse:
    result = await _service.get_snapshots(db, market_id, limit)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{market_id}/onchain")
async def get_onchain_state(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    store: Annotated[ReserveStateStore, Depends(get_reserve_store)],
) -> ApiResponse:
    result = await store.reconcile_market(db, market_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp

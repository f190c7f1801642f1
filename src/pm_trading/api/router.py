"""AMM trading REST endpoints.

POST /markets/{market_id}/trades  : buy or sell YES/NO against the pool
GET  /markets/{market_id}/quote   : price a trade without executing it
GET  /markets/{market_id}/history : price after every trade (chart data)
GET  /trades                      : own trade history
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.enums import Side, TradeAction
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_identity, require_trader
from src.pm_gateway.auth.identity import Identity
from src.pm_trading.application.schemas import TradeRequestBody
from src.pm_trading.application.service import TradeApplicationService

router = APIRouter(tags=["trades"])
_service = TradeApplicationService()


@router.post("/markets/{market_id}/trades")
async def place_trade(
    market_id: str,
    body: TradeRequestBody,
    request: Request,
    identity: Annotated[Identity, Depends(require_trader)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.place_trade(db, identity, market_id, body)
    return success_response(result.model_dump(), request)


@router.get("/markets/{market_id}/quote")
async def quote_trade(
    market_id: str,
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    action: TradeAction = Query(...),
    side: Side = Query(...),
    amount: float = Query(..., gt=0, description="Cents to spend (BUY) or shares to sell (SELL)"),
) -> ApiResponse:
    result = await _service.quote(db, market_id, action, side, amount)
    return success_response(result.model_dump(), request)


@router.get("/markets/{market_id}/history")
async def price_history(
    market_id: str,
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(200, ge=1, le=1000),
) -> ApiResponse:
    result = await _service.price_history(db, market_id, limit)
    return success_response(result.model_dump(), request)


@router.get("/trades")
async def list_trades(
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    market_id: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None, description="Pagination cursor (trade ID)"),
) -> ApiResponse:
    result = await _service.list_trades(db, identity.user_id, market_id, cursor, limit)
    return success_response(result.model_dump(), request)

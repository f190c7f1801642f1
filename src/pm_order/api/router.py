# src/pm_order/api/router.py
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.enums import OrderStatus
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_identity, require_trader
from src.pm_gateway.auth.identity import Identity
from src.pm_order.application.service import OrderApplicationService

router = APIRouter(prefix="/orders", tags=["orders"])
_service = OrderApplicationService()


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    request: Request,
    identity: Annotated[Identity, Depends(require_trader)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.cancel_order(db, identity, order_id)
    return success_response(result.model_dump(), request)


@router.get("")
async def list_orders(
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    market_id: str | None = Query(None, description="Filter by market ID"),
    status: OrderStatus | None = Query(None, description="Filter by order status"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (order ID)"),
) -> ApiResponse:
    result = await _service.list_orders(
        db,
        identity.user_id,
        market_id,
        status.value if status else None,
        limit,
        cursor,
    )
    return success_response(result.model_dump(mode="json"), request)


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_order(db, identity, order_id)
    return success_response(result.model_dump(mode="json"), request)

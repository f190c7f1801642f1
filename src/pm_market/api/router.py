"""pm_market REST endpoints.

POST /markets                : create (admin)
GET  /markets                : list with cursor pagination
GET  /markets/{market_id}    : full detail with current prices
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_identity, require_admin
from src.pm_gateway.auth.identity import Identity
from src.pm_market.application.schemas import CreateMarketRequest
from src.pm_market.application.service import MarketApplicationService

router = APIRouter(prefix="/markets", tags=["markets"])

_service = MarketApplicationService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_market(
    body: CreateMarketRequest,
    request: Request,
    identity: Annotated[Identity, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_market(db, identity, body)
    return success_response(result.model_dump(), request)


@router.get("")
async def list_markets(
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    channel_id: str | None = Query(None),
    resolved: bool | None = Query(None, description="Omit for all markets"),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_markets(db, channel_id, resolved, cursor, limit)
    return success_response(result.model_dump(), request)


@router.get("/{market_id}")
async def get_market(
    market_id: str,
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_market(db, market_id)
    return success_response(result.model_dump(), request)

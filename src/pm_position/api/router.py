"""Positions REST API: 2 endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_identity
from src.pm_gateway.auth.identity import Identity
from src.pm_position.application.service import PositionApplicationService

router = APIRouter(prefix="/positions", tags=["positions"])
_service = PositionApplicationService()


@router.get("")
async def list_positions(
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_holdings(db, identity.user_id)
    return success_response(data.model_dump(), request)


@router.get("/{market_id}")
async def get_position(
    market_id: str,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_holding(db, identity.user_id, market_id)
    return success_response(data.model_dump(), request)

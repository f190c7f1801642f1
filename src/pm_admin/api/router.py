# src/pm_admin/api/router.py
"""Admin REST API."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_admin.application.service import AdminService, ResolveRequest
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import require_admin
from src.pm_gateway.auth.identity import Identity

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


@router.post("/markets/{market_id}/resolve")
async def resolve_market(
    market_id: str,
    body: ResolveRequest,
    request: Request,
    identity: Annotated[Identity, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.resolve_market(db, identity, market_id, body.outcome)
    return success_response(result.model_dump(), request)


@router.get("/invariants")
async def verify_invariants(
    request: Request,
    identity: Annotated[Identity, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.verify_invariants(db)
    return success_response(result.model_dump(), request)

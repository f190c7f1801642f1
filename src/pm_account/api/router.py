"""Ledger REST API: read-only, JWT required."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.service import LedgerApplicationService
from src.pm_common.database import get_db_session
from src.pm_common.enums import LedgerEntryType
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_identity
from src.pm_gateway.auth.identity import Identity

router = APIRouter(prefix="/account", tags=["account"])

_service = LedgerApplicationService()


@router.get("/balance")
async def get_balance(
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, identity.user_id)
    return success_response(data.model_dump(), request)


@router.get("/ledger")
async def list_ledger(
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    entry_type: LedgerEntryType | None = Query(None, description="Filter by entry type"),
) -> ApiResponse:
    data = await _service.list_ledger(
        db,
        identity.user_id,
        cursor,
        limit,
        entry_type.value if entry_type is not None else None,
    )
    return success_response(data.model_dump(), request)

"""Auth endpoints. Everything else in the API sits behind the Bearer token
these hand out."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.user.schemas import LoginRequest, RefreshRequest, RegisterRequest
from src.pm_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.register(db, body)
    resp = success_response(data.model_dump(), request)
    resp.message = "User registered successfully"
    return resp


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.login(db, body)
    return success_response(data.model_dump(), request)


@router.post("/refresh")
async def refresh_token(body: RefreshRequest, request: Request) -> ApiResponse:
    return success_response(_service.refresh(body.refresh_token).model_dump(), request)

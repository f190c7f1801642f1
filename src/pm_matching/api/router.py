"""Order-book bets.

POST /markets/{market_id}/bets: match against the oldest opposite orders, rest the rest
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import require_trader
from src.pm_gateway.auth.identity import Identity
from src.pm_matching.application.schemas import PlaceBetRequest
from src.pm_matching.application.service import BetApplicationService

router = APIRouter(prefix="/markets", tags=["bets"])
_service = BetApplicationService()


@router.post("/{market_id}/bets")
async def place_bet(
    market_id: str,
    body: PlaceBetRequest,
    request: Request,
    identity: Annotated[Identity, Depends(require_trader)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.place_bet(db, identity, market_id, body)
    return success_response(result.model_dump(mode="json"), request)

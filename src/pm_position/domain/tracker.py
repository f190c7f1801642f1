"""PositionTracker: the single writer of share holdings."""

import math

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import Side
from src.pm_common.errors import InsufficientPositionError, InvalidAmountError
from src.pm_position.domain.models import Position
from src.pm_position.domain.repository import PositionRepositoryProtocol


class PositionTracker:
    def __init__(self, repo: PositionRepositoryProtocol) -> None:
        self._repo = repo

    async def get(self, db: AsyncSession, user_id: str, market_id: str) -> Position:
        position = await self._repo.get(db, user_id, market_id)
        return position or Position(user_id=user_id, market_id=market_id)

    async def apply_trade(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        side: Side,
        shares_delta: float,
    ) -> Position:
        """Add (buy) or remove (sell) shares on one side; never lets a side go negative."""
        if math.isnan(shares_delta) or math.isinf(shares_delta):
            raise InvalidAmountError(f"share delta must be finite, got {shares_delta}")
        if shares_delta == 0:
            return await self.get(db, user_id, market_id)
        if shares_delta > 0:
            return await self._repo.add_shares(db, user_id, market_id, side, shares_delta)

        position = await self._repo.remove_shares(db, user_id, market_id, side, -shares_delta)
        if position is None:
            held = (await self.get(db, user_id, market_id)).shares(side)
            raise InsufficientPositionError(
                f"holding {held:.4f} {side.value} shares, cannot remove {-shares_delta:.4f}"
            )
        return position

    async def holders(self, db: AsyncSession, market_id: str) -> list[Position]:
        return await self._repo.list_by_market(db, market_id)

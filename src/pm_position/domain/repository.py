"""Repository Protocol for positions."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import Side
from src.pm_position.domain.models import Position


class PositionRepositoryProtocol(Protocol):
    async def get(self, db: AsyncSession, user_id: str, market_id: str) -> Position | None: ...

    async def add_shares(
        self, db: AsyncSession, user_id: str, market_id: str, side: Side, shares: float
    ) -> Position:
        """Upsert: creates the row on first trade."""
        ...

    async def remove_shares(
        self, db: AsyncSession, user_id: str, market_id: str, side: Side, shares: float
    ) -> Position | None:
        """Returns None (and changes nothing) if fewer than ``shares`` are held."""
        ...

    async def list_by_market(self, db: AsyncSession, market_id: str) -> list[Position]: ...

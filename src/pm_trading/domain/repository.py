"""Repository Protocol for the append-only trade history."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_trading.domain.models import TradeRecord


class TradeRecordRepositoryProtocol(Protocol):
    async def append(self, db: AsyncSession, record: TradeRecord) -> TradeRecord: ...

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[TradeRecord]: ...

    async def list_price_points(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> list[TradeRecord]:
        """AMM trades of a market, oldest first (each carries yes_price_after)."""
        ...

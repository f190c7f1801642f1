"""Repository Protocol: dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_market.domain.models import Market


class MarketRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, market: Market) -> Market: ...

    async def get_market_by_id(self, db: AsyncSession, market_id: str) -> Market | None: ...

    async def get_for_update(self, db: AsyncSession, market_id: str) -> Market | None:
        """Read and row-lock the market until the transaction ends."""
        ...

    async def list_markets(
        self,
        db: AsyncSession,
        channel_id: str | None,
        resolved: bool | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]: ...

    async def update_pools(
        self,
        db: AsyncSession,
        market_id: str,
        expected_version: int,
        yes_pool: float,
        no_pool: float,
        collateral_delta: int,
    ) -> Market | None:
        """Compare-and-swap on version; None if stale or already resolved."""
        ...

    async def adjust_collateral(
        self, db: AsyncSession, market_id: str, delta: int
    ) -> Market | None:
        """None if the market is resolved."""
        ...

    async def mark_resolved(
        self,
        db: AsyncSession,
        market_id: str,
        outcome: str,
        resolved_by: str,
        resolved_at: datetime,
    ) -> Market | None:
        """Atomic check-and-set of the resolved flag; None if it was already set."""
        ...

    async def record_settlement(
        self, db: AsyncSession, market_id: str, paid_out: int
    ) -> Market: ...

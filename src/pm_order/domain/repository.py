# src/pm_order/domain/repository.py
"""OrderRepository Protocol: interface contract for persistence layer."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_order.domain.models import Order


class OrderRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, order: Order) -> Order: ...

    async def get_by_id(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def list_pending_for_update(
        self, db: AsyncSession, market_id: str, side: str
    ) -> list[Order]:
        """Pending orders on ``side``, oldest first, row-locked."""
        ...

    async def apply_fill(
        self, db: AsyncSession, order_id: str, fill_amount: int
    ) -> Order | None:
        """Add to filled_amount, flipping to FILLED when complete. None if not
        pending or the fill would exceed the order."""
        ...

    async def revert_fill(
        self, db: AsyncSession, order_id: str, fill_amount: int
    ) -> Order | None: ...

    async def cancel(
        self, db: AsyncSession, order_id: str, reason: str
    ) -> Order | None:
        """PENDING -> CANCELLED; None if the order was no longer pending."""
        ...

    async def cancel_all_pending(
        self, db: AsyncSession, market_id: str, reason: str
    ) -> list[Order]: ...

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Order]: ...

"""TradeSaga: forward steps paired with compensating writes.

Each forward step that succeeds registers its compensation before the next
step starts. On failure ``rollback()`` replays the compensations newest
first. A compensation that fails does not stop the others; the trade is
then flagged for manual reconciliation.

``savepoint(db)`` runs the steps inside a nested transaction. A database
error aborts the savepoint, which already undoes every step, so the
compensations are dropped instead of being replayed into a failed
transaction. Any other failure (a guarded update that matched no row) is
compensated inside the savepoint before it unwinds.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.errors import ReconciliationRequiredError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TradeSaga:
    def __init__(self, reference_id: str) -> None:
        self.reference_id = reference_id
        self._compensations: list[tuple[str, Callable[[], Awaitable[object]]]] = []
        self.completed: list[str] = []

    async def step(
        self,
        name: str,
        action: Callable[[], Awaitable[T]],
        compensate: Callable[[T], Awaitable[object]] | None = None,
    ) -> T:
        """Run ``action``; on success remember ``compensate(result)`` for rollback."""
        result = await action()
        self.completed.append(name)
        if compensate is not None:
            self._compensations.append((name, lambda: compensate(result)))
        return result

    async def rollback(self) -> None:
        failed: list[str] = []
        while self._compensations:
            name, undo = self._compensations.pop()
            try:
                await undo()
            except Exception:
                logger.critical(
                    "Compensation %r failed for %s", name, self.reference_id, exc_info=True
                )
                failed.append(name)
        if failed:
            raise ReconciliationRequiredError(self.reference_id)
        if self.completed:
            logger.warning(
                "Rolled back %s after steps %s", self.reference_id, ", ".join(self.completed)
            )

    def discard(self) -> None:
        self._compensations.clear()

    @asynccontextmanager
    async def savepoint(self, db: AsyncSession) -> AsyncIterator["TradeSaga"]:
        async with db.begin_nested():
            try:
                yield self
            except SQLAlchemyError:
                logger.warning(
                    "Savepoint for %s rolled back after steps %s",
                    self.reference_id, ", ".join(self.completed),
                )
                self.discard()
                raise
            except Exception:
                await self.rollback()
                raise

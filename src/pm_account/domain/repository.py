"""Repository Protocol: dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import Account, LedgerEntry, LedgerPosting


class LedgerRepositoryProtocol(Protocol):
    async def get_account(self, db: AsyncSession, user_id: str) -> Account | None: ...

    async def open_account(
        self, db: AsyncSession, user_id: str, initial_grant: int
    ) -> tuple[Account, LedgerEntry | None]: ...

    async def debit(
        self, db: AsyncSession, user_id: str, amount: int, posting: LedgerPosting
    ) -> tuple[Account, LedgerEntry]:
        """Atomically subtract ``amount``; InsufficientBalanceError if it would go negative."""
        ...

    async def credit(
        self, db: AsyncSession, user_id: str, amount: int, posting: LedgerPosting
    ) -> tuple[Account, LedgerEntry]: ...

    async def get_balances(
        self, db: AsyncSession, user_ids: list[str]
    ) -> dict[str, int]: ...

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]: ...

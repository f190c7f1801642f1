"""LedgerRepository: concrete implementation of LedgerRepositoryProtocol.

Every balance mutation is one atomic PostgreSQL UPDATE ... RETURNING, paired
with an append-only ledger_entries insert in the same transaction. A debit
that returns 0 rows means the balance would have gone negative.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import Account, LedgerEntry, LedgerPosting
from src.pm_common.enums import LedgerEntryType
from src.pm_common.errors import AccountNotFoundError, InsufficientBalanceError, InternalError

# ---------------------------------------------------------------------------
# SQL: accounts
# ---------------------------------------------------------------------------

_OPEN_ACCOUNT_SQL = text("""
    INSERT INTO accounts (user_id, balance, version)
    VALUES (:user_id, :balance, 0)
    RETURNING user_id, balance, version, created_at, updated_at
""")

_DEBIT_SQL = text("""
    UPDATE accounts
    SET balance = balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND balance >= :amount
    RETURNING user_id, balance, version, created_at, updated_at
""")

_CREDIT_SQL = text("""
    UPDATE accounts
    SET balance = balance + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING user_id, balance, version, created_at, updated_at
""")

_GET_ACCOUNT_SQL = text("""
    SELECT user_id, balance, version, created_at, updated_at
    FROM accounts
    WHERE user_id = :user_id
""")

_GET_BALANCES_SQL = text("""
    SELECT user_id, balance
    FROM accounts
    WHERE user_id = ANY(:user_ids)
""")

# ---------------------------------------------------------------------------
# SQL: ledger_entries (append-only)
# ---------------------------------------------------------------------------

_INSERT_LEDGER_SQL = text("""
    INSERT INTO ledger_entries
        (user_id, entry_type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :entry_type, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING id, user_id, entry_type, amount, balance_after,
              reference_type, reference_id, description, created_at
""")

_LIST_LEDGER_SQL = text("""
    SELECT id, user_id, entry_type, amount, balance_after,
           reference_type, reference_id, description, created_at
    FROM ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:entry_type AS VARCHAR) IS NULL OR entry_type = :entry_type)
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_account(row: object) -> Account:
    return Account(
        user_id=row.user_id,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_ledger(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class LedgerRepository:
    """Concrete repository: all balance changes atomic at the SQL level."""

    async def get_account(self, db: AsyncSession, user_id: str) -> Account | None:
        row = (await db.execute(_GET_ACCOUNT_SQL, {"user_id": user_id})).fetchone()
        return _row_to_account(row) if row else None

    async def open_account(
        self, db: AsyncSession, user_id: str, initial_grant: int
    ) -> tuple[Account, LedgerEntry | None]:
        row = (
            await db.execute(_OPEN_ACCOUNT_SQL, {"user_id": user_id, "balance": initial_grant})
        ).fetchone()
        if row is None:
            raise InternalError("Account insert returned no rows")
        account = _row_to_account(row)
        if initial_grant <= 0:
            return account, None
        entry = await self._append(
            db,
            account,
            initial_grant,
            LedgerPosting(
                entry_type=LedgerEntryType.INITIAL_GRANT,
                reference_type="USER",
                reference_id=user_id,
                description="Initial play-money grant",
            ),
        )
        return account, entry

    async def debit(
        self, db: AsyncSession, user_id: str, amount: int, posting: LedgerPosting
    ) -> tuple[Account, LedgerEntry]:
        row = (await db.execute(_DEBIT_SQL, {"user_id": user_id, "amount": amount})).fetchone()
        if row is None:
            current = await self.get_account(db, user_id)
            if current is None:
                raise AccountNotFoundError(user_id)
            raise InsufficientBalanceError(amount, current.balance)
        account = _row_to_account(row)
        return account, await self._append(db, account, -amount, posting)

    async def credit(
        self, db: AsyncSession, user_id: str, amount: int, posting: LedgerPosting
    ) -> tuple[Account, LedgerEntry]:
        row = (await db.execute(_CREDIT_SQL, {"user_id": user_id, "amount": amount})).fetchone()
        if row is None:
            raise AccountNotFoundError(user_id)
        account = _row_to_account(row)
        return account, await self._append(db, account, amount, posting)

    async def get_balances(self, db: AsyncSession, user_ids: list[str]) -> dict[str, int]:
        if not user_ids:
            return {}
        rows = (await db.execute(_GET_BALANCES_SQL, {"user_ids": user_ids})).fetchall()
        return {row.user_id: row.balance for row in rows}

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_LEDGER_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "entry_type": entry_type,
                "limit": limit,
            },
        )
        return [_row_to_ledger(row) for row in result.fetchall()]

    async def _append(
        self, db: AsyncSession, account: Account, signed_amount: int, posting: LedgerPosting
    ) -> LedgerEntry:
        row = (
            await db.execute(
                _INSERT_LEDGER_SQL,
                {
                    "user_id": account.user_id,
                    "entry_type": posting.entry_type.value,
                    "amount": signed_amount,
                    "balance_after": account.balance,
                    "reference_type": posting.reference_type,
                    "reference_id": posting.reference_id,
                    "description": posting.description,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Ledger insert returned no rows")
        return _row_to_ledger(row)

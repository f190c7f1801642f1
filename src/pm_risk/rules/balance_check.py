"""Up-front sufficient-funds check.

This is a fail-fast read; the ledger's conditional debit remains the
authoritative guard against a concurrent spend.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.repository import LedgerRepositoryProtocol
from src.pm_common.errors import AccountNotFoundError, InsufficientBalanceError


async def check_sufficient_balance(
    ledger: LedgerRepositoryProtocol, db: AsyncSession, user_id: str, amount: int
) -> int:
    """Return the current balance, or raise if it does not cover ``amount``."""
    account = await ledger.get_account(db, user_id)
    if account is None:
        raise AccountNotFoundError(user_id)
    if account.balance < amount:
        raise InsufficientBalanceError(amount, account.balance)
    return account.balance

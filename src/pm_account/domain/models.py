"""Ledger domain models: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import LedgerEntryType


@dataclass
class Account:
    user_id: str
    balance: int                 # cents, never negative
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class LedgerEntry:
    id: int                          # BIGSERIAL
    user_id: str
    entry_type: str                  # LedgerEntryType value
    amount: int                      # cents, positive=credit negative=debit
    balance_after: int               # cents, balance snapshot after op
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class LedgerPosting:
    """What a debit or credit is for: written verbatim onto the ledger entry."""

    entry_type: LedgerEntryType
    reference_type: str
    reference_id: str
    description: str | None = None

"""In-process keyed mutual exclusion for markets and users.

Every mutation of a market's pools, order book or resolution state runs
under that market's lock; balance-moving sequences that must be undone as
a unit additionally hold the user's lock. Acquisition order is always
market first, then user, and a user lock is never held while waiting for a
market lock.

The database row locks (SELECT ... FOR UPDATE) and conditional UPDATEs
remain the cross-process guard; these locks serialise work inside one
worker so that requests queue instead of failing on conflicts.
"""

import asyncio
from collections import defaultdict


class KeyedLocks:
    def __init__(self) -> None:
        self._market_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._user_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def market(self, market_id: str) -> asyncio.Lock:
        return self._market_locks[market_id]

    def user(self, user_id: str) -> asyncio.Lock:
        return self._user_locks[user_id]


_locks: KeyedLocks | None = None


def get_locks() -> KeyedLocks:
    """Process-wide singleton shared by the trade, matching and settlement engines."""
    global _locks  # noqa: PLW0603
    if _locks is None:
        _locks = KeyedLocks()
    return _locks

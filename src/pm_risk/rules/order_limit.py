"""Size limits on stakes and share quantities."""

import math

from src.pm_common.errors import BelowMinimumStakeError, InvalidAmountError

MAX_STAKE_CENTS = 100_000_000  # $1,000,000.00


def check_stake(amount: int, minimum: int) -> None:
    """Money stakes: positive whole cents, at least ``minimum``."""
    if amount <= 0:
        raise InvalidAmountError(f"amount must be positive, got {amount}")
    if amount > MAX_STAKE_CENTS:
        raise InvalidAmountError(f"amount must be at most {MAX_STAKE_CENTS} cents")
    if amount < minimum:
        raise BelowMinimumStakeError(amount, minimum)


def check_share_quantity(shares: float) -> None:
    if math.isnan(shares) or math.isinf(shares) or shares <= 0:
        raise InvalidAmountError(f"share quantity must be a positive number, got {shares}")

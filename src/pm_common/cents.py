"""Money helpers.

Balances, stakes and payouts are int cents. Pool reserves and share
quantities are floats; converting a float amount back to money always
floors so that rounding never mints value.
"""

import math


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"


def floor_cents(amount: float) -> int:
    """Floor a real-valued money amount to whole cents: 1180.97 -> 1180."""
    if math.isnan(amount) or math.isinf(amount):
        raise ValueError(f"Cannot convert {amount} to cents")
    return math.floor(amount)


def percent(probability: float) -> float:
    """Probability in [0, 1] as a percentage rounded to two decimals."""
    return round(probability * 100, 2)

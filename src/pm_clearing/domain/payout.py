"""Payout computation for a resolved market.

The money backing a market (its collateral) is split among holders of the
winning side in proportion to their winning shares. Each payout is floored
to whole cents using exact rational arithmetic, so the total paid never
exceeds the collateral. Whatever is not paid (rounding dust, or everything
when nobody holds the winning side) is the residual.
"""

from dataclasses import dataclass, field
from fractions import Fraction

from src.pm_common.enums import Side
from src.pm_position.domain.models import Position


@dataclass(frozen=True)
class Payout:
    user_id: str
    winning_shares: float
    amount: int  # cents


@dataclass
class PayoutPlan:
    outcome: Side
    collateral: int
    payouts: list[Payout] = field(default_factory=list)

    @property
    def total_paid(self) -> int:
        return sum(p.amount for p in self.payouts)

    @property
    def residual(self) -> int:
        return self.collateral - self.total_paid


def compute_payouts(
    positions: list[Position], outcome: Side, collateral: int
) -> PayoutPlan:
    plan = PayoutPlan(outcome=outcome, collateral=collateral)
    if collateral <= 0:
        return plan

    holdings = [(p.user_id, p.shares(outcome)) for p in positions if p.shares(outcome) > 0]
    total = sum((Fraction(s) for _, s in holdings), Fraction(0))
    if total == 0:
        return plan

    # sorted for a deterministic credit order (and lock order) across runs
    for user_id, shares in sorted(holdings):
        amount = int(Fraction(collateral) * Fraction(shares) // total)
        if amount > 0:
            plan.payouts.append(Payout(user_id=user_id, winning_shares=shares, amount=amount))
    return plan

from dataclasses import dataclass, field

from src.pm_order.domain.models import Order


@dataclass(frozen=True)
class PlannedFill:
    """Single fill decided by the planner, applied by the engine."""

    order_id: str
    maker_user_id: str
    amount: int  # cents each side pays


@dataclass
class FillPlan:
    fills: list[PlannedFill] = field(default_factory=list)
    insolvent_order_ids: list[str] = field(default_factory=list)
    remainder: int = 0

    @property
    def matched(self) -> int:
        return sum(f.amount for f in self.fills)


@dataclass
class BetResult:
    market_id: str
    user_id: str
    side: str
    amount: int
    fills: list[PlannedFill]
    cancelled_order_ids: list[str]
    resting_order: Order | None
    new_balance: int

    @property
    def matched(self) -> int:
        return sum(f.amount for f in self.fills)

"""Order domain model: pure dataclass, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import OrderStatus


@dataclass
class Order:
    """Resting notional on one side of an order-book market.

    No money is held while an order rests: both parties are debited only
    when a fill happens.
    """

    id: str
    user_id: str
    market_id: str
    side: str  # YES / NO
    amount: int  # requested notional, cents
    filled_amount: int = 0
    price: int = 50  # nominal, informational only
    status: str = OrderStatus.PENDING.value
    cancel_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def unfilled(self) -> int:
        return self.amount - self.filled_amount

    @property
    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING.value

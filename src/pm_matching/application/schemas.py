from pydantic import BaseModel

from src.pm_common.enums import Side
from src.pm_matching.domain.models import BetResult
from src.pm_order.application.schemas import OrderResponse


class PlaceBetRequest(BaseModel):
    side: Side
    amount_cents: int


class FillResponse(BaseModel):
    order_id: str
    amount_cents: int


class BetResponse(BaseModel):
    market_id: str
    side: str
    amount_cents: int
    matched_cents: int
    fills: list[FillResponse]
    cancelled_order_ids: list[str]
    resting_order: OrderResponse | None
    new_balance_cents: int

    @classmethod
    def from_result(cls, result: BetResult) -> "BetResponse":
        return cls(
            market_id=result.market_id,
            side=result.side,
            amount_cents=result.amount,
            matched_cents=result.matched,
            fills=[FillResponse(order_id=f.order_id, amount_cents=f.amount) for f in result.fills],
            cancelled_order_ids=result.cancelled_order_ids,
            resting_order=(
                OrderResponse.from_domain(result.resting_order) if result.resting_order else None
            ),
            new_balance_cents=result.new_balance,
        )

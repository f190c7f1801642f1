# src/pm_order/application/schemas.py
from datetime import datetime

from pydantic import BaseModel

from src.pm_order.domain.models import Order


class OrderResponse(BaseModel):
    id: str
    market_id: str
    side: str
    amount_cents: int
    filled_amount_cents: int
    unfilled_amount_cents: int
    price_cents: int
    status: str
    cancel_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            market_id=order.market_id,
            side=order.side,
            amount_cents=order.amount,
            filled_amount_cents=order.filled_amount,
            unfilled_amount_cents=order.unfilled,
            price_cents=order.price,
            status=order.status,
            cancel_reason=order.cancel_reason,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class CancelOrderResponse(BaseModel):
    order_id: str
    status: str
    unfilled_amount_cents: int


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    next_cursor: str | None
    has_more: bool

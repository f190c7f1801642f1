"""Time-priority matching of incoming notional against resting orders.

Pure function: reads the resting orders and a snapshot of maker balances,
returns what should happen. The engine applies the plan.
"""

from collections.abc import Mapping, Sequence

from src.pm_matching.domain.models import FillPlan, PlannedFill
from src.pm_order.domain.models import Order
from src.pm_risk.rules.self_trade import is_self_trade


def plan_fifo_fills(
    taker_user_id: str,
    amount: int,
    resting: Sequence[Order],
    balances: Mapping[str, int],
) -> FillPlan:
    """Walk ``resting`` (already oldest first) and fill ``amount`` dollar for dollar.

    Own orders are skipped. A maker who cannot pay for its fill is not
    partially filled: its order is reported as insolvent and the scan moves
    on. Maker balances are drawn down across fills so one maker with several
    orders is never committed beyond what it holds.
    """
    plan = FillPlan()
    remaining = amount
    available = dict(balances)

    for order in resting:
        if remaining <= 0:
            break
        if not order.is_pending or order.unfilled <= 0:
            continue
        if is_self_trade(taker_user_id, order.user_id):
            continue
        fill = min(remaining, order.unfilled)
        if available.get(order.user_id, 0) < fill:
            plan.insolvent_order_ids.append(order.id)
            continue
        available[order.user_id] -= fill
        plan.fills.append(
            PlannedFill(order_id=order.id, maker_user_id=order.user_id, amount=fill)
        )
        remaining -= fill

    plan.remainder = remaining
    return plan

from src.pm_matching.engine.matching_algo import plan_fifo_fills
from src.pm_order.domain.models import Order


def _order(order_id: str, user: str, amount: int, **kwargs) -> Order:
    defaults = {
        "id": order_id,
        "user_id": user,
        "market_id": "mkt-1",
        "side": "NO",
        "amount": amount,
    }
    defaults.update(kwargs)
    return Order(**defaults)


class TestFifoPlanning:
    def test_fills_oldest_first_and_leaves_rest_of_second(self) -> None:
        resting = [_order("o1", "user-B", 3000), _order("o2", "user-C", 3000)]
        plan = plan_fifo_fills("user-A", 4000, resting, {"user-B": 10_000, "user-C": 10_000})
        assert [(f.order_id, f.amount) for f in plan.fills] == [("o1", 3000), ("o2", 1000)]
        assert plan.remainder == 0
        assert plan.matched == 4000

    def test_unmatched_notional_is_the_remainder(self) -> None:
        resting = [_order("o1", "user-B", 1500)]
        plan = plan_fifo_fills("user-A", 4000, resting, {"user-B": 10_000})
        assert plan.matched == 1500
        assert plan.remainder == 2500

    def test_empty_book(self) -> None:
        plan = plan_fifo_fills("user-A", 500, [], {})
        assert plan.fills == []
        assert plan.remainder == 500

    def test_partially_filled_order_uses_unfilled_only(self) -> None:
        resting = [_order("o1", "user-B", 3000, filled_amount=2500)]
        plan = plan_fifo_fills("user-A", 1000, resting, {"user-B": 10_000})
        assert plan.fills[0].amount == 500
        assert plan.remainder == 500


class TestSkips:
    def test_own_orders_are_skipped(self) -> None:
        resting = [_order("o1", "user-A", 3000), _order("o2", "user-B", 3000)]
        plan = plan_fifo_fills("user-A", 1000, resting, {"user-A": 9999, "user-B": 9999})
        assert [f.order_id for f in plan.fills] == ["o2"]
        assert plan.insolvent_order_ids == []

    def test_non_pending_orders_are_skipped(self) -> None:
        resting = [
            _order("o1", "user-B", 3000, status="CANCELLED"),
            _order("o2", "user-B", 3000, filled_amount=3000, status="FILLED"),
        ]
        plan = plan_fifo_fills("user-A", 1000, resting, {"user-B": 9999})
        assert plan.fills == []
        assert plan.remainder == 1000


class TestInsolventMakers:
    def test_broke_maker_is_reported_and_scan_continues(self) -> None:
        resting = [_order("o1", "user-B", 3000), _order("o2", "user-C", 3000)]
        plan = plan_fifo_fills("user-A", 2000, resting, {"user-B": 100, "user-C": 5000})
        assert plan.insolvent_order_ids == ["o1"]
        assert [(f.order_id, f.amount) for f in plan.fills] == [("o2", 2000)]

    def test_maker_balance_is_drawn_down_across_orders(self) -> None:
        resting = [_order("o1", "user-B", 3000), _order("o2", "user-B", 3000)]
        plan = plan_fifo_fills("user-A", 5000, resting, {"user-B": 4000})
        assert [f.order_id for f in plan.fills] == ["o1"]
        assert plan.insolvent_order_ids == ["o2"]
        assert plan.remainder == 2000

    def test_maker_without_account_is_insolvent(self) -> None:
        plan = plan_fifo_fills("user-A", 100, [_order("o1", "ghost", 100)], {})
        assert plan.insolvent_order_ids == ["o1"]

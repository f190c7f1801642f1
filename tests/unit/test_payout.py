from src.pm_clearing.domain.payout import compute_payouts
from src.pm_common.enums import Side
from src.pm_position.domain.models import Position


def _pos(user: str, yes: float = 0.0, no: float = 0.0) -> Position:
    return Position(user_id=user, market_id="mkt-1", yes_shares=yes, no_shares=no)


class TestComputePayouts:
    def test_pro_rata_split(self) -> None:
        plan = compute_payouts([_pos("a", yes=300.0), _pos("b", yes=100.0)], Side.YES, 1000)
        assert [(p.user_id, p.amount) for p in plan.payouts] == [("a", 750), ("b", 250)]
        assert plan.total_paid == 1000
        assert plan.residual == 0

    def test_losers_get_nothing(self) -> None:
        plan = compute_payouts([_pos("a", yes=50.0), _pos("b", no=50.0)], Side.YES, 100)
        assert [p.user_id for p in plan.payouts] == ["a"]
        assert plan.payouts[0].amount == 100

    def test_rounding_dust_becomes_residual(self) -> None:
        holders = [_pos("a", no=1.0), _pos("b", no=1.0), _pos("c", no=1.0)]
        plan = compute_payouts(holders, Side.NO, 100)
        assert all(p.amount == 33 for p in plan.payouts)
        assert plan.total_paid == 99
        assert plan.residual == 1

    def test_float_shares_never_overpay(self) -> None:
        holders = [_pos("a", yes=909.0909090909), _pos("b", yes=0.1), _pos("c", yes=1e-7)]
        plan = compute_payouts(holders, Side.YES, 1001)
        assert plan.total_paid <= 1001
        assert plan.residual >= 0

    def test_payouts_sorted_by_user(self) -> None:
        plan = compute_payouts([_pos("zed", yes=1.0), _pos("amy", yes=1.0)], Side.YES, 10)
        assert [p.user_id for p in plan.payouts] == ["amy", "zed"]

    def test_no_winning_holders_leaves_everything_residual(self) -> None:
        plan = compute_payouts([_pos("a", no=10.0)], Side.YES, 500)
        assert plan.payouts == []
        assert plan.residual == 500

    def test_empty_collateral_pays_nothing(self) -> None:
        plan = compute_payouts([_pos("a", yes=10.0)], Side.YES, 0)
        assert plan.payouts == []
        assert plan.total_paid == 0

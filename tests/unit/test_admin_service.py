# tests/unit/test_admin_service.py
"""Unit tests for AdminService: resolution transaction and invariant report."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError

from src.pm_admin.application.service import AdminService, ResolveRequest
from src.pm_clearing.domain.global_invariants import ConservationReport
from src.pm_clearing.domain.settlement import SettlementEngine
from src.pm_common.enums import MarketEvent, Role, Side
from src.pm_common.errors import ForbiddenError, MarketAlreadyResolvedError
from src.pm_gateway.auth.identity import Identity

ADMIN = Identity(user_id="admin-1", username="root", role=Role.ADMIN)
MEMBER = Identity(user_id="user-A", username="alice", role=Role.MEMBER)


@pytest.fixture
def session() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def notifier() -> MagicMock:
    return MagicMock()


@pytest.fixture
def service(markets, orders, ledger, tracker, locks, notifier, fixed_now) -> AdminService:
    markets.seed(collateral=1000)
    ledger.seed("user-A", 9000)
    ledger.seed("user-B", 10_000)
    engine = SettlementEngine(markets, orders, ledger, tracker, locks=locks, clock=fixed_now)
    return AdminService(engine=engine, notifier=notifier)


async def _give_yes(position_repo, user_id: str, shares: float) -> None:
    await position_repo.add_shares(None, user_id, "mkt-1", Side.YES, shares)


class TestResolveMarket:
    async def test_commits_pays_and_publishes(
        self, service, session, notifier, ledger, position_repo
    ) -> None:
        await _give_yes(position_repo, "user-A", 909.09)

        resp = await service.resolve_market(session, ADMIN, "mkt-1", Side.YES)

        assert resp.outcome == "YES"
        assert resp.total_pool_cents == 1000
        assert resp.paid_cents + resp.residual_cents == 1000
        assert [p.user_id for p in resp.payouts] == ["user-A"]
        assert ledger.balance("user-A") == 9000 + resp.paid_cents
        session.commit.assert_awaited_once()
        market_id, event, payload = notifier.publish.call_args.args
        assert (market_id, event) == ("mkt-1", MarketEvent.MARKET_RESOLVED)
        assert payload["outcome"] == "YES"

    async def test_member_rolled_back(self, service, session, notifier) -> None:
        with pytest.raises(ForbiddenError):
            await service.resolve_market(session, MEMBER, "mkt-1", Side.YES)
        session.rollback.assert_awaited_once()
        notifier.publish.assert_not_called()

    async def test_second_resolution_conflicts(self, service, session, position_repo) -> None:
        await _give_yes(position_repo, "user-A", 10.0)
        await service.resolve_market(session, ADMIN, "mkt-1", Side.NO)
        with pytest.raises(MarketAlreadyResolvedError):
            await service.resolve_market(session, ADMIN, "mkt-1", Side.YES)

    def test_request_rejects_unknown_outcome(self) -> None:
        with pytest.raises(ValidationError):
            ResolveRequest(outcome="MAYBE")


class TestVerifyInvariants:
    async def test_maps_report(self, service, session) -> None:
        report = ConservationReport(
            user_balances=19_000, market_collateral=1000, initial_grants=20_000, violations=[]
        )
        with patch(
            "src.pm_admin.application.service.verify_conservation",
            AsyncMock(return_value=report),
        ):
            resp = await service.verify_invariants(session)
        assert resp.ok
        assert resp.market_collateral_cents == 1000

    async def test_violation_surfaces(self, service, session) -> None:
        report = ConservationReport(
            user_balances=19_001, market_collateral=1000, initial_grants=20_000,
            violations=["conservation violated"],
        )
        with patch(
            "src.pm_admin.application.service.verify_conservation",
            AsyncMock(return_value=report),
        ):
            resp = await service.verify_invariants(session)
        assert not resp.ok
        assert resp.violations == ["conservation violated"]

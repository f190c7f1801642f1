# src/pm_admin/application/service.py
"""Admin application service: market resolution and ledger invariants."""

import logging

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.infrastructure.persistence import LedgerRepository
from src.pm_clearing.domain.global_invariants import verify_conservation
from src.pm_clearing.domain.settlement import SettlementEngine, SettlementResult
from src.pm_common.enums import MarketEvent, Side
from src.pm_common.notifier import MarketEventNotifier, get_notifier
from src.pm_gateway.auth.identity import Identity
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_order.infrastructure.persistence import OrderRepository
from src.pm_position.domain.tracker import PositionTracker
from src.pm_position.infrastructure.persistence import PositionRepository

logger = logging.getLogger(__name__)


class ResolveRequest(BaseModel):
    outcome: Side


class PayoutItem(BaseModel):
    user_id: str
    payout_cents: int


class ResolveResponse(BaseModel):
    market_id: str
    outcome: str
    total_pool_cents: int
    paid_cents: int
    residual_cents: int
    cancelled_orders: int
    payouts: list[PayoutItem]

    @classmethod
    def from_result(cls, result: SettlementResult) -> "ResolveResponse":
        return cls(
            market_id=result.market_id,
            outcome=result.outcome.value,
            total_pool_cents=result.total_pool,
            paid_cents=result.paid,
            residual_cents=result.residual,
            cancelled_orders=result.cancelled_orders,
            payouts=[PayoutItem(user_id=p.user_id, payout_cents=p.amount) for p in result.payouts],
        )


class InvariantsResponse(BaseModel):
    ok: bool
    user_balances_cents: int
    market_collateral_cents: int
    initial_grants_cents: int
    violations: list[str]


def _default_engine() -> SettlementEngine:
    return SettlementEngine(
        markets=MarketRepository(),
        orders=OrderRepository(),
        ledger=LedgerRepository(),
        positions=PositionTracker(PositionRepository()),
    )


class AdminService:
    def __init__(
        self,
        engine: SettlementEngine | None = None,
        notifier: MarketEventNotifier | None = None,
    ) -> None:
        self._engine = engine or _default_engine()
        self._notifier = notifier

    @property
    def notifier(self) -> MarketEventNotifier:
        return self._notifier or get_notifier()

    async def resolve_market(
        self, db: AsyncSession, identity: Identity, market_id: str, outcome: Side
    ) -> ResolveResponse:
        try:
            result = await self._engine.resolve(db, identity, market_id, outcome)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        self.notifier.publish(
            market_id,
            MarketEvent.MARKET_RESOLVED,
            {"outcome": outcome.value, "paid": result.paid, "residual": result.residual},
        )
        return ResolveResponse.from_result(result)

    async def verify_invariants(self, db: AsyncSession) -> InvariantsResponse:
        report = await verify_conservation(db)
        return InvariantsResponse(
            ok=report.ok,
            user_balances_cents=report.user_balances,
            market_collateral_cents=report.market_collateral,
            initial_grants_cents=report.initial_grants,
            violations=report.violations,
        )

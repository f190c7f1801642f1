"""Market settlement: resolve once, cancel resting orders, pay out winners."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import LedgerPosting
from src.pm_account.domain.repository import LedgerRepositoryProtocol
from src.pm_clearing.domain.payout import Payout, compute_payouts
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import CancelReason, LedgerEntryType, Side
from src.pm_common.errors import MarketAlreadyResolvedError, MarketNotFoundError
from src.pm_common.locks import KeyedLocks, get_locks
from src.pm_gateway.auth.identity import Identity
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_order.domain.repository import OrderRepositoryProtocol
from src.pm_position.domain.tracker import PositionTracker

logger = logging.getLogger(__name__)


@dataclass
class SettlementResult:
    market_id: str
    outcome: Side
    total_pool: int  # collateral at resolution
    paid: int
    residual: int
    cancelled_orders: int
    payouts: list[Payout]


class SettlementEngine:
    def __init__(
        self,
        markets: MarketRepositoryProtocol,
        orders: OrderRepositoryProtocol,
        ledger: LedgerRepositoryProtocol,
        positions: PositionTracker,
        locks: KeyedLocks | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._markets = markets
        self._orders = orders
        self._ledger = ledger
        self._positions = positions
        self._locks = locks or get_locks()
        self._clock = clock

    async def resolve(
        self, db: AsyncSession, identity: Identity, market_id: str, outcome: Side
    ) -> SettlementResult:
        """Resolve ``market_id`` to ``outcome`` exactly once.

        The resolved flag is flipped by a conditional UPDATE before any
        money moves, so a second call (here or in another worker) fails with
        MarketAlreadyResolvedError instead of paying twice. The caller owns
        the transaction: if anything fails, rolling back also un-resolves.
        """
        identity.require_admin()

        async with self._locks.market(market_id):
            market = await self._markets.get_for_update(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            if market.resolved:
                raise MarketAlreadyResolvedError(market_id)

            resolved = await self._markets.mark_resolved(
                db, market_id, outcome.value, identity.user_id, self._clock()
            )
            if resolved is None:
                raise MarketAlreadyResolvedError(market_id)

            # unmatched orders never held funds, nothing to refund
            cancelled = await self._orders.cancel_all_pending(
                db, market_id, CancelReason.MARKET_RESOLVED.value
            )

            holders = await self._positions.holders(db, market_id)
            plan = compute_payouts(holders, outcome, resolved.collateral)
            for payout in plan.payouts:
                posting = LedgerPosting(
                    entry_type=LedgerEntryType.SETTLEMENT_PAYOUT,
                    reference_type="MARKET",
                    reference_id=market_id,
                    description=f"{payout.winning_shares:.4f} {outcome.value} shares",
                )
                async with self._locks.user(payout.user_id):
                    await self._ledger.credit(db, payout.user_id, payout.amount, posting)

            await self._markets.record_settlement(db, market_id, plan.total_paid)

        logger.info(
            "Market %s resolved %s by %s: pool %d, paid %d to %d holders, residual %d, "
            "%d orders cancelled",
            market_id, outcome.value, identity.user_id, plan.collateral, plan.total_paid,
            len(plan.payouts), plan.residual, len(cancelled),
        )
        return SettlementResult(
            market_id=market_id,
            outcome=outcome,
            total_pool=plan.collateral,
            paid=plan.total_paid,
            residual=plan.residual,
            cancelled_orders=len(cancelled),
            payouts=plan.payouts,
        )

# src/pm_order/application/service.py
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import CancelReason, MarketEvent
from src.pm_common.errors import (
    ForbiddenError,
    OrderNotCancellableError,
    OrderNotFoundError,
)
from src.pm_common.locks import KeyedLocks, get_locks
from src.pm_common.notifier import MarketEventNotifier, get_notifier
from src.pm_gateway.auth.identity import Identity
from src.pm_order.application.schemas import (
    CancelOrderResponse,
    OrderListResponse,
    OrderResponse,
)
from src.pm_order.domain.repository import OrderRepositoryProtocol
from src.pm_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)


class OrderApplicationService:
    def __init__(
        self,
        repo: OrderRepositoryProtocol | None = None,
        locks: KeyedLocks | None = None,
        notifier: MarketEventNotifier | None = None,
    ) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()
        self._locks = locks
        self._notifier = notifier

    @property
    def locks(self) -> KeyedLocks:
        return self._locks or get_locks()

    @property
    def notifier(self) -> MarketEventNotifier:
        return self._notifier or get_notifier()

    async def cancel_order(
        self, db: AsyncSession, identity: Identity, order_id: str
    ) -> CancelOrderResponse:
        """Owner-only; only a pending order can be cancelled. No money moves."""
        identity.require_trader()
        order = await self._repo.get_by_id(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.user_id != identity.user_id:
            raise ForbiddenError("Order belongs to another user")

        # the market lock keeps a concurrent fill from racing the cancel
        async with self.locks.market(order.market_id):
            try:
                cancelled = await self._repo.cancel(
                    db, order_id, CancelReason.USER_CANCELLED.value
                )
                if cancelled is None:
                    current = await self._repo.get_by_id(db, order_id)
                    raise OrderNotCancellableError(
                        order_id, current.status if current else order.status
                    )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info("Order %s cancelled by %s", order_id, identity.user_id)
        self.notifier.publish(
            cancelled.market_id,
            MarketEvent.ORDER_CANCELLED,
            {"order_id": cancelled.id, "side": cancelled.side, "unfilled": cancelled.unfilled},
        )
        return CancelOrderResponse(
            order_id=cancelled.id,
            status=cancelled.status,
            unfilled_amount_cents=cancelled.unfilled,
        )

    async def get_order(
        self, db: AsyncSession, identity: Identity, order_id: str
    ) -> OrderResponse:
        order = await self._repo.get_by_id(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.user_id != identity.user_id:
            raise ForbiddenError("Order belongs to another user")
        return OrderResponse.from_domain(order)

    async def list_orders(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        status: str | None,
        limit: int,
        cursor: str | None,
    ) -> OrderListResponse:
        orders = await self._repo.list_by_user(
            db, user_id, market_id, status, cursor, limit + 1
        )
        has_more = len(orders) > limit
        if has_more:
            orders = orders[:limit]
        next_cursor = orders[-1].id if has_more else None
        return OrderListResponse(
            items=[OrderResponse.from_domain(o) for o in orders],
            next_cursor=next_cursor,
            has_more=has_more,
        )

# src/pm_order/infrastructure/persistence.py
"""OrderRepository: raw SQL persistence implementation."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.errors import InternalError
from src.pm_order.domain.models import Order

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SELECT_COLUMNS = """
    id, user_id, market_id, side, amount, filled_amount, price,
    status, cancel_reason, created_at, updated_at
"""

_INSERT_ORDER_SQL = text(f"""
    INSERT INTO orders (id, user_id, market_id, side, amount, filled_amount, price, status)
    VALUES (:id, :user_id, :market_id, :side, :amount, :filled_amount, :price, 'PENDING')
    RETURNING {_SELECT_COLUMNS}
""")

_GET_ORDER_BY_ID_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders WHERE id = :id
""")

# FIFO: creation time, id as tie-breaker
_LIST_PENDING_FOR_UPDATE_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE market_id = :market_id AND side = :side AND status = 'PENDING'
    ORDER BY created_at ASC, id ASC
    FOR UPDATE
""")

_APPLY_FILL_SQL = text(f"""
    UPDATE orders
    SET filled_amount = filled_amount + :fill,
        status = CASE WHEN filled_amount + :fill = amount THEN 'FILLED' ELSE status END
    WHERE id = :id AND status = 'PENDING' AND filled_amount + :fill <= amount
    RETURNING {_SELECT_COLUMNS}
""")

_REVERT_FILL_SQL = text(f"""
    UPDATE orders
    SET filled_amount = filled_amount - :fill,
        status = 'PENDING'
    WHERE id = :id AND filled_amount >= :fill AND status <> 'CANCELLED'
    RETURNING {_SELECT_COLUMNS}
""")

_CANCEL_ORDER_SQL = text(f"""
    UPDATE orders
    SET status = 'CANCELLED', cancel_reason = :reason
    WHERE id = :id AND status = 'PENDING'
    RETURNING {_SELECT_COLUMNS}
""")

_CANCEL_ALL_PENDING_SQL = text(f"""
    UPDATE orders
    SET status = 'CANCELLED', cancel_reason = :reason
    WHERE market_id = :market_id AND status = 'PENDING'
    RETURNING {_SELECT_COLUMNS}
""")

_LIST_ORDERS_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE user_id = :user_id
      AND (CAST(:market_id AS TEXT) IS NULL OR market_id = :market_id)
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_order(row: Any) -> Order:
    """Convert a DB result row to an Order domain object."""
    return Order(
        id=row.id,
        user_id=row.user_id,
        market_id=row.market_id,
        side=row.side,
        amount=row.amount,
        filled_amount=row.filled_amount,
        price=row.price,
        status=row.status,
        cancel_reason=row.cancel_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def create(self, db: AsyncSession, order: Order) -> Order:
        row = (
            await db.execute(
                _INSERT_ORDER_SQL,
                {
                    "id": order.id,
                    "user_id": order.user_id,
                    "market_id": order.market_id,
                    "side": order.side,
                    "amount": order.amount,
                    "filled_amount": order.filled_amount,
                    "price": order.price,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Order insert returned no rows")
        return _row_to_order(row)

    async def get_by_id(self, db: AsyncSession, order_id: str) -> Order | None:
        result = await db.execute(_GET_ORDER_BY_ID_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def list_pending_for_update(
        self, db: AsyncSession, market_id: str, side: str
    ) -> list[Order]:
        rows = (
            await db.execute(
                _LIST_PENDING_FOR_UPDATE_SQL, {"market_id": market_id, "side": side}
            )
        ).fetchall()
        return [_row_to_order(r) for r in rows]

    async def apply_fill(
        self, db: AsyncSession, order_id: str, fill_amount: int
    ) -> Order | None:
        row = (
            await db.execute(_APPLY_FILL_SQL, {"id": order_id, "fill": fill_amount})
        ).fetchone()
        return _row_to_order(row) if row else None

    async def revert_fill(
        self, db: AsyncSession, order_id: str, fill_amount: int
    ) -> Order | None:
        row = (
            await db.execute(_REVERT_FILL_SQL, {"id": order_id, "fill": fill_amount})
        ).fetchone()
        return _row_to_order(row) if row else None

    async def cancel(
        self, db: AsyncSession, order_id: str, reason: str
    ) -> Order | None:
        row = (
            await db.execute(_CANCEL_ORDER_SQL, {"id": order_id, "reason": reason})
        ).fetchone()
        return _row_to_order(row) if row else None

    async def cancel_all_pending(
        self, db: AsyncSession, market_id: str, reason: str
    ) -> list[Order]:
        rows = (
            await db.execute(
                _CANCEL_ALL_PENDING_SQL, {"market_id": market_id, "reason": reason}
            )
        ).fetchall()
        return [_row_to_order(r) for r in rows]

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Order]:
        result = await db.execute(
            _LIST_ORDERS_SQL,
            {
                "user_id": user_id,
                "market_id": market_id,
                "status": status,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_order(r) for r in result.fetchall()]

"""TradeRecordRepository: INSERT-only writer and readers for the trades table."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.errors import InternalError
from src.pm_trading.domain.models import TradeRecord

_COLUMNS = """
    id, user_id, market_id, side, trade_type, amount, shares,
    order_id, yes_price_after, created_at
"""

_INSERT_TRADE_SQL = text(f"""
    INSERT INTO trades
        (id, user_id, market_id, side, trade_type, amount, shares,
         order_id, yes_price_after)
    VALUES
        (:id, :user_id, :market_id, :side, :trade_type, :amount, :shares,
         :order_id, :yes_price_after)
    RETURNING {_COLUMNS}
""")

_LIST_BY_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM trades
    WHERE user_id = :user_id
      AND (CAST(:market_id AS VARCHAR) IS NULL OR market_id = :market_id)
      AND (CAST(:cursor_id AS VARCHAR) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

# newest N points, returned oldest first
_PRICE_POINTS_SQL = text(f"""
    SELECT * FROM (
        SELECT {_COLUMNS}
        FROM trades
        WHERE market_id = :market_id AND yes_price_after IS NOT NULL
        ORDER BY id DESC
        LIMIT :limit
    ) recent
    ORDER BY id ASC
""")


def _row_to_record(row: Any) -> TradeRecord:
    return TradeRecord(
        id=row.id,
        user_id=row.user_id,
        market_id=row.market_id,
        side=row.side,
        trade_type=row.trade_type,
        amount=row.amount,
        shares=float(row.shares) if row.shares is not None else None,
        order_id=row.order_id,
        yes_price_after=(
            float(row.yes_price_after) if row.yes_price_after is not None else None
        ),
        created_at=row.created_at,
    )


class TradeRecordRepository:
    async def append(self, db: AsyncSession, record: TradeRecord) -> TradeRecord:
        row = (
            await db.execute(
                _INSERT_TRADE_SQL,
                {
                    "id": record.id,
                    "user_id": record.user_id,
                    "market_id": record.market_id,
                    "side": record.side,
                    "trade_type": record.trade_type,
                    "amount": record.amount,
                    "shares": record.shares,
                    "order_id": record.order_id,
                    "yes_price_after": record.yes_price_after,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Trade insert returned no rows")
        return _row_to_record(row)

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[TradeRecord]:
        rows = (
            await db.execute(
                _LIST_BY_USER_SQL,
                {
                    "user_id": user_id,
                    "market_id": market_id,
                    "cursor_id": cursor_id,
                    "limit": limit,
                },
            )
        ).fetchall()
        return [_row_to_record(r) for r in rows]

    async def list_price_points(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> list[TradeRecord]:
        rows = (
            await db.execute(_PRICE_POINTS_SQL, {"market_id": market_id, "limit": limit})
        ).fetchall()
        return [_row_to_record(r) for r in rows]

"""PositionRepository: atomic upserts and guarded decrements on positions."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import Side
from src.pm_common.errors import InternalError
from src.pm_position.domain.models import Position

_COLUMNS = "user_id, market_id, yes_shares, no_shares, created_at, updated_at"

_GET_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM positions
    WHERE user_id = :user_id AND market_id = :market_id
""")

_ADD_YES_SQL = text(f"""
    INSERT INTO positions (user_id, market_id, yes_shares, no_shares)
    VALUES (:user_id, :market_id, :shares, 0)
    ON CONFLICT (user_id, market_id) DO UPDATE
        SET yes_shares = positions.yes_shares + EXCLUDED.yes_shares,
            updated_at = NOW()
    RETURNING {_COLUMNS}
""")

_ADD_NO_SQL = text(f"""
    INSERT INTO positions (user_id, market_id, yes_shares, no_shares)
    VALUES (:user_id, :market_id, 0, :shares)
    ON CONFLICT (user_id, market_id) DO UPDATE
        SET no_shares = positions.no_shares + EXCLUDED.no_shares,
            updated_at = NOW()
    RETURNING {_COLUMNS}
""")

_REMOVE_YES_SQL = text(f"""
    UPDATE positions
    SET yes_shares = yes_shares - :shares,
        updated_at = NOW()
    WHERE user_id = :user_id
      AND market_id = :market_id
      AND yes_shares >= :shares
    RETURNING {_COLUMNS}
""")

_REMOVE_NO_SQL = text(f"""
    UPDATE positions
    SET no_shares = no_shares - :shares,
        updated_at = NOW()
    WHERE user_id = :user_id
      AND market_id = :market_id
      AND no_shares >= :shares
    RETURNING {_COLUMNS}
""")

_LIST_BY_MARKET_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM positions
    WHERE market_id = :market_id
      AND (yes_shares > 0 OR no_shares > 0)
    ORDER BY user_id
""")


def _row_to_position(row: Any) -> Position:
    return Position(
        user_id=row.user_id,
        market_id=row.market_id,
        yes_shares=float(row.yes_shares),
        no_shares=float(row.no_shares),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class PositionRepository:
    async def get(self, db: AsyncSession, user_id: str, market_id: str) -> Position | None:
        row = (
            await db.execute(_GET_SQL, {"user_id": user_id, "market_id": market_id})
        ).fetchone()
        return _row_to_position(row) if row else None

    async def add_shares(
        self, db: AsyncSession, user_id: str, market_id: str, side: Side, shares: float
    ) -> Position:
        sql = _ADD_YES_SQL if side == Side.YES else _ADD_NO_SQL
        row = (
            await db.execute(sql, {"user_id": user_id, "market_id": market_id, "shares": shares})
        ).fetchone()
        if row is None:
            raise InternalError("Position upsert returned no rows")
        return _row_to_position(row)

    async def remove_shares(
        self, db: AsyncSession, user_id: str, market_id: str, side: Side, shares: float
    ) -> Position | None:
        sql = _REMOVE_YES_SQL if side == Side.YES else _REMOVE_NO_SQL
        row = (
            await db.execute(sql, {"user_id": user_id, "market_id": market_id, "shares": shares})
        ).fetchone()
        return _row_to_position(row) if row else None

    async def list_by_market(self, db: AsyncSession, market_id: str) -> list[Position]:
        rows = (await db.execute(_LIST_BY_MARKET_SQL, {"market_id": market_id})).fetchall()
        return [_row_to_position(r) for r in rows]

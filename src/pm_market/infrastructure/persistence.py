"""MarketRepository: concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
Pool and collateral writes are guarded in SQL so that a resolved market can
never be traded against, even by a request that read it before resolution.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.errors import InternalError, MarketNotFoundError
from src.pm_market.domain.models import Market

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, channel_id, title, description, rules, resolution_source, created_by,
    trading_mode, yes_pool, no_pool, collateral, residual,
    resolved, outcome, resolved_at, resolved_by,
    close_time, expected_resolution_time, version, created_at, updated_at
"""

_INSERT_MARKET_SQL = text(f"""
    INSERT INTO markets
        (id, channel_id, title, description, rules, resolution_source, created_by,
         trading_mode, yes_pool, no_pool, close_time, expected_resolution_time)
    VALUES
        (:id, :channel_id, :title, :description, :rules, :resolution_source, :created_by,
         :trading_mode, :yes_pool, :no_pool, :close_time, :expected_resolution_time)
    RETURNING {_COLUMNS}
""")

_GET_MARKET_SQL = text(f"SELECT {_COLUMNS} FROM markets WHERE id = :market_id")

_GET_MARKET_FOR_UPDATE_SQL = text(
    f"SELECT {_COLUMNS} FROM markets WHERE id = :market_id FOR UPDATE"
)

_LIST_MARKETS_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM markets
    WHERE
        (CAST(:channel_id AS TEXT) IS NULL OR channel_id = CAST(:channel_id AS TEXT))
        AND (CAST(:resolved AS BOOLEAN) IS NULL OR resolved = CAST(:resolved AS BOOLEAN))
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_UPDATE_POOLS_SQL = text(f"""
    UPDATE markets
    SET yes_pool = :yes_pool,
        no_pool = :no_pool,
        collateral = collateral + :collateral_delta,
        version = version + 1
    WHERE id = :market_id
      AND version = :expected_version
      AND resolved = FALSE
    RETURNING {_COLUMNS}
""")

_ADJUST_COLLATERAL_SQL = text(f"""
    UPDATE markets
    SET collateral = collateral + :delta,
        version = version + 1
    WHERE id = :market_id AND resolved = FALSE
    RETURNING {_COLUMNS}
""")

_MARK_RESOLVED_SQL = text(f"""
    UPDATE markets
    SET resolved = TRUE,
        outcome = :outcome,
        resolved_by = :resolved_by,
        resolved_at = :resolved_at,
        version = version + 1
    WHERE id = :market_id AND resolved = FALSE
    RETURNING {_COLUMNS}
""")

_RECORD_SETTLEMENT_SQL = text(f"""
    UPDATE markets
    SET collateral = collateral - :paid_out,
        residual = collateral - :paid_out,
        version = version + 1
    WHERE id = :market_id AND resolved = TRUE
    RETURNING {_COLUMNS}
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        channel_id=row.channel_id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        rules=row.rules,  # type: ignore[attr-defined]
        resolution_source=row.resolution_source,  # type: ignore[attr-defined]
        created_by=row.created_by,  # type: ignore[attr-defined]
        trading_mode=row.trading_mode,  # type: ignore[attr-defined]
        yes_pool=float(row.yes_pool),  # type: ignore[attr-defined]
        no_pool=float(row.no_pool),  # type: ignore[attr-defined]
        collateral=row.collateral,  # type: ignore[attr-defined]
        residual=row.residual,  # type: ignore[attr-defined]
        resolved=row.resolved,  # type: ignore[attr-defined]
        outcome=row.outcome,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        resolved_by=row.resolved_by,  # type: ignore[attr-defined]
        close_time=row.close_time,  # type: ignore[attr-defined]
        expected_resolution_time=row.expected_resolution_time,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class MarketRepository:
    async def create(self, db: AsyncSession, market: Market) -> Market:
        row = (
            await db.execute(
                _INSERT_MARKET_SQL,
                {
                    "id": market.id,
                    "channel_id": market.channel_id,
                    "title": market.title,
                    "description": market.description,
                    "rules": market.rules,
                    "resolution_source": market.resolution_source,
                    "created_by": market.created_by,
                    "trading_mode": market.trading_mode,
                    "yes_pool": market.yes_pool,
                    "no_pool": market.no_pool,
                    "close_time": market.close_time,
                    "expected_resolution_time": market.expected_resolution_time,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Market insert returned no rows")
        return _row_to_market(row)

    async def get_market_by_id(self, db: AsyncSession, market_id: str) -> Market | None:
        row = (await db.execute(_GET_MARKET_SQL, {"market_id": market_id})).fetchone()
        return _row_to_market(row) if row else None

    async def get_for_update(self, db: AsyncSession, market_id: str) -> Market | None:
        row = (
            await db.execute(_GET_MARKET_FOR_UPDATE_SQL, {"market_id": market_id})
        ).fetchone()
        return _row_to_market(row) if row else None

    async def list_markets(
        self,
        db: AsyncSession,
        channel_id: str | None,
        resolved: bool | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]:
        # asyncpg requires a real datetime object for TIMESTAMPTZ parameters
        cursor_ts_dt = datetime.fromisoformat(cursor_ts) if cursor_ts is not None else None
        result = await db.execute(
            _LIST_MARKETS_SQL,
            {
                "channel_id": channel_id,
                "resolved": resolved,
                "cursor_ts": cursor_ts_dt,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_market(row) for row in result.fetchall()]

    async def update_pools(
        self,
        db: AsyncSession,
        market_id: str,
        expected_version: int,
        yes_pool: float,
        no_pool: float,
        collateral_delta: int,
    ) -> Market | None:
        row = (
            await db.execute(
                _UPDATE_POOLS_SQL,
                {
                    "market_id": market_id,
                    "expected_version": expected_version,
                    "yes_pool": yes_pool,
                    "no_pool": no_pool,
                    "collateral_delta": collateral_delta,
                },
            )
        ).fetchone()
        return _row_to_market(row) if row else None

    async def adjust_collateral(
        self, db: AsyncSession, market_id: str, delta: int
    ) -> Market | None:
        row = (
            await db.execute(_ADJUST_COLLATERAL_SQL, {"market_id": market_id, "delta": delta})
        ).fetchone()
        return _row_to_market(row) if row else None

    async def mark_resolved(
        self,
        db: AsyncSession,
        market_id: str,
        outcome: str,
        resolved_by: str,
        resolved_at: datetime,
    ) -> Market | None:
        row = (
            await db.execute(
                _MARK_RESOLVED_SQL,
                {
                    "market_id": market_id,
                    "outcome": outcome,
                    "resolved_by": resolved_by,
                    "resolved_at": resolved_at,
                },
            )
        ).fetchone()
        return _row_to_market(row) if row else None

    async def record_settlement(
        self, db: AsyncSession, market_id: str, paid_out: int
    ) -> Market:
        row = (
            await db.execute(
                _RECORD_SETTLEMENT_SQL, {"market_id": market_id, "paid_out": paid_out}
            )
        ).fetchone()
        if row is None:
            raise MarketNotFoundError(market_id)
        return _row_to_market(row)

"""Read-only holdings queries joined with market state for valuation."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_HOLDINGS_SQL = text("""
    SELECT p.market_id, p.yes_shares, p.no_shares,
           m.title, m.yes_pool, m.no_pool, m.resolved, m.outcome
    FROM positions p
    JOIN markets m ON m.id = p.market_id
    WHERE p.user_id = :user_id
      AND (p.yes_shares > 0 OR p.no_shares > 0)
      AND (CAST(:market_id AS VARCHAR) IS NULL OR p.market_id = :market_id)
    ORDER BY p.updated_at DESC
""")


class HoldingsQuery:
    async def list_by_user(
        self, db: AsyncSession, user_id: str, market_id: str | None = None
    ) -> list[dict[str, Any]]:
        rows = (
            await db.execute(_HOLDINGS_SQL, {"user_id": user_id, "market_id": market_id})
        ).fetchall()
        return [
            {
                "market_id": r.market_id,
                "title": r.title,
                "yes_shares": float(r.yes_shares),
                "no_shares": float(r.no_shares),
                "yes_pool": float(r.yes_pool),
                "no_pool": float(r.no_pool),
                "resolved": r.resolved,
                "outcome": r.outcome,
            }
            for r in rows
        ]

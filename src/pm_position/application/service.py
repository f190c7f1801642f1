"""Position read service: holdings marked to market."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_amm.domain.pricing import effective_pools
from src.pm_common.cents import floor_cents
from src.pm_common.errors import PositionNotFoundError
from src.pm_position.application.schemas import HoldingListResponse, HoldingResponse
from src.pm_position.infrastructure.holdings_query import HoldingsQuery


def value_holding(row: dict[str, Any]) -> HoldingResponse:
    """Open markets value shares at the pool price; resolved ones were paid out at settlement."""
    if row["resolved"]:
        yes_p = 1.0 if row["outcome"] == "YES" else 0.0
        no_p = 1.0 - yes_p
        value = 0.0
    else:
        pool = effective_pools(row["yes_pool"], row["no_pool"], settings.AMM_VIRTUAL_LIQUIDITY)
        yes_p, no_p = pool.yes_price, pool.no_price
        value = row["yes_shares"] * yes_p + row["no_shares"] * no_p
    return HoldingResponse(
        market_id=row["market_id"],
        title=row["title"],
        yes_shares=row["yes_shares"],
        no_shares=row["no_shares"],
        yes_price=yes_p,
        no_price=no_p,
        market_value_cents=floor_cents(value),
        resolved=row["resolved"],
        outcome=row["outcome"],
    )


class PositionApplicationService:
    def __init__(self, query: HoldingsQuery | None = None) -> None:
        self._query = query or HoldingsQuery()

    async def list_holdings(self, db: AsyncSession, user_id: str) -> HoldingListResponse:
        items = [value_holding(r) for r in await self._query.list_by_user(db, user_id)]
        return HoldingListResponse(
            items=items,
            total=len(items),
            total_value_cents=sum(i.market_value_cents for i in items),
        )

    async def get_holding(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> HoldingResponse:
        rows = await self._query.list_by_user(db, user_id, market_id)
        if not rows:
            raise PositionNotFoundError(market_id)
        return value_holding(rows[0])

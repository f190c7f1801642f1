"""MarketApplicationService: create, read and list markets.

Creation commits its own transaction; reads run without one.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_common.datetime_utils import ensure_utc, utc_now
from src.pm_common.enums import MarketEvent
from src.pm_common.errors import InvalidMarketScheduleError, MarketNotFoundError
from src.pm_common.id_generator import generate_id
from src.pm_common.notifier import MarketEventNotifier, get_notifier
from src.pm_gateway.auth.identity import Identity
from src.pm_market.application.schemas import (
    CreateMarketRequest,
    MarketDetail,
    MarketListItem,
    MarketListResponse,
    cursor_decode,
    cursor_encode,
)
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


def check_schedule(
    close_time: datetime | None,
    expected_resolution_time: datetime | None,
    now: datetime,
) -> None:
    if close_time is not None and close_time <= now:
        raise InvalidMarketScheduleError("close_time must be in the future")
    if (
        close_time is not None
        and expected_resolution_time is not None
        and expected_resolution_time < close_time
    ):
        raise InvalidMarketScheduleError(
            "expected_resolution_time must not be before close_time"
        )


class MarketApplicationService:
    def __init__(
        self,
        repo: MarketRepositoryProtocol | None = None,
        notifier: MarketEventNotifier | None = None,
    ) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._notifier = notifier

    @property
    def notifier(self) -> MarketEventNotifier:
        return self._notifier or get_notifier()

    async def create_market(
        self, db: AsyncSession, identity: Identity, body: CreateMarketRequest
    ) -> MarketDetail:
        identity.require_admin()
        close_time = ensure_utc(body.close_time) if body.close_time else None
        expected = (
            ensure_utc(body.expected_resolution_time) if body.expected_resolution_time else None
        )
        check_schedule(close_time, expected, utc_now())

        draft = Market(
            id=generate_id("mkt"),
            channel_id=body.channel_id,
            title=body.title,
            description=body.description,
            rules=body.rules,
            resolution_source=body.resolution_source,
            created_by=identity.user_id,
            trading_mode=body.trading_mode.value,
            yes_pool=settings.AMM_INITIAL_POOL,
            no_pool=settings.AMM_INITIAL_POOL,
            close_time=close_time,
            expected_resolution_time=expected,
        )
        try:
            market = await self._repo.create(db, draft)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Market %s created by %s (%s mode)", market.id, identity.user_id, market.trading_mode
        )
        self.notifier.publish(
            market.id,
            MarketEvent.MARKET_CREATED,
            {"title": market.title, "channel_id": market.channel_id},
        )
        return MarketDetail.from_domain(market)

    async def list_markets(
        self,
        db: AsyncSession,
        channel_id: str | None,
        resolved: bool | None,
        cursor: str | None,
        limit: int,
    ) -> MarketListResponse:
        cursor_ts, cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without COUNT(*)
        markets = await self._repo.list_markets(
            db, channel_id, resolved, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(markets) > limit
        page = markets[:limit]

        items = [MarketListItem.from_domain(m) for m in page]
        next_cursor = cursor_encode(page[-1]) if has_more and page else None
        return MarketListResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def get_market(self, db: AsyncSession, market_id: str) -> MarketDetail:
        market = await self._repo.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return MarketDetail.from_domain(market)

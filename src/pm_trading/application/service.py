"""TradeApplicationService: transaction boundary and notifications around
the TradeOrchestrator, plus read-side trade history and price charts."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.infrastructure.persistence import LedgerRepository
from src.pm_amm.domain.pricing import effective_pools
from src.pm_common.datetime_utils import isoformat_or_none
from src.pm_common.enums import MarketEvent, Side, TradeAction
from src.pm_common.errors import MarketNotFoundError
from src.pm_common.notifier import MarketEventNotifier, get_notifier
from src.pm_gateway.auth.identity import Identity
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_position.domain.tracker import PositionTracker
from src.pm_position.infrastructure.persistence import PositionRepository
from src.pm_trading.application.schemas import (
    PriceHistoryResponse,
    PricePoint,
    QuoteResponse,
    TradeHistoryItem,
    TradeHistoryResponse,
    TradeRequestBody,
    TradeResponse,
)
from src.pm_trading.domain.models import TradeRequest
from src.pm_trading.domain.orchestrator import TradeOrchestrator
from src.pm_trading.domain.repository import TradeRecordRepositoryProtocol
from src.pm_trading.infrastructure.persistence import TradeRecordRepository

logger = logging.getLogger(__name__)

_orchestrator: TradeOrchestrator | None = None


def get_trade_orchestrator() -> TradeOrchestrator:
    global _orchestrator  # noqa: PLW0603
    if _orchestrator is None:
        _orchestrator = TradeOrchestrator(
            markets=MarketRepository(),
            ledger=LedgerRepository(),
            positions=PositionTracker(PositionRepository()),
            trades=TradeRecordRepository(),
        )
    return _orchestrator


class TradeApplicationService:
    def __init__(
        self,
        orchestrator: TradeOrchestrator | None = None,
        markets: MarketRepositoryProtocol | None = None,
        trades: TradeRecordRepositoryProtocol | None = None,
        notifier: MarketEventNotifier | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._markets: MarketRepositoryProtocol = markets or MarketRepository()
        self._trades: TradeRecordRepositoryProtocol = trades or TradeRecordRepository()
        self._notifier = notifier

    @property
    def orchestrator(self) -> TradeOrchestrator:
        return self._orchestrator or get_trade_orchestrator()

    @property
    def notifier(self) -> MarketEventNotifier:
        return self._notifier or get_notifier()

    async def place_trade(
        self, db: AsyncSession, identity: Identity, market_id: str, body: TradeRequestBody
    ) -> TradeResponse:
        identity.require_trader()
        request = TradeRequest(
            market_id=market_id, action=body.action, side=body.side, amount=body.amount
        )
        try:
            receipt = await self.orchestrator.place_trade(db, identity.user_id, request)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        self.notifier.publish(
            market_id,
            MarketEvent.TRADE_EXECUTED,
            {
                "trade_id": receipt.trade_id,
                "action": receipt.action.value,
                "side": receipt.side.value,
                "shares": receipt.shares,
                "amount": receipt.cost,
                "yes_price": receipt.yes_price,
                "no_price": receipt.no_price,
            },
        )
        return TradeResponse.from_receipt(receipt)

    async def quote(
        self,
        db: AsyncSession,
        market_id: str,
        action: TradeAction,
        side: Side,
        amount: float,
    ) -> QuoteResponse:
        quote = await self.orchestrator.quote(
            db, TradeRequest(market_id=market_id, action=action, side=side, amount=amount)
        )
        return QuoteResponse.from_quote(quote)

    async def list_trades(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        cursor: str | None,
        limit: int,
    ) -> TradeHistoryResponse:
        records = await self._trades.list_by_user(db, user_id, market_id, cursor, limit + 1)
        has_more = len(records) > limit
        page = records[:limit]
        return TradeHistoryResponse(
            items=[TradeHistoryItem.from_domain(r) for r in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )

    async def price_history(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> PriceHistoryResponse:
        """YES/NO price after every AMM trade; starts at the seed price when complete."""
        market = await self._markets.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        records = await self._trades.list_price_points(db, market_id, limit)

        points: list[PricePoint] = []
        if len(records) < limit:
            seed = effective_pools(
                settings.AMM_INITIAL_POOL,
                settings.AMM_INITIAL_POOL,
                settings.AMM_VIRTUAL_LIQUIDITY,
            )
            points.append(
                PricePoint(
                    at=isoformat_or_none(market.created_at),
                    yes_price=seed.yes_price,
                    no_price=seed.no_price,
                )
            )
        for r in records:
            yes = r.yes_price_after if r.yes_price_after is not None else 0.5
            points.append(
                PricePoint(at=isoformat_or_none(r.created_at), yes_price=yes, no_price=1.0 - yes)
            )
        return PriceHistoryResponse(market_id=market_id, points=points)

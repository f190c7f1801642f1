import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.infrastructure.persistence import LedgerRepository
from src.pm_common.enums import MarketEvent
from src.pm_common.notifier import MarketEventNotifier, get_notifier
from src.pm_gateway.auth.identity import Identity
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_matching.application.schemas import BetResponse, PlaceBetRequest
from src.pm_matching.engine.engine import OrderMatchingEngine
from src.pm_order.infrastructure.persistence import OrderRepository
from src.pm_position.domain.tracker import PositionTracker
from src.pm_position.infrastructure.persistence import PositionRepository
from src.pm_trading.infrastructure.persistence import TradeRecordRepository

logger = logging.getLogger(__name__)

_engine: OrderMatchingEngine | None = None


def get_matching_engine() -> OrderMatchingEngine:
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = OrderMatchingEngine(
            markets=MarketRepository(),
            orders=OrderRepository(),
            ledger=LedgerRepository(),
            positions=PositionTracker(PositionRepository()),
            trades=TradeRecordRepository(),
        )
    return _engine


class BetApplicationService:
    def __init__(
        self,
        engine: OrderMatchingEngine | None = None,
        notifier: MarketEventNotifier | None = None,
    ) -> None:
        self._engine = engine
        self._notifier = notifier

    @property
    def engine(self) -> OrderMatchingEngine:
        return self._engine or get_matching_engine()

    @property
    def notifier(self) -> MarketEventNotifier:
        return self._notifier or get_notifier()

    async def place_bet(
        self, db: AsyncSession, identity: Identity, market_id: str, body: PlaceBetRequest
    ) -> BetResponse:
        identity.require_trader()
        try:
            result = await self.engine.place_bet(
                db, identity.user_id, market_id, body.side, body.amount_cents
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        self.notifier.publish(
            market_id,
            MarketEvent.BET_PLACED,
            {
                "side": result.side,
                "amount": result.amount,
                "matched": result.matched,
                "resting": result.resting_order.amount if result.resting_order else 0,
            },
        )
        return BetResponse.from_result(result)

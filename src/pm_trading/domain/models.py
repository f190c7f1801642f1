"""Trade domain models: pure dataclasses."""

from dataclasses import dataclass
from datetime import datetime

from config.settings import settings
from src.pm_amm.domain.pricing import VIRTUAL_LIQUIDITY
from src.pm_common.enums import Side, TradeAction
from src.pm_position.domain.models import Position


@dataclass(frozen=True)
class TradeRecord:
    """One immutable row of trade history."""

    id: str
    user_id: str
    market_id: str
    side: str
    trade_type: str               # TradeType value
    amount: int                   # cents moved (paid on BUY/MATCH, received on SELL)
    shares: float | None = None
    order_id: str | None = None   # resting order filled, matching path only
    yes_price_after: float | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class TradeRequest:
    market_id: str
    action: TradeAction
    side: Side
    amount: float                 # cents for BUY, shares for SELL


@dataclass(frozen=True)
class TradeReceipt:
    trade_id: str
    market_id: str
    action: TradeAction
    side: Side
    shares: float
    cost: int                     # cents paid (BUY) or received (SELL)
    new_balance: int
    position: Position
    yes_price: float
    no_price: float


@dataclass(frozen=True)
class TradePolicy:
    min_buy_cents: int = 100
    virtual_liquidity: float = VIRTUAL_LIQUIDITY
    sell_cutoff_seconds: int = 0
    enforce_close_time_on_sell: bool = True

    @classmethod
    def from_settings(cls) -> "TradePolicy":
        return cls(
            min_buy_cents=settings.MIN_BUY_CENTS,
            virtual_liquidity=settings.AMM_VIRTUAL_LIQUIDITY,
            sell_cutoff_seconds=settings.SELL_CUTOFF_SECONDS,
            enforce_close_time_on_sell=settings.ENFORCE_CLOSE_TIME_ON_SELL,
        )

"""Market state gates applied before any trade, bet or sell."""

from datetime import datetime, timedelta

from src.pm_common.enums import TradeAction, TradingMode
from src.pm_common.errors import MarketClosedError, TradingModeMismatchError
from src.pm_market.domain.models import Market


def check_market_open(
    market: Market,
    now: datetime,
    action: TradeAction = TradeAction.BUY,
    sell_cutoff_seconds: int = 0,
    enforce_close_time_on_sell: bool = True,
) -> None:
    """Raise MarketClosedError unless the market accepts ``action`` at ``now``.

    Buys close at close_time. Sells close ``sell_cutoff_seconds`` earlier, or
    stay open until resolution when close-time enforcement is off for sells.
    """
    if market.resolved:
        raise MarketClosedError(market.id, "market is resolved")
    if market.close_time is None:
        return
    if action == TradeAction.BUY:
        if now >= market.close_time:
            raise MarketClosedError(market.id, "trading closed")
        return
    if not enforce_close_time_on_sell:
        return
    if now >= market.close_time - timedelta(seconds=sell_cutoff_seconds):
        raise MarketClosedError(market.id, "selling closed")


def check_trading_mode(market: Market, expected: TradingMode) -> None:
    if market.trading_mode != expected.value:
        raise TradingModeMismatchError(market.id, market.trading_mode)

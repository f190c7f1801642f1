from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from src.pm_account.domain.models import Account
from src.pm_common.enums import TradeAction, TradingMode
from src.pm_common.errors import (
    AccountNotFoundError,
    BelowMinimumStakeError,
    InsufficientBalanceError,
    InvalidAmountError,
    MarketClosedError,
    TradingModeMismatchError,
)
from src.pm_market.domain.models import Market
from src.pm_risk.rules.balance_check import check_sufficient_balance
from src.pm_risk.rules.market_status import check_market_open, check_trading_mode
from src.pm_risk.rules.order_limit import MAX_STAKE_CENTS, check_share_quantity, check_stake
from src.pm_risk.rules.self_trade import is_self_trade

NOW = datetime(2026, 6, 1, 12, tzinfo=UTC)


def _make_market(**kwargs: object) -> Market:
    defaults: dict[str, object] = dict(
        id="mkt-1", channel_id="ch-1", title="Rain?", created_by="admin-1",
    )
    defaults.update(kwargs)
    return Market(**defaults)  # type: ignore[arg-type]


class TestStake:
    def test_valid(self) -> None:
        check_stake(100, 100)

    def test_max(self) -> None:
        check_stake(MAX_STAKE_CENTS, 1)

    def test_below_minimum(self) -> None:
        with pytest.raises(BelowMinimumStakeError) as exc_info:
            check_stake(99, 100)
        assert exc_info.value.code == 4001

    @pytest.mark.parametrize("amount", [0, -5, MAX_STAKE_CENTS + 1])
    def test_out_of_range(self, amount: int) -> None:
        with pytest.raises(InvalidAmountError):
            check_stake(amount, 1)


class TestShareQuantity:
    def test_fractional_ok(self) -> None:
        check_share_quantity(0.25)

    @pytest.mark.parametrize("shares", [0.0, -1.0, float("nan"), float("inf")])
    def test_invalid(self, shares: float) -> None:
        with pytest.raises(InvalidAmountError):
            check_share_quantity(shares)


class TestSelfTrade:
    def test_same_user_is_self_trade(self) -> None:
        assert is_self_trade("user-A", "user-A") is True

    def test_case_insensitive(self) -> None:
        assert is_self_trade("ABC-def", "abc-DEF") is True

    def test_different_user_is_not(self) -> None:
        assert is_self_trade("user-A", "user-B") is False


class TestMarketOpen:
    def test_no_close_time_is_open(self) -> None:
        check_market_open(_make_market(), NOW)

    def test_resolved_is_closed(self) -> None:
        with pytest.raises(MarketClosedError, match="resolved"):
            check_market_open(_make_market(resolved=True), NOW, TradeAction.SELL)

    def test_buy_closes_at_close_time(self) -> None:
        with pytest.raises(MarketClosedError, match="trading closed"):
            check_market_open(_make_market(close_time=NOW), NOW)

    def test_sell_cutoff(self) -> None:
        market = _make_market(close_time=NOW + timedelta(minutes=5))
        check_market_open(market, NOW, TradeAction.SELL, sell_cutoff_seconds=60)
        with pytest.raises(MarketClosedError, match="selling closed"):
            check_market_open(market, NOW, TradeAction.SELL, sell_cutoff_seconds=600)

    def test_sell_after_close_when_not_enforced(self) -> None:
        market = _make_market(close_time=NOW - timedelta(days=1))
        check_market_open(market, NOW, TradeAction.SELL, enforce_close_time_on_sell=False)


class TestTradingMode:
    def test_matching_mode(self) -> None:
        check_trading_mode(_make_market(), TradingMode.AMM)

    def test_mismatch(self) -> None:
        with pytest.raises(TradingModeMismatchError):
            check_trading_mode(_make_market(), TradingMode.ORDER_BOOK)


class TestSufficientBalance:
    @pytest.mark.asyncio
    async def test_returns_balance(self) -> None:
        ledger = AsyncMock()
        ledger.get_account.return_value = Account(user_id="u1", balance=500)
        assert await check_sufficient_balance(ledger, AsyncMock(), "u1", 500) == 500

    @pytest.mark.asyncio
    async def test_insufficient(self) -> None:
        ledger = AsyncMock()
        ledger.get_account.return_value = Account(user_id="u1", balance=499)
        with pytest.raises(InsufficientBalanceError):
            await check_sufficient_balance(ledger, AsyncMock(), "u1", 500)

    @pytest.mark.asyncio
    async def test_missing_account(self) -> None:
        ledger = AsyncMock()
        ledger.get_account.return_value = None
        with pytest.raises(AccountNotFoundError):
            await check_sufficient_balance(ledger, AsyncMock(), "u1", 1)

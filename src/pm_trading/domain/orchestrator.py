"""TradeOrchestrator: all-or-nothing execution of AMM buys and sells.

Order of effects for one trade:

    economics (pure)  ->  ledger  ->  market pools  ->  position  ->  trade record

Each effect is a saga step whose compensation is registered as soon as the
step succeeds. Any failure replays the compensations newest first, so the
caller never sees money moved without shares or shares without money.
Business rejections (409/400) are re-raised unchanged after the rollback;
anything unexpected becomes TradeFailedError.

The steps run inside a savepoint. A database error unwinds the savepoint
without replaying compensations; the caller owns the outer transaction and
rolls it back on error.
"""

import logging
import math
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import Account, LedgerPosting
from src.pm_account.domain.repository import LedgerRepositoryProtocol
from src.pm_amm.domain.pricing import (
    BuyQuote,
    PoolState,
    SellQuote,
    effective_pools,
    quote_buy,
    quote_sell,
)
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import LedgerEntryType, TradeAction, TradeType, TradingMode
from src.pm_common.errors import (
    AppError,
    ConcurrentMarketUpdateError,
    InsufficientLiquidityError,
    InsufficientPositionError,
    InternalError,
    InvalidAmountError,
    MarketNotFoundError,
    ReconciliationRequiredError,
    TradeFailedError,
)
from src.pm_common.id_generator import generate_id
from src.pm_common.locks import KeyedLocks, get_locks
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_position.domain.tracker import PositionTracker
from src.pm_risk.rules.balance_check import check_sufficient_balance
from src.pm_risk.rules.market_status import check_market_open, check_trading_mode
from src.pm_risk.rules.order_limit import check_share_quantity, check_stake
from src.pm_trading.domain.models import (
    TradePolicy,
    TradeReceipt,
    TradeRecord,
    TradeRequest,
)
from src.pm_trading.domain.repository import TradeRecordRepositoryProtocol
from src.pm_trading.domain.saga import TradeSaga

logger = logging.getLogger(__name__)


class TradeOrchestrator:
    def __init__(
        self,
        markets: MarketRepositoryProtocol,
        ledger: LedgerRepositoryProtocol,
        positions: PositionTracker,
        trades: TradeRecordRepositoryProtocol,
        locks: KeyedLocks | None = None,
        policy: TradePolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._markets = markets
        self._ledger = ledger
        self._positions = positions
        self._trades = trades
        self._locks = locks or get_locks()
        self._policy = policy or TradePolicy.from_settings()
        self._clock = clock

    # ------------------------------------------------------------------
    # Read-only
    # ------------------------------------------------------------------

    async def quote(
        self, db: AsyncSession, request: TradeRequest
    ) -> BuyQuote | SellQuote:
        """Price a trade against the current pools without executing it."""
        self._validate(request)
        market = await self._markets.get_market_by_id(db, request.market_id)
        if market is None:
            raise MarketNotFoundError(request.market_id)
        check_trading_mode(market, TradingMode.AMM)
        return self._price(market, request)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def place_trade(
        self, db: AsyncSession, user_id: str, request: TradeRequest
    ) -> TradeReceipt:
        self._validate(request)
        async with self._locks.market(request.market_id):
            async with self._locks.user(user_id):
                return await self._execute(db, user_id, request)

    def _validate(self, request: TradeRequest) -> None:
        if request.action == TradeAction.BUY:
            if not math.isfinite(request.amount) or request.amount != int(request.amount):
                raise InvalidAmountError("buy amount must be whole cents")
            check_stake(int(request.amount), self._policy.min_buy_cents)
        else:
            check_share_quantity(request.amount)

    def _price(self, market: Market, request: TradeRequest) -> BuyQuote | SellQuote:
        pool = effective_pools(market.yes_pool, market.no_pool, self._policy.virtual_liquidity)
        try:
            if request.action == TradeAction.BUY:
                return quote_buy(pool, request.side, int(request.amount))
            return quote_sell(pool, request.side, request.amount)
        except ValueError as exc:
            raise InvalidAmountError(str(exc)) from exc

    async def _execute(
        self, db: AsyncSession, user_id: str, request: TradeRequest
    ) -> TradeReceipt:
        market = await self._markets.get_for_update(db, request.market_id)
        if market is None:
            raise MarketNotFoundError(request.market_id)
        check_trading_mode(market, TradingMode.AMM)
        check_market_open(
            market,
            self._clock(),
            request.action,
            self._policy.sell_cutoff_seconds,
            self._policy.enforce_close_time_on_sell,
        )

        quote = self._price(market, request)
        if isinstance(quote, BuyQuote):
            await check_sufficient_balance(self._ledger, db, user_id, quote.amount_in)
            money = quote.amount_in
            shares_delta = quote.shares_out
            collateral_delta = money
        else:
            held = (await self._positions.get(db, user_id, market.id)).shares(request.side)
            if held < quote.shares_in:
                raise InsufficientPositionError(
                    f"holding {held:.4f} {request.side.value} shares, selling {quote.shares_in:.4f}"
                )
            money = quote.payout_cents
            if money <= 0:
                raise InvalidAmountError("sale is worth less than one cent")
            if money > market.collateral:
                raise InsufficientLiquidityError(market.id, money, market.collateral)
            shares_delta = -quote.shares_in
            collateral_delta = -money

        trade_id = generate_id("trd")
        saga = TradeSaga(trade_id)
        try:
            async with saga.savepoint(db):
                account = await saga.step(
                    "ledger",
                    lambda: self._move_money(db, user_id, request.action, money, trade_id),
                    lambda _: self._reverse_money(db, user_id, request.action, money, trade_id),
                )
                await saga.step(
                    "pools",
                    lambda: self._swap_pools(db, market, quote.after, collateral_delta),
                    lambda after: self._restore_pools(db, market, after, collateral_delta),
                )
                position = await saga.step(
                    "position",
                    lambda: self._positions.apply_trade(
                        db, user_id, market.id, request.side, shares_delta
                    ),
                    lambda _: self._positions.apply_trade(
                        db, user_id, market.id, request.side, -shares_delta
                    ),
                )
                await saga.step(
                    "record",
                    lambda: self._trades.append(
                        db,
                        TradeRecord(
                            id=trade_id,
                            user_id=user_id,
                            market_id=market.id,
                            side=request.side.value,
                            trade_type=TradeType(request.action.value).value,
                            amount=money,
                            shares=abs(shares_delta),
                            yes_price_after=quote.after.yes_price,
                        ),
                    ),
                )
        except ReconciliationRequiredError:
            raise
        except Exception as exc:
            if isinstance(exc, AppError) and exc.http_status < 500:
                raise
            logger.error("Trade %s failed after %s: %s", trade_id, saga.completed, exc)
            raise TradeFailedError() from exc

        logger.info(
            "Trade %s: %s %s %s %.4f shares for %d cents on %s (yes %.4f)",
            trade_id, user_id, request.action.value, request.side.value,
            abs(shares_delta), money, market.id, quote.after.yes_price,
        )
        return TradeReceipt(
            trade_id=trade_id,
            market_id=market.id,
            action=request.action,
            side=request.side,
            shares=abs(shares_delta),
            cost=money,
            new_balance=account.balance,
            position=position,
            yes_price=quote.after.yes_price,
            no_price=quote.after.no_price,
        )

    # ------------------------------------------------------------------
    # Steps and their compensations
    # ------------------------------------------------------------------

    async def _move_money(
        self,
        db: AsyncSession,
        user_id: str,
        action: TradeAction,
        amount: int,
        trade_id: str,
    ) -> Account:
        if action == TradeAction.BUY:
            posting = LedgerPosting(LedgerEntryType.AMM_BUY, "TRADE", trade_id)
            account, _ = await self._ledger.debit(db, user_id, amount, posting)
        else:
            posting = LedgerPosting(LedgerEntryType.AMM_SELL, "TRADE", trade_id)
            account, _ = await self._ledger.credit(db, user_id, amount, posting)
        return account

    async def _reverse_money(
        self,
        db: AsyncSession,
        user_id: str,
        action: TradeAction,
        amount: int,
        trade_id: str,
    ) -> None:
        posting = LedgerPosting(
            LedgerEntryType.TRADE_REVERSAL, "TRADE", trade_id, "Reversal of a failed trade"
        )
        if action == TradeAction.BUY:
            await self._ledger.credit(db, user_id, amount, posting)
        else:
            await self._ledger.debit(db, user_id, amount, posting)

    async def _swap_pools(
        self, db: AsyncSession, market: Market, after: PoolState, collateral_delta: int
    ) -> Market:
        updated = await self._markets.update_pools(
            db, market.id, market.version, after.yes_pool, after.no_pool, collateral_delta
        )
        if updated is None:
            raise ConcurrentMarketUpdateError(market.id)
        return updated

    async def _restore_pools(
        self, db: AsyncSession, original: Market, current: Market, collateral_delta: int
    ) -> None:
        # raw stored reserves, so an unseeded market goes back to unseeded
        restored = await self._markets.update_pools(
            db,
            original.id,
            current.version,
            original.yes_pool,
            original.no_pool,
            -collateral_delta,
        )
        if restored is None:
            raise InternalError(f"Market {original.id} moved before its pools were restored")

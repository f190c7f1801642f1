"""OrderMatchingEngine: per-market placement of bets on order-book markets."""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.models import Account, LedgerPosting
from src.pm_account.domain.repository import LedgerRepositoryProtocol
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import (
    CancelReason,
    LedgerEntryType,
    Side,
    TradeType,
    TradingMode,
)
from src.pm_common.errors import (
    AccountNotFoundError,
    AppError,
    InsufficientBalanceError,
    InternalError,
    MarketClosedError,
    MarketNotFoundError,
    ReconciliationRequiredError,
    TradeFailedError,
)
from src.pm_common.id_generator import generate_id
from src.pm_common.locks import KeyedLocks, get_locks
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_matching.domain.models import BetResult, PlannedFill
from src.pm_matching.engine.matching_algo import plan_fifo_fills
from src.pm_order.domain.models import Order
from src.pm_order.domain.repository import OrderRepositoryProtocol
from src.pm_position.domain.tracker import PositionTracker
from src.pm_risk.rules.balance_check import check_sufficient_balance
from src.pm_risk.rules.market_status import check_market_open, check_trading_mode
from src.pm_risk.rules.order_limit import check_stake
from src.pm_trading.domain.models import TradeRecord
from src.pm_trading.domain.repository import TradeRecordRepositoryProtocol
from src.pm_trading.domain.saga import TradeSaga

logger = logging.getLogger(__name__)


class CounterpartyInsolventError(Exception):
    """Maker could not pay for its fill when the fill was applied."""


class OrderMatchingEngine:
    def __init__(
        self,
        markets: MarketRepositoryProtocol,
        orders: OrderRepositoryProtocol,
        ledger: LedgerRepositoryProtocol,
        positions: PositionTracker,
        trades: TradeRecordRepositoryProtocol,
        locks: KeyedLocks | None = None,
        min_bet_cents: int | None = None,
        nominal_price: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._markets = markets
        self._orders = orders
        self._ledger = ledger
        self._positions = positions
        self._trades = trades
        self._locks = locks or get_locks()
        self._min_bet = settings.MIN_BET_CENTS if min_bet_cents is None else min_bet_cents
        self._nominal_price = (
            settings.ORDER_NOMINAL_PRICE if nominal_price is None else nominal_price
        )
        self._clock = clock

    async def place_bet(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        side: Side,
        amount: int,
    ) -> BetResult:
        """Match ``amount`` cents on ``side`` against the oldest opposite orders.

        The caller owns the transaction: on any exception it must roll back.
        """
        check_stake(amount, self._min_bet)

        async with self._locks.market(market_id):
            market = await self._markets.get_for_update(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            check_trading_mode(market, TradingMode.ORDER_BOOK)
            check_market_open(market, self._clock())
            async with self._locks.user(user_id):
                await check_sufficient_balance(self._ledger, db, user_id, amount)

            cancelled: list[str] = []
            applied: list[PlannedFill] = []
            remainder = amount
            while remainder > 0:
                resting = await self._orders.list_pending_for_update(
                    db, market_id, side.opposite.value
                )
                makers = sorted({o.user_id for o in resting})
                balances = await self._ledger.get_balances(db, makers) if makers else {}
                plan = plan_fifo_fills(user_id, remainder, resting, balances)

                for order_id in plan.insolvent_order_ids:
                    await self._cancel_insolvent(db, order_id, cancelled)

                rescan = False
                for fill in plan.fills:
                    try:
                        await self._apply_fill(db, market, user_id, side, fill)
                    except CounterpartyInsolventError:
                        # maker spent the funds after planning; rescan without its order
                        await self._cancel_insolvent(db, fill.order_id, cancelled)
                        rescan = True
                        break
                    applied.append(fill)
                    remainder -= fill.amount
                if not rescan:
                    break

            resting_order = None
            if remainder > 0:
                resting_order = await self._orders.create(
                    db,
                    Order(
                        id=generate_id("ord"),
                        user_id=user_id,
                        market_id=market_id,
                        side=side.value,
                        amount=remainder,
                        price=self._nominal_price,
                    ),
                )

            account = await self._ledger.get_account(db, user_id)
            if account is None:
                raise AccountNotFoundError(user_id)

        logger.info(
            "Bet %s %s on %s by %s: matched %d in %d fills, resting %d",
            amount, side.value, market_id, user_id, amount - remainder, len(applied), remainder,
        )
        return BetResult(
            market_id=market_id,
            user_id=user_id,
            side=side.value,
            amount=amount,
            fills=applied,
            cancelled_order_ids=cancelled,
            resting_order=resting_order,
            new_balance=account.balance,
        )

    async def _cancel_insolvent(
        self, db: AsyncSession, order_id: str, cancelled: list[str]
    ) -> None:
        order = await self._orders.cancel(
            db, order_id, CancelReason.COUNTERPARTY_INSUFFICIENT_FUNDS.value
        )
        if order is not None:
            cancelled.append(order_id)
            logger.warning(
                "Cancelled order %s of %s: insufficient funds to fill", order_id, order.user_id
            )

    async def _apply_fill(
        self,
        db: AsyncSession,
        market: Market,
        taker_user_id: str,
        taker_side: Side,
        fill: PlannedFill,
    ) -> None:
        """Both sides pay ``fill.amount`` and each receive one share per cent."""
        maker_side = taker_side.opposite
        saga = TradeSaga(f"fill:{fill.order_id}")
        posting = LedgerPosting(
            entry_type=LedgerEntryType.MATCH_FILL,
            reference_type="ORDER",
            reference_id=fill.order_id,
            description=f"Matched {fill.amount} cents {taker_side.value} vs {maker_side.value}",
        )
        reversal = LedgerPosting(
            entry_type=LedgerEntryType.TRADE_REVERSAL,
            reference_type="ORDER",
            reference_id=fill.order_id,
            description="Reversal of a failed fill",
        )
        shares = float(fill.amount)

        async def debit_maker() -> Account:
            try:
                return await self._debit(db, fill.maker_user_id, fill.amount, posting)
            except InsufficientBalanceError as exc:
                raise CounterpartyInsolventError(fill.order_id) from exc

        async def add_collateral() -> Market:
            updated = await self._markets.adjust_collateral(db, market.id, 2 * fill.amount)
            if updated is None:
                raise MarketClosedError(market.id, "market is resolved")
            return updated

        async def fill_order() -> Order:
            order = await self._orders.apply_fill(db, fill.order_id, fill.amount)
            if order is None:
                raise InternalError(f"Resting order {fill.order_id} changed during matching")
            return order

        async def record_trades() -> list[TradeRecord]:
            records = []
            for user_id, side in ((fill.maker_user_id, maker_side), (taker_user_id, taker_side)):
                record = TradeRecord(
                    id=generate_id("trd"),
                    user_id=user_id,
                    market_id=market.id,
                    side=side.value,
                    trade_type=TradeType.MATCH.value,
                    amount=fill.amount,
                    shares=shares,
                    order_id=fill.order_id,
                )
                records.append(await self._trades.append(db, record))
            return records

        try:
            async with saga.savepoint(db):
                await saga.step(
                    "debit_maker",
                    debit_maker,
                    lambda _: self._credit(db, fill.maker_user_id, fill.amount, reversal),
                )
                await saga.step(
                    "debit_taker",
                    lambda: self._debit(db, taker_user_id, fill.amount, posting),
                    lambda _: self._credit(db, taker_user_id, fill.amount, reversal),
                )
                await saga.step(
                    "maker_position",
                    lambda: self._positions.apply_trade(
                        db, fill.maker_user_id, market.id, maker_side, shares
                    ),
                    lambda _: self._positions.apply_trade(
                        db, fill.maker_user_id, market.id, maker_side, -shares
                    ),
                )
                await saga.step(
                    "taker_position",
                    lambda: self._positions.apply_trade(
                        db, taker_user_id, market.id, taker_side, shares
                    ),
                    lambda _: self._positions.apply_trade(
                        db, taker_user_id, market.id, taker_side, -shares
                    ),
                )
                await saga.step(
                    "collateral",
                    add_collateral,
                    lambda _: self._markets.adjust_collateral(db, market.id, -2 * fill.amount),
                )
                await saga.step(
                    "order",
                    fill_order,
                    lambda _: self._orders.revert_fill(db, fill.order_id, fill.amount),
                )
                await saga.step("records", record_trades)
        except (CounterpartyInsolventError, ReconciliationRequiredError):
            raise
        except Exception as exc:
            if isinstance(exc, AppError) and exc.http_status < 500:
                raise
            logger.error("Fill of order %s failed: %s", fill.order_id, exc)
            raise TradeFailedError() from exc

        logger.info(
            "Filled %d cents: order %s (%s) vs %s",
            fill.amount, fill.order_id, fill.maker_user_id, taker_user_id,
        )

    async def _debit(
        self, db: AsyncSession, user_id: str, amount: int, posting: LedgerPosting
    ) -> Account:
        async with self._locks.user(user_id):
            account, _ = await self._ledger.debit(db, user_id, amount, posting)
        return account

    async def _credit(
        self, db: AsyncSession, user_id: str, amount: int, posting: LedgerPosting
    ) -> Account:
        async with self._locks.user(user_id):
            account, _ = await self._ledger.credit(db, user_id, amount, posting)
        return account

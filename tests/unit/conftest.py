"""In-memory repositories for engine-level unit tests.

Each fake honours the same contract as its SQL counterpart (conditional
updates return None instead of changing anything) and hands out copies, so
callers cannot mutate stored state behind the repository's back.
"""

import copy
import itertools
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import MagicMock

import pytest

from src.pm_account.domain.models import Account, LedgerEntry, LedgerPosting
from src.pm_common.enums import OrderStatus, Side, TradingMode
from src.pm_common.errors import AccountNotFoundError, InsufficientBalanceError
from src.pm_common.locks import KeyedLocks
from src.pm_market.domain.models import Market
from src.pm_order.domain.models import Order
from src.pm_position.domain.models import Position
from src.pm_position.domain.tracker import PositionTracker
from src.pm_trading.domain.models import TradeRecord

_T0 = datetime(2026, 1, 1, tzinfo=UTC)


class FakeLedger:
    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.entries: list[LedgerEntry] = []
        self._ids = itertools.count(1)

    def seed(self, user_id: str, balance: int) -> None:
        self.accounts[user_id] = Account(user_id=user_id, balance=balance)

    def balance(self, user_id: str) -> int:
        return self.accounts[user_id].balance

    async def get_account(self, db: Any, user_id: str) -> Account | None:
        account = self.accounts.get(user_id)
        return copy.copy(account) if account else None

    async def open_account(
        self, db: Any, user_id: str, initial_grant: int
    ) -> tuple[Account, LedgerEntry | None]:
        self.accounts[user_id] = Account(user_id=user_id, balance=initial_grant)
        entry = None
        if initial_grant > 0:
            entry = self._append(user_id, "INITIAL_GRANT", initial_grant, None)
        return copy.copy(self.accounts[user_id]), entry

    async def debit(
        self, db: Any, user_id: str, amount: int, posting: LedgerPosting
    ) -> tuple[Account, LedgerEntry]:
        account = self.accounts.get(user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        if account.balance < amount:
            raise InsufficientBalanceError(amount, account.balance)
        account.balance -= amount
        account.version += 1
        return copy.copy(account), self._append(user_id, posting.entry_type.value, -amount, posting)

    async def credit(
        self, db: Any, user_id: str, amount: int, posting: LedgerPosting
    ) -> tuple[Account, LedgerEntry]:
        account = self.accounts.get(user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        account.balance += amount
        account.version += 1
        return copy.copy(account), self._append(user_id, posting.entry_type.value, amount, posting)

    async def get_balances(self, db: Any, user_ids: list[str]) -> dict[str, int]:
        return {u: self.accounts[u].balance for u in user_ids if u in self.accounts}

    async def list_ledger_entries(
        self, db: Any, user_id: str, cursor_id: int | None, limit: int, entry_type: str | None
    ) -> list[LedgerEntry]:
        rows = [
            e for e in reversed(self.entries)
            if e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (entry_type is None or e.entry_type == entry_type)
        ]
        return rows[:limit]

    def _append(
        self, user_id: str, entry_type: str, amount: int, posting: LedgerPosting | None
    ) -> LedgerEntry:
        entry = LedgerEntry(
            id=next(self._ids),
            user_id=user_id,
            entry_type=entry_type,
            amount=amount,
            balance_after=self.accounts[user_id].balance,
            reference_type=posting.reference_type if posting else None,
            reference_id=posting.reference_id if posting else None,
            description=posting.description if posting else None,
        )
        self.entries.append(entry)
        return entry


class FakeMarkets:
    def __init__(self) -> None:
        self.markets: dict[str, Market] = {}

    def seed(self, **kwargs: Any) -> Market:
        defaults: dict[str, Any] = {
            "id": "mkt-1",
            "channel_id": "ch-1",
            "title": "Will it rain tomorrow?",
            "created_by": "admin-1",
            "trading_mode": TradingMode.AMM.value,
            "yes_pool": 10_000.0,
            "no_pool": 10_000.0,
            "created_at": _T0,
        }
        defaults.update(kwargs)
        market = Market(**defaults)
        self.markets[market.id] = market
        return copy.copy(market)

    def current(self, market_id: str) -> Market:
        return copy.copy(self.markets[market_id])

    async def create(self, db: Any, market: Market) -> Market:
        stored = copy.copy(market)
        stored.created_at = stored.created_at or _T0
        self.markets[stored.id] = stored
        return copy.copy(stored)

    async def get_market_by_id(self, db: Any, market_id: str) -> Market | None:
        market = self.markets.get(market_id)
        return copy.copy(market) if market else None

    async def get_for_update(self, db: Any, market_id: str) -> Market | None:
        return await self.get_market_by_id(db, market_id)

    async def list_markets(
        self,
        db: Any,
        channel_id: str | None,
        resolved: bool | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]:
        rows = [
            m for m in self.markets.values()
            if (channel_id is None or m.channel_id == channel_id)
            and (resolved is None or m.resolved == resolved)
        ]
        return [copy.copy(m) for m in rows[:limit]]

    async def update_pools(
        self,
        db: Any,
        market_id: str,
        expected_version: int,
        yes_pool: float,
        no_pool: float,
        collateral_delta: int,
    ) -> Market | None:
        market = self.markets.get(market_id)
        if market is None or market.resolved or market.version != expected_version:
            return None
        market.yes_pool = yes_pool
        market.no_pool = no_pool
        market.collateral += collateral_delta
        market.version += 1
        return copy.copy(market)

    async def adjust_collateral(self, db: Any, market_id: str, delta: int) -> Market | None:
        market = self.markets.get(market_id)
        if market is None or market.resolved:
            return None
        market.collateral += delta
        market.version += 1
        return copy.copy(market)

    async def mark_resolved(
        self,
        db: Any,
        market_id: str,
        outcome: str,
        resolved_by: str,
        resolved_at: datetime,
    ) -> Market | None:
        market = self.markets.get(market_id)
        if market is None or market.resolved:
            return None
        market.resolved = True
        market.outcome = outcome
        market.resolved_by = resolved_by
        market.resolved_at = resolved_at
        market.version += 1
        return copy.copy(market)

    async def record_settlement(self, db: Any, market_id: str, paid_out: int) -> Market:
        market = self.markets[market_id]
        market.collateral -= paid_out
        market.residual = market.collateral
        market.version += 1
        return copy.copy(market)


class FakePositionRepo:
    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], Position] = {}

    async def get(self, db: Any, user_id: str, market_id: str) -> Position | None:
        row = self.rows.get((user_id, market_id))
        return copy.copy(row) if row else None

    async def add_shares(
        self, db: Any, user_id: str, market_id: str, side: Side, shares: float
    ) -> Position:
        row = self.rows.setdefault(
            (user_id, market_id), Position(user_id=user_id, market_id=market_id)
        )
        if side == Side.YES:
            row.yes_shares += shares
        else:
            row.no_shares += shares
        return copy.copy(row)

    async def remove_shares(
        self, db: Any, user_id: str, market_id: str, side: Side, shares: float
    ) -> Position | None:
        row = self.rows.get((user_id, market_id))
        if row is None or row.shares(side) < shares:
            return None
        if side == Side.YES:
            row.yes_shares -= shares
        else:
            row.no_shares -= shares
        return copy.copy(row)

    async def list_by_market(self, db: Any, market_id: str) -> list[Position]:
        return [copy.copy(p) for (_, m), p in sorted(self.rows.items()) if m == market_id]


class FakeOrders:
    def __init__(self) -> None:
        self.orders: dict[str, Order] = {}
        self._clock = itertools.count()

    def seed(self, order_id: str, user_id: str, side: str, amount: int, **kwargs: Any) -> Order:
        order = Order(
            id=order_id,
            user_id=user_id,
            market_id=kwargs.pop("market_id", "mkt-1"),
            side=side,
            amount=amount,
            created_at=_T0 + timedelta(seconds=next(self._clock)),
            **kwargs,
        )
        self.orders[order.id] = order
        return copy.copy(order)

    async def create(self, db: Any, order: Order) -> Order:
        stored = copy.copy(order)
        stored.created_at = _T0 + timedelta(seconds=next(self._clock))
        self.orders[stored.id] = stored
        return copy.copy(stored)

    async def get_by_id(self, db: Any, order_id: str) -> Order | None:
        order = self.orders.get(order_id)
        return copy.copy(order) if order else None

    async def list_pending_for_update(self, db: Any, market_id: str, side: str) -> list[Order]:
        rows = [
            o for o in self.orders.values()
            if o.market_id == market_id and o.side == side and o.is_pending
        ]
        rows.sort(key=lambda o: (o.created_at, o.id))
        return [copy.copy(o) for o in rows]

    async def apply_fill(self, db: Any, order_id: str, fill_amount: int) -> Order | None:
        order = self.orders.get(order_id)
        if order is None or not order.is_pending:
            return None
        if order.filled_amount + fill_amount > order.amount:
            return None
        order.filled_amount += fill_amount
        if order.filled_amount == order.amount:
            order.status = OrderStatus.FILLED.value
        return copy.copy(order)

    async def revert_fill(self, db: Any, order_id: str, fill_amount: int) -> Order | None:
        order = self.orders.get(order_id)
        if order is None or order.filled_amount < fill_amount:
            return None
        order.filled_amount -= fill_amount
        order.status = OrderStatus.PENDING.value
        return copy.copy(order)

    async def cancel(self, db: Any, order_id: str, reason: str) -> Order | None:
        order = self.orders.get(order_id)
        if order is None or not order.is_pending:
            return None
        order.status = OrderStatus.CANCELLED.value
        order.cancel_reason = reason
        return copy.copy(order)

    async def cancel_all_pending(self, db: Any, market_id: str, reason: str) -> list[Order]:
        cancelled = []
        for order in self.orders.values():
            if order.market_id == market_id and order.is_pending:
                order.status = OrderStatus.CANCELLED.value
                order.cancel_reason = reason
                cancelled.append(copy.copy(order))
        return cancelled

    async def list_by_user(
        self,
        db: Any,
        user_id: str,
        market_id: str | None,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Order]:
        rows = sorted(
            (
                o for o in self.orders.values()
                if o.user_id == user_id
                and (market_id is None or o.market_id == market_id)
                and (status is None or o.status == status)
                and (cursor_id is None or o.id < cursor_id)
            ),
            key=lambda o: o.id,
            reverse=True,
        )
        return [copy.copy(o) for o in rows[:limit]]


class FakeTrades:
    def __init__(self) -> None:
        self.records: list[TradeRecord] = []
        self.fail_next: Exception | None = None

    async def append(self, db: Any, record: TradeRecord) -> TradeRecord:
        if self.fail_next is not None:
            exc, self.fail_next = self.fail_next, None
            raise exc
        self.records.append(record)
        return record

    async def list_by_user(
        self, db: Any, user_id: str, market_id: str | None, cursor_id: str | None, limit: int
    ) -> list[TradeRecord]:
        rows = [
            r for r in reversed(self.records)
            if r.user_id == user_id
            and (market_id is None or r.market_id == market_id)
            and (cursor_id is None or r.id < cursor_id)
        ]
        return rows[:limit]

    async def list_price_points(self, db: Any, market_id: str, limit: int) -> list[TradeRecord]:
        rows = [
            r for r in self.records
            if r.market_id == market_id and r.yes_price_after is not None
        ]
        return rows[-limit:]


@pytest.fixture
def db() -> MagicMock:
    return MagicMock()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def markets() -> FakeMarkets:
    return FakeMarkets()


@pytest.fixture
def position_repo() -> FakePositionRepo:
    return FakePositionRepo()


@pytest.fixture
def tracker(position_repo: FakePositionRepo) -> PositionTracker:
    return PositionTracker(position_repo)


@pytest.fixture
def orders() -> FakeOrders:
    return FakeOrders()


@pytest.fixture
def trades() -> FakeTrades:
    return FakeTrades()


@pytest.fixture
def locks() -> KeyedLocks:
    return KeyedLocks()


@pytest.fixture
def fixed_now() -> Callable[[], datetime]:
    return lambda: _T0 + timedelta(days=1)

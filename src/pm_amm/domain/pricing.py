"""Constant-product pricing for binary YES/NO markets.

Pure functions, no I/O. A pool holds two reserves whose product
``k = yes_pool * no_pool`` is preserved by every swap:

* buying YES pays money into the NO reserve and takes YES shares out of
  the YES reserve (buying NO is the mirror image);
* selling YES puts shares back into the YES reserve and pays out money
  taken from the NO reserve (selling NO is the mirror image).

The price of a side is the opposite reserve's share of the total, so the
two prices always sum to 1 and can be read as implied probabilities.

Money amounts passed in are cents; reserves, shares and raw payouts are
floats. Callers floor payouts to cents (see ``SellQuote.payout_cents``).
"""

import math
from dataclasses import dataclass

from src.pm_common.cents import floor_cents
from src.pm_common.enums import Side

VIRTUAL_LIQUIDITY = 10_000.0


@dataclass(frozen=True)
class PoolState:
    yes_pool: float
    no_pool: float

    @property
    def k(self) -> float:
        return self.yes_pool * self.no_pool

    @property
    def yes_price(self) -> float:
        return yes_price(self.yes_pool, self.no_pool)

    @property
    def no_price(self) -> float:
        return no_price(self.yes_pool, self.no_pool)


@dataclass(frozen=True)
class BuyQuote:
    side: Side
    amount_in: int      # cents paid
    shares_out: float
    before: PoolState
    after: PoolState

    @property
    def average_price(self) -> float:
        return self.amount_in / self.shares_out


@dataclass(frozen=True)
class SellQuote:
    side: Side
    shares_in: float
    payout: float       # exact, before flooring
    before: PoolState
    after: PoolState

    @property
    def payout_cents(self) -> int:
        return floor_cents(self.payout)


def yes_price(yes_pool: float, no_pool: float) -> float:
    total = yes_pool + no_pool
    if total == 0:
        return 0.5
    return no_pool / total


def no_price(yes_pool: float, no_pool: float) -> float:
    total = yes_pool + no_pool
    if total == 0:
        return 0.5
    return yes_pool / total


def effective_pools(
    yes_pool: float, no_pool: float, virtual_liquidity: float = VIRTUAL_LIQUIDITY
) -> PoolState:
    """Replace an empty (or corrupt, non-positive) reserve with the virtual seed."""
    return PoolState(
        yes_pool=yes_pool if yes_pool > 0 else virtual_liquidity,
        no_pool=no_pool if no_pool > 0 else virtual_liquidity,
    )


def _require_positive(name: str, value: float) -> None:
    if not value > 0 or math.isinf(value):
        raise ValueError(f"{name} must be a positive finite number, got {value}")


def _require_live_pool(pool: PoolState) -> None:
    if pool.yes_pool <= 0 or pool.no_pool <= 0:
        raise ValueError(f"Pool reserves must be positive, got {pool}")


def buy_yes(pool: PoolState, amount_in: int) -> BuyQuote:
    _require_positive("amount_in", amount_in)
    _require_live_pool(pool)
    new_no = pool.no_pool + amount_in
    new_yes = pool.k / new_no
    return BuyQuote(
        side=Side.YES,
        amount_in=amount_in,
        shares_out=pool.yes_pool - new_yes,
        before=pool,
        after=PoolState(yes_pool=new_yes, no_pool=new_no),
    )


def buy_no(pool: PoolState, amount_in: int) -> BuyQuote:
    _require_positive("amount_in", amount_in)
    _require_live_pool(pool)
    new_yes = pool.yes_pool + amount_in
    new_no = pool.k / new_yes
    return BuyQuote(
        side=Side.NO,
        amount_in=amount_in,
        shares_out=pool.no_pool - new_no,
        before=pool,
        after=PoolState(yes_pool=new_yes, no_pool=new_no),
    )


def sell_yes(pool: PoolState, shares_in: float) -> SellQuote:
    _require_positive("shares_in", shares_in)
    _require_live_pool(pool)
    new_yes = pool.yes_pool + shares_in
    new_no = pool.k / new_yes
    return SellQuote(
        side=Side.YES,
        shares_in=shares_in,
        payout=pool.no_pool - new_no,
        before=pool,
        after=PoolState(yes_pool=new_yes, no_pool=new_no),
    )


def sell_no(pool: PoolState, shares_in: float) -> SellQuote:
    _require_positive("shares_in", shares_in)
    _require_live_pool(pool)
    new_no = pool.no_pool + shares_in
    new_yes = pool.k / new_no
    return SellQuote(
        side=Side.NO,
        shares_in=shares_in,
        payout=pool.yes_pool - new_yes,
        before=pool,
        after=PoolState(yes_pool=new_yes, no_pool=new_no),
    )


def cost_to_buy_yes(pool: PoolState, shares: float) -> float:
    """Money needed to receive exactly ``shares`` YES. Infinite if it would drain the pool."""
    _require_positive("shares", shares)
    if shares >= pool.yes_pool:
        return math.inf
    return pool.k / (pool.yes_pool - shares) - pool.no_pool


def cost_to_buy_no(pool: PoolState, shares: float) -> float:
    _require_positive("shares", shares)
    if shares >= pool.no_pool:
        return math.inf
    return pool.k / (pool.no_pool - shares) - pool.yes_pool


def quote_buy(pool: PoolState, side: Side, amount_in: int) -> BuyQuote:
    return buy_yes(pool, amount_in) if side == Side.YES else buy_no(pool, amount_in)


def quote_sell(pool: PoolState, side: Side, shares_in: float) -> SellQuote:
    return sell_yes(pool, shares_in) if side == Side.YES else sell_no(pool, shares_in)

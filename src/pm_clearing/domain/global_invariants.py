# src/pm_clearing/domain/global_invariants.py
"""Global money conservation check.

Play money enters only through initial grants. Every other movement is a
transfer between user balances and market collateral, so at any committed
point:

    sum(user balances) + sum(market collateral) == sum(initial grants)
"""

import logging
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_USER_BALANCE_SQL = text("SELECT COALESCE(SUM(balance), 0) FROM accounts")
_MARKET_COLLATERAL_SQL = text("SELECT COALESCE(SUM(collateral), 0) FROM markets")
_GRANTS_SQL = text("""
    SELECT COALESCE(SUM(amount), 0)
    FROM ledger_entries
    WHERE entry_type = 'INITIAL_GRANT'
""")
_NEGATIVE_BALANCES_SQL = text("SELECT COUNT(*) FROM accounts WHERE balance < 0")
_OVERFILLED_ORDERS_SQL = text("SELECT COUNT(*) FROM orders WHERE filled_amount > amount")


@dataclass
class ConservationReport:
    user_balances: int
    market_collateral: int
    initial_grants: int
    violations: list[str]

    @property
    def ok(self) -> bool:
        return not self.violations


async def verify_conservation(db: AsyncSession) -> ConservationReport:
    user_bal = int((await db.execute(_USER_BALANCE_SQL)).scalar_one())
    collateral = int((await db.execute(_MARKET_COLLATERAL_SQL)).scalar_one())
    grants = int((await db.execute(_GRANTS_SQL)).scalar_one())
    negative = int((await db.execute(_NEGATIVE_BALANCES_SQL)).scalar_one())
    overfilled = int((await db.execute(_OVERFILLED_ORDERS_SQL)).scalar_one())

    violations: list[str] = []
    if user_bal + collateral != grants:
        violations.append(
            f"conservation violated: user_balances({user_bal}) + "
            f"market_collateral({collateral}) = {user_bal + collateral} "
            f"!= initial_grants({grants})"
        )
    if negative:
        violations.append(f"{negative} accounts have a negative balance")
    if overfilled:
        violations.append(f"{overfilled} orders are filled beyond their amount")

    for msg in violations:
        logger.error(msg)
    return ConservationReport(
        user_balances=user_bal,
        market_collateral=collateral,
        initial_grants=grants,
        violations=violations,
    )

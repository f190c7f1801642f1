"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class Side(str, Enum):
    YES = "YES"
    NO = "NO"

    @property
    def opposite(self) -> "Side":
        return Side.NO if self == Side.YES else Side.YES


class TradeAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class TradeType(str, Enum):
    """Kind of row in the trades history table."""
    BUY = "BUY"
    SELL = "SELL"
    MATCH = "MATCH"


class TradingMode(str, Enum):
    """Which engine a market trades through; fixed at creation."""
    AMM = "AMM"
    ORDER_BOOK = "ORDER_BOOK"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"


class CancelReason(str, Enum):
    USER_CANCELLED = "USER_CANCELLED"
    COUNTERPARTY_INSUFFICIENT_FUNDS = "COUNTERPARTY_INSUFFICIENT_FUNDS"
    MARKET_RESOLVED = "MARKET_RESOLVED"


class Role(str, Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class LedgerEntryType(str, Enum):
    INITIAL_GRANT = "INITIAL_GRANT"
    # AMM path
    AMM_BUY = "AMM_BUY"
    AMM_SELL = "AMM_SELL"
    # Order book path
    MATCH_FILL = "MATCH_FILL"
    # Settlement
    SETTLEMENT_PAYOUT = "SETTLEMENT_PAYOUT"
    # Compensation of a rolled-back trade step
    TRADE_REVERSAL = "TRADE_REVERSAL"


class MarketEvent(str, Enum):
    """Realtime notification types published per market."""
    MARKET_CREATED = "MARKET_CREATED"
    TRADE_EXECUTED = "TRADE_EXECUTED"
    BET_PLACED = "BET_PLACED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    MARKET_RESOLVED = "MARKET_RESOLVED"

"""Pydantic schemas for trades, quotes and price history."""

from pydantic import BaseModel, Field

from src.pm_amm.domain.pricing import BuyQuote, SellQuote
from src.pm_common.datetime_utils import isoformat_or_none
from src.pm_common.enums import Side, TradeAction
from src.pm_position.application.schemas import PositionResponse
from src.pm_trading.domain.models import TradeReceipt, TradeRecord


class TradeRequestBody(BaseModel):
    action: TradeAction
    side: Side
    # cents for BUY, shares for SELL
    amount: float = Field(..., gt=0, allow_inf_nan=False)


class TradeResponse(BaseModel):
    trade_id: str
    action: str
    side: str
    shares: float
    cost_cents: int
    new_balance_cents: int
    position: PositionResponse
    yes_price: float
    no_price: float

    @classmethod
    def from_receipt(cls, receipt: TradeReceipt) -> "TradeResponse":
        return cls(
            trade_id=receipt.trade_id,
            action=receipt.action.value,
            side=receipt.side.value,
            shares=receipt.shares,
            cost_cents=receipt.cost,
            new_balance_cents=receipt.new_balance,
            position=PositionResponse(
                market_id=receipt.position.market_id,
                yes_shares=receipt.position.yes_shares,
                no_shares=receipt.position.no_shares,
            ),
            yes_price=receipt.yes_price,
            no_price=receipt.no_price,
        )


class QuoteResponse(BaseModel):
    action: str
    side: str
    shares: float
    cost_cents: int
    average_price: float
    yes_price_before: float
    yes_price_after: float
    no_price_after: float

    @classmethod
    def from_quote(cls, quote: BuyQuote | SellQuote) -> "QuoteResponse":
        if isinstance(quote, BuyQuote):
            action, shares, cost = TradeAction.BUY, quote.shares_out, quote.amount_in
        else:
            action, shares, cost = TradeAction.SELL, quote.shares_in, quote.payout_cents
        return cls(
            action=action.value,
            side=quote.side.value,
            shares=shares,
            cost_cents=cost,
            average_price=cost / shares if shares else 0.0,
            yes_price_before=quote.before.yes_price,
            yes_price_after=quote.after.yes_price,
            no_price_after=quote.after.no_price,
        )


class TradeHistoryItem(BaseModel):
    id: str
    market_id: str
    side: str
    trade_type: str
    amount_cents: int
    shares: float | None
    order_id: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, record: TradeRecord) -> "TradeHistoryItem":
        return cls(
            id=record.id,
            market_id=record.market_id,
            side=record.side,
            trade_type=record.trade_type,
            amount_cents=record.amount,
            shares=record.shares,
            order_id=record.order_id,
            created_at=isoformat_or_none(record.created_at),
        )


class TradeHistoryResponse(BaseModel):
    items: list[TradeHistoryItem]
    next_cursor: str | None
    has_more: bool


class PricePoint(BaseModel):
    at: str | None
    yes_price: float
    no_price: float


class PriceHistoryResponse(BaseModel):
    market_id: str
    points: list[PricePoint]

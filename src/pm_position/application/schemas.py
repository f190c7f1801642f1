"""Pydantic schemas for positions API."""

from pydantic import BaseModel


class PositionResponse(BaseModel):
    market_id: str
    yes_shares: float
    no_shares: float


class HoldingResponse(BaseModel):
    """A position valued at the current AMM price (or at the outcome once resolved)."""

    market_id: str
    title: str
    yes_shares: float
    no_shares: float
    yes_price: float
    no_price: float
    market_value_cents: int
    resolved: bool
    outcome: str | None


class HoldingListResponse(BaseModel):
    items: list[HoldingResponse]
    total: int
    total_value_cents: int

"""Pydantic schemas for pm_market API.

Cursor format for markets (VARCHAR PK, not sequential):
  {"ts": "<created_at ISO>", "id": "<market_id>"}
  Encoded as Base64 JSON string.
"""

import base64
import binascii
import json
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from config.settings import settings
from src.pm_amm.domain.pricing import effective_pools
from src.pm_common.cents import cents_to_display
from src.pm_common.datetime_utils import isoformat_or_none
from src.pm_common.enums import TradingMode
from src.pm_market.domain.models import Market

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_market: Market) -> str:
    """Encode composite cursor from last market in page."""
    payload = {
        "ts": isoformat_or_none(last_market.created_at),
        "id": last_market.id,
    }
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[str | None, str | None]:
    """Decode composite cursor -> (ts_iso, market_id), or (None, None) when malformed."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
        return data["ts"], data["id"]
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError):
        return None, None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateMarketRequest(BaseModel):
    channel_id: str = Field(..., min_length=1, max_length=64)
    title: str = Field(..., min_length=1, max_length=256)
    description: str | None = Field(None, max_length=10_000)
    rules: str | None = Field(None, max_length=10_000)
    resolution_source: str | None = Field(None, max_length=1_000)
    close_time: datetime | None = None
    expected_resolution_time: datetime | None = None
    trading_mode: TradingMode = TradingMode.AMM

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class MarketListItem(BaseModel):
    id: str
    channel_id: str
    title: str
    trading_mode: str
    yes_price: float
    no_price: float
    collateral_cents: int
    collateral_display: str
    resolved: bool
    outcome: str | None
    close_time: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketListItem":
        pool = effective_pools(m.yes_pool, m.no_pool, settings.AMM_VIRTUAL_LIQUIDITY)
        return cls(
            id=m.id,
            channel_id=m.channel_id,
            title=m.title,
            trading_mode=m.trading_mode,
            yes_price=pool.yes_price,
            no_price=pool.no_price,
            collateral_cents=m.collateral,
            collateral_display=cents_to_display(m.collateral),
            resolved=m.resolved,
            outcome=m.outcome,
            close_time=isoformat_or_none(m.close_time),
            created_at=isoformat_or_none(m.created_at),
        )


class MarketListResponse(BaseModel):
    items: list[MarketListItem]
    next_cursor: str | None
    has_more: bool


class MarketDetail(MarketListItem):
    description: str | None
    rules: str | None
    resolution_source: str | None
    created_by: str
    yes_pool: float
    no_pool: float
    residual_cents: int
    resolved_at: str | None
    resolved_by: str | None
    expected_resolution_time: str | None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketDetail":
        base = MarketListItem.from_domain(m).model_dump()
        return cls(
            **base,
            description=m.description,
            rules=m.rules,
            resolution_source=m.resolution_source,
            created_by=m.created_by,
            yes_pool=m.yes_pool,
            no_pool=m.no_pool,
            residual_cents=m.residual,
            resolved_at=isoformat_or_none(m.resolved_at),
            resolved_by=m.resolved_by,
            expected_resolution_time=isoformat_or_none(m.expected_resolution_time),
        )

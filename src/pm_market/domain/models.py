"""Domain models for pm_market: pure dataclasses."""

from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import TradingMode


@dataclass
class Market:
    id: str
    channel_id: str
    title: str
    created_by: str
    trading_mode: str = TradingMode.AMM.value
    description: str | None = None
    rules: str | None = None
    resolution_source: str | None = None
    yes_pool: float = 0.0
    no_pool: float = 0.0
    collateral: int = 0      # cents backing outstanding shares
    residual: int = 0        # cents left unpaid after settlement
    resolved: bool = False
    outcome: str | None = None
    resolved_at: datetime | None = None
    resolved_by: str | None = None
    close_time: datetime | None = None
    expected_resolution_time: datetime | None = None
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_closed_at(self, now: datetime) -> bool:
        return self.close_time is not None and now >= self.close_time

"""Position domain model: pure dataclass."""

from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import Side


@dataclass
class Position:
    user_id: str
    market_id: str
    yes_shares: float = 0.0
    no_shares: float = 0.0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def shares(self, side: Side) -> float:
        return self.yes_shares if side == Side.YES else self.no_shares

    @property
    def is_flat(self) -> bool:
        return self.yes_shares == 0 and self.no_shares == 0

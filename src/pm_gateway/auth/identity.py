"""Authenticated caller identity, resolved once per request."""

from dataclasses import dataclass

from src.pm_common.enums import Role
from src.pm_common.errors import ForbiddenError


@dataclass(frozen=True)
class Identity:
    user_id: str
    username: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def require_admin(self) -> None:
        if not self.is_admin:
            raise ForbiddenError("Admin role required")

    def require_trader(self) -> None:
        if self.is_admin:
            raise ForbiddenError("Admins cannot trade")

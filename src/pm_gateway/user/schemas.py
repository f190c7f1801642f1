"""Sign-up, login and token schemas.

A registration response reports the play-money grant the new ledger
account was opened with: INITIAL_BALANCE_CENTS for members, zero for the
bootstrap admin.
"""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.pm_common.cents import cents_to_display
from src.pm_common.datetime_utils import isoformat_or_none
from src.pm_common.enums import Role
from src.pm_gateway.auth.password import MAX_PASSWORD_BYTES
from src.pm_gateway.user.db_models import UserModel

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"\d"), "a digit"),
)


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[a-zA-Z0-9_]+$")
    email: EmailStr
    password: str = Field(..., min_length=8)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        # bcrypt only hashes the first 72 bytes
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        missing = [rule for pattern, rule in _PASSWORD_RULES if not pattern.search(v)]
        if missing:
            raise ValueError(f"Password must contain {', '.join(missing)}")
        return v


class LoginRequest(BaseModel):
    username: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UserInfo(BaseModel):
    user_id: str
    username: str
    email: str
    role: Role

    @classmethod
    def from_model(cls, user: UserModel) -> "UserInfo":
        return cls(
            user_id=str(user.id), username=user.username, email=user.email, role=Role(user.role)
        )


class RegisterResponse(UserInfo):
    balance_cents: int
    balance_display: str
    created_at: str | None

    @classmethod
    def for_new_account(cls, user: UserModel, balance: int) -> "RegisterResponse":
        return cls(
            **UserInfo.from_model(user).model_dump(),
            balance_cents=balance,
            balance_display=cents_to_display(balance),
            created_at=isoformat_or_none(user.created_at),
        )


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int  # seconds until the access token expires
    user: UserInfo


class RefreshResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int

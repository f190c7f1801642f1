"""Sign-up payload validation."""

import uuid

import pytest
from pydantic import ValidationError

from src.pm_common.enums import Role
from src.pm_gateway.user.db_models import UserModel
from src.pm_gateway.user.schemas import (
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    UserInfo,
)

_OK = {"username": "alice", "email": "alice@example.com", "password": "SecureP@ss1"}


class TestRegisterRequest:
    def test_valid_input(self) -> None:
        assert RegisterRequest(**_OK).username == "alice"

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("username", "ab"),
            ("username", "a" * 65),
            ("username", "alice!"),
            ("email", "not-an-email"),
            ("password", "Ab1"),
            ("password", "alllower1"),
            ("password", "ALLUPPER1"),
            ("password", "NoDigitPass"),
            ("password", "Aa1" + "x" * 70),
            ("password", "Aa1" + "é" * 35),
        ],
    )
    def test_rejected(self, field: str, value: str) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(**{**_OK, field: value})


class TestLoginResponse:
    def test_bearer_by_default(self) -> None:
        resp = LoginResponse(
            access_token="a",
            refresh_token="r",
            expires_in=1800,
            user=UserInfo(user_id="u", username="alice", email="a@b.com", role="MEMBER"),
        )
        assert resp.token_type == "Bearer"
        assert resp.user.role == Role.MEMBER

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UserInfo(user_id="u", username="alice", email="a@b.com", role="OWNER")


class TestRegisterResponse:
    @pytest.mark.parametrize(
        ("role", "balance", "display", "is_admin"),
        [("MEMBER", 100_000, "$1,000.00", False), ("ADMIN", 0, "$0.00", True)],
    )
    def test_reports_opening_grant(
        self, role: str, balance: int, display: str, is_admin: bool
    ) -> None:
        user = UserModel(
            id=uuid.uuid4(), username="alice", email="alice@example.com",
            password_hash="x", role=role,
        )
        resp = RegisterResponse.for_new_account(user, balance)

        assert user.is_admin is is_admin
        assert resp.role == Role(role)
        assert (resp.balance_cents, resp.balance_display) == (balance, display)
        assert resp.created_at is None
        assert resp.user_id == str(user.id)


class TestPasswordMessage:
    def test_lists_every_missing_character_class(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RegisterRequest(**{**_OK, "password": "########"})
        message = str(exc_info.value)
        assert "an uppercase letter, a lowercase letter, a digit" in message

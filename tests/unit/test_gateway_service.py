"""UserService against a mocked session and the in-memory ledger."""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from jose import jwt

from config.settings import settings
from src.pm_common.enums import Role
from src.pm_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    UsernameExistsError,
)
from src.pm_gateway.auth.jwt_handler import create_access_token, create_refresh_token
from src.pm_gateway.user.db_models import UserModel
from src.pm_gateway.user.schemas import LoginRequest, RegisterRequest
from src.pm_gateway.user.service import UserService, role_for


def _stored_user(active: bool = True, role: str = "MEMBER") -> UserModel:
    return UserModel(
        id=uuid.uuid4(),
        username="alice",
        email="alice@example.com",
        password_hash="$2b$12$fakehash",
        role=role,
        is_active=active,
    )


def _lookups(db: AsyncMock, *found: UserModel | None) -> None:
    results = []
    for user in found:
        result = MagicMock()
        result.scalar_one_or_none.return_value = user
        results.append(result)
    db.execute = AsyncMock(side_effect=results)


def _signup_session() -> AsyncMock:
    """Neither username nor email is taken; flush assigns the primary key."""
    db = AsyncMock()
    _lookups(db, None, None)
    added: list[UserModel] = []
    db.add = MagicMock(side_effect=added.append)

    async def flush() -> None:
        added[-1].id = uuid.uuid4()

    db.flush = AsyncMock(side_effect=flush)
    return db


def _signup(username: str = "bob") -> RegisterRequest:
    return RegisterRequest(
        username=username, email=f"{username}@example.com", password="Pass1word"
    )


@pytest.fixture
def service(ledger) -> UserService:
    return UserService(ledger=ledger)


class TestRoleFor:
    def test_member_by_default(self) -> None:
        assert role_for("alice") == Role.MEMBER

    def test_bootstrap_username_is_admin(self) -> None:
        with patch.object(settings, "ADMIN_BOOTSTRAP_USERNAME", "root"):
            assert role_for("root") == Role.ADMIN
            assert role_for("rooted") == Role.MEMBER

    def test_unset_bootstrap_never_matches(self) -> None:
        with patch.object(settings, "ADMIN_BOOTSTRAP_USERNAME", None):
            assert role_for("") == Role.MEMBER


class TestRegister:
    async def test_member_gets_play_money_grant(self, service, ledger) -> None:
        db = _signup_session()

        resp = await service.register(db, _signup())

        assert resp.role == "MEMBER"
        assert resp.balance_cents == settings.INITIAL_BALANCE_CENTS
        assert ledger.balance(resp.user_id) == settings.INITIAL_BALANCE_CENTS
        assert [e.entry_type for e in ledger.entries] == ["INITIAL_GRANT"]
        assert db.add.call_args.args[0].password_hash != "Pass1word"
        db.commit.assert_awaited_once()

    async def test_bootstrap_admin_gets_no_money(self, service, ledger) -> None:
        db = _signup_session()
        with patch.object(settings, "ADMIN_BOOTSTRAP_USERNAME", "root"):
            resp = await service.register(db, _signup("root"))
        assert resp.role == "ADMIN"
        assert resp.balance_cents == 0
        assert ledger.entries == []

    async def test_taken_username(self, service, ledger) -> None:
        db = AsyncMock()
        _lookups(db, _stored_user())
        with pytest.raises(UsernameExistsError):
            await service.register(db, _signup("alice"))
        db.rollback.assert_awaited_once()
        assert ledger.accounts == {}

    async def test_taken_email(self, service) -> None:
        db = AsyncMock()
        _lookups(db, None, _stored_user())
        with pytest.raises(EmailExistsError):
            await service.register(db, _signup())
        db.add.assert_not_called()


class TestLogin:
    async def test_unknown_user(self, service) -> None:
        db = AsyncMock()
        _lookups(db, None)
        with pytest.raises(InvalidCredentialsError):
            await service.login(db, LoginRequest(username="nobody", password="Pass1word"))

    async def test_wrong_password(self, service) -> None:
        db = AsyncMock()
        _lookups(db, _stored_user())
        with (
            patch("src.pm_gateway.user.service.verify_password", return_value=False),
            pytest.raises(InvalidCredentialsError),
        ):
            await service.login(db, LoginRequest(username="alice", password="WrongPass1"))

    async def test_disabled_account(self, service) -> None:
        db = AsyncMock()
        _lookups(db, _stored_user(active=False))
        with (
            patch("src.pm_gateway.user.service.verify_password", return_value=True),
            pytest.raises(AccountDisabledError),
        ):
            await service.login(db, LoginRequest(username="alice", password="Pass1word"))

    async def test_tokens_carry_subject_and_role(self, service) -> None:
        db = AsyncMock()
        user = _stored_user(role="ADMIN")
        _lookups(db, user)
        with patch("src.pm_gateway.user.service.verify_password", return_value=True):
            resp = await service.login(db, LoginRequest(username="alice", password="Pass1word"))

        claims = jwt.get_unverified_claims(resp.access_token)
        assert claims["sub"] == str(user.id)
        assert claims["role"] == "ADMIN"
        assert jwt.get_unverified_claims(resp.refresh_token)["type"] == "refresh"
        assert resp.user.role == "ADMIN"
        assert resp.expires_in == settings.JWT_EXPIRE_MINUTES * 60


class TestRefresh:
    def test_mints_access_token_for_same_subject(self, service) -> None:
        resp = service.refresh(create_refresh_token("user-123"))
        claims = jwt.get_unverified_claims(resp.access_token)
        assert (claims["sub"], claims["type"]) == ("user-123", "access")

    @pytest.mark.parametrize(
        "token", ["not.a.real.token", create_access_token("user-123")]
    )
    def test_rejects_anything_but_a_refresh_token(self, service, token) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            service.refresh(token)

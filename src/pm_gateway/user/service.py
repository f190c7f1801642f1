"""Account lifecycle: sign-up with the play-money grant, login, token refresh.

Sign-up writes the users row, the ledger account and its INITIAL_GRANT
entry in one transaction; the service commits or rolls back itself, like
every other application service.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.repository import LedgerRepositoryProtocol
from src.pm_account.infrastructure.persistence import LedgerRepository
from src.pm_common.enums import Role
from src.pm_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    UsernameExistsError,
)
from src.pm_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.pm_gateway.auth.password import hash_password, verify_password
from src.pm_gateway.user.db_models import UserModel
from src.pm_gateway.user.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UserInfo,
)

logger = logging.getLogger(__name__)

_ACCESS_TTL_SECONDS = settings.JWT_EXPIRE_MINUTES * 60


def role_for(username: str) -> Role:
    bootstrap = settings.ADMIN_BOOTSTRAP_USERNAME
    return Role.ADMIN if bootstrap and username == bootstrap else Role.MEMBER


class UserService:
    def __init__(self, ledger: LedgerRepositoryProtocol | None = None) -> None:
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()

    async def _find(self, db: AsyncSession, column: Any, value: str) -> UserModel | None:
        result = await db.execute(select(UserModel).where(column == value))
        return result.scalar_one_or_none()

    async def register(self, db: AsyncSession, body: RegisterRequest) -> RegisterResponse:
        try:
            # UNIQUE constraints still back these checks under a race
            if await self._find(db, UserModel.username, body.username) is not None:
                raise UsernameExistsError()
            if await self._find(db, UserModel.email, body.email) is not None:
                raise EmailExistsError()

            role = role_for(body.username)
            user = UserModel(
                username=body.username,
                email=body.email,
                password_hash=hash_password(body.password),
                role=role.value,
                is_active=True,
            )
            db.add(user)
            await db.flush()

            # admins referee markets and never trade
            grant = 0 if user.is_admin else settings.INITIAL_BALANCE_CENTS
            account, _ = await self._ledger.open_account(db, str(user.id), grant)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Registered %s as %s with %d cents", user.id, role.value, grant)
        return RegisterResponse.for_new_account(user, account.balance)

    async def login(self, db: AsyncSession, body: LoginRequest) -> LoginResponse:
        """Unknown user and wrong password are indistinguishable to the caller."""
        user = await self._find(db, UserModel.username, body.username)
        if user is None or not verify_password(body.password, user.password_hash):
            raise InvalidCredentialsError()
        if not user.is_active:
            raise AccountDisabledError()

        info = UserInfo.from_model(user)
        return LoginResponse(
            access_token=create_access_token(info.user_id, info.role.value),
            refresh_token=create_refresh_token(info.user_id),
            expires_in=_ACCESS_TTL_SECONDS,
            user=info,
        )

    def refresh(self, refresh_token: str) -> RefreshResponse:
        # no rotation: the refresh token stays valid until it expires
        payload = decode_token(refresh_token, expected_type="refresh")
        return RefreshResponse(
            access_token=create_access_token(str(payload["sub"])),
            expires_in=_ACCESS_TTL_SECONDS,
        )

"""JWT token creation and verification (HS256, shared JWT_SECRET).

Access tokens carry the role as an informational claim; authorization
always re-reads the role from the users table (see dependencies.py).
Tokens are not revocable before expiry.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.pm_common.errors import InvalidCredentialsError, InvalidRefreshTokenError

_ALGORITHM = settings.JWT_ALGORITHM
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
_REFRESH_EXPIRE = timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)


def _issue(user_id: str, token_type: str, lifetime: timedelta, **claims: str) -> str:
    now = datetime.now(UTC)
    payload: dict[str, object] = {
        "sub": user_id,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
        **claims,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def create_access_token(user_id: str, role: str | None = None) -> str:
    if role is None:
        return _issue(user_id, "access", _ACCESS_EXPIRE)
    return _issue(user_id, "access", _ACCESS_EXPIRE, role=role)


def create_refresh_token(user_id: str) -> str:
    return _issue(user_id, "refresh", _REFRESH_EXPIRE)


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Decode and validate a JWT token of the given type ("access" or "refresh").

    Raises:
        InvalidCredentialsError: invalid/expired token when an access token was expected.
        InvalidRefreshTokenError: invalid/expired token when a refresh token was expected.
    """
    error = InvalidCredentialsError if expected_type == "access" else InvalidRefreshTokenError
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise error() from None

    if payload.get("type") != expected_type:
        raise error()
    return payload

"""JWT issue/verify round trips and rejection paths."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from jose import jwt

from src.pm_common.errors import InvalidCredentialsError, InvalidRefreshTokenError
from src.pm_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)

_ISSUERS = {"access": create_access_token, "refresh": create_refresh_token}
_ERRORS = {"access": InvalidCredentialsError, "refresh": InvalidRefreshTokenError}


class TestIssue:
    @pytest.mark.parametrize("kind", ["access", "refresh"])
    def test_round_trip(self, kind: str) -> None:
        payload = decode_token(_ISSUERS[kind]("user-abc"), expected_type=kind)
        assert payload["sub"] == "user-abc"
        assert payload["type"] == kind
        assert payload["exp"] > payload["iat"]

    def test_role_claim_is_optional(self) -> None:
        assert decode_token(create_access_token("a-1", role="ADMIN"), "access")["role"] == "ADMIN"
        assert "role" not in jwt.get_unverified_claims(create_access_token("u-1"))


class TestReject:
    @pytest.mark.parametrize(("issued", "expected"), [("access", "refresh"), ("refresh", "access")])
    def test_wrong_token_type(self, issued: str, expected: str) -> None:
        with pytest.raises(_ERRORS[expected]):
            decode_token(_ISSUERS[issued]("user-abc"), expected_type=expected)

    @pytest.mark.parametrize(
        ("kind", "lifetime_attr"), [("access", "_ACCESS_EXPIRE"), ("refresh", "_REFRESH_EXPIRE")]
    )
    def test_expired(self, kind: str, lifetime_attr: str) -> None:
        with patch(f"src.pm_gateway.auth.jwt_handler.{lifetime_attr}", timedelta(seconds=-1)):
            token = _ISSUERS[kind]("user-abc")
        with pytest.raises(_ERRORS[kind]):
            decode_token(token, expected_type=kind)

    def test_tampered_signature(self) -> None:
        token = create_access_token("user-abc")
        with pytest.raises(InvalidCredentialsError):
            decode_token(token[:-4] + "xxxx", expected_type="access")

    def test_foreign_secret(self) -> None:
        forged = jwt.encode({"sub": "user-abc", "type": "access"}, "other", algorithm="HS256")
        with pytest.raises(InvalidCredentialsError):
            decode_token(forged, expected_type="access")

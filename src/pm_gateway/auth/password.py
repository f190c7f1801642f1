"""Password hashing with the ``bcrypt`` library (>=4.0, no passlib)."""

import bcrypt

# bcrypt only looks at the first 72 bytes; longer input is rejected, not truncated
MAX_PASSWORD_BYTES = 72


def _encode(plain: str) -> bytes:
    raw = plain.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return raw


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        raw = _encode(plain)
    except ValueError:
        return False
    return bcrypt.checkpw(raw, hashed.encode("utf-8"))

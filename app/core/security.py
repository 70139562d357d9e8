"""Password hashing, JWT encoding/decoding and role checks for authentication."""

import secrets
from collections.abc import Iterable
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any

import bcrypt
import jwt

from app.models.user import UserRole

# Min/max lengths for username and password validation (BSIMM / input validation).
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 100
NAME_MAX_LEN = 100
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 255

# Reset tokens: 32 random bytes, url-safe (43 chars).
RESET_TOKEN_BYTES = 32

# Token type claim; keeps an access token from being replayed as a refresh token.
ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def hash_password(plain_password: str, rounds: int) -> str:
    """Hash a plain-text password for storage with the given bcrypt cost. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


@lru_cache
def _dummy_password_hash(rounds: int) -> str:
    return hash_password(secrets.token_urlsafe(16), rounds=rounds)


def verify_dummy_password(plain_password: str, rounds: int) -> None:
    """Spend the same bcrypt work as a real verification when no account matched."""
    verify_password(plain_password, _dummy_password_hash(rounds))


def generate_reset_token() -> str:
    """Cryptographically random single-use password reset token."""
    return secrets.token_urlsafe(RESET_TOKEN_BYTES)


def encode_token(
    claims: dict[str, Any],
    secret: str,
    algorithm: str,
    expires_delta: timedelta,
    now: datetime,
) -> str:
    """Sign claims as a JWT with iat=now and exp=now+expires_delta."""
    payload = dict(claims)
    payload["iat"] = now
    payload["exp"] = now + expires_delta
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(
    token: str,
    secret: str,
    algorithm: str,
    token_type: str,
) -> dict[str, Any]:
    """
    Decode and validate a JWT signed with `secret`; return its payload.
    Raises jwt.PyJWTError on invalid, expired or wrong-type token.
    """
    payload = jwt.decode(
        token,
        secret,
        algorithms=[algorithm],
        options={"require": ["exp", "iat", "sub"]},
    )
    if payload.get("type") != token_type:
        raise jwt.InvalidTokenError("Unexpected token type")
    return payload


def has_role(required: Iterable[UserRole | str], actual: UserRole | str) -> bool:
    """True when `actual` is one of the `required` roles. Unknown role strings never match."""
    try:
        actual_role = UserRole(actual)
    except ValueError:
        return False
    return actual_role in {UserRole(r) for r in required}

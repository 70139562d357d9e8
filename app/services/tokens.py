"""Access/refresh token issuance, verification and rotation."""

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import jwt
from sqlalchemy.orm import Session

from app.core.security import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    decode_token,
    encode_token,
)
from app.models import User
from app.models.base import utc_now
from app.schemas.auth import AccessTokenPayload, TokenPair
from app.services.accounts import get_user_by_id
from app.services.errors import InvalidTokenError

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

# Refresh tokens carry a generation number but nothing is stored server-side,
# so a refresh token stays usable until it expires.
REFRESH_TOKEN_VERSION = 1


def issue_tokens(user: User, settings: "Settings", now: datetime | None = None) -> TokenPair:
    """Mint an access token and a refresh token for the user, each with its own secret."""
    now = now or utc_now()
    access_token = encode_token(
        {
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "role": user.role,
            "type": ACCESS_TOKEN_TYPE,
        },
        settings.JWT_ACCESS_SECRET.get_secret_value(),
        settings.JWT_ALGORITHM,
        timedelta(minutes=settings.JWT_ACCESS_EXPIRE_MINUTES),
        now,
    )
    refresh_token = encode_token(
        {
            "sub": str(user.id),
            "token_version": REFRESH_TOKEN_VERSION,
            "type": REFRESH_TOKEN_TYPE,
        },
        settings.JWT_REFRESH_SECRET.get_secret_value(),
        settings.JWT_ALGORITHM,
        timedelta(minutes=settings.JWT_REFRESH_EXPIRE_MINUTES),
        now,
    )
    return TokenPair(access_token=access_token, refresh_token=refresh_token)


def verify_access_token(token: str, settings: "Settings") -> AccessTokenPayload:
    """
    Check signature and expiry of an access token and return its claims.

    Does not touch the database; callers that need a live account must load it
    and check is_active themselves.
    """
    try:
        payload = decode_token(
            token,
            settings.JWT_ACCESS_SECRET.get_secret_value(),
            settings.JWT_ALGORITHM,
            ACCESS_TOKEN_TYPE,
        )
        return AccessTokenPayload.model_validate(payload)
    except (jwt.PyJWTError, ValueError) as e:
        raise InvalidTokenError() from e


def refresh_tokens(
    session: Session,
    settings: "Settings",
    refresh_token: str,
    now: datetime | None = None,
) -> TokenPair:
    """
    Exchange a valid refresh token for a new access/refresh pair.

    Every rejection reason raises the same InvalidTokenError. Store outages
    are not rejections and propagate as StoreUnavailableError.
    """
    try:
        payload = decode_token(
            refresh_token,
            settings.JWT_REFRESH_SECRET.get_secret_value(),
            settings.JWT_ALGORITHM,
            REFRESH_TOKEN_TYPE,
        )
    except jwt.PyJWTError as e:
        raise InvalidTokenError() from e

    user = get_user_by_id(session, payload["sub"])
    if user is None or not user.is_active:
        logger.info("Refresh rejected for missing or inactive account: sub=%s", payload["sub"])
        raise InvalidTokenError()
    return issue_tokens(user, settings, now=now)

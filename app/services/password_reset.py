"""Password reset: issue a single-use, time-limited token and redeem it for a new password."""

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.security import generate_reset_token, hash_password
from app.models import User
from app.models.base import utc_now
from app.services.accounts import normalize_identifier, store_errors
from app.services.errors import InvalidOrExpiredTokenError

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If the email exists, a password reset link has been sent"
RESET_COMPLETED_MESSAGE = "Password reset successfully"


def request_password_reset(
    session: Session,
    settings: "Settings",
    email: str,
    now: datetime | None = None,
) -> None:
    """
    Store a fresh reset token on the account with this email, if there is one.

    Registered and unknown emails go through the same token generation and the
    same UPDATE (which simply matches no row), so neither the result nor the
    work done tells the caller whether the email is registered.
    """
    now = now or utc_now()
    token = generate_reset_token()
    expires = now + timedelta(minutes=settings.PASSWORD_RESET_TTL_MINUTES)

    with store_errors(session):
        result = session.execute(
            update(User)
            .where(User.email == normalize_identifier(email))
            .values(
                password_reset_token=token,
                password_reset_expires=expires,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        session.commit()

    # Delivery of the token (email) is handled outside this service.
    logger.info("Password reset requested: matched=%s", bool(result.rowcount))


def complete_password_reset(
    session: Session,
    settings: "Settings",
    token: str,
    new_password: str,
    now: datetime | None = None,
) -> None:
    """
    Replace the password of the account holding this unexpired reset token.

    Token match, expiry check, password change and token clearing happen in
    one UPDATE, so a token can be redeemed at most once.
    Raises InvalidOrExpiredTokenError when no account matches.
    """
    now = now or utc_now()
    if not token:
        raise InvalidOrExpiredTokenError()
    password_hash = hash_password(new_password, rounds=settings.BCRYPT_ROUNDS)

    with store_errors(session):
        result = session.execute(
            update(User)
            .where(
                User.password_reset_token == token,
                User.password_reset_expires > now,
            )
            .values(
                password_hash=password_hash,
                password_reset_token=None,
                password_reset_expires=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        session.commit()

    if not result.rowcount:
        raise InvalidOrExpiredTokenError()
    logger.info("Password reset completed")

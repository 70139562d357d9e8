"""Login, registration, logout and password change built on the account services."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.core.security import hash_password, verify_dummy_password, verify_password
from app.models import User, UserRole
from app.models.base import utc_now
from app.schemas.auth import TokenPair
from app.schemas.user import UserCreate, UserRegistration
from app.services.accounts import get_user_by_email, reload_user, store_errors
from app.services.errors import (
    AccountInactiveError,
    AccountLockedError,
    BadRequestError,
    InvalidCredentialsError,
)
from app.services.login_attempts import is_account_locked, record_login_outcome
from app.services.tokens import issue_tokens
from app.services.users import create_user, get_user

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

LOGOUT_MESSAGE = "Logged out successfully"
PASSWORD_CHANGED_MESSAGE = "Password changed successfully"


@dataclass
class AuthResult:
    """An authenticated user and the tokens minted for them."""

    user: User
    tokens: TokenPair


def register(session: Session, settings: "Settings", data: UserRegistration) -> AuthResult:
    """Create a regular user account and sign it in."""
    user = create_user(
        session,
        settings,
        UserCreate(**data.model_dump(), role=UserRole.USER),
    )
    return AuthResult(user=user, tokens=issue_tokens(user, settings))


def login(
    session: Session,
    settings: "Settings",
    email: str,
    password: str,
    now: datetime | None = None,
) -> AuthResult:
    """
    Authenticate by email and password.

    Order matters: a locked account is refused before the password is looked
    at, unknown email and wrong password fail identically (both count as a
    failed attempt, the former as a no-op), and a deactivated account is only
    reported after the password has been verified, without counting it.
    """
    now = now or utc_now()

    if is_account_locked(session, email, now=now):
        logger.info("Login refused, account locked")
        raise AccountLockedError()

    user = get_user_by_email(session, email)
    if user is None:
        verify_dummy_password(password, rounds=settings.BCRYPT_ROUNDS)
        record_login_outcome(session, settings, email, success=False, now=now)
        raise InvalidCredentialsError()

    user_id = user.id
    if not verify_password(password, user.password_hash):
        record_login_outcome(session, settings, email, success=False, now=now)
        logger.info("Login failed: user_id=%s", user_id)
        raise InvalidCredentialsError()

    if not user.is_active:
        raise AccountInactiveError()

    record_login_outcome(session, settings, email, success=True, now=now)
    reload_user(session, user)
    logger.info("Login succeeded: user_id=%s", user.id)
    return AuthResult(user=user, tokens=issue_tokens(user, settings, now=now))


def logout() -> str:
    """Tokens are not tracked server-side; the client discards them."""
    return LOGOUT_MESSAGE


def change_password(
    session: Session,
    settings: "Settings",
    user_id: uuid.UUID | str,
    current_password: str,
    new_password: str,
    confirm_password: str,
) -> str:
    if new_password != confirm_password:
        raise BadRequestError("New password and confirm password do not match")

    user = get_user(session, user_id)
    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentialsError("Current password is incorrect")

    user_id = user.id
    user.password_hash = hash_password(new_password, rounds=settings.BCRYPT_ROUNDS)
    user.updated_at = utc_now()
    with store_errors(session):
        session.commit()
    logger.info("Password changed: user_id=%s", user_id)
    return PASSWORD_CHANGED_MESSAGE

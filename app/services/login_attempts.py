"""Failed-login counting and temporary account lockout."""

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import case, literal, update
from sqlalchemy.orm import Session

from app.models import User
from app.models.base import as_utc, utc_now
from app.services.accounts import get_user_by_email, normalize_identifier, store_errors

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def is_account_locked(session: Session, email: str, now: datetime | None = None) -> bool:
    """
    True while the account's lock window is open.

    An expired lock is cleared here (attempts and lock_until back to zero/NULL).
    The reset only applies if the stored lock is still the expired one, so a
    lock set concurrently by another request is never wiped.
    """
    now = now or utc_now()
    user = get_user_by_email(session, email)
    if user is None or user.lock_until is None:
        return False
    if as_utc(user.lock_until) > now:
        return True

    user_id = user.id
    with store_errors(session):
        session.execute(
            update(User)
            .where(User.id == user_id, User.lock_until <= now)
            .values(login_attempts=0, lock_until=None, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        session.commit()
    logger.info("Lock expired, attempts reset: user_id=%s", user_id)
    return False


def record_login_outcome(
    session: Session,
    settings: "Settings",
    email: str,
    success: bool,
    now: datetime | None = None,
) -> None:
    """
    Record a login result for the account with this email.

    Success zeroes the counter and lock and stamps last_login_at. Failure is a
    single UPDATE that increments the counter in the database and sets the lock
    once the new value reaches MAX_LOGIN_ATTEMPTS, so concurrent failures are
    all counted. An unknown email matches no row and nothing happens.
    """
    now = now or utc_now()
    email = normalize_identifier(email)

    if success:
        stmt = (
            update(User)
            .where(User.email == email)
            .values(login_attempts=0, lock_until=None, last_login_at=now, updated_at=now)
        )
    else:
        lock_until = now + timedelta(minutes=settings.LOCK_DURATION_MINUTES)
        stmt = (
            update(User)
            .where(User.email == email)
            .values(
                login_attempts=User.login_attempts + 1,
                lock_until=case(
                    (
                        User.login_attempts + 1 >= settings.MAX_LOGIN_ATTEMPTS,
                        literal(lock_until, User.__table__.c.lock_until.type),
                    ),
                    else_=None,
                ),
                updated_at=now,
            )
        )

    with store_errors(session):
        result = session.execute(stmt.execution_options(synchronize_session=False))
        session.commit()

    if not success and result.rowcount:
        user = get_user_by_email(session, email)
        if user is not None and user.lock_until is not None:
            logger.warning(
                "Account locked after %s failed logins: user_id=%s lock_until=%s",
                user.login_attempts,
                user.id,
                as_utc(user.lock_until).isoformat(),
            )

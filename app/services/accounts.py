"""Credential store access: account lookups and translation of database outages."""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from app.models import User
from app.services.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


def normalize_identifier(value: str) -> str:
    """Emails and usernames are compared and stored lower-cased."""
    return value.strip().lower()


@contextmanager
def store_errors(session: Session) -> Iterator[None]:
    """
    Turn transient database failures into StoreUnavailableError.

    Statement timeouts and lost connections surface as OperationalError, an
    exhausted pool as sqlalchemy's TimeoutError. Everything else (including
    IntegrityError) propagates unchanged.
    """
    try:
        yield
    except (OperationalError, PoolTimeoutError) as e:
        session.rollback()
        logger.warning("Credential store unavailable: %s", type(e).__name__)
        raise StoreUnavailableError(cause=e) from e
    except DBAPIError as e:
        if not e.connection_invalidated:
            raise
        session.rollback()
        logger.warning("Credential store connection invalidated: %s", type(e).__name__)
        raise StoreUnavailableError(cause=e) from e


def reload_user(session: Session, user: User) -> User:
    """Re-read a user's columns after a commit expired them."""
    with store_errors(session):
        session.refresh(user)
    return user


def get_user_by_email(session: Session, email: str) -> User | None:
    with store_errors(session):
        return session.scalars(
            select(User).where(User.email == normalize_identifier(email))
        ).first()


def get_user_by_username(session: Session, username: str) -> User | None:
    with store_errors(session):
        return session.scalars(
            select(User).where(User.username == normalize_identifier(username))
        ).first()


def get_user_by_id(session: Session, user_id: uuid.UUID | str) -> User | None:
    """Return the user or None; a malformed id is treated as not found."""
    if not isinstance(user_id, uuid.UUID):
        try:
            user_id = uuid.UUID(str(user_id))
        except ValueError:
            return None
    with store_errors(session):
        return session.get(User, user_id)

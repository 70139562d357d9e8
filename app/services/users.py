"""User administration: create, look up, update, list and remove accounts."""

import logging
import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import hash_password
from app.models import User, UserRole
from app.models.base import utc_now
from app.schemas.user import PaginatedUsersResponse, UserCreate, UserQuery, UserResponse
from app.services.accounts import (
    get_user_by_email,
    get_user_by_id,
    get_user_by_username,
    normalize_identifier,
    reload_user,
    store_errors,
)
from app.services.errors import ConflictError, NotFoundError
from app.services.user_query import (
    build_pagination_meta,
    build_sort,
    build_user_filters,
    combine_filters,
    normalize_pagination,
)

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

# Columns that update_user may change; anything else in `changes` is ignored.
UPDATABLE_FIELDS = frozenset(
    {
        "email",
        "username",
        "first_name",
        "last_name",
        "role",
        "profile_picture",
        "is_active",
        "is_email_verified",
    }
)


def _check_user_exists(
    session: Session,
    email: str | None = None,
    username: str | None = None,
    exclude_id: uuid.UUID | None = None,
) -> None:
    """Raise ConflictError if another account already uses this email or username."""
    if not email and not username:
        return
    email = normalize_identifier(email) if email else None
    username = normalize_identifier(username) if username else None

    conditions = []
    if email:
        conditions.append(User.email == email)
    if username:
        conditions.append(User.username == username)
    stmt = select(User).where(or_(*conditions))
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)

    with store_errors(session):
        existing = session.scalars(stmt).first()
    if existing is None:
        return
    if email and existing.email == email:
        raise ConflictError("User with this email already exists")
    raise ConflictError("User with this username already exists")


def _commit_or_conflict(session: Session) -> None:
    """Commit; a unique-index violation lost to a concurrent writer becomes ConflictError."""
    try:
        with store_errors(session):
            session.commit()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError() from e


def get_user(session: Session, user_id: uuid.UUID | str) -> User:
    user = get_user_by_id(session, user_id)
    if user is None:
        raise NotFoundError()
    return user


def find_by_email(session: Session, email: str) -> User | None:
    return get_user_by_email(session, email)


def find_by_username(session: Session, username: str) -> User | None:
    return get_user_by_username(session, username)


def create_user(session: Session, settings: "Settings", data: UserCreate) -> User:
    """Create an account; the password is hashed before anything is stored."""
    _check_user_exists(session, data.email, data.username)
    now = utc_now()
    user = User(
        id=uuid.uuid4(),
        email=normalize_identifier(data.email),
        username=normalize_identifier(data.username),
        first_name=data.first_name,
        last_name=data.last_name,
        password_hash=hash_password(data.password, rounds=settings.BCRYPT_ROUNDS),
        role=UserRole(data.role).value,
        profile_picture=data.profile_picture,
        is_active=True,
        is_email_verified=False,
        login_attempts=0,
        created_at=now,
        updated_at=now,
    )
    session.add(user)
    _commit_or_conflict(session)
    reload_user(session, user)
    logger.info("User created: user_id=%s role=%s", user.id, user.role)
    return user


def update_user(session: Session, user_id: uuid.UUID | str, changes: dict[str, Any]) -> User:
    """Apply the given column changes; email/username stay unique across accounts."""
    user = get_user(session, user_id)
    # profile_picture is the only nullable column here; None elsewhere means "leave as is".
    changes = {
        k: v
        for k, v in changes.items()
        if k in UPDATABLE_FIELDS and (v is not None or k == "profile_picture")
    }
    if "email" in changes or "username" in changes:
        _check_user_exists(
            session,
            email=changes.get("email"),
            username=changes.get("username"),
            exclude_id=user.id,
        )

    for field, value in changes.items():
        if field in ("email", "username"):
            value = normalize_identifier(value)
        elif field == "role":
            value = UserRole(value).value
        setattr(user, field, value)
    user.updated_at = utc_now()
    _commit_or_conflict(session)
    return reload_user(session, user)


def soft_delete_user(session: Session, user_id: uuid.UUID | str) -> User:
    user = update_user(session, user_id, {"is_active": False})
    logger.info("User soft-deleted: user_id=%s", user.id)
    return user


def activate_user(session: Session, user_id: uuid.UUID | str) -> User:
    return update_user(session, user_id, {"is_active": True})


def deactivate_user(session: Session, user_id: uuid.UUID | str) -> User:
    return update_user(session, user_id, {"is_active": False})


def verify_email(session: Session, user_id: uuid.UUID | str) -> User:
    return update_user(session, user_id, {"is_email_verified": True})


def update_role(session: Session, user_id: uuid.UUID | str, role: UserRole) -> User:
    user = update_user(session, user_id, {"role": role})
    logger.info("User role changed: user_id=%s role=%s", user.id, user.role)
    return user


def delete_user(session: Session, user_id: uuid.UUID | str) -> None:
    """Remove the account row permanently."""
    user = get_user(session, user_id)
    with store_errors(session):
        session.delete(user)
        session.commit()
    logger.info("User deleted: user_id=%s", user_id)


def list_users(session: Session, query: UserQuery) -> PaginatedUsersResponse:
    """One page of users matching the query's filters, plus pagination meta."""
    page, limit, offset = normalize_pagination(query.page, query.limit)
    where = combine_filters(build_user_filters(query))

    count_stmt = select(func.count()).select_from(User)
    data_stmt = select(User)
    if where is not None:
        count_stmt = count_stmt.where(where)
        data_stmt = data_stmt.where(where)
    data_stmt = (
        data_stmt.order_by(*build_sort(query.sort_by, query.sort_order))
        .limit(limit)
        .offset(offset)
    )

    with store_errors(session):
        total = session.scalar(count_stmt) or 0
        users = session.scalars(data_stmt).all()

    return PaginatedUsersResponse(
        data=[UserResponse.model_validate(u) for u in users],
        meta=build_pagination_meta(total, page, limit),
    )

"""ORM model for application users (auth, lockout and RBAC)."""

import enum
import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, Uuid, func

from app.models.base import Base, utc_now


class UserRole(str, enum.Enum):
    """Closed set of roles a user can hold."""

    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


class User(Base):
    """
    User account for JWT authentication and role-based access control.

    email and username are stored lower-cased; uniqueness is enforced by the
    unique indexes. login_attempts and lock_until move together: the lock is
    set when attempts reach the configured maximum and both are cleared on a
    successful login or once the lock has expired. password_reset_token and
    password_reset_expires are likewise always set or cleared together.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("login_attempts >= 0", name="ck_users_login_attempts_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)
    username = Column(String(100), nullable=False, unique=True, index=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=UserRole.USER.value)
    profile_picture = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    password_reset_token = Column(String(255), nullable=True, index=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    login_attempts = Column(Integer, nullable=False, default=0)
    lock_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

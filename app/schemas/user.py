"""Request/response schemas for user management endpoints."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.core.security import (
    NAME_MAX_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
)
from app.models.user import UserRole


def _lower(v: str | None) -> str | None:
    return v.strip().lower() if isinstance(v, str) else v


def _strip(v: str | None) -> str | None:
    return v.strip() if isinstance(v, str) else v


class UserRegistration(BaseModel):
    """Fields a new account is created from."""

    email: EmailStr = Field(..., description="Email address (stored lower-cased)")
    username: str = Field(..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN)
    first_name: str = Field(..., min_length=1, max_length=NAME_MAX_LEN)
    last_name: str = Field(..., min_length=1, max_length=NAME_MAX_LEN)
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    profile_picture: str | None = Field(default=None, max_length=500)

    @field_validator("email", "username", mode="before")
    @classmethod
    def normalize_identifiers(cls, v: str | None) -> str | None:
        return _lower(v)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v: str | None) -> str | None:
        return _strip(v)


class UserCreate(UserRegistration):
    """Account creation by an administrator or the bootstrap CLI."""

    role: UserRole = UserRole.USER


class UserUpdate(BaseModel):
    """Admin update; only fields that are set are applied."""

    email: EmailStr | None = None
    username: str | None = Field(
        default=None, min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN
    )
    first_name: str | None = Field(default=None, min_length=1, max_length=NAME_MAX_LEN)
    last_name: str | None = Field(default=None, min_length=1, max_length=NAME_MAX_LEN)
    role: UserRole | None = None
    profile_picture: str | None = Field(default=None, max_length=500)
    is_active: bool | None = None
    is_email_verified: bool | None = None

    @field_validator("email", "username", mode="before")
    @classmethod
    def normalize_identifiers(cls, v: str | None) -> str | None:
        return _lower(v)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v: str | None) -> str | None:
        return _strip(v)


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own account."""

    first_name: str | None = Field(default=None, min_length=1, max_length=NAME_MAX_LEN)
    last_name: str | None = Field(default=None, min_length=1, max_length=NAME_MAX_LEN)
    profile_picture: str | None = Field(default=None, max_length=500)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v: str | None) -> str | None:
        return _strip(v)


class RoleUpdate(BaseModel):
    role: UserRole


class UserResponse(BaseModel):
    """User as returned by the API (no password hash, reset token or lock state)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    username: str
    first_name: str
    last_name: str
    full_name: str
    role: UserRole
    profile_picture: str | None = None
    is_active: bool
    is_email_verified: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class UserSortField(str, Enum):
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    EMAIL = "email"
    USERNAME = "username"
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    LAST_LOGIN_AT = "lastLoginAt"


class UserQuery(BaseModel):
    """Pagination, filters and sort for the user list."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    search: str | None = Field(default=None, max_length=255)
    role: UserRole | None = None
    is_active: bool | None = None
    is_email_verified: bool | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    sort_by: UserSortField = UserSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC


class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class PaginatedUsersResponse(BaseModel):
    data: list[UserResponse]
    meta: PaginationMeta


class MessageResponse(BaseModel):
    message: str

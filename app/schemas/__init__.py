"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AccessTokenPayload,
    AuthResponse,
    ChangePasswordRequest,
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenPair,
)
from app.schemas.health import HealthResponse
from app.schemas.user import (
    MessageResponse,
    PaginatedUsersResponse,
    PaginationMeta,
    ProfileUpdate,
    RoleUpdate,
    SortOrder,
    UserCreate,
    UserQuery,
    UserRegistration,
    UserResponse,
    UserSortField,
    UserUpdate,
)

__all__ = [
    "AccessTokenPayload",
    "AuthResponse",
    "ChangePasswordRequest",
    "CurrentUser",
    "ForgotPasswordRequest",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "PaginatedUsersResponse",
    "PaginationMeta",
    "ProfileUpdate",
    "RefreshRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "RoleUpdate",
    "SortOrder",
    "TokenPair",
    "UserCreate",
    "UserQuery",
    "UserRegistration",
    "UserResponse",
    "UserSortField",
    "UserUpdate",
]

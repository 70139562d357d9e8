"""Auth endpoints and auth dependencies (get_current_user, require_roles)."""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.security import has_role
from app.models.user import UserRole
from app.schemas.auth import (
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
from app.schemas.user import MessageResponse, UserResponse
from app.services import auth as auth_service
from app.services.accounts import get_user_by_id
from app.services.errors import ForbiddenError, InvalidTokenError
from app.services.password_reset import (
    RESET_COMPLETED_MESSAGE,
    RESET_REQUESTED_MESSAGE,
    complete_password_reset,
    request_password_reset,
)
from app.services.tokens import refresh_tokens, verify_access_token

router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """Dependency: require a valid Bearer access token for an existing, active user. Raises 401 otherwise."""
    if credentials is None:
        raise InvalidTokenError("Not authenticated")
    payload = verify_access_token(credentials.credentials, settings)
    user = get_user_by_id(db, payload.sub)
    if user is None or not user.is_active:
        raise InvalidTokenError("Invalid token or user not found")
    return CurrentUser.model_validate(user)


def require_roles(*roles: UserRole) -> Callable[..., CurrentUser]:
    """Dependency factory: require the current user to hold one of `roles`. Raises 403 otherwise."""

    def _require(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if not has_role(roles, current_user.role):
            raise ForbiddenError()
        return current_user

    return _require


require_admin = require_roles(UserRole.ADMIN)
require_staff = require_roles(UserRole.ADMIN, UserRole.MODERATOR)


def _auth_response(result: auth_service.AuthResult) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(result.user),
        **result.tokens.model_dump(),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthResponse:
    """Create a user account and return it with access and refresh tokens."""
    return _auth_response(auth_service.register(db, settings, body))


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthResponse:
    """
    Authenticate with email and password; returns access and refresh tokens.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    return _auth_response(auth_service.login(db, settings, body.email, body.password))


@router.post("/refresh", response_model=TokenPair)
def refresh(
    body: RefreshRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenPair:
    """Exchange a refresh token for a new access/refresh token pair."""
    return refresh_tokens(db, settings, body.refresh_token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    _user: Annotated[CurrentUser, Depends(get_current_user)],
) -> MessageResponse:
    """Stateless logout: nothing is revoked server-side, the client drops its tokens."""
    return MessageResponse(message=auth_service.logout())


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageResponse:
    """Start a password reset. The response is the same whether or not the email is registered."""
    request_password_reset(db, settings, body.email)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageResponse:
    """Set a new password using a reset token from forgot-password."""
    complete_password_reset(db, settings, body.token, body.new_password)
    return MessageResponse(message=RESET_COMPLETED_MESSAGE)


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageResponse:
    message = auth_service.change_password(
        db,
        settings,
        current_user.id,
        body.current_password,
        body.new_password,
        body.confirm_password,
    )
    return MessageResponse(message=message)

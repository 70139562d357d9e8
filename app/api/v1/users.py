"""User management endpoints: own profile for any user, administration for staff roles."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import EmailStr
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, require_admin, require_staff
from app.core.database import get_db
from app.schemas.auth import CurrentUser
from app.schemas.user import (
    MessageResponse,
    PaginatedUsersResponse,
    ProfileUpdate,
    RoleUpdate,
    UserQuery,
    UserResponse,
    UserUpdate,
)
from app.services import users as users_service
from app.services.errors import NotFoundError

router = APIRouter()


@router.get("", response_model=PaginatedUsersResponse)
def list_users(
    query: Annotated[UserQuery, Query()],
    _staff: Annotated[CurrentUser, Depends(require_staff)],
    db: Annotated[Session, Depends(get_db)],
) -> PaginatedUsersResponse:
    """Paginated, filtered and sorted user list (admin, moderator)."""
    return users_service.list_users(db, query)


@router.get("/profile", response_model=UserResponse)
def get_profile(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    return UserResponse.model_validate(users_service.get_user(db, current_user.id))


@router.patch("/profile", response_model=UserResponse)
def update_profile(
    body: ProfileUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    """Update own first/last name and profile picture."""
    user = users_service.update_user(db, current_user.id, body.model_dump(exclude_unset=True))
    return UserResponse.model_validate(user)


@router.delete("/profile", response_model=MessageResponse)
def delete_profile(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Deactivate own account (soft delete)."""
    users_service.soft_delete_user(db, current_user.id)
    return MessageResponse(message="Account deactivated successfully")


@router.get("/search/by-email", response_model=UserResponse)
def find_by_email(
    email: Annotated[EmailStr, Query()],
    _staff: Annotated[CurrentUser, Depends(require_staff)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    user = users_service.find_by_email(db, email)
    if user is None:
        raise NotFoundError()
    return UserResponse.model_validate(user)


@router.get("/search/by-username", response_model=UserResponse)
def find_by_username(
    username: Annotated[str, Query(min_length=1, max_length=100)],
    _staff: Annotated[CurrentUser, Depends(require_staff)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    user = users_service.find_by_username(db, username)
    if user is None:
        raise NotFoundError()
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: uuid.UUID,
    _staff: Annotated[CurrentUser, Depends(require_staff)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    return UserResponse.model_validate(users_service.get_user(db, user_id))


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    user = users_service.update_user(db, user_id, body.model_dump(exclude_unset=True))
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: uuid.UUID,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Permanently delete a user."""
    users_service.delete_user(db, user_id)
    return MessageResponse(message="User deleted successfully")


@router.patch("/{user_id}/activate", response_model=UserResponse)
def activate_user(
    user_id: uuid.UUID,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    return UserResponse.model_validate(users_service.activate_user(db, user_id))


@router.patch("/{user_id}/deactivate", response_model=UserResponse)
def deactivate_user(
    user_id: uuid.UUID,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    return UserResponse.model_validate(users_service.deactivate_user(db, user_id))


@router.patch("/{user_id}/verify-email", response_model=UserResponse)
def verify_email(
    user_id: uuid.UUID,
    _staff: Annotated[CurrentUser, Depends(require_staff)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    return UserResponse.model_validate(users_service.verify_email(db, user_id))


@router.patch("/{user_id}/role", response_model=UserResponse)
def update_role(
    user_id: uuid.UUID,
    body: RoleUpdate,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    return UserResponse.model_validate(users_service.update_role(db, user_id, body.role))

"""Account administration endpoints"""
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query

from user_service.api.deps import get_current_claims, get_user_store, require_admin, valid_user_id
from user_service.errors import BadRequestError, ForbiddenError, NotFoundError
from user_service.models.user import User, UserRole
from user_service.schemas.user import (
    MessageResponse,
    Pagination,
    ProfileUpdate,
    UserData,
    UserEnvelope,
    UserListData,
    UserListEnvelope,
    UserResponse,
)
from user_service.services.email import EmailService, get_mailer
from user_service.services.user_store import UserStore
from user_service.utils.jwt_utils import TokenClaims
from user_service.utils.logger import logger

router = APIRouter(prefix="/users", tags=["users"])

MAX_LIMIT = 100


def _list_envelope(users: list, total: int, page: int, limit: int) -> UserListEnvelope:
    return UserListEnvelope(
        data=UserListData(
            users=[UserResponse.model_validate(u) for u in users],
            pagination=Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit)),
        )
    )


def _get_or_404(users: UserStore, user_id: str) -> User:
    user = users.get_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


@router.get("", response_model=UserListEnvelope)
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_LIMIT),
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    users: UserStore = Depends(get_user_store),
    _: TokenClaims = Depends(require_admin),
):
    """
    List accounts, newest first (Admin only)

    Query parameters:
    - page / limit: pagination (limit 1..100)
    - role: filter by role
    - search: case-insensitive match on first name, last name or email (ignores role)
    """
    if search:
        rows, total = users.search_users(search, page, limit)
    else:
        rows, total = users.list_users(page, limit, role)
    return _list_envelope(rows, total, page, limit)


@router.get("/search", response_model=UserListEnvelope)
def search_users(
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_LIMIT),
    users: UserStore = Depends(get_user_store),
    _: TokenClaims = Depends(require_admin),
):
    rows, total = users.search_users(q, page, limit)
    return _list_envelope(rows, total, page, limit)


@router.get("/{user_id}", response_model=UserEnvelope)
def get_user(
    user_id: str = Depends(valid_user_id),
    users: UserStore = Depends(get_user_store),
    _: TokenClaims = Depends(require_admin),
):
    user = _get_or_404(users, user_id)
    return UserEnvelope(data=UserData(user=UserResponse.model_validate(user)))


@router.put("/{user_id}", response_model=UserEnvelope)
def update_user(
    payload: ProfileUpdate,
    user_id: str = Depends(valid_user_id),
    users: UserStore = Depends(get_user_store),
    claims: TokenClaims = Depends(get_current_claims),
):
    """Update an account's profile fields (the account owner or an admin)"""
    if claims.user_id != user_id and claims.role != UserRole.ADMIN.value:
        raise ForbiddenError("You can only update your own profile")

    user = _get_or_404(users, user_id)
    user = users.update_user(user, **payload.model_dump(exclude_unset=True))
    logger.info(f"Updated user: {user_id}", extra={"user_id": user_id, "action": "update_user"})

    return UserEnvelope(message="User updated successfully", data=UserData(user=UserResponse.model_validate(user)))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str = Depends(valid_user_id),
    users: UserStore = Depends(get_user_store),
    _: TokenClaims = Depends(require_admin),
):
    """Permanently delete an account (Admin only)"""
    user = _get_or_404(users, user_id)
    users.delete_user(user)

    logger.info(f"Deleted user: {user_id}", extra={"user_id": user_id, "action": "delete_user"})
    return MessageResponse(message="User deleted successfully")


@router.patch("/{user_id}/activate", response_model=UserEnvelope)
def activate_user(
    user_id: str = Depends(valid_user_id),
    users: UserStore = Depends(get_user_store),
    mailer: EmailService = Depends(get_mailer),
    _: TokenClaims = Depends(require_admin),
):
    user = _get_or_404(users, user_id)
    if user.is_active:
        raise BadRequestError("User is already active")

    user = users.update_user(user, is_active=True)
    mailer.send_account_reactivated_email(user.email, user.first_name)

    logger.info(f"Activated user: {user_id}", extra={"user_id": user_id, "action": "activate_user"})
    return UserEnvelope(message="User activated successfully", data=UserData(user=UserResponse.model_validate(user)))


@router.patch("/{user_id}/deactivate", response_model=UserEnvelope)
def deactivate_user(
    user_id: str = Depends(valid_user_id),
    users: UserStore = Depends(get_user_store),
    mailer: EmailService = Depends(get_mailer),
    _: TokenClaims = Depends(require_admin),
):
    user = _get_or_404(users, user_id)
    if not user.is_active:
        raise BadRequestError("User is already deactivated")

    user = users.update_user(user, is_active=False)
    mailer.send_account_deactivated_email(user.email, user.first_name)

    logger.info(f"Deactivated user: {user_id}", extra={"user_id": user_id, "action": "deactivate_user"})
    return UserEnvelope(message="User deactivated successfully", data=UserData(user=UserResponse.model_validate(user)))

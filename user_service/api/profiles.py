"""Profile endpoints for the authenticated account and public profile lookups"""
from fastapi import APIRouter, Depends

from user_service.api.deps import get_current_claims, get_user_store, valid_user_id
from user_service.errors import NotFoundError
from user_service.schemas.user import (
    ProfileUpdate,
    PublicProfile,
    PublicProfileData,
    PublicProfileEnvelope,
    UserData,
    UserEnvelope,
    UserResponse,
)
from user_service.services.user_store import UserStore
from user_service.utils.jwt_utils import TokenClaims
from user_service.utils.logger import logger

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=UserEnvelope)
def get_my_profile(
    claims: TokenClaims = Depends(get_current_claims),
    users: UserStore = Depends(get_user_store),
) -> UserEnvelope:
    user = users.get_by_id(claims.user_id)
    if not user:
        raise NotFoundError("User not found")
    return UserEnvelope(data=UserData(user=UserResponse.model_validate(user)))


@router.put("/me", response_model=UserEnvelope)
def update_my_profile(
    payload: ProfileUpdate,
    claims: TokenClaims = Depends(get_current_claims),
    users: UserStore = Depends(get_user_store),
) -> UserEnvelope:
    """Update name, phone or profile image of the calling account"""
    user = users.get_by_id(claims.user_id)
    if not user:
        raise NotFoundError("User not found")

    user = users.update_user(user, **payload.model_dump(exclude_unset=True))
    logger.info("Profile updated", extra={"user_id": user.id, "action": "update_profile"})

    return UserEnvelope(
        message="Profile updated successfully",
        data=UserData(user=UserResponse.model_validate(user)),
    )


@router.get("/{user_id}", response_model=PublicProfileEnvelope)
def get_profile_by_id(
    user_id: str = Depends(valid_user_id),
    users: UserStore = Depends(get_user_store),
) -> PublicProfileEnvelope:
    """Public view of any account: no email, phone or account flags beyond verification"""
    user = users.get_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return PublicProfileEnvelope(data=PublicProfileData(user=PublicProfile.model_validate(user)))

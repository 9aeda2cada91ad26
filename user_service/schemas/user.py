"""User schemas"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from user_service.models.user import UserRole


class CamelModel(BaseModel):
    """JSON uses camelCase; attributes and columns stay snake_case"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class UserResponse(CamelModel):
    """Account fields safe to return to the account owner or an admin"""

    id: str
    email: str
    first_name: str
    last_name: str
    phone: str
    role: UserRole
    profile_image: Optional[str] = None
    is_verified: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PublicProfile(CamelModel):
    """Reduced view of another user's profile"""

    id: str
    first_name: str
    last_name: str
    profile_image: Optional[str] = None
    role: UserRole
    is_verified: bool
    created_at: datetime


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=1, max_length=32)
    profile_image: Optional[str] = Field(None, max_length=500)

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> str:
        # Only reached when the field is sent; these columns are NOT NULL
        if value is None:
            raise ValueError("must not be blank")
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("profile_image")
    @classmethod
    def check_url(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.startswith(("http://", "https://")):
            raise ValueError("profileImage must be an http(s) URL")
        return value


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class UserData(BaseModel):
    user: UserResponse


class UserEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: UserData


class PublicProfileData(BaseModel):
    user: PublicProfile


class PublicProfileEnvelope(BaseModel):
    success: bool = True
    data: PublicProfileData


class UserListData(BaseModel):
    users: List[UserResponse]
    pagination: Pagination


class UserListEnvelope(BaseModel):
    success: bool = True
    data: UserListData


class MessageResponse(BaseModel):
    success: bool = True
    message: str

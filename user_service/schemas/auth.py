"""Authentication request/response schemas"""
from pydantic import BaseModel, EmailStr, Field, field_validator

from user_service.models.user import UserRole
from user_service.schemas.user import CamelModel, UserResponse


def _normalize_email(value: str) -> str:
    return value.strip().lower()


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=32)
    role: UserRole

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("role")
    @classmethod
    def reject_admin(cls, value: UserRole) -> UserRole:
        if value == UserRole.ADMIN:
            raise ValueError("role must be one of: customer, driver, laundromat, independent_washer, dry_cleaner")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _normalize_email(value)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class EmailRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _normalize_email(value)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=128)


class TokenRequest(BaseModel):
    token: str = Field(..., min_length=1)


class Tokens(CamelModel):
    access_token: str
    refresh_token: str


class AuthData(BaseModel):
    user: UserResponse
    tokens: Tokens


class AuthEnvelope(BaseModel):
    success: bool = True
    message: str
    data: AuthData


class TokensData(BaseModel):
    tokens: Tokens


class TokensEnvelope(BaseModel):
    success: bool = True
    message: str
    data: TokensData

"""Pydantic schemas for request/response validation"""
from user_service.schemas.auth import (
    AuthEnvelope,
    EmailRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenRequest,
    TokensEnvelope,
)
from user_service.schemas.user import (
    MessageResponse,
    ProfileUpdate,
    PublicProfileEnvelope,
    UserEnvelope,
    UserListEnvelope,
    UserResponse,
)

__all__ = [
    "AuthEnvelope",
    "EmailRequest",
    "LoginRequest",
    "RefreshRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "TokenRequest",
    "TokensEnvelope",
    "MessageResponse",
    "ProfileUpdate",
    "PublicProfileEnvelope",
    "UserEnvelope",
    "UserListEnvelope",
    "UserResponse",
]

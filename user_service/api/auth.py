"""Registration, login, token rotation, password reset and email verification endpoints"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, status

from user_service.api.deps import get_auth_manager, get_bearer_token, get_optional_claims
from user_service.errors import UnauthorizedError
from user_service.middleware.monitoring import record_auth_event, record_auth_failure
from user_service.middleware.rate_limit import get_rate_limit, limiter
from user_service.schemas.auth import (
    AuthData,
    AuthEnvelope,
    EmailRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenRequest,
    Tokens,
    TokensData,
    TokensEnvelope,
)
from user_service.schemas.user import MessageResponse, UserResponse
from user_service.services.auth_manager import AuthManager
from user_service.utils.jwt_utils import TokenClaims, TokenPair

router = APIRouter(prefix="/auth", tags=["authentication"])

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


def _tokens(pair: TokenPair) -> Tokens:
    return Tokens(access_token=pair.access_token, refresh_token=pair.refresh_token)


# ---------------------------------------------------------------------------
# Registration and login
# ---------------------------------------------------------------------------

@router.post("/register", response_model=AuthEnvelope, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("register"))
def register(
    request: Request,
    payload: RegisterRequest,
    auth: AuthManager = Depends(get_auth_manager),
) -> AuthEnvelope:
    """Create an unverified account, send a verification email and return a token pair."""
    user, pair = auth.register(
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        role=payload.role,
    )
    record_auth_event("register")

    return AuthEnvelope(
        message="User registered successfully. Please check your email to verify your account.",
        data=AuthData(user=UserResponse.model_validate(user), tokens=_tokens(pair)),
    )


@router.post("/login", response_model=AuthEnvelope)
@limiter.limit(get_rate_limit("login"))
def login(
    request: Request,
    payload: LoginRequest,
    auth: AuthManager = Depends(get_auth_manager),
) -> AuthEnvelope:
    """Exchange email and password for a fresh token pair.

    Unknown email, deactivated account and wrong password all produce the same
    401 response.
    """
    try:
        user, pair = auth.login(payload.email, payload.password)
    except UnauthorizedError:
        record_auth_failure("login")
        raise
    record_auth_event("login")

    return AuthEnvelope(
        message="Login successful",
        data=AuthData(user=UserResponse.model_validate(user), tokens=_tokens(pair)),
    )


# ---------------------------------------------------------------------------
# Session bookkeeping
# ---------------------------------------------------------------------------

@router.post("/refresh", response_model=TokensEnvelope)
@limiter.limit(get_rate_limit("refresh"))
def refresh(
    request: Request,
    payload: RefreshRequest,
    auth: AuthManager = Depends(get_auth_manager),
) -> TokensEnvelope:
    """Rotate a refresh token. The presented token must be the account's current one."""
    try:
        pair = auth.refresh(payload.refresh_token)
    except UnauthorizedError:
        record_auth_failure("refresh")
        raise
    record_auth_event("refresh")

    return TokensEnvelope(message="Token refreshed successfully", data=TokensData(tokens=_tokens(pair)))


@router.post("/logout", response_model=MessageResponse)
def logout(
    token: Optional[str] = Depends(get_bearer_token),
    claims: Optional[TokenClaims] = Depends(get_optional_claims),
    auth: AuthManager = Depends(get_auth_manager),
) -> MessageResponse:
    """Revoke the presented access token and drop the account's refresh token.

    Both steps are best-effort: a missing or unusable token is not an error.
    """
    auth.logout(access_token=token, user_id=claims.user_id if claims else None)
    record_auth_event("logout")
    return MessageResponse(message="Logout successful")


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(get_rate_limit("password_reset"))
def forgot_password(
    request: Request,
    payload: EmailRequest,
    auth: AuthManager = Depends(get_auth_manager),
) -> MessageResponse:
    """Email a reset link. The response is identical whether or not the account exists."""
    auth.forgot_password(payload.email)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit(get_rate_limit("password_reset"))
def reset_password(
    request: Request,
    payload: ResetPasswordRequest,
    auth: AuthManager = Depends(get_auth_manager),
) -> MessageResponse:
    auth.reset_password(payload.token, payload.password)
    record_auth_event("reset_password")
    return MessageResponse(message="Password reset successful")


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------

@router.post("/verify-email", response_model=MessageResponse)
@limiter.limit(get_rate_limit("verification"))
def verify_email(
    request: Request,
    payload: TokenRequest,
    auth: AuthManager = Depends(get_auth_manager),
) -> MessageResponse:
    auth.verify_email(payload.token)
    record_auth_event("verify_email")
    return MessageResponse(message="Email verified successfully")


@router.post("/resend-verification", response_model=MessageResponse)
@limiter.limit(get_rate_limit("verification"))
def resend_verification(
    request: Request,
    payload: EmailRequest,
    auth: AuthManager = Depends(get_auth_manager),
) -> MessageResponse:
    auth.resend_verification(payload.email)
    return MessageResponse(message="Verification email sent successfully")

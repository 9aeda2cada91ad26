"""Account lifecycle: registration, login, token rotation and one-time tokens.

The manager is the only component that touches both the relational store and
the key-value store. Writes across the two are not atomic: a crash between
steps can leave, for example, a verification token cached with no email sent.
"""
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Optional, Tuple

from user_service.cache import KeyValueStore, blacklist_key, refresh_key, verification_key
from user_service.config import Settings
from user_service.errors import BadRequestError, ConflictError, NotFoundError, UnauthorizedError
from user_service.models.user import User, UserRole
from user_service.services.email import EmailService
from user_service.services.user_store import UserStore
from user_service.utils.auth import generate_token, hash_password, hash_token, verify_password
from user_service.utils.jwt_utils import (
    ACCESS,
    REFRESH,
    TokenClaims,
    TokenExpiredError,
    TokenError,
    TokenPair,
    create_token_pair,
    decode_token,
)
from user_service.utils.logger import logger

# One message for every login failure so callers cannot tell which check failed
INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid refresh token"


@lru_cache(maxsize=None)
def _placeholder_hash(rounds: int) -> str:
    """Throwaway bcrypt hash compared against when no account matches the email"""
    return hash_password(generate_token(), rounds)


class AuthManager:
    """Session and account-state orchestration over injected stores."""

    def __init__(self, users: UserStore, cache: KeyValueStore, mailer: EmailService, settings: Settings):
        self.users = users
        self.cache = cache
        self.mailer = mailer
        self.settings = settings

    # ------------------------------------------------------------------
    # Token issuance
    # ------------------------------------------------------------------

    def issue_tokens(self, user: User) -> TokenPair:
        """Mint a pair and make its refresh token the account's only valid one"""
        role = user.role.value if isinstance(user.role, UserRole) else str(user.role)
        pair = create_token_pair(user.id, user.email, role)
        self.cache.set(refresh_key(user.id), pair.refresh_token, self.settings.REFRESH_TOKEN_EXPIRE_SECONDS)
        return pair

    def authenticate(self, access_token: str) -> TokenClaims:
        """Resolve a bearer access token, rejecting revoked ones before checking the signature"""
        if self.cache.get(blacklist_key(access_token)):
            raise UnauthorizedError("Token has been revoked.")
        try:
            return decode_token(access_token, ACCESS)
        except TokenExpiredError:
            raise UnauthorizedError("Token expired.")
        except TokenError:
            raise UnauthorizedError("Invalid token.")

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    def register(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str,
        role: UserRole,
    ) -> Tuple[User, TokenPair]:
        if self.users.get_by_email(email):
            raise ConflictError("User already exists with this email")

        user = self.users.create_user(
            email=email,
            password=hash_password(password, self.settings.BCRYPT_ROUNDS),
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=role,
            is_verified=False,
            is_active=True,
        )
        logger.info(f"Registered user {user.id}", extra={"user_id": user.id, "action": "register"})

        self._send_verification(user)
        return user, self.issue_tokens(user)

    def login(self, email: str, password: str) -> Tuple[User, TokenPair]:
        user = self.users.get_by_email(email)
        password_hash = user.password if user else _placeholder_hash(self.settings.BCRYPT_ROUNDS)
        password_ok = verify_password(password, password_hash)
        if not user or not password_ok or not user.is_active:
            raise UnauthorizedError(INVALID_CREDENTIALS)

        logger.info(f"User {user.id} logged in", extra={"user_id": user.id, "action": "login"})
        return user, self.issue_tokens(user)

    # ------------------------------------------------------------------
    # Session bookkeeping
    # ------------------------------------------------------------------

    def refresh(self, refresh_token: str) -> TokenPair:
        try:
            claims = decode_token(refresh_token, REFRESH)
        except TokenError:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        # The stored value is the only reuse detector: a rotated-out token no longer matches
        stored = self.cache.get(refresh_key(claims.user_id))
        if not stored or stored != refresh_token:
            logger.warning(
                "Rejected refresh token that does not match the stored value",
                extra={"user_id": claims.user_id, "action": "refresh"},
            )
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        user = self.users.get_by_id(claims.user_id)
        if not user or not user.is_active:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        return self.issue_tokens(user)

    def logout(self, access_token: Optional[str] = None, user_id: Optional[str] = None) -> None:
        if access_token:
            self.cache.set(blacklist_key(access_token), "true", self.settings.BLACKLIST_TTL_SECONDS)
        if user_id:
            self.cache.delete(refresh_key(user_id))
        logger.info("User logged out", extra={"user_id": user_id, "action": "logout"})

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def forgot_password(self, email: str) -> None:
        user = self.users.get_by_email(email)
        if not user:
            return

        token = generate_token()
        self.users.update_user(
            user,
            reset_password_token=hash_token(token),
            reset_password_expires=datetime.utcnow() + timedelta(seconds=self.settings.RESET_TOKEN_EXPIRE_SECONDS),
        )
        self.mailer.send_password_reset_email(user.email, token)
        logger.info("Password reset requested", extra={"user_id": user.id, "action": "forgot_password"})

    def reset_password(self, token: str, new_password: str) -> None:
        user = self.users.get_by_reset_token(hash_token(token))
        if not user:
            raise BadRequestError("Invalid or expired reset token")

        if user.reset_password_expires is None or user.reset_password_expires < datetime.utcnow():
            raise BadRequestError("Reset token has expired")

        self.users.update_user(
            user,
            password=hash_password(new_password, self.settings.BCRYPT_ROUNDS),
            reset_password_token=None,
            reset_password_expires=None,
        )
        logger.info("Password reset completed", extra={"user_id": user.id, "action": "reset_password"})

    # ------------------------------------------------------------------
    # Email verification
    # ------------------------------------------------------------------

    def _send_verification(self, user: User) -> None:
        token = generate_token()
        self.cache.set(verification_key(token), user.id, self.settings.VERIFICATION_TOKEN_TTL_SECONDS)
        self.mailer.send_verification_email(user.email, token)

    def verify_email(self, token: str) -> User:
        user_id = self.cache.get(verification_key(token))
        user = self.users.get_by_id(user_id) if user_id else None
        if not user:
            raise BadRequestError("Invalid or expired verification token")

        user = self.users.update_user(user, is_verified=True)
        self.cache.delete(verification_key(token))
        logger.info("Email verified", extra={"user_id": user.id, "action": "verify_email"})

        self.mailer.send_welcome_email(user.email, user.first_name)
        return user

    def resend_verification(self, email: str) -> None:
        user = self.users.get_by_email(email)
        if not user:
            raise NotFoundError("User not found")
        if user.is_verified:
            raise BadRequestError("Email is already verified")

        # Earlier tokens for this account stay valid until their own TTL
        self._send_verification(user)

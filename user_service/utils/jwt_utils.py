"""JWT utilities: signing and verification of access and refresh tokens.

Access and refresh tokens share one claim shape but are signed with distinct
secrets, so a leaked refresh secret cannot forge access tokens and vice versa.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, NamedTuple

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from user_service.config import settings
from user_service.utils.logger import logger

ACCESS = "access"
REFRESH = "refresh"


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of an access or refresh token."""
    user_id: str
    email: str
    role: str
    token_type: str
    jti: str
    expires_at: datetime


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str


class TokenError(Exception):
    """A bearer string failed verification."""


class TokenExpiredError(TokenError):
    pass


class TokenInvalidError(TokenError):
    pass


def _secret_for(token_type: str) -> str:
    if token_type == ACCESS:
        return settings.JWT_ACCESS_SECRET
    if token_type == REFRESH:
        return settings.JWT_REFRESH_SECRET
    raise ValueError(f"Unknown token type: {token_type}")


def _lifetime_for(token_type: str) -> int:
    if token_type == ACCESS:
        return settings.ACCESS_TOKEN_EXPIRE_SECONDS
    return settings.REFRESH_TOKEN_EXPIRE_SECONDS


# ---------------------------------------------------------------------------
# Token creation
# ---------------------------------------------------------------------------

def create_token(user_id: str, email: str, role: str, token_type: str) -> str:
    """Sign and return a JWT.

    Args:
        user_id:    Value for the 'sub' claim.
        email:      Account email at issue time.
        role:       Account role at issue time.
        token_type: 'access' or 'refresh'; selects secret and lifetime.

    Returns:
        Signed JWT string.
    """
    now = int(datetime.now(timezone.utc).timestamp())

    payload: Dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "role": role,
        "type": token_type,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + _lifetime_for(token_type),
    }

    return jwt.encode(payload, _secret_for(token_type), algorithm=settings.JWT_ALGORITHM)


def create_token_pair(user_id: str, email: str, role: str) -> TokenPair:
    return TokenPair(
        access_token=create_token(user_id, email, role, ACCESS),
        refresh_token=create_token(user_id, email, role, REFRESH),
    )


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------

def decode_token(token: str, token_type: str) -> TokenClaims:
    """Verify a JWT and return its claims.

    Raises:
        TokenExpiredError: signature valid but 'exp' has passed.
        TokenInvalidError: bad signature, malformed token, missing claims
                           or a token of the other type.
    """
    try:
        payload = jwt.decode(token, _secret_for(token_type), algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise TokenExpiredError("Token expired")
    except JWTError as exc:
        logger.debug(f"JWT decode failed: {exc}")
        raise TokenInvalidError("Invalid token")

    if payload.get("type") != token_type:
        raise TokenInvalidError("Wrong token type")

    try:
        return TokenClaims(
            user_id=payload["sub"],
            email=payload["email"],
            role=payload["role"],
            token_type=payload["type"],
            jti=payload["jti"],
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError):
        raise TokenInvalidError("Token is missing required claims")

"""API dependencies for authentication and authorization.

Protected routes expect ``Authorization: Bearer <access-token>``. The token
is checked against the blacklist first and then verified by signature and
expiry; no database lookup happens on the authentication path.

Use :func:`get_current_claims` for any authenticated caller and
:func:`require_role` for role-gated endpoints.
"""
import uuid
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from user_service.cache import KeyValueStore, get_cache
from user_service.config import settings
from user_service.database import get_db
from user_service.errors import BadRequestError, ForbiddenError, UnauthorizedError
from user_service.middleware.monitoring import record_auth_failure
from user_service.models.user import UserRole
from user_service.services.auth_manager import AuthManager
from user_service.services.email import EmailService, get_mailer
from user_service.services.user_store import UserStore
from user_service.utils.jwt_utils import TokenClaims

_bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------

def get_user_store(db: Session = Depends(get_db)) -> UserStore:
    return UserStore(db)


def get_auth_manager(
    users: UserStore = Depends(get_user_store),
    cache: KeyValueStore = Depends(get_cache),
    mailer: EmailService = Depends(get_mailer),
) -> AuthManager:
    return AuthManager(users=users, cache=cache, mailer=mailer, settings=settings)


# ---------------------------------------------------------------------------
# Bearer authentication
# ---------------------------------------------------------------------------

def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_current_claims(
    token: Optional[str] = Depends(get_bearer_token),
    auth: AuthManager = Depends(get_auth_manager),
) -> TokenClaims:
    """Require a valid, non-revoked access token."""
    if not token:
        record_auth_failure("missing_token")
        raise UnauthorizedError("Access denied. No token provided.")
    try:
        return auth.authenticate(token)
    except UnauthorizedError:
        record_auth_failure("bearer")
        raise


def get_optional_claims(
    token: Optional[str] = Depends(get_bearer_token),
    auth: AuthManager = Depends(get_auth_manager),
) -> Optional[TokenClaims]:
    """Resolve the caller if a usable token is present, otherwise None."""
    if not token:
        return None
    try:
        return auth.authenticate(token)
    except UnauthorizedError:
        return None


# ---------------------------------------------------------------------------
# require_role factory: role-gated dependency
# ---------------------------------------------------------------------------

def require_role(*roles: UserRole) -> Callable:
    """Return a FastAPI dependency that only admits the given roles.

    Usage::

        @router.get("/users")
        def endpoint(claims: TokenClaims = Depends(require_role(UserRole.ADMIN))):
            ...
    """
    allowed = {role.value for role in roles}

    def _role_dep(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
        if claims.role not in allowed:
            raise ForbiddenError("Access denied. Insufficient permissions.")
        return claims

    # Give FastAPI a unique name so it doesn't collapse distinct dependencies
    _role_dep.__name__ = f"require_role_{'_'.join(sorted(allowed))}"
    return _role_dep


require_admin = require_role(UserRole.ADMIN)


# ---------------------------------------------------------------------------
# Path parameters
# ---------------------------------------------------------------------------

def valid_user_id(user_id: str) -> str:
    """Reject path ids that are not canonical UUIDs before touching the database."""
    try:
        parsed = uuid.UUID(user_id)
    except ValueError:
        raise BadRequestError("Invalid ID format")
    if str(parsed) != user_id.lower():
        raise BadRequestError("Invalid ID format")
    return user_id.lower()

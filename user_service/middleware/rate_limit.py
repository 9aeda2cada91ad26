"""Rate limiting for credential endpoints"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from user_service.config import settings


def get_identifier(request: Request) -> str:
    """Rate-limit by client address, honouring X-Forwarded-For behind a proxy"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_identifier,
    default_limits=settings.RATE_LIMIT_DEFAULT,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


# Rate limit configurations for different endpoints
RATE_LIMITS = {
    "register": "10/minute",
    "login": "20/minute",
    "refresh": "60/minute",
    "password_reset": "5/minute",
    "verification": "10/minute",
}


def get_rate_limit(endpoint: str) -> str:
    """Get rate limit for specific endpoint"""
    return RATE_LIMITS.get(endpoint, settings.RATE_LIMIT_DEFAULT[0])

"""Middleware modules for production-ready features"""
from user_service.middleware.monitoring import (
    MonitoringMiddleware,
    record_auth_event,
    record_auth_failure,
)
from user_service.middleware.rate_limit import limiter, get_rate_limit

__all__ = [
    "MonitoringMiddleware",
    "record_auth_event",
    "record_auth_failure",
    "limiter",
    "get_rate_limit",
]

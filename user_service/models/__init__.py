"""Database models"""
from user_service.models.user import User, UserRole

__all__ = ["User", "UserRole"]

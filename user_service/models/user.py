"""User model for marketplace accounts"""
import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.types import Enum as SAEnum

from user_service.database import Base


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    DRIVER = "driver"
    LAUNDROMAT = "laundromat"
    INDEPENDENT_WASHER = "independent_washer"
    DRY_CLEANER = "dry_cleaner"
    ADMIN = "admin"


PROVIDER_ROLES = (UserRole.LAUNDROMAT, UserRole.INDEPENDENT_WASHER, UserRole.DRY_CLEANER)


def _uuid_str() -> str:
    return str(uuid.uuid4())


class User(Base):
    """A marketplace account.

    ``is_verified`` and ``is_active`` are independent flags: a freshly
    registered account is active but unverified. ``reset_password_token``
    holds the SHA-256 digest of an outstanding reset token, never the raw value.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)                     # bcrypt hash
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(32), nullable=False)
    role = Column(
        SAEnum(UserRole, name="user_role", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )
    profile_image = Column(String(500), nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    reset_password_token = Column(String(64), nullable=True, index=True)  # SHA-256 hex
    reset_password_expires = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role}>"

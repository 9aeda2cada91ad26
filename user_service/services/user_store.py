"""Data access for the users table"""
from typing import Any, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from user_service.errors import ConflictError
from user_service.models.user import User, UserRole
from user_service.utils.logger import logger

# Columns that callers may change through update_user()
UPDATABLE_FIELDS = {
    "email",
    "password",
    "first_name",
    "last_name",
    "phone",
    "role",
    "profile_image",
    "is_verified",
    "is_active",
    "reset_password_token",
    "reset_password_expires",
}


class UserStore:
    """Point lookups, paginated scans, insert, partial update and delete.

    Each write is committed on its own and rolled back on failure; there is no
    multi-statement business transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Error {action}", exc_info=True, extra={"action": action})
            raise

    def create_user(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str,
        role: UserRole,
        is_verified: bool = False,
        is_active: bool = True,
    ) -> User:
        user = User(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=role,
            is_verified=is_verified,
            is_active=is_active,
        )
        self.db.add(user)
        try:
            self._commit("creating user")
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            if self.get_by_email(email):
                raise ConflictError("User already exists with this email")
            raise
        self.db.refresh(user)
        return user

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def get_by_reset_token(self, token_digest: str) -> Optional[User]:
        return self.db.query(User).filter(User.reset_password_token == token_digest).first()

    def update_user(self, user: User, **changes: Any) -> User:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        for field, value in changes.items():
            setattr(user, field, value)
        self._commit("updating user")
        self.db.refresh(user)
        return user

    def delete_user(self, user: User) -> None:
        self.db.delete(user)
        self._commit("deleting user")

    def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: Optional[UserRole] = None,
    ) -> Tuple[List[User], int]:
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)

        total = query.count()
        users = (
            query.order_by(User.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return users, total

    def search_users(self, term: str, page: int = 1, limit: int = 10) -> Tuple[List[User], int]:
        pattern = f"%{term}%"
        query = self.db.query(User).filter(
            or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern),
            )
        )

        total = query.count()
        users = (
            query.order_by(User.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return users, total

from datetime import datetime

from app.retailflow.core.error_catalog import AppError, ErrorCatalog
from app.retailflow.core.security import create_user_access_token, get_password_hash, verify_password
from app.retailflow.db.models import User
from app.retailflow.repos.users import UserRepository
from app.retailflow.services.rbac import ROLE_WORKER


def validate_password(password: str) -> None:
    if len(password) < 8:
        raise AppError(ErrorCatalog.PASSWORD_TOO_SHORT)
    has_letter = any(char.isalpha() for char in password)
    has_digit = any(char.isdigit() for char in password)
    if not (has_letter and has_digit):
        raise AppError(ErrorCatalog.PASSWORD_COMPLEXITY)


class AuthService:
    def __init__(self, db):
        self.repo = UserRepository(db)

    def register(self, *, username: str, email: str, password: str, full_name: str | None = None) -> User:
        """Self sign-up; new accounts always start as workers."""
        username = username.strip()
        email = email.strip().lower()
        if self.repo.exists_with_username_or_email(username, email):
            raise AppError(ErrorCatalog.USERNAME_TAKEN)
        validate_password(password)
        user = User(
            username=username,
            email=email,
            full_name=full_name,
            hashed_password=get_password_hash(password),
            role=ROLE_WORKER,
            is_active=True,
            must_change_password=False,
            created_at=datetime.utcnow(),
        )
        return self.repo.create(user)

    def login(self, identifier: str, password: str):
        user = self.repo.get_by_username_or_email((identifier or "").strip())
        if user is None or not verify_password(password, user.hashed_password):
            raise AppError(ErrorCatalog.INVALID_CREDENTIALS)
        self._ensure_user_active(user)
        return user, create_user_access_token(user)

    def change_password(self, user, current_password: str, new_password: str):
        if not verify_password(current_password, user.hashed_password):
            raise AppError(ErrorCatalog.CURRENT_PASSWORD_INVALID)
        if new_password == current_password:
            raise AppError(ErrorCatalog.PASSWORD_MUST_DIFFER)
        validate_password(new_password)
        user.hashed_password = get_password_hash(new_password)
        user.must_change_password = False
        user.updated_at = datetime.utcnow()
        updated_user = self.repo.save(user)
        return updated_user, create_user_access_token(updated_user)

    @staticmethod
    def _ensure_user_active(user) -> None:
        if not user.is_active:
            raise AppError(ErrorCatalog.USER_INACTIVE)

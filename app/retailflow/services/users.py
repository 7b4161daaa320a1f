from datetime import datetime

from app.retailflow.core.error_catalog import AppError, ErrorCatalog
from app.retailflow.core.security import get_password_hash
from app.retailflow.db.models import User
from app.retailflow.repos.users import UserRepository
from app.retailflow.services.auth import validate_password
from app.retailflow.services.rbac import ROLES, normalize_role


class UserAdminService:
    def __init__(self, db):
        self.repo = UserRepository(db)

    def get(self, user_id) -> User:
        user = self.repo.get_by_id(user_id)
        if user is None:
            raise AppError(ErrorCatalog.USER_NOT_FOUND, details={"user_id": str(user_id)})
        return user

    def create(
        self,
        *,
        username: str,
        email: str,
        password: str,
        role: str,
        full_name: str | None = None,
    ) -> User:
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
            role=self._role_or_error(role),
            is_active=True,
            must_change_password=True,
            created_at=datetime.utcnow(),
        )
        return self.repo.create(user)

    def update(
        self,
        user_id,
        *,
        role: str | None = None,
        is_active: bool | None = None,
        full_name: str | None = None,
        actor_id: str | None = None,
    ) -> tuple[User, dict]:
        user = self.get(user_id)
        before = {"role": user.role, "is_active": user.is_active, "full_name": user.full_name}
        if role is not None:
            user.role = self._role_or_error(role)
        if is_active is not None:
            # An admin cannot lock themselves out.
            if actor_id is not None and str(user.id) == str(actor_id) and not is_active:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={"message": "cannot deactivate your own account"},
                )
            user.is_active = is_active
        if full_name is not None:
            user.full_name = full_name
        user.updated_at = datetime.utcnow()
        return self.repo.save(user), before

    @staticmethod
    def _role_or_error(role: str) -> str:
        normalized = normalize_role(role)
        if normalized not in ROLES:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "unknown role", "role": role})
        return normalized

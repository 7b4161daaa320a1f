from fastapi import Depends
from jose import JWTError
from pydantic import ValidationError

from app.retailflow.core.error_catalog import AppError, ErrorCatalog
from app.retailflow.core.metrics import metrics
from app.retailflow.core.security import TokenData, decode_token, oauth2_scheme
from app.retailflow.db.session import get_db
from app.retailflow.repos.users import UserRepository
from app.retailflow.services.rbac import has_permission


def get_current_token_data(token: str = Depends(oauth2_scheme)) -> TokenData:
    try:
        payload = decode_token(token)
        return TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def get_current_user(token_data: TokenData = Depends(get_current_token_data), db=Depends(get_db)):
    if not token_data.sub:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    user = UserRepository(db).get_by_id(token_data.sub)
    if user is None:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    return user


def require_active_user(user=Depends(get_current_user)):
    if not user.is_active:
        raise AppError(ErrorCatalog.USER_INACTIVE)
    return user


def require_permission(permission_key: str):
    """Dependency factory; the role is read from the stored user so role changes apply immediately."""

    def dependency(user=Depends(require_active_user)):
        if not has_permission(user.role, permission_key):
            metrics.increment_rbac_denied(permission_key)
            raise AppError(ErrorCatalog.PERMISSION_DENIED, details={"permission": permission_key})
        return user

    return dependency


__all__ = [
    "get_current_token_data",
    "get_current_user",
    "require_active_user",
    "require_permission",
]

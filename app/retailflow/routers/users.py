from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from app.retailflow.core.deps import require_permission
from app.retailflow.db.models import User
from app.retailflow.db.session import get_db
from app.retailflow.repos.users import UserRepository
from app.retailflow.schemas.users import (
    ListPaginationMeta,
    UserCreateRequest,
    UserItem,
    UserListResponse,
    UserResponse,
    UserUpdateRequest,
)
from app.retailflow.services.audit import AuditEventPayload, AuditService
from app.retailflow.services.users import UserAdminService

router = APIRouter()


def _user_item(user: User) -> UserItem:
    return UserItem(
        id=str(user.id),
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        is_active=user.is_active,
        must_change_password=user.must_change_password,
        created_at=user.created_at,
    )


@router.get("/users", response_model=UserListResponse)
async def list_users(
    request: Request,
    role: str | None = Query(None),
    is_active: bool | None = Query(None),
    q: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _current_user=Depends(require_permission("USER_MANAGE")),
    db=Depends(get_db),
):
    rows, total = UserRepository(db).list_users(role=role, is_active=is_active, search=q, limit=limit, offset=offset)
    return UserListResponse(
        users=[_user_item(user) for user in rows],
        pagination=ListPaginationMeta(total=total, limit=limit, offset=offset),
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    request: Request,
    payload: UserCreateRequest,
    current_user=Depends(require_permission("USER_MANAGE")),
    db=Depends(get_db),
):
    user = UserAdminService(db).create(
        username=payload.username,
        email=str(payload.email),
        password=payload.password,
        role=payload.role,
        full_name=payload.full_name,
    )
    AuditService(db).record_event(
        AuditEventPayload.for_user(
            request,
            current_user,
            action="admin.user.create",
            entity_type="user",
            entity_id=str(user.id),
            before=None,
            after={"username": user.username, "email": user.email, "role": user.role},
            metadata=None,
            result="success",
        )
    )
    return UserResponse(user=_user_item(user), trace_id=getattr(request.state, "trace_id", ""))


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    request: Request,
    user_id: UUID,
    _current_user=Depends(require_permission("USER_MANAGE")),
    db=Depends(get_db),
):
    user = UserAdminService(db).get(user_id)
    return UserResponse(user=_user_item(user), trace_id=getattr(request.state, "trace_id", ""))


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user(
    request: Request,
    user_id: UUID,
    payload: UserUpdateRequest,
    current_user=Depends(require_permission("USER_MANAGE")),
    db=Depends(get_db),
):
    user, before = UserAdminService(db).update(
        user_id,
        role=payload.role,
        is_active=payload.is_active,
        full_name=payload.full_name,
        actor_id=str(current_user.id),
    )
    AuditService(db).record_event(
        AuditEventPayload.for_user(
            request,
            current_user,
            action="admin.user.update",
            entity_type="user",
            entity_id=str(user.id),
            before=before,
            after={"role": user.role, "is_active": user.is_active, "full_name": user.full_name},
            metadata=None,
            result="success",
        )
    )
    return UserResponse(user=_user_item(user), trace_id=getattr(request.state, "trace_id", ""))

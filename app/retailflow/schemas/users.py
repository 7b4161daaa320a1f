from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field

UserRole = Literal["ADMIN", "WORKER"]


class UserCreateRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    full_name: str | None = Field(None, max_length=255)
    password: str = Field(..., min_length=8, max_length=255)
    role: UserRole = "WORKER"


class UserUpdateRequest(BaseModel):
    role: UserRole | None = None
    is_active: bool | None = None
    full_name: str | None = Field(None, max_length=255)


class UserItem(BaseModel):
    id: str
    username: str
    email: str
    full_name: str | None
    role: str
    is_active: bool
    must_change_password: bool
    created_at: datetime


class ListPaginationMeta(BaseModel):
    total: int
    limit: int
    offset: int


class UserResponse(BaseModel):
    user: UserItem
    trace_id: str


class UserListResponse(BaseModel):
    users: list[UserItem]
    pagination: ListPaginationMeta
    trace_id: str

from urllib.parse import parse_qs

from fastapi import APIRouter, Depends, Request

from app.retailflow.core.deps import require_active_user
from app.retailflow.core.error_catalog import AppError
from app.retailflow.db.session import get_db
from app.retailflow.repos.users import UserRepository
from app.retailflow.schemas.auth import (
    ChangePasswordRequest,
    ChangePasswordResponse,
    LoginRequest,
    MeResponse,
    OAuth2TokenResponse,
    RegisterRequest,
    TokenResponse,
)
from app.retailflow.services.audit import AuditEventPayload, AuditService
from app.retailflow.services.auth import AuthService
from app.retailflow.services.rbac import permissions_for_role

router = APIRouter()


def _me_response(user, trace_id: str) -> MeResponse:
    return MeResponse(
        id=str(user.id),
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        permissions=sorted(permissions_for_role(user.role)),
        is_active=user.is_active,
        must_change_password=user.must_change_password,
        trace_id=trace_id,
    )


@router.post("/register", response_model=MeResponse, status_code=201, summary="Register (worker sign-up)")
async def register(request: Request, payload: RegisterRequest, db=Depends(get_db)):
    trace_id = getattr(request.state, "trace_id", "")
    user = AuthService(db).register(
        username=payload.username,
        email=str(payload.email),
        password=payload.password,
        full_name=payload.full_name,
    )
    AuditService(db).record_event(
        AuditEventPayload(
            user_id=str(user.id),
            trace_id=trace_id or None,
            actor=user.username,
            actor_role=user.role,
            action="auth.register",
            entity_type="user",
            entity_id=str(user.id),
            before=None,
            after={"username": user.username, "email": user.email, "role": user.role},
            metadata=None,
            result="success",
        )
    )
    return _me_response(user, trace_id)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login (JSON)",
    description="Login for JSON clients using email or username_or_email.",
)
async def login(request: Request, payload: LoginRequest, db=Depends(get_db)):
    identifier = str(payload.email) if payload.email else payload.username_or_email
    trace_id = getattr(request.state, "trace_id", "")
    try:
        user, token = AuthService(db).login(identifier, payload.password)
    except AppError as exc:
        candidate = UserRepository(db).get_by_username_or_email(identifier)
        if candidate is not None:
            AuditService(db).record_event(
                AuditEventPayload(
                    user_id=str(candidate.id),
                    trace_id=trace_id or None,
                    actor=identifier,
                    action="auth.login.failed",
                    entity_type="user",
                    entity_id=str(candidate.id),
                    before=None,
                    after=None,
                    metadata={"error_code": exc.error.code},
                    result="failure",
                )
            )
        raise

    AuditService(db).record_event(
        AuditEventPayload(
            user_id=str(user.id),
            trace_id=trace_id or None,
            actor=user.username,
            actor_role=user.role,
            action="auth.login",
            entity_type="user",
            entity_id=str(user.id),
            before=None,
            after=None,
            metadata=None,
            result="success",
        )
    )
    return TokenResponse(access_token=token, must_change_password=user.must_change_password, trace_id=trace_id)


@router.post(
    "/token",
    response_model=OAuth2TokenResponse,
    summary="OAuth2 Token (Swagger/Auth)",
    description="OAuth2 Password Flow endpoint for Swagger Authorize using form-data username/password.",
)
async def oauth2_token(request: Request, db=Depends(get_db)):
    form_data = parse_qs((await request.body()).decode())
    username = (form_data.get("username") or [""])[0]
    password = (form_data.get("password") or [""])[0]
    _, token = AuthService(db).login(username, password)
    return OAuth2TokenResponse(access_token=token)


@router.get("/me", response_model=MeResponse)
async def me(request: Request, current_user=Depends(require_active_user)):
    return _me_response(current_user, getattr(request.state, "trace_id", ""))


@router.post("/change-password", response_model=ChangePasswordResponse, summary="Change Password (Authenticated User)")
async def change_password(
    request: Request,
    payload: ChangePasswordRequest,
    current_user=Depends(require_active_user),
    db=Depends(get_db),
):
    trace_id = getattr(request.state, "trace_id", "")
    try:
        user, token = AuthService(db).change_password(current_user, payload.current_password, payload.new_password)
    except AppError as exc:
        AuditService(db).record_event(
            AuditEventPayload(
                user_id=str(current_user.id),
                trace_id=trace_id or None,
                actor=current_user.username,
                action="auth.change_password.failed",
                entity_type="user",
                entity_id=str(current_user.id),
                before=None,
                after=None,
                metadata={"error_code": exc.error.code},
                result="failure",
            )
        )
        raise

    AuditService(db).record_event(
        AuditEventPayload(
            user_id=str(user.id),
            trace_id=trace_id or None,
            actor=user.username,
            action="auth.change_password",
            entity_type="user",
            entity_id=str(user.id),
            before=None,
            after={"must_change_password": user.must_change_password},
            metadata=None,
            result="success",
        )
    )
    return ChangePasswordResponse(
        ok=True,
        message="Password updated successfully",
        access_token=token,
        trace_id=trace_id,
    )

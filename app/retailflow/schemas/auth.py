from pydantic import BaseModel, EmailStr, Field, model_validator


class RegisterRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "example": {
                "username": "jdoe",
                "email": "jane@example.com",
                "full_name": "Jane Doe",
                "password": "Secret123",
            }
        }
    }

    username: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    full_name: str | None = Field(None, max_length=255)
    password: str


class LoginRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {"email": "jane@example.com", "password": "Secret123"},
                {"username_or_email": "jdoe", "password": "Secret123"},
            ]
        }
    }

    email: EmailStr | None = None
    username_or_email: str | None = None
    password: str

    @model_validator(mode="after")
    def ensure_identifier(self):
        if not self.email and not self.username_or_email:
            raise ValueError("email or username_or_email is required")
        return self


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    must_change_password: bool
    trace_id: str


class OAuth2TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class ChangePasswordResponse(BaseModel):
    ok: bool
    message: str
    access_token: str
    trace_id: str


class MeResponse(BaseModel):
    id: str
    username: str
    email: str
    full_name: str | None = None
    role: str
    permissions: list[str]
    is_active: bool
    must_change_password: bool
    trace_id: str

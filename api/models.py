"""
API request and response models for Natours REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Field names follow the public JSON contract (camelCase passwordConfirm etc.)
through aliases; Python code uses snake_case.

UserResponse is built only from auth.models.PublicUser, which has no password
digest, so a response model cannot leak one even by accident.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from auth.models import PublicUser, Role

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/users/signup.

    There is no role field: unknown keys (including "role") are ignored and
    every new account gets the default role.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(max_length=255)
    password_confirm: str = Field(alias="passwordConfirm", max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/users/login.

    Both fields are optional at the schema level so that a missing one is
    reported with the login-specific message rather than a generic schema error.
    """

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class ForgotPasswordRequest(BaseModel):
    """A malformed address is looked up like any other and ends in 404."""

    email: str = Field(max_length=255)


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: str = Field(max_length=255)
    password_confirm: str = Field(alias="passwordConfirm", max_length=255)


class UpdatePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password_current: str = Field(alias="passwordCurrent", max_length=255)
    password: str = Field(max_length=255)
    password_confirm: str = Field(alias="passwordConfirm", max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    role: Role
    created_at: Optional[datetime] = None

    @classmethod
    def from_public(cls, user: PublicUser) -> "UserResponse":
        return cls(id=user.id, name=user.name, email=user.email, role=user.role, created_at=user.created_at)


class AuthResponse(BaseModel):
    """Body of every response that logs the caller in."""

    model_config = ConfigDict(frozen=True)

    status: str = "success"
    token: str
    user: UserResponse


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "success"
    message: str


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "success"
    user: UserResponse


class UserListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "success"
    results: int
    users: list[UserResponse]


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str

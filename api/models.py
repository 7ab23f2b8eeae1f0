"""
API request and response models for the SSO REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Presence checks (non-empty email/password/token, positive ids) live here.
Format policy (email syntax, password length) is the core's job and is NOT
duplicated: a malformed email reaches AuthService and comes back as
wrong_email_format.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    email: str = Field(min_length=1, max_length=254)
    password: str = Field(min_length=1)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    app_id: int = Field(gt=0)
    email: str = Field(min_length=1, max_length=254)
    password: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    """Request body for POST /api/v1/auth/refresh."""

    app_id: int = Field(gt=0)
    refresh_token: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int


class LoginResponse(BaseModel):
    """Token pair issued on a successful login."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # access token lifetime in seconds


class RefreshResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class IsAdminResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    is_admin: bool


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


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

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)

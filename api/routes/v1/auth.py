"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/register             -- create a user; 201 {user_id}
  POST /api/v1/auth/login                -- email/password for an app; token pair
  POST /api/v1/auth/refresh              -- refresh token for an app; new access token
  GET  /api/v1/users/{user_id}/is-admin  -- privilege check

All routes are thin: validate presence (Pydantic), call AuthService, shape the
response. AuthError raised by the service is mapped to an HTTP status by the
exception handler in api/main.py, so no route inspects error kinds itself.

Security:
  Login returns the same generic error for unknown email and wrong password
  (invalid_credentials). The service guarantees this; routes must not add
  their own user lookups.
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Request, Response

from api.models import (
    IsAdminResponse,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
)
from auth.service import AuthService

router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _access_ttl(request: Request) -> int:
    return request.app.state.settings.access_token_ttl_seconds


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
async def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Register a new user. 409 if the email is taken, 400 on a policy failure."""
    user_id = await _service(request).register(body.email, body.password)
    return RegisterResponse(user_id=user_id)


@router.post("/auth/login", response_model=LoginResponse)
async def login(request: Request, response: Response, body: LoginRequest) -> LoginResponse:
    """Authenticate with email and password; issue an access/refresh pair for app_id."""
    pair = await _service(request).login(body.app_id, body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return LoginResponse(
        access_token=pair.access,
        refresh_token=pair.refresh,
        expires_in=_access_ttl(request),
    )


@router.post("/auth/refresh", response_model=RefreshResponse)
async def refresh(request: Request, response: Response, body: RefreshRequest) -> RefreshResponse:
    """Exchange a valid refresh token for a new access token.

    The refresh token stays valid until its own expiry; it is not rotated.
    """
    access = await _service(request).refresh_token(body.app_id, body.refresh_token)
    response.headers["Cache-Control"] = "no-store"
    return RefreshResponse(access_token=access, expires_in=_access_ttl(request))


@router.get("/users/{user_id}/is-admin", response_model=IsAdminResponse)
async def is_admin(request: Request, user_id: int = Path(gt=0)) -> IsAdminResponse:
    flag = await _service(request).is_admin(user_id)
    return IsAdminResponse(user_id=user_id, is_admin=flag)

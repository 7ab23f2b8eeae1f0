"""
auth/ports.py -- Narrow collaborator roles consumed by AuthService.

Each role is a typing.Protocol so the orchestrator depends on capabilities,
not on SqlStore. auth/store.SqlStore satisfies the four store roles at once;
tests inject small in-memory fakes per role.

Store contract:
  "not found" is an explicit None return, never an exception.
  A uniqueness violation on save_user is raised as AuthError(USER_EXISTS).
  Any other exception is a technical failure; the orchestrator reports it
  as INTERNAL.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from auth.models import App, TokenPair, User


@runtime_checkable
class UserSaver(Protocol):
    def save_user(self, email: str, pass_hash: bytes) -> int:
        """Insert a user and return its id."""
        ...


@runtime_checkable
class UserProvider(Protocol):
    def find_by_email(self, email: str) -> User | None: ...


@runtime_checkable
class AdminChecker(Protocol):
    def is_admin(self, user_id: int) -> bool | None:
        """Admin flag for user_id, or None if the user does not exist."""
        ...


@runtime_checkable
class AppProvider(Protocol):
    def get_app(self, app_id: int) -> App | None: ...


@runtime_checkable
class TokenManager(Protocol):
    """Token issuance and verification, as implemented by tokens.TokenLifecycle."""

    def issue_pair(self, user: User, app: App, now: datetime) -> TokenPair: ...

    def renew(self, old_refresh: str, user: User, app: App, now: datetime) -> str: ...

    def verify_and_extract(self, token: str, secret: str, now: datetime) -> dict[str, Any]: ...

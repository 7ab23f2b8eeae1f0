"""
core/errors.py -- Classified error kinds for the SSO core.

Every failure that leaves a workflow is an AuthError carrying one ErrorKind.
Callers (the HTTP adapter, the CLI) switch on exc.kind instead of inspecting
exception classes, so the set of outcomes is closed and visible in one place.

Propagation rule:
  Store-layer technical failures become INTERNAL unless the store already
  raised a classified AuthError (USER_EXISTS on a uniqueness violation).
  Classified errors are never re-wrapped -- only passed upward.

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    USER_NOT_FOUND = "user_not_found"
    USER_EXISTS = "user_exists"
    WRONG_EMAIL_FORMAT = "wrong_email_format"
    WRONG_PASSWORD_FORMAT = "wrong_password_format"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"
    WRONG_TOKEN_TYPE = "wrong_token_type"
    APP_NOT_FOUND = "app_not_found"
    CANCELLED = "cancelled"
    INTERNAL = "internal"


# Default human-readable messages. Safe to return to clients: none of them
# reveal which credential check failed.
_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_CREDENTIALS: "invalid email or password",
    ErrorKind.USER_NOT_FOUND: "user not found",
    ErrorKind.USER_EXISTS: "user already exists",
    ErrorKind.WRONG_EMAIL_FORMAT: "wrong email format",
    ErrorKind.WRONG_PASSWORD_FORMAT: "password should be at least 8 characters",
    ErrorKind.INVALID_TOKEN: "invalid token",
    ErrorKind.TOKEN_EXPIRED: "token expired",
    ErrorKind.WRONG_TOKEN_TYPE: "token is not a refresh token",
    ErrorKind.APP_NOT_FOUND: "app not found",
    ErrorKind.CANCELLED: "operation cancelled or timed out",
    ErrorKind.INTERNAL: "internal error",
}


class AuthError(Exception):
    """A classified failure from the credential/token core.

    Attributes:
        kind:    The ErrorKind the caller switches on.
        message: Client-safe description (defaults per kind).
        op:      Dotted name of the operation that raised, for diagnostics.
    """

    def __init__(self, kind: ErrorKind, message: str | None = None, *, op: str = "") -> None:
        self.kind = kind
        self.message = message or _MESSAGES[kind]
        self.op = op
        super().__init__(f"{op}: {self.message}" if op else self.message)

    def __repr__(self) -> str:
        return f"AuthError(kind={self.kind.value!r}, op={self.op!r}, message={self.message!r})"

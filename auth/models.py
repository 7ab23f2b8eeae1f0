"""
auth/models.py -- Domain dataclasses for users, tenants and tokens.

Pattern: Data class (pure data container, zero logic beyond trivial helpers).
Stores map rows onto User/App; the token codec maps JWT payloads onto
TokenClaims. Nothing here talks to a database or a clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass
class User:
    """A registered identity.

    pass_hash is the raw bcrypt output (bytes). The plaintext password never
    reaches this object. id is None before the record is written.
    """

    email: str
    pass_hash: bytes
    id: int | None = None
    is_admin: bool = False
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""


@dataclass
class App:
    """A tenant of the SSO service.

    secret is the HMAC key every token for this app is signed with. It is
    read from the store on each verification, never from the token itself.
    """

    id: int
    name: str
    secret: str


@dataclass(frozen=True)
class TokenClaims:
    """Verified payload of a signed token.

    issued_at / expires_at are timezone-aware UTC datetimes at whole-second
    resolution (JWT NumericDate). token_id is for traceability only; there is
    no revocation list.
    """

    user_id: int
    email: str
    token_type: TokenType
    app_id: int
    issued_at: datetime
    expires_at: datetime
    token_id: str

    def is_expired(self, now: datetime) -> bool:
        # exp == now counts as expired
        return self.expires_at <= now


@dataclass(frozen=True)
class TokenPair:
    access: str
    refresh: str

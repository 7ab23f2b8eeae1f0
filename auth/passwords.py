"""
auth/passwords.py -- bcrypt password hashing with a tunable cost factor.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

bcrypt only reads the first 72 bytes of its input, and recent releases raise
instead of truncating. Both hash() and verify() cut the encoded password at
that limit themselves, so an arbitrarily long password (the policy has no
upper bound) hashes and verifies consistently.

Timing equalization: verify_dummy() runs one bcrypt check against a hash made
at construction time. The orchestrator calls it when the email is unknown, so
"no such user" costs the same as "wrong password".
"""

from __future__ import annotations

import logging

import bcrypt

from core.errors import AuthError, ErrorKind

logger = logging.getLogger("sso.auth")

DEFAULT_ROUNDS = 10
_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Salted, adaptive-cost one-way hashing.

    Usage:
        hasher = PasswordHasher(rounds=12)
        pass_hash = hasher.hash("correct horse battery")
        hasher.verify(pass_hash, "correct horse battery")  # True
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        self._dummy_hash = bcrypt.hashpw(b"sso_timing_dummy", bcrypt.gensalt(rounds=rounds))

    def hash(self, plain: str) -> bytes:
        """Return a bcrypt hash of plain. Raises AuthError(INTERNAL) if bcrypt fails."""
        try:
            return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=self.rounds))
        except (ValueError, TypeError, MemoryError) as exc:
            logger.error("bcrypt hashing failed: %s", type(exc).__name__)
            raise AuthError(ErrorKind.INTERNAL, op="passwords.hash") from exc

    def verify(self, pass_hash: bytes, plain: str) -> bool:
        """Constant-time check of plain against pass_hash.

        False on mismatch and on a malformed stored hash -- never raises.
        """
        try:
            return bcrypt.checkpw(_encode(plain), pass_hash)
        except (ValueError, TypeError):
            return False

    def verify_dummy(self, plain: str) -> None:
        self.verify(self._dummy_hash, plain)

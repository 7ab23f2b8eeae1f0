"""
core/validation.py -- Email and password policy predicates.

Pure functions: no I/O, no state. The orchestrator turns a False result into
WRONG_EMAIL_FORMAT / WRONG_PASSWORD_FORMAT.

Email rule (RFC 5322 dot-atom subset):
  local part  -- atext characters, single dots only between atoms
  domain      -- alphanumeric labels (hyphens allowed inside a label),
                 at least two labels, so at least one dot
Quoted local parts, comments and escapes are rejected outright.

Password rule: at least MIN_PASSWORD_LENGTH characters. There is no upper
bound and no charset requirement; callers may layer a stricter policy.
"""

from __future__ import annotations

import re

MIN_PASSWORD_LENGTH = 8

_ATEXT = r"[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+"
_LABEL = r"[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?"

_EMAIL_RE = re.compile(rf"^{_ATEXT}(?:\.{_ATEXT})*@{_LABEL}(?:\.{_LABEL})+$")


def validate_email(email: str) -> bool:
    """Return True if email is a plain dot-atom address with a dotted domain."""
    if not email or len(email) > 254:
        return False
    return _EMAIL_RE.fullmatch(email) is not None


def validate_password(password: str) -> bool:
    return len(password) >= MIN_PASSWORD_LENGTH

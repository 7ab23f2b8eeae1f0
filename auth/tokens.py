"""
auth/tokens.py -- Token codec and token lifecycle rules.

Security design decisions:
  JWT: python-jose with HS256. Every token is signed with the secret of the
       app (tenant) it was issued for. The verifier always receives that secret
       from its own app lookup -- nothing in the token chooses the key.

  Algorithm confusion: decode() reads the unverified header and rejects any
       alg other than HS256 BEFORE verifying, and then passes algorithms=[HS256]
       to jose as well. "none" and asymmetric algorithms never reach a key.

  Expiry: checked here against the caller's `now` snapshot rather than jose's
       own wall-clock read, so a workflow sees one consistent time. A token
       whose exp equals now is expired.

  Renewal is stateless: renew() mints a new access token and leaves the
       refresh token untouched. There is no rotation and no revocation list;
       jti exists only so a token can be traced in logs.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt
from jose.exceptions import JOSEError

from auth.models import App, TokenClaims, TokenPair, TokenType, User
from core.errors import AuthError, ErrorKind

logger = logging.getLogger("sso.auth")

ALGORITHM = "HS256"

# Wire claim names
_CLAIM_UID = "uid"
_CLAIM_EMAIL = "email"
_CLAIM_TYPE = "type"
_CLAIM_APP = "app_id"
_CLAIM_IAT = "iat"
_CLAIM_EXP = "exp"
_CLAIM_JTI = "jti"

_DECODE_OPTIONS = {
    # exp is checked against the caller's `now`, not jose's clock
    "verify_exp": False,
    "verify_aud": False,
    "verify_iat": True,
    "verify_jti": True,
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _from_timestamp(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


class TokenCodec:
    """Builds and parses signed token claims for a given app secret."""

    def __init__(self, id_factory=None) -> None:
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

    def issue(self, user: User, app: App, token_type: TokenType, ttl: timedelta, now: datetime) -> str:
        """Sign a token for user in app, valid from now for ttl.

        iat/exp are JWT NumericDates (whole seconds since epoch).
        """
        if user.id is None:
            raise ValueError("cannot issue a token for an unsaved user")
        payload = {
            _CLAIM_UID: user.id,
            _CLAIM_EMAIL: user.email,
            _CLAIM_TYPE: TokenType(token_type).value,
            _CLAIM_APP: app.id,
            _CLAIM_IAT: int(now.timestamp()),
            _CLAIM_EXP: int((now + ttl).timestamp()),
            _CLAIM_JTI: self._new_id(),
        }
        try:
            return jwt.encode(payload, app.secret, algorithm=ALGORITHM)
        except JOSEError as exc:
            raise AuthError(ErrorKind.INTERNAL, op="tokens.issue") from exc

    def decode_payload(self, token: str, secret: str) -> dict[str, Any]:
        """Verify token under exactly `secret` and return the raw payload.

        Raises AuthError(INVALID_TOKEN) on malformed input, a foreign
        algorithm or a bad signature. Expiry is NOT checked here.
        """
        op = "tokens.decode"
        try:
            header = jwt.get_unverified_header(token)
        except JOSEError as exc:
            raise AuthError(ErrorKind.INVALID_TOKEN, op=op) from exc
        if header.get("alg") != ALGORITHM:
            logger.warning("rejected token with unexpected alg %r", header.get("alg"))
            raise AuthError(ErrorKind.INVALID_TOKEN, op=op)
        try:
            payload = jwt.decode(token, secret, algorithms=[ALGORITHM], options=_DECODE_OPTIONS)
        except JOSEError as exc:
            raise AuthError(ErrorKind.INVALID_TOKEN, op=op) from exc
        if not isinstance(payload, dict):
            raise AuthError(ErrorKind.INVALID_TOKEN, op=op)
        return payload

    def decode(self, token: str, secret: str, now: datetime | None = None) -> TokenClaims:
        """Verify token and map it onto TokenClaims.

        When now is given, a token with exp <= now raises TOKEN_EXPIRED.
        """
        claims = _to_claims(self.decode_payload(token, secret))
        if now is not None and claims.is_expired(now):
            raise AuthError(ErrorKind.TOKEN_EXPIRED, op="tokens.decode")
        return claims


def _to_claims(payload: dict[str, Any]) -> TokenClaims:
    op = "tokens.decode"
    uid = payload.get(_CLAIM_UID)
    email = payload.get(_CLAIM_EMAIL)
    app_id = payload.get(_CLAIM_APP)
    iat = payload.get(_CLAIM_IAT)
    exp = payload.get(_CLAIM_EXP)
    jti = payload.get(_CLAIM_JTI)
    if not (_is_int(uid) and _is_int(app_id) and _is_int(iat) and _is_int(exp)):
        raise AuthError(ErrorKind.INVALID_TOKEN, op=op)
    if not isinstance(email, str) or not isinstance(jti, str):
        raise AuthError(ErrorKind.INVALID_TOKEN, op=op)
    try:
        token_type = TokenType(payload.get(_CLAIM_TYPE))
    except ValueError as exc:
        raise AuthError(ErrorKind.INVALID_TOKEN, op=op) from exc
    return TokenClaims(
        user_id=uid,
        email=email,
        token_type=token_type,
        app_id=app_id,
        issued_at=_from_timestamp(iat),
        expires_at=_from_timestamp(exp),
        token_id=jti,
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TokenLifecycle:
    """Type, expiry and signature rules on top of TokenCodec.

    Usage:
        tokens = TokenLifecycle(timedelta(minutes=15), timedelta(hours=24))
        pair = tokens.issue_pair(user, app, now)
        access = tokens.renew(pair.refresh, user, app, later)
    """

    def __init__(self, access_ttl: timedelta, refresh_ttl: timedelta, codec: TokenCodec | None = None) -> None:
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.codec = codec or TokenCodec()

    def issue_pair(self, user: User, app: App, now: datetime) -> TokenPair:
        # one `now` for both, so the pair's expiries are consistent
        access = self.codec.issue(user, app, TokenType.ACCESS, self.access_ttl, now)
        refresh = self.codec.issue(user, app, TokenType.REFRESH, self.refresh_ttl, now)
        return TokenPair(access=access, refresh=refresh)

    def renew(self, old_refresh: str, user: User, app: App, now: datetime) -> str:
        """Mint a fresh access token from a valid refresh token.

        Check order: signature/structure (INVALID_TOKEN), type
        (WRONG_TOKEN_TYPE), expiry (TOKEN_EXPIRED). The refresh token is not
        reissued or invalidated.
        """
        op = "tokens.renew"
        claims = self.codec.decode(old_refresh, app.secret)
        if claims.app_id != app.id:
            raise AuthError(ErrorKind.INVALID_TOKEN, op=op)
        if claims.token_type is not TokenType.REFRESH:
            raise AuthError(ErrorKind.WRONG_TOKEN_TYPE, op=op)
        if claims.is_expired(now):
            raise AuthError(ErrorKind.TOKEN_EXPIRED, op=op)
        return self.codec.issue(user, app, TokenType.ACCESS, self.access_ttl, now)

    def verify_and_extract(self, token: str, secret: str, now: datetime) -> dict[str, Any]:
        """Verified claims as a plain mapping. Token type is not checked."""
        payload = self.codec.decode_payload(token, secret)
        exp = payload.get(_CLAIM_EXP)
        if not _is_int(exp):
            raise AuthError(ErrorKind.INVALID_TOKEN, op="tokens.verify_and_extract")
        if _from_timestamp(exp) <= now:
            raise AuthError(ErrorKind.TOKEN_EXPIRED, op="tokens.verify_and_extract")
        return payload

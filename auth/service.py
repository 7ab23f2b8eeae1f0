"""
auth/service.py -- The four authentication workflows.

AuthService composes the policy predicates, the password hasher and the token
lifecycle with three store roles (see auth/ports.py) to implement:

  register(email, password)            -> user id
  login(app_id, email, password)       -> TokenPair
  refresh_token(app_id, refresh_token) -> new access token
  is_admin(user_id)                    -> bool

Each workflow is a short, total sequence: no retries, no partial writes.
Every failure leaves as an AuthError whose kind the caller switches on.

Anti-enumeration: login and refresh_token report a missing user with the same
INVALID_CREDENTIALS kind as a wrong password. login also runs a dummy bcrypt
check for unknown emails so response time does not reveal which check failed.

Blocking work (store I/O, bcrypt) runs on worker threads via
asyncio.to_thread. Each call is bounded by call_timeout; hitting it raises
AuthError(CANCELLED). Cancelling the awaiting task propagates CancelledError
immediately.

Logging: a logger is injected at construction; every workflow wraps it in an
adapter tagged with the operation name. Secrets, hashes and tokens are never
logged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from auth.models import TokenPair
from auth.passwords import PasswordHasher
from auth.ports import AdminChecker, AppProvider, TokenManager, UserProvider, UserSaver
from auth.tokens import TokenLifecycle
from core.config import Settings
from core.errors import AuthError, ErrorKind
from core.validation import validate_email, validate_password

_T = TypeVar("_T")

_default_logger = logging.getLogger("sso.auth")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _OpLogger(logging.LoggerAdapter):
    """Prefix every record with the operation name and its context, e.g. [auth.login app_id=7]."""

    def process(self, msg, kwargs):
        context = " ".join(f"{key}={value}" for key, value in self.extra.items() if key != "op")
        prefix = f"{self.extra['op']} {context}" if context else self.extra["op"]
        return f"[{prefix}] {msg}", kwargs


class AuthService:
    """Credential verification and token lifecycle orchestrator.

    Usage:
        store = SqlStore()
        service = AuthService(
            user_saver=store,
            user_provider=store,
            admin_checker=store,
            app_provider=store,
            tokens=TokenLifecycle(timedelta(minutes=15), timedelta(hours=24)),
            hasher=PasswordHasher(),
        )
        user_id = await service.register("a@b.com", "password123")
    """

    def __init__(
        self,
        user_saver: UserSaver,
        user_provider: UserProvider,
        admin_checker: AdminChecker,
        app_provider: AppProvider,
        tokens: TokenManager,
        hasher: PasswordHasher,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
        call_timeout: float | None = None,
    ) -> None:
        deps = {
            "user_saver": user_saver,
            "user_provider": user_provider,
            "admin_checker": admin_checker,
            "app_provider": app_provider,
            "tokens": tokens,
            "hasher": hasher,
        }
        missing = [name for name, dep in deps.items() if dep is None]
        if missing:
            raise TypeError(f"AuthService missing collaborators: {', '.join(missing)}")
        self._saver = user_saver
        self._users = user_provider
        self._admins = admin_checker
        self._apps = app_provider
        self._tokens = tokens
        self._hasher = hasher
        self._logger = logger or _default_logger
        self._clock = clock or _utcnow
        self._call_timeout = call_timeout

    def _log(self, op: str, **context: Any) -> _OpLogger:
        return _OpLogger(self._logger, {"op": op, **context})

    async def _call(self, op: str, fn: Callable[..., _T], *args: Any) -> _T:
        """Run a blocking collaborator call off the event loop, classified.

        AuthError passes through unchanged; a deadline miss becomes CANCELLED;
        anything else becomes INTERNAL with the original chained. Errors
        raised by fn are classified on the worker thread, so a TimeoutError
        from a store driver is INTERNAL rather than a missed deadline.
        """

        def _classified() -> _T:
            try:
                return fn(*args)
            except AuthError:
                raise
            except Exception as exc:
                raise AuthError(ErrorKind.INTERNAL, op=op) from exc

        try:
            if self._call_timeout is None:
                return await asyncio.to_thread(_classified)
            return await asyncio.wait_for(asyncio.to_thread(_classified), timeout=self._call_timeout)
        except AuthError:
            raise
        except asyncio.TimeoutError as exc:
            raise AuthError(ErrorKind.CANCELLED, op=op) from exc
        except Exception as exc:
            raise AuthError(ErrorKind.INTERNAL, op=op) from exc

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    async def register(self, email: str, password: str) -> int:
        op = "auth.register"
        log = self._log(op)
        log.info("registering user")

        if not validate_email(email):
            raise AuthError(ErrorKind.WRONG_EMAIL_FORMAT, op=op)
        if not validate_password(password):
            raise AuthError(ErrorKind.WRONG_PASSWORD_FORMAT, op=op)

        try:
            existing = await self._call(op, self._users.find_by_email, email)
            if existing is not None:
                log.warning("email already registered")
                raise AuthError(ErrorKind.USER_EXISTS, op=op)

            pass_hash = await self._call(op, self._hasher.hash, password)
            user_id = await self._call(op, self._saver.save_user, email, pass_hash)
        except AuthError as exc:
            if exc.kind is ErrorKind.INTERNAL:
                log.error("failed to register user: %s", exc.__cause__ or exc)
            raise

        log.info("user registered (user_id=%d)", user_id)
        return user_id

    async def login(self, app_id: int, email: str, password: str) -> TokenPair:
        op = "auth.login"
        log = self._log(op, app_id=app_id)
        log.info("attempting to login user")
        now = self._clock()

        try:
            user = await self._call(op, self._users.find_by_email, email)
            if user is None:
                await self._call(op, self._hasher.verify_dummy, password)
                log.warning("login failed: unknown email")
                raise AuthError(ErrorKind.INVALID_CREDENTIALS, op=op)

            if not await self._call(op, self._hasher.verify, user.pass_hash, password):
                log.warning("login failed: password mismatch (user_id=%s)", user.id)
                raise AuthError(ErrorKind.INVALID_CREDENTIALS, op=op)

            app = await self._call(op, self._apps.get_app, app_id)
            if app is None:
                log.warning("app %d not found", app_id)
                raise AuthError(ErrorKind.APP_NOT_FOUND, op=op)

            pair = self._tokens.issue_pair(user, app, now)
        except AuthError as exc:
            if exc.kind is ErrorKind.INTERNAL:
                log.error("failed to login user: %s", exc.__cause__ or exc)
            raise

        log.info("user logged in (user_id=%s)", user.id)
        return pair

    async def refresh_token(self, app_id: int, refresh_token: str) -> str:
        op = "auth.refresh_token"
        log = self._log(op, app_id=app_id)
        log.info("attempting to renew token")
        now = self._clock()

        try:
            app = await self._call(op, self._apps.get_app, app_id)
            if app is None:
                log.warning("app %d not found", app_id)
                raise AuthError(ErrorKind.APP_NOT_FOUND, op=op)

            try:
                claims = self._tokens.verify_and_extract(refresh_token, app.secret, now)
            except AuthError as exc:
                log.warning("failed to decode token: %s", exc.kind.value)
                raise

            email = claims.get("email")
            if not isinstance(email, str):
                raise AuthError(ErrorKind.INVALID_TOKEN, op=op)

            user = await self._call(op, self._users.find_by_email, email)
            if user is None:
                log.warning("token subject no longer exists")
                raise AuthError(ErrorKind.INVALID_CREDENTIALS, op=op)

            access = self._tokens.renew(refresh_token, user, app, now)
        except AuthError as exc:
            if exc.kind is ErrorKind.INTERNAL:
                log.error("failed to renew token: %s", exc.__cause__ or exc)
            raise

        log.info("access token renewed (user_id=%s)", user.id)
        return access

    async def is_admin(self, user_id: int) -> bool:
        op = "auth.is_admin"
        log = self._log(op, user_id=user_id)
        log.info("checking if user is admin")

        flag = await self._call(op, self._admins.is_admin, user_id)
        if flag is None:
            raise AuthError(ErrorKind.USER_NOT_FOUND, op=op)

        log.info("checked if user is admin (is_admin=%s)", flag)
        return bool(flag)


def create_auth_service(store, settings: Settings, logger: logging.Logger | None = None) -> AuthService:
    """Wire an AuthService from one store implementing all four store roles."""
    return AuthService(
        user_saver=store,
        user_provider=store,
        admin_checker=store,
        app_provider=store,
        tokens=TokenLifecycle(
            access_ttl=timedelta(seconds=settings.access_token_ttl_seconds),
            refresh_ttl=timedelta(seconds=settings.refresh_token_ttl_seconds),
        ),
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        logger=logger,
        call_timeout=settings.request_timeout_seconds,
    )

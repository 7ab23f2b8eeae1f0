"""
auth/store.py -- SQLAlchemy Core persistence layer for users and apps.

Pattern: Repository + Data Mapper. SqlStore is the repository;
_row_to_user / _row_to_app are the mappers. The orchestrator never touches
SQL directly -- it sees SqlStore only through the roles in auth/ports.py.

Contract with the orchestrator:
  Lookups return None when the row does not exist.
  save_user() turns an IntegrityError (UNIQUE(email)) into
  AuthError(USER_EXISTS). This is the boundary that closes the race between
  the orchestrator's existence pre-check and the insert.
  Every other SQLAlchemyError propagates unchanged; the orchestrator
  reports it as INTERNAL.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Emails are compared exactly as stored (case-sensitive).

Schema is created with create_all() on construction. There is no migration
tooling in this repository.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Integer, LargeBinary, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import App, User
from core.config import get_settings
from core.errors import AuthError, ErrorKind

logger = logging.getLogger("sso.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(254), nullable=False, unique=True),
    Column("pass_hash", LargeBinary, nullable=False),
    Column("is_admin", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_apps = Table(
    "apps",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("secret", Text, nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SqlStore:
    """Repository for User and App entities.

    Implements UserSaver, UserProvider, AdminChecker and AppProvider.

    Usage:
        store = SqlStore()
        app_id = store.create_app("web", secret)
        user_id = store.save_user("a@b.com", pass_hash)
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def save_user(self, email: str, pass_hash: bytes) -> int:
        """Insert a new user and return its assigned ID.

        Raises AuthError(USER_EXISTS) if the email is already taken, including
        when a concurrent registration won the race after the pre-check.
        """
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=email,
                        pass_hash=pass_hash,
                        is_admin=False,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise AuthError(ErrorKind.USER_EXISTS, op="store.save_user") from exc

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def is_admin(self, user_id: int) -> bool | None:
        """Return the admin flag, or None if user_id does not exist."""
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.is_admin).where(_users.c.id == user_id)).fetchone()
        return bool(row.is_admin) if row is not None else None

    def set_admin(self, user_id: int, is_admin: bool = True) -> bool:
        """Grant or revoke admin. Returns False if user_id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(is_admin=is_admin, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Apps
    # ------------------------------------------------------------------

    def get_app(self, app_id: int) -> App | None:
        with self.engine.connect() as conn:
            row = conn.execute(_apps.select().where(_apps.c.id == app_id)).fetchone()
        return _row_to_app(row) if row is not None else None

    def create_app(self, name: str, secret: str) -> int:
        """Insert a new app (tenant) and return its ID.

        Raises sqlalchemy.exc.IntegrityError if the name already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_apps.insert().values(name=name, secret=secret))
            conn.commit()
            app_id = result.inserted_primary_key[0]
        logger.info("app %r created (app_id=%d)", name, app_id)
        return app_id

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        pass_hash=bytes(row.pass_hash),
        is_admin=bool(row.is_admin),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_app(row) -> App:
    return App(id=row.id, name=row.name, secret=row.secret)

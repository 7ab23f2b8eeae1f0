#!/usr/bin/env python3
"""
SSO admin CLI -- tenant setup and server launch.

Apps (tenants) must exist before any token can be issued for them, and the
admin flag has no API of its own. This CLI covers both.

Usage:
  python main.py create-app --name web
  python main.py create-app --name mobile --secret "$(openssl rand -hex 32)"
  python main.py set-admin 42
  python main.py set-admin 42 --revoke
  python main.py serve --host 0.0.0.0 --port 8000

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the user/app store (see core/config.py).
"""

import argparse
import logging
import secrets
import sys
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.store import SqlStore
from core.config import get_settings

# Shorter secrets weaken HMAC-SHA256 signing
_MIN_SECRET_LENGTH = 32


def _create_app(store: SqlStore, name: str, secret: Optional[str]) -> int:
    if secret is not None and len(secret) < _MIN_SECRET_LENGTH:
        print(f"  [!] Secret must be at least {_MIN_SECRET_LENGTH} characters.")
        return 2
    generated = secret is None
    secret = secret or secrets.token_urlsafe(32)
    try:
        app_id = store.create_app(name, secret)
    except IntegrityError:
        print(f"  [!] An app named '{name}' already exists.")
        return 1
    print(f"  App '{name}' created with id {app_id}.")
    if generated:
        # Shown once; the store is the only other copy.
        print(f"  Signing secret: {secret}")
    return 0


def _set_admin(store: SqlStore, user_id: int, revoke: bool) -> int:
    if not store.set_admin(user_id, not revoke):
        print(f"  [!] User {user_id} not found.")
        return 1
    state = "revoked" if revoke else "granted"
    print(f"  Admin {state} for user {user_id}.")
    return 0


def _serve(host: str, port: int) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=host, port=port)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SSO service administration.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-app", help="Register a new app (tenant) with its signing secret")
    create.add_argument("--name", required=True, help="Unique app name")
    create.add_argument(
        "--secret",
        default=None,
        help="HMAC signing secret (min 32 chars). Generated and printed once when omitted.",
    )

    admin = sub.add_parser("set-admin", help="Grant or revoke the admin flag for a user")
    admin.add_argument("user_id", type=int)
    admin.add_argument("--revoke", action="store_true", help="Remove the admin flag instead of setting it")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def main(argv: Optional[list[str]] = None, store: Optional[SqlStore] = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "serve":
        return _serve(args.host, args.port)

    own_store = store is None
    store = store or SqlStore(settings.database_url)
    try:
        if args.command == "create-app":
            return _create_app(store, args.name, args.secret)
        return _set_admin(store, args.user_id, args.revoke)
    finally:
        if own_store:
            store.close()


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
TaskBoard -- multi-tenant task boards with revocable session credentials.

Usage:
  python main.py serve [--host 0.0.0.0] [--port 3000] [--reload]
  python main.py seed
  python main.py create-user --email ada@example.com --first-name Ada [--last-name Lovelace] [--admin]
  python main.py issue-token --email ada@example.com
  python main.py revoke-session 42

Environment variables:
  SECRET_KEY     Signing key for credentials (32+ chars). Required unless DEBUG=true.
  JWT_ALGORITHM  HS256 (default), HS384 or HS512.
  DATABASE_URL   SQLAlchemy URL. Defaults to sqlite:///taskboard.db in the repo root.
  DEBUG          true to auto-generate a throwaway SECRET_KEY for local development.
"""

import argparse
import sys

from auth.models import User
from auth.sessions import SessionManager
from auth.store import UserStore
from auth.tokens import CredentialCodec
from core.config import get_settings
from core.errors import Conflict, Unauthorized

# Demo accounts created by `seed`.
_SEED_USERS = [
    User(email="hari@happy5.co", first_name="Hari", last_name="Hari"),
    User(email="administrator@happy5.co", first_name="Admin", last_name="Admin", is_admin=True),
]


def _session_manager(store: UserStore) -> SessionManager:
    settings = get_settings()
    return SessionManager(store, CredentialCodec(settings.secret_key, settings.jwt_algorithm))


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    store = UserStore()
    try:
        for user in _SEED_USERS:
            existing = store.get_user_by_email(user.email)
            if existing is not None:
                print(f"  exists\tid: {existing.id} | email: {existing.email}")
                continue
            uid = store.create_user(user)
            label = "admin" if user.is_admin else "user"
            print(f"  created test {label}\tid: {uid} | email: {user.email}")
    finally:
        store.close()
    return 0


def cmd_create_user(args: argparse.Namespace) -> int:
    store = UserStore()
    try:
        uid = store.create_user(
            User(
                email=args.email,
                first_name=args.first_name,
                last_name=args.last_name,
                is_admin=args.admin,
            )
        )
    except Conflict:
        print(f"  [!] A user with email '{args.email}' already exists.", file=sys.stderr)
        return 1
    finally:
        store.close()
    print(f"  created user id: {uid}")
    return 0


def cmd_issue_token(args: argparse.Namespace) -> int:
    store = UserStore()
    try:
        token = _session_manager(store).authenticate(args.email)
    except Unauthorized:
        print(f"  [!] No user with email '{args.email}'.", file=sys.stderr)
        return 1
    finally:
        store.close()
    print(token)
    return 0


def cmd_revoke_session(args: argparse.Namespace) -> int:
    store = UserStore()
    try:
        _session_manager(store).revoke(args.session_id)
    finally:
        store.close()
    print(f"  session {args.session_id} revoked")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="taskboard",
        description="TaskBoard API server and admin commands.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  DEBUG=true python main.py serve --reload
  python main.py seed
  python main.py issue-token --email administrator@happy5.co
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=3000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    serve.set_defaults(func=cmd_serve)

    seed = sub.add_parser("seed", help="Create a demo user and a demo admin")
    seed.set_defaults(func=cmd_seed)

    create = sub.add_parser("create-user", help="Create a user")
    create.add_argument("--email", required=True)
    create.add_argument("--first-name", required=True)
    create.add_argument("--last-name", default=None)
    create.add_argument("--admin", action="store_true", help="Grant admin override")
    create.set_defaults(func=cmd_create_user)

    issue = sub.add_parser("issue-token", help="Open a session for a user and print its credential")
    issue.add_argument("--email", required=True)
    issue.set_defaults(func=cmd_issue_token)

    revoke = sub.add_parser("revoke-session", help="Revoke a session by id")
    revoke.add_argument("session_id", type=int)
    revoke.set_defaults(func=cmd_revoke_session)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

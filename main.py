#!/usr/bin/env python3
"""
userdir -- Bearer credentials and role gates for a small user directory.

Usage:
  python main.py init-store
  python main.py create-user admin --role admin
  python main.py create-user alice --password 'Str0ng!Pass'
  python main.py serve
  python main.py serve --port 8080 --reload

Environment variables (see core/config.py):
  SECRET_KEY    Required. Signing key for bearer tokens, at least 32 characters.
  USERS_FILE    Path of the JSON user store (default: data/users.json).
  PORT / HOST   Listen address for `serve` (default: 127.0.0.1:4001).
"""

import argparse
import getpass
import sys
from typing import Optional

import pydantic

from api.models import CredentialsRequest
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import hash_password
from core.config import get_settings
from core.errors import AppError


def _init_store(args: argparse.Namespace) -> int:
    path = get_settings().users_file
    if UserStore.initialize(path):
        print(f"  Created empty user store at {path}.")
    else:
        print(f"  User store {path} already exists; left unchanged.")
    return 0


def _create_user(args: argparse.Namespace) -> int:
    """Create a user directly in the store -- the only way to provision admins."""
    password: Optional[str] = args.password
    if password is None:
        password = getpass.getpass("Password: ")
        if getpass.getpass("Confirm password: ") != password:
            print("  [!] Passwords do not match.", file=sys.stderr)
            return 1
    try:
        creds = CredentialsRequest(username=args.username, password=password)
    except pydantic.ValidationError as exc:
        for err in exc.errors():
            field = ".".join(str(p) for p in err["loc"]) or "input"
            print(f"  [!] Invalid {field}: {err['msg']}", file=sys.stderr)
        return 1

    try:
        store = UserStore(get_settings().users_file)
        user = store.create(User(username=creds.username, password_hash=hash_password(creds.password), role=Role(args.role)))
    except AppError as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 1
    print(f"  Created user '{user.username}' with role '{user.role.value}'.")
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="userdir",
        description="Issue and verify bearer credentials for a small user directory.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    init_p = sub.add_parser("init-store", help="Create an empty user store file if none exists")
    init_p.set_defaults(func=_init_store)

    create_p = sub.add_parser("create-user", help="Add a user to the store (use --role admin for admins)")
    create_p.add_argument("username", help="Username (case-sensitive, must be unique)")
    create_p.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.USER.value,
        help="Role for the new user (default: user)",
    )
    create_p.add_argument(
        "--password",
        default=None,
        help="Password (prompted for when omitted; avoid passing it on a shared shell)",
    )
    create_p.set_defaults(func=_create_user)

    serve_p = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve_p.add_argument("--host", default=None, help="Bind address (default: HOST setting)")
    serve_p.add_argument("--port", type=int, default=None, help="Port (default: PORT setting)")
    serve_p.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    serve_p.set_defaults(func=_serve)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

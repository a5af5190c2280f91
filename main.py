#!/usr/bin/env python3
"""
TaskBoard -- account administration from the command line.

Usage:
  python main.py create-user --name "Ada" --email ada@example.com --role admin
  python main.py create-user --name "Bob" --email bob@example.com --password s3cret! --role gestor
  python main.py list-users
  python main.py list-users --json

create-user writes straight to the store, so it works before any admin
exists (first-run bootstrap). When --password is omitted it is prompted for.

Environment variables (see core/config.py):
  DATABASE_URL  SQLAlchemy URL of the user database.
  JWT_SECRET    Required unless DEBUG=true.
"""

import argparse
import getpass
import json
import sys
from typing import Optional

from auth.errors import AuthError, DuplicateKeyError
from auth.models import Role, User
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import hash_password
from core.config import get_settings


def _create_user(store: UserStore, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    if len(password) < 6:
        print("  [!] Password must be at least 6 characters long.")
        return 1
    try:
        new_user = User(name=args.name, email=args.email, password_hash=hash_password(password), role=args.role)
        user = store.create(new_user)
    except DuplicateKeyError:
        print(f"  [!] A user with email '{args.email}' already exists.")
        return 1
    except AuthError as e:
        print(f"  [!] {e.message}")
        return 1
    print(f"  Created {user.role.value} '{user.name}' <{user.email}> (id={user.id})")
    return 0


def _list_users(service: AuthService, as_json: bool) -> int:
    users = service.get_users()
    if as_json:
        print(json.dumps(users, indent=2))
        return 0
    if not users:
        print("  No users yet. Create one with: python main.py create-user --role admin ...")
        return 0
    for u in users:
        print(f"  {u['id']:>4}  {u['role']:<12} {u['name']} <{u['email']}>")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="taskboard",
        description="TaskBoard account administration",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create an account with any role")
    create.add_argument("--name", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--password", help="Prompted for when omitted")
    create.add_argument("--role", choices=[r.value for r in Role], default=Role.colaborador.value)

    listing = sub.add_parser("list-users", help="List every account ordered by name")
    listing.add_argument("--json", action="store_true", help="Output JSON")

    args = parser.parse_args(argv)

    settings = get_settings()
    store = UserStore(settings.database_url)
    try:
        if args.command == "create-user":
            return _create_user(store, args)
        service = AuthService(store, secret_key=settings.jwt_secret, token_expire_seconds=settings.token_expire_seconds)
        return _list_users(service, args.json)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())

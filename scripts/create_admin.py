#!/usr/bin/env python3
"""
Create an administrator account, or promote an existing account to admin.

Usage:
  python scripts/create_admin.py --email admin@example.com [--name "Ada"] [--password ...]

Without --password a random one is generated and printed once.
"""
from __future__ import annotations

import argparse
import logging
import secrets
import sys

from usermgmt.core.config import get_settings
from usermgmt.core.logging import configure_logging
from usermgmt.core.security import hash_password
from usermgmt.db.create_tables import create_all
from usermgmt.domain.users import MIN_PASSWORD_LENGTH, is_valid_email, normalize_email
from usermgmt.repositories.sql_repository import SQLRepository

logger = logging.getLogger("usermgmt.scripts.create_admin")


def gen_password(length: int = 16) -> str:
    return secrets.token_urlsafe(length)[:length]


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Create or promote an administrator")
    ap.add_argument("--email", required=True, help="Administrator e-mail address")
    ap.add_argument("--name", default=None, help="Optional display name")
    ap.add_argument("--password", default=None, help="Password (default: random)")
    args = ap.parse_args(argv)

    configure_logging(get_settings().log_level)
    email = normalize_email(args.email)
    if not is_valid_email(email):
        raise SystemExit("Invalid email format")
    password = args.password or gen_password()
    if len(password) < MIN_PASSWORD_LENGTH:
        raise SystemExit(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    create_all()
    repo = SQLRepository()
    existing = repo.get_user_by_email(email)
    if existing is not None:
        values = {"is_admin": True}
        if args.password:
            values["password_hash"] = hash_password(password)
        repo.update_user(existing.id, values)
        print(f"OK: {email} promoted to admin (id {existing.id})")
        return 0

    user = repo.create_user(email, hash_password(password), name=args.name, is_admin=True)
    print("OK: administrator created")
    print(f"  ID: {user.id}")
    print(f"  Email: {user.email}")
    if not args.password:
        print(f"  Password: {password}")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover
        logger.exception("create_admin failed")
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)

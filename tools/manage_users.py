from __future__ import annotations

import argparse
import getpass

from sqlalchemy import func, select

from pizzashop.auth import hash_password
from pizzashop.config import Settings
from pizzashop.db import Database, transaction
from pizzashop.models import User
from pizzashop.roles import Role

# Accounts registered through the API are always customers; staff and admins are made here.


def _find(db, email: str):
    return db.scalar(select(User).where(func.lower(User.email) == email.lower()))


def set_role(database: Database, email: str, role: Role) -> None:
    with database.session() as db:
        user = _find(db, email)
        if not user:
            raise SystemExit(f"No user with email {email}")
        with transaction(db):
            user.role = role
    print(f"OK  {email}  ->  {role.value}")


def create_admin(database: Database, name: str, email: str, password: str) -> None:
    with database.session() as db:
        if _find(db, email):
            raise SystemExit(f"User {email} already exists (use set-role instead)")
        with transaction(db):
            db.add(
                User(
                    name=name,
                    email=email,
                    password_hash=hash_password(password),
                    role=Role.admin,
                    is_verified=True,
                )
            )
    print(f"OK  created admin {email}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Pizza API user administration")
    parser.add_argument("--database-url", default=None, help="defaults to DATABASE_URL")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_role = sub.add_parser("set-role", help="change the role of an existing user")
    p_role.add_argument("email")
    p_role.add_argument("role", choices=[r.value for r in Role])

    p_admin = sub.add_parser("create-admin", help="create a verified admin account")
    p_admin.add_argument("email")
    p_admin.add_argument("--name", default="Admin")

    args = parser.parse_args(argv)

    settings = Settings()
    database = Database(args.database_url or settings.database_url)
    database.create_all()
    try:
        if args.cmd == "set-role":
            set_role(database, args.email, Role(args.role))
        else:
            password = getpass.getpass("Password: ")
            if len(password) < 8:
                raise SystemExit("Password must be at least 8 characters long")
            create_admin(database, args.name, args.email, password)
    finally:
        database.dispose()


if __name__ == "__main__":
    main()

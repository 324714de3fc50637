#!/usr/bin/env python3
"""
Provision a portal administrator.

Usage:
    python scripts/create_admin.py --email admin@example.com --name "Site Admin"
    python scripts/create_admin.py --email admin@example.com --reset-password

The password is prompted for unless --password is given.
"""

import argparse
import asyncio
import getpass
import sys

from hvac_portal.core.auth import (
    Role,
    SessionManager,
    SqlEmployeeStore,
    SqlSessionStore,
    bootstrap_admin,
    reset_password,
)
from hvac_portal.core.database import DatabaseAdapter


async def run(args: argparse.Namespace, password: str) -> int:
    db = DatabaseAdapter()
    await db.connect()
    try:
        employees = SqlEmployeeStore(db)
        existing = await employees.get_by_email(args.email)

        if existing is not None:
            if not args.reset_password:
                print(f"Employee {existing.email} already exists (role: {existing.role})")
                return 1
            sessions = SessionManager(SqlSessionStore(db), employees)
            revoked = await reset_password(employees, sessions, existing.id, password)
            print(f"Password reset for {existing.email}; {revoked} session(s) revoked")
            return 0

        employee = await bootstrap_admin(employees, args.email, password, args.name)
        if employee is None:
            print(f"Employee {args.email} already exists")
            return 1

        print(f"Created {Role.ADMIN.value} {employee.email} ({employee.id})")
        return 0
    finally:
        await db.disconnect()


def main() -> int:
    parser = argparse.ArgumentParser(description="Provision a portal administrator")
    parser.add_argument("--email", required=True, help="Administrator email")
    parser.add_argument("--name", default="Administrator", help="Display name")
    parser.add_argument("--password", help="Password (prompted when omitted)")
    parser.add_argument(
        "--reset-password",
        action="store_true",
        help="Set a new password if the employee already exists"
    )
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters", file=sys.stderr)
        return 2

    return asyncio.run(run(args, password))


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Bootstrap an administrator account.

Admins cannot be created through the API, so the first one comes from here.

Usage:
    python scripts/create_admin.py admin@clinic.example "Clinic Admin"
    python scripts/create_admin.py admin@clinic.example "Clinic Admin" --position "Director"
"""

import argparse
import asyncio
import getpass
import sys

from clinicflow.core.exceptions import AppException
from clinicflow.core.policies import EntityKind
from clinicflow.core.security import get_password_hash
from clinicflow.core.transactions import apply_effects
from clinicflow.database import AsyncSessionLocal, engine
from clinicflow.models import users
from clinicflow.schemas.users import Role
from clinicflow.services.auth_service import email_taken
from clinicflow.services.repository import EntityRepository


async def create_admin(email: str, full_name: str, password: str, position: str) -> None:
    """Insert an admin user together with its staff profile."""
    async with AsyncSessionLocal() as session:
        if await email_taken(session, email):
            raise AppException(f"{email} is already registered", status_code=409)

        staff_repo = EntityRepository(session, EntityKind.STAFF)

        async def _insert() -> None:
            result = await session.execute(
                users.insert()
                .values(
                    email=email.lower(),
                    password_hash=get_password_hash(password),
                    full_name=full_name,
                    role=Role.ADMIN.value,
                )
                .returning(users.c.id)
            )
            user_id = result.scalar_one()
            await staff_repo.insert({"user_id": user_id, "position": position})

        await apply_effects(session, [_insert])

    await engine.dispose()


def main() -> None:
    """Command line entry point."""
    parser = argparse.ArgumentParser(description="Create an administrator account")
    parser.add_argument("email")
    parser.add_argument("full_name")
    parser.add_argument("--position", default="Administrator")
    args = parser.parse_args()

    password = getpass.getpass("Password: ")
    if len(password) < 8:
        print("✗ Password must be at least 8 characters", file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(create_admin(args.email, args.full_name, password, args.position))
    except AppException as e:
        print(f"✗ {e.message}", file=sys.stderr)
        sys.exit(1)

    print(f"✓ Admin {args.email} created")


if __name__ == "__main__":
    main()

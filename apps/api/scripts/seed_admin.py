"""
Seed Admin User

Creates the first ADMIN account so staff can sign in and start reviewing
enrollment applications. Credentials come from the environment; nothing is
hardcoded.

Usage:
    cd apps/api
    SEED_ADMIN_EMAIL=registrar@school.test SEED_ADMIN_PASSWORD=... \
        python scripts/seed_admin.py "Registrar Name"
"""

import asyncio
import os
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import app.modules.models  # noqa: E402,F401 - registers every table
from app.core.database import async_session_maker, close_db  # noqa: E402
from app.core.security import hash_password  # noqa: E402
from app.modules.users.models import UserRole  # noqa: E402
from app.modules.users.repository import UserRepository  # noqa: E402

MIN_PASSWORD_LENGTH = 8


async def seed_admin(email: str, password: str, name: str) -> None:
    """Create the admin user if the email is not already registered."""
    async with async_session_maker() as db:
        existing = await UserRepository.get_by_email(db, email)
        if existing:
            print(f"Account already exists: {existing.email}")
            print(f"  ID: {existing.id}")
            print(f"  Role: {existing.role.value}")
            return

        admin = await UserRepository.create(
            db,
            email=email,
            password_hash=hash_password(password),
            name=name,
            role=UserRole.ADMIN,
            email_verified=True,
        )
        await db.commit()

        print("Admin created successfully!")
        print(f"  Email: {admin.email}")
        print(f"  Name: {admin.name}")
        print(f"  ID: {admin.id}")

    await close_db()


def main() -> int:
    email = os.environ.get("SEED_ADMIN_EMAIL", "").strip()
    password = os.environ.get("SEED_ADMIN_PASSWORD", "")
    name = sys.argv[1] if len(sys.argv) > 1 else "Administrator"

    if not email or len(password) < MIN_PASSWORD_LENGTH:
        print(
            "Set SEED_ADMIN_EMAIL and SEED_ADMIN_PASSWORD "
            f"(at least {MIN_PASSWORD_LENGTH} characters).",
            file=sys.stderr,
        )
        return 1

    asyncio.run(seed_admin(email, password, name))
    return 0


if __name__ == "__main__":
    sys.exit(main())

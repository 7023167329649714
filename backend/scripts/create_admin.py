"""Create the first admin account.

Registration is admin-only, so a fresh database needs one admin created out
of band. Does nothing if the email is already taken.

Run inside Docker:
    docker compose exec backend python -m scripts.create_admin admin@example.com "Admin Name"
The password is read from ``ADMIN_PASSWORD`` or prompted for.
"""

import asyncio
import getpass
import os
import sys
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select

from app.auth.passwords import MIN_PASSWORD_LENGTH, hash_password
from app.database import async_session_factory, engine
from app.models.user import User


async def create_admin(email: str, name: str, password: str) -> None:
    async with async_session_factory() as session:
        existing = (await session.execute(select(User).where(User.email == email.lower()))).scalar_one_or_none()
        if existing is not None:
            print(f"User {email} already exists (role={existing.role}); nothing to do.")
            return

        session.add(User(email=email.lower(), name=name, hashed_password=hash_password(password), role="admin"))
        await session.commit()
        print(f"Created admin {email}")
    await engine.dispose()


def main() -> None:
    if len(sys.argv) != 3:
        sys.exit("usage: python -m scripts.create_admin EMAIL NAME")
    email, name = sys.argv[1], sys.argv[2]
    password = os.environ.get("ADMIN_PASSWORD") or getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        sys.exit(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    asyncio.run(create_admin(email, name, password))


if __name__ == "__main__":
    main()

"""
Standalone script that creates the default ADMIN account.

Connects with the configured DATABASE_URL, creates the schema when
--create-tables is given, and inserts the admin user unless one with the
same email already exists. When no password is passed, one is generated
and printed once.

Usage:
    python scripts/seed_admin.py --email admin@chemclass.com --password 'secret123'
"""
import argparse
import asyncio

from sqlalchemy import select

from tutoring_admin_backend.common.config import settings
from tutoring_admin_backend.common.security_utils import HashedPassword, generate_password
from tutoring_admin_backend.database.db_enums import UserRole
from tutoring_admin_backend.database.engine import Database
from tutoring_admin_backend.database.models import Users

DEFAULT_EMAIL = "admin@chemclass.com"
DEFAULT_NAME = "System Admin"


async def seed_admin(email: str, password: str | None, full_name: str, create_tables: bool) -> None:
    database = Database(settings.database_url)
    try:
        if create_tables:
            await database.create_all()

        async with database.session_factory() as session:
            existing = await session.scalar(select(Users.id).where(Users.email == email))
            if existing is not None:
                print(f"Admin account '{email}' already exists. Nothing to do.")
                return

            plain_password = password or generate_password()
            session.add(Users(
                email=email,
                password_hash=HashedPassword.get_hash(plain_password),
                full_name=full_name,
                role=UserRole.ADMIN.value,
            ))
            await session.commit()

        print("Created default ADMIN account.")
        print(f"  Email:    {email}")
        if password is None:
            print(f"  Password: {plain_password}  (shown only once)")
    finally:
        await database.dispose()


def main():
    parser = argparse.ArgumentParser(description="Create the default admin account.")
    parser.add_argument("--email", default=DEFAULT_EMAIL)
    parser.add_argument("--password", default=None, help="Generated when omitted.")
    parser.add_argument("--full-name", default=DEFAULT_NAME)
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first.")
    args = parser.parse_args()

    asyncio.run(seed_admin(args.email, args.password, args.full_name, args.create_tables))


if __name__ == "__main__":
    main()

"""Create a municipal staff (admin) account.

Registration through the API only ever creates citizens, so admins are
provisioned here:

    python scripts/create_admin.py --email staff@city.gov --name "Ward Office"
"""

import argparse
import asyncio
import getpass
import sys

from sqlalchemy import select

from civicconnect.core.security import hash_password
from civicconnect.db.session import async_session_maker, create_tables, engine
from civicconnect.models.user import Department, User, UserRole


async def create_admin(name: str, email: str, password: str) -> int:
    email = email.strip().lower()

    async with async_session_maker() as db:
        existing = await db.execute(select(User).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            print(f"A user with email {email} already exists; roles cannot be changed.")
            return 1

        user = User(
            name=name.strip(),
            email=email,
            password_hash=hash_password(password),
            role=UserRole.ADMIN,
        )
        db.add(user)
        await db.commit()
        print(f"Admin created: {user.id} ({email})")
    return 0


async def add_departments(names) -> None:
    async with async_session_maker() as db:
        result = await db.execute(select(Department.name))
        known = set(result.scalars().all())
        for name in names:
            if name in known:
                print(f"Department exists: {name}")
                continue
            db.add(Department(name=name))
            print(f"Department added: {name}")
        await db.commit()


async def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--password", help="Prompted for when omitted")
    parser.add_argument(
        "--department",
        action="append",
        default=[],
        help="Also create this department (repeatable)",
    )
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if not password:
        print("A password is required.")
        return 1

    await create_tables()
    try:
        status = await create_admin(args.name, args.email, password)
        if args.department:
            await add_departments(args.department)
    finally:
        await engine.dispose()
    return status


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

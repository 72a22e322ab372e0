#!/usr/bin/env python3
"""One-time script to activate an account and grant it roles. Run on the server.

Usage:
    python demo/activate_user.py admin@theycare.ph SYSTEM_ADMIN
"""
import argparse
import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from theycare.config import settings
from theycare.models.user import AccountStatus, Role, User


async def activate(email: str, roles: list[Role]):
    engine = create_async_engine(settings.DATABASE_URL)
    sf = async_sessionmaker(engine, class_=AsyncSession)
    async with sf() as s:
        result = await s.execute(select(User).where(User.email == email.strip().lower()))
        user = result.scalar_one_or_none()
        if user is None:
            print(f"No user with email {email}")
        else:
            user.status = AccountStatus.ACTIVE
            if roles:
                user.set_roles(roles)
            await s.commit()
            print(f"{user.email}: ACTIVE, roles {sorted(r.value for r in user.roles)}")
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("email")
    parser.add_argument("roles", nargs="*", type=Role, choices=list(Role))
    args = parser.parse_args()
    asyncio.run(activate(args.email, args.roles))

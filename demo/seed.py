#!/usr/bin/env python3
"""
Demo seed script — populates the database with one account per role.

!! NOT FOR PRODUCTION !!
This script creates users with known passwords. It is intended ONLY for
local demos and frontend development.

Every user is registered through the running API, then activated and given
their role directly in the database (staff roles cannot be self-assigned).

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Reset the database and exit:
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

The captain account has OTP enabled; with OTP_CHANNEL=console the code
appears in the server log.
"""

import argparse
import asyncio
import os
import sys

import httpx

BASE_URL = "http://localhost:8000"

PASSWORD = "TheyCare123!"

# ---------------------------------------------------------------------------
# Demo users: (email, first, last, roles, otp_enabled, contact_number)
# ---------------------------------------------------------------------------

USERS = [
    ("admin@theycare.ph", "System", "Admin", ["SYSTEM_ADMIN"], False, None),
    ("captain@theycare.ph", "Ramon", "Santos", ["BARANGAY_CAPTAIN"], True, "09171234567"),
    ("official@theycare.ph", "Liza", "Reyes", ["BARANGAY_OFFICIAL"], False, None),
    ("bhw@theycare.ph", "Maria", "Cruz", ["BHW"], False, "09181234567"),
    ("bhw.coordinator@theycare.ph", "Ana", "Garcia", ["BHW_COORDINATOR"], False, None),
    ("daycare.staff@theycare.ph", "Jose", "Bautista", ["DAYCARE_STAFF"], False, None),
    ("teacher@theycare.ph", "Grace", "Mendoza", ["DAYCARE_TEACHER"], False, None),
    ("sk.officer@theycare.ph", "Paolo", "Villanueva", ["SK_OFFICER"], False, None),
    ("sk.chairman@theycare.ph", "Carlo", "Ramos", ["SK_CHAIRMAN"], False, None),
    ("parent@theycare.ph", "Rosa", "Dela Cruz", ["PARENT_RESIDENT", "PATIENT"], False, None),
    ("patient@theycare.ph", "Pedro", "Aquino", ["PATIENT"], False, None),
    ("visitor@theycare.ph", "Nina", "Torres", ["VISITOR"], False, None),
]

# Left PENDING so the approval queue is not empty
PENDING_USERS = [
    ("pending@theycare.ph", "Luis", "Castillo", ["VISITOR"]),
]


def log(msg: str) -> None:
    print(f"  {msg}")


async def register(client: httpx.AsyncClient, email: str, first: str, last: str) -> None:
    resp = await client.post(f"{BASE_URL}/auth/register", json={
        "email": email,
        "password": PASSWORD,
        "first_name": first,
        "last_name": last,
    })
    if resp.status_code == 409:
        log(f"{email} already exists, updating")
        return
    resp.raise_for_status()


async def provision(accounts: list[tuple]) -> None:
    """Activate users and set their roles directly in the database.

    This bypasses the API since only an administrator could do it there,
    and the first administrator has to come from somewhere.
    """
    from sqlalchemy import select
    from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
    from theycare.config import settings
    from theycare.models.user import AccountStatus, Role, User

    engine = create_async_engine(settings.DATABASE_URL)
    session_factory = async_sessionmaker(engine, class_=AsyncSession)

    async with session_factory() as session:
        for email, roles, otp_enabled, contact_number in accounts:
            result = await session.execute(select(User).where(User.email == email))
            user = result.scalar_one()
            user.status = AccountStatus.ACTIVE
            user.otp_enabled = otp_enabled
            user.contact_number = contact_number
            user.set_roles(Role(r) for r in roles)
        await session.commit()

    await engine.dispose()


async def seed(base_url: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn theycare.main:app --reload\n")
            sys.exit(1)

        print("Registering users...")
        for email, first, last, *_ in USERS:
            await register(client, email, first, last)
            log(email)
        for email, first, last, _ in PENDING_USERS:
            await register(client, email, first, last)
            log(f"{email} (left pending)")

    print("\nActivating accounts and assigning roles...")
    await provision([
        (email, roles, otp_enabled, contact)
        for email, _, _, roles, otp_enabled, contact in USERS
    ])

    # --- Summary ---
    print("\n========================================")
    print("  SEED COMPLETE — Login Credentials")
    print("========================================")
    print(f"\n  Password for every account: {PASSWORD}\n")
    print(f"  {'Email':<32s} {'Roles':<32s} {'OTP'}")
    print(f"  {'─' * 32} {'─' * 32} {'─' * 3}")
    for email, _, _, roles, otp_enabled, _ in USERS:
        print(f"  {email:<32s} {', '.join(roles):<32s} {'on' if otp_enabled else 'off'}")
    for email, _, _, roles in PENDING_USERS:
        print(f"  {email:<32s} {', '.join(roles):<32s} PENDING")
    print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "theycare.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script — NOT FOR PRODUCTION",
        epilog="Creates one active account per role plus a pending registration.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await seed(args.base_url)


if __name__ == "__main__":
    asyncio.run(main())

"""
Test fixtures for the TheyCare Portal test suite.

Shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - otp_channel: Recording fake that replaces the configured OTP channel
  - client: Async HTTP test client (unauthenticated)
  - make_user: Factory that inserts a user straight into the database
  - login: Logs a user in through the real endpoint and returns the token
  - admin_client: Test client authenticated as an ACTIVE SYSTEM_ADMIN

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) gives every test a fresh database.
  - get_db is overridden with a session on the test engine that has the
    same commit semantics as production (commit on domain errors too), so
    OTP attempt counters behave as they do in the real app.
  - Staff accounts are created directly in the database as ACTIVE, the way
    an operator provisions them; self-registration is exercised separately.
"""

import os
import re

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from theycare.channels import get_otp_channel
from theycare.database import Base, get_db
from theycare.exceptions import DispatchFailureError, TheyCareError
from theycare.main import app
from theycare.models.user import AccountStatus, Role, User
from theycare.security import hash_password


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

DEFAULT_PASSWORD = "SecurePass123!"

_CODE_PATTERN = re.compile(r"code is: (\d+)")


class RecordingChannel:
    """OTP channel that keeps every message instead of delivering it."""

    name = "console"

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send(self, destination: str, message: str) -> None:
        if self.fail:
            raise DispatchFailureError()
        self.sent.append((destination, message))

    @property
    def last_code(self) -> str:
        destination, message = self.sent[-1]
        return _CODE_PATTERN.search(message).group(1)


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest.fixture
def otp_channel():
    return RecordingChannel()


@pytest_asyncio.fixture
async def client(db_engine, otp_channel):
    """
    Async HTTP test client with the test database and fake OTP channel injected.
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except TheyCareError:
                await session.commit()
                raise
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_otp_channel] = lambda: otp_channel

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_user(db_engine):
    """
    Factory fixture: insert a user with the given roles and status.

    Usage:
        bhw = await make_user("bhw@example.com", [Role.BHW])
        pending = await make_user("p@example.com", [Role.VISITOR], status=AccountStatus.PENDING)
    """
    async_session = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False,
    )

    async def _make_user(
        email: str,
        roles: list[Role],
        status: AccountStatus = AccountStatus.ACTIVE,
        otp_enabled: bool = False,
        password: str = DEFAULT_PASSWORD,
        contact_number: str | None = None,
    ) -> User:
        async with async_session() as session:
            user = User(
                email=email,
                hashed_password=hash_password(password),
                first_name="Test",
                last_name=email.split("@")[0].title(),
                contact_number=contact_number,
                status=status,
                otp_enabled=otp_enabled,
                role_assignments=[],
            )
            user.set_roles(roles)
            session.add(user)
            await session.commit()
            return user

    return _make_user


@pytest_asyncio.fixture
async def login(client):
    """Log in through POST /auth/login and return the bearer token."""

    async def _login(email: str, password: str = DEFAULT_PASSWORD) -> str:
        response = await client.post(
            "/auth/login",
            json={"email": email, "password": password},
        )
        assert response.status_code == 200, f"Login failed: {response.text}"
        token = response.json()["token"]
        assert token, "Login required OTP; use the verify-otp flow instead"
        return token

    return _login


@pytest_asyncio.fixture
async def admin_client(client, make_user, login):
    """
    Test client authenticated as an ACTIVE SYSTEM_ADMIN.

    The admin is provisioned directly in the database, as an operator would.
    """
    await make_user("admin@example.com", [Role.SYSTEM_ADMIN])
    token = await login("admin@example.com")
    client.headers["Authorization"] = f"Bearer {token}"
    return client

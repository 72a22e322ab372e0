"""
Database engine, session management, and base model class.

SQLAlchemy 2.0 with async support:

  - engine: The async database engine
  - AsyncSessionLocal: Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits on
  success and on domain errors (TheyCareError), and rolls back on anything
  else. Committing on domain errors is what makes OTP bookkeeping stick: a
  wrong code increments the attempt counter and an expired challenge is
  marked EXPIRED even though the request itself fails.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from theycare.config import settings
from theycare.exceptions import TheyCareError


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)

# expire_on_commit=False prevents lazy-load errors after commit in async context
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


async def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/users")
        async def list_users(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except TheyCareError:
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise

"""
Engine and session plumbing for the fund ledger.

``DATABASE_URL`` selects the backend: a local SQLite file by default,
PostgreSQL via asyncpg in deployment. Services take an ``AsyncSession`` and
own their commits; objects stay usable after a commit so a service can
return the rows it just wrote.
"""

import os
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./navfund.db")

# Seconds a SQLite writer waits for another writer's lock before failing
SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"timeout": SQLITE_BUSY_TIMEOUT}
    return {}


# SQLALCHEMY_ECHO=1 logs every statement
engine = create_async_engine(
    DATABASE_URL,
    echo=os.getenv("SQLALCHEMY_ECHO") == "1",
    connect_args=_connect_args(DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base shared by the ledger tables."""
    pass


async def init_db() -> None:
    """Create any missing ledger tables. Existing tables are left as they are."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding one session per request.

    Uncommitted work is rolled back when the request ends.
    """
    async with AsyncSessionLocal() as session:
        yield session

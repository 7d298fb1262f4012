"""
Shared pytest fixtures for testing the fund ledger.

Uses an in-memory SQLite database for fast, isolated tests.
"""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from navfund.database import Base, get_session
from navfund.main import app
from navfund.models import Account, NavRecord, TradePosition
from navfund.services import accounts as account_service
from navfund.services import nav as nav_service
from navfund.services import positions as position_service


# Use in-memory SQLite for tests (fast, isolated)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="session")
def anyio_backend():
    """Use asyncio backend for pytest-asyncio."""
    return "asyncio"


@pytest_asyncio.fixture
async def test_engine():
    """Create a test database engine.

    Creates tables at the start, drops them at the end.
    Each test gets a fresh database.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine):
    """Provide a database session for a test.

    Rolls back the session after each test for isolation.
    """
    async_session = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """Session factory over a file-backed SQLite database.

    The in-memory engine shares one connection between all sessions, so
    tests that need truly independent sessions use this one instead.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fund.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_client(test_engine):
    """Provide a FastAPI test client with test database.

    Overrides the get_session dependency to use our test database.
    """
    async_session = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_session():
        async with async_session() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# --- Helper fixtures for creating test data ---

@pytest_asyncio.fixture
async def sample_nav(test_session) -> NavRecord:
    """Publish a NAV of 100 for testing."""
    return await nav_service.publish_nav(
        test_session, date(2024, 1, 31), Decimal("100.0000"), updated_by="ops"
    )


@pytest_asyncio.fixture
async def sample_account(test_session) -> Account:
    """Create a sample empty account for testing."""
    return await account_service.create_account(
        test_session, "u1", "Alice Investor", user_code="ALI001"
    )


@pytest_asyncio.fixture
async def sample_account_2(test_session, sample_account) -> Account:
    """Create a second sample account for testing."""
    return await account_service.create_account(
        test_session, "u2", "Bob Investor", user_code="BOB002"
    )


@pytest_asyncio.fixture
async def sample_position(test_session) -> TradePosition:
    """Open a position of 100 shares at 50.00 for testing."""
    return await position_service.open_position(
        test_session, "ACME", Decimal("50.00"), 100, date(2024, 1, 2)
    )

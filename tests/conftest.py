"""Pytest configuration and fixtures for async testing."""
import os
from pathlib import Path
from typing import AsyncGenerator, Callable

# Point the application at SQLite before billingcore builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from billingcore.database import Base, build_engine, build_session_factory
from billingcore.main import app
from billingcore.models import BillingProfile, User
from tests.utils.auth import auth_headers
from tests.utils.factories import BillingProfileFactory, UserFactory


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a fresh SQLite database file for each test.

    A file database (not ``:memory:``) lets the ledger's own sessions and
    the request session see the same data.

    Yields:
        AsyncEngine: Engine bound to the test database
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'billingcore.db'}")

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return build_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a database session for service-level tests.

    Yields:
        AsyncSession: Database session for testing
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="function")
def create_user(session_factory: async_sessionmaker[AsyncSession]) -> Callable:
    """
    Factory fixture inserting a panel user in its own committed transaction.

    Returns:
        Async callable accepting field overrides and returning the User
    """

    async def _create(**overrides) -> User:
        async with session_factory() as session:
            user = User(**UserFactory.create(overrides))
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _create


@pytest.fixture(scope="function")
def create_profile(session_factory: async_sessionmaker[AsyncSession]) -> Callable:
    """
    Factory fixture inserting a complete billing profile for a user.

    Returns:
        Async callable accepting the user ID and field overrides
    """

    async def _create(user_id: int, **overrides) -> BillingProfile:
        async with session_factory() as session:
            profile = BillingProfile(user_id=user_id, **BillingProfileFactory.create(overrides))
            session.add(profile)
            await session.commit()
            await session.refresh(profile)
            return profile

    return _create


@pytest_asyncio.fixture(scope="function")
async def test_user(create_user: Callable) -> User:
    """A regular panel user without a balance row."""
    return await create_user(username="alice", email="alice@example.com")


@pytest_asyncio.fixture(scope="function")
async def admin_user(create_user: Callable) -> User:
    """A panel administrator."""
    return await create_user(username="root", email="root@example.com")


@pytest.fixture(scope="function")
def user_headers(test_user: User) -> dict[str, str]:
    """Headers for the regular test user."""
    return auth_headers(test_user, "user")


@pytest.fixture(scope="function")
def admin_headers(admin_user: User) -> dict[str, str]:
    """Headers for the admin test user."""
    return auth_headers(admin_user, "admin")


@pytest_asyncio.fixture(scope="function")
async def async_client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client wired to the test database.

    Both the request session and the session factory used by the ledger
    and the settings store are overridden.

    Yields:
        AsyncClient: Async HTTP client for API testing
    """
    from billingcore.api.deps import get_db, get_session_factory

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        """Override database dependency to use test database."""
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    # Clean up
    app.dependency_overrides.clear()

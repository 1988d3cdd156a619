"""pytest fixtures for questkit tests.

Provides:
- utc_timezone: Autouse fixture enforcing UTC timezone
- engine: Function-scoped in-memory SQLite engine with all tables created
- session: Function-scoped database session
- uow_factory: Function-scoped UnitOfWork factory sharing the test engine
- kraxel: AsyncMock standing in for KraxelClient
"""

import os

# Settings must see a test environment before questkit modules are imported
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from typing import AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import questkit.models  # noqa: E402, F401
from questkit.services.kraxel.client import KraxelClient  # noqa: E402
from questkit.uow import create_uow_factory  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests."""
    os.environ["TZ"] = "UTC"
    yield


@pytest_asyncio.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Provide a fresh in-memory database per test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide function-scoped database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def uow_factory(session_factory):
    """Provide function-scoped UnitOfWork factory bound to the test database."""
    return create_uow_factory(session_factory)


@pytest.fixture
def kraxel() -> AsyncMock:
    """KraxelClient double; configure return values per test."""
    return AsyncMock(spec=KraxelClient)

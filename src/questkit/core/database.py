"""Async engine and session factory for the quest store."""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def create_engine(db_url: str, pool_size: int = 20) -> AsyncEngine:
    """Build the async engine.

    Pool sizing only applies to server databases (postgresql+psycopg in
    production). SQLite URLs, used for local runs, keep the driver's default
    pool.
    """
    url = make_url(db_url)
    if url.get_backend_name() == "sqlite":
        return create_async_engine(url)

    return create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=0,
        pool_pre_ping=True,
    )


def setup_db_session(db_url: str, pool_size: int = 20) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used by every unit of work.

    Loaded attributes survive commit: a validation row created in one
    transaction is finalized in a later one.

    Args:
        db_url: Database URL (postgresql+psycopg://... in production)
        pool_size: Connection pool size for server databases (default: 20)
    """
    return async_sessionmaker(
        create_engine(db_url, pool_size),
        class_=AsyncSession,
        expire_on_commit=False,
    )

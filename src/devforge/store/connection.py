"""Database connection management for the SQL blob store.

Factory functions for SQLAlchemy async engines and session factories,
configured from the application's StoreConfig.

Example usage:
    >>> from devforge.config import StoreConfig
    >>> from devforge.store.connection import get_engine, get_session_factory
    >>>
    >>> engine = get_engine(StoreConfig(url="postgresql+asyncpg://localhost/devforge"))
    >>> SessionFactory = get_session_factory(engine)
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from devforge.config import StoreConfig


def get_engine(config: StoreConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from store configuration.

    Pool sizing from StoreConfig is applied to server databases only;
    SQLite engines use SQLAlchemy's default pool for the dialect.

    Args:
        config: Store configuration containing URL, pool settings,
                and SQL echo preference.

    Returns:
        Configured AsyncEngine instance.
    """
    kwargs: dict[str, Any] = {"echo": config.echo}
    if make_url(config.url).get_backend_name() != "sqlite":
        kwargs["pool_size"] = config.pool_size
        kwargs["max_overflow"] = config.max_overflow
    return create_async_engine(config.url, **kwargs)


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine.

    Sessions use expire_on_commit=False so attributes stay readable after
    commit without triggering lazy loads.

    Args:
        engine: AsyncEngine to bind sessions to.

    Returns:
        Configured async_sessionmaker that produces AsyncSession instances.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

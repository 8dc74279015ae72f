"""Key-value store backends.

All backends share the ``KeyValueStore`` protocol: JSON documents addressed
by key inside one named store. Backends report an unreachable store by
raising ``StoreUnavailableError``; deciding what to do about it is the
gateway's job.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import structlog
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from devforge.store.models import Base, BlobRecord

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from devforge.config import StoreConfig

logger = structlog.get_logger(__name__)


class StoreUnavailableError(Exception):
    """Raised when the backing store cannot be reached or is not configured."""


@runtime_checkable
class KeyValueStore(Protocol):
    """JSON document store with get/set/list semantics."""

    name: str

    async def get(self, key: str) -> dict[str, Any] | None:
        """Return the document stored under ``key`` or None."""
        ...

    async def set(self, key: str, value: dict[str, Any]) -> None:
        """Insert or replace the document stored under ``key``."""
        ...

    async def list(self) -> list[str]:
        """Return every key in the store."""
        ...

    async def ping(self) -> None:
        """Raise StoreUnavailableError if the store cannot be reached."""
        ...


class MemoryStore:
    """Process-local store. Documents are copied in and out."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._data: dict[str, dict[str, Any]] = {}

    async def get(self, key: str) -> dict[str, Any] | None:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(value)

    async def list(self) -> list[str]:
        return list(self._data)

    async def ping(self) -> None:
        return None


class NullStore:
    """Store used when no durable backend is configured; every call is unavailable."""

    def __init__(self, name: str) -> None:
        self.name = name

    async def get(self, key: str) -> dict[str, Any] | None:
        raise StoreUnavailableError(f"No store configured for '{self.name}'")

    async def set(self, key: str, value: dict[str, Any]) -> None:
        raise StoreUnavailableError(f"No store configured for '{self.name}'")

    async def list(self) -> list[str]:
        raise StoreUnavailableError(f"No store configured for '{self.name}'")

    async def ping(self) -> None:
        raise StoreUnavailableError(f"No store configured for '{self.name}'")


class SqlStore:
    """Store backed by the ``blobs`` table through an async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], name: str) -> None:
        self.name = name
        self._session_factory = session_factory

    async def get(self, key: str) -> dict[str, Any] | None:
        try:
            async with self._session_factory() as session:
                record = await session.get(BlobRecord, (self.name, key))
                return record.value if record is not None else None
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(str(exc)) from exc

    async def set(self, key: str, value: dict[str, Any]) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    record = await session.get(BlobRecord, (self.name, key))
                    if record is None:
                        session.add(BlobRecord(store=self.name, key=key, value=value))
                    else:
                        record.value = value
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(str(exc)) from exc

    async def list(self) -> list[str]:
        try:
            async with self._session_factory() as session:
                stmt = (
                    select(BlobRecord.key)
                    .where(BlobRecord.store == self.name)
                    .order_by(BlobRecord.created_at, BlobRecord.key)
                )
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(str(exc)) from exc

    async def ping(self) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(str(exc)) from exc


async def create_tables(engine: AsyncEngine) -> None:
    """Create the blob table if it does not exist.

    Production databases are migrated with Alembic; this covers local SQLite use.

    Raises:
        StoreUnavailableError: If the database cannot be reached.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except (SQLAlchemyError, OSError) as exc:
        raise StoreUnavailableError(str(exc)) from exc


def create_store(
    config: StoreConfig,
    name: str,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> KeyValueStore:
    """Build the backend selected by ``config.backend`` for one store namespace.

    Args:
        config: Store configuration.
        name: Store namespace.
        session_factory: Required for the sql backend.

    Returns:
        A KeyValueStore implementation.
    """
    if config.backend == "sql":
        if session_factory is None:
            raise ValueError("sql store backend requires a session factory")
        return SqlStore(session_factory, name)
    if config.backend == "memory":
        return MemoryStore(name)
    logger.info("store_disabled", store=name)
    return NullStore(name)

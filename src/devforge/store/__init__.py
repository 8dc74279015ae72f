"""Persistence for project aggregates and global settings."""

from __future__ import annotations

from devforge.store.backends import (
    KeyValueStore,
    MemoryStore,
    NullStore,
    SqlStore,
    StoreUnavailableError,
    create_store,
    create_tables,
)
from devforge.store.gateway import SETTINGS_KEY, PersistenceGateway

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "NullStore",
    "SqlStore",
    "StoreUnavailableError",
    "create_store",
    "create_tables",
    "SETTINGS_KEY",
    "PersistenceGateway",
]

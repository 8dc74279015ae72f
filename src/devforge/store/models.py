"""SQLAlchemy models for the key-value blob store.

Every project aggregate (and the global settings record) is stored as one
JSON document addressed by a store namespace and a key, mirroring the
get/set/list contract of a blob store.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base for all Devforge models."""

    pass


class BlobRecord(Base):
    """A JSON document in a named store.

    Attributes:
        store: Namespace the key belongs to (e.g. "devforge-state").
        key: Document key, unique within the store.
        value: The JSON document.
        created_at: Timestamp set by the database on row creation.
        updated_at: Timestamp refreshed on each modification.
    """

    __tablename__ = "blobs"
    __table_args__ = (Index("idx_blobs_store_created", "store", "created_at"),)

    store: Mapped[str] = mapped_column(Text, primary_key=True)
    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

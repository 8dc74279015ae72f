"""Pytest fixtures for integration tests.

Provides an in-memory SQLite engine for store tests and an HTTP client for
the FastAPI application wired to the shared scripted controller.
"""

from __future__ import annotations

from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from devforge.config import DevforgeConfig, StoreConfig
from devforge.store.models import Base
from devforge.web.app import create_app
from devforge.workflow.controller import WizardController


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite async engine with the blob table."""
    test_engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def async_client(controller: WizardController) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for an app whose controller is the scripted test controller."""
    app = create_app(DevforgeConfig(store=StoreConfig(backend="memory")))
    app.state.controller = controller

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

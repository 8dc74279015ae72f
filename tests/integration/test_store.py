"""Integration tests for the SQL blob store and the persistence gateway."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from devforge.config import StoreConfig
from devforge.store.backends import (
    MemoryStore,
    NullStore,
    SqlStore,
    StoreUnavailableError,
    create_store,
)
from devforge.store.connection import get_session_factory
from devforge.store.gateway import SETTINGS_KEY, PersistenceGateway
from devforge.workflow import state_machine as engine_ops
from devforge.workflow.models import AppSettings, Project, RulePreset, RuleSet
from devforge.workflow.steps import Step, StepStatus


@pytest.fixture
def sql_gateway(session_factory: async_sessionmaker[AsyncSession]) -> PersistenceGateway:
    return PersistenceGateway(
        SqlStore(session_factory, "devforge-state"),
        SqlStore(session_factory, "devforge-state-settings"),
    )


class TestSqlStore:
    async def test_set_get_overwrite(self, session_factory) -> None:
        store = SqlStore(session_factory, "test")

        assert await store.get("k") is None
        await store.set("k", {"a": 1})
        await store.set("k", {"a": 2})

        assert await store.get("k") == {"a": 2}
        assert await store.list() == ["k"]

    async def test_namespaces_are_isolated(self, session_factory) -> None:
        one = SqlStore(session_factory, "one")
        two = SqlStore(session_factory, "two")
        await one.set("k", {"from": "one"})

        assert await two.get("k") is None
        assert await two.list() == []

    async def test_missing_table_reports_unavailable(self) -> None:
        bare = create_async_engine("sqlite+aiosqlite:///:memory:")
        store = SqlStore(get_session_factory(bare), "test")
        try:
            with pytest.raises(StoreUnavailableError):
                await store.get("k")
        finally:
            await bare.dispose()


class TestGateway:
    async def test_save_and_load_round_trip(self, sql_gateway: PersistenceGateway, make_project) -> None:
        project = make_project(Step.docs, with_payload=True)

        assert await sql_gateway.save(project) is True
        loaded = await sql_gateway.load(project.id)

        assert loaded == project
        assert loaded.status_of(Step.repo) == StepStatus.completed
        assert await sql_gateway.list() == [project.id]

    async def test_upsert_keeps_latest(self, sql_gateway: PersistenceGateway, sample_idea) -> None:
        project = engine_ops.create_initial()
        await sql_gateway.save(project)
        updated = engine_ops.set_payload(project, "idea", sample_idea)
        await sql_gateway.save(updated)

        assert (await sql_gateway.load(project.id)).idea == sample_idea
        assert await sql_gateway.list() == [project.id]

    async def test_invalid_document_loads_as_missing(self, session_factory, sql_gateway) -> None:
        await SqlStore(session_factory, "devforge-state").set("broken", {"id": "broken"})
        assert await sql_gateway.load("broken") is None

    async def test_settings_live_in_separate_namespace(self, session_factory, sql_gateway) -> None:
        settings = AppSettings(
            ai_provider="anthropic",
            rule_presets=[RulePreset(name="team", rules=RuleSet(dos=["Review every PR"]))],
        )

        assert await sql_gateway.save_settings(settings) is True

        assert await sql_gateway.load_settings() == settings
        assert await sql_gateway.list() == []
        raw = await SqlStore(session_factory, "devforge-state-settings").get(SETTINGS_KEY)
        assert raw["ai_provider"] == "anthropic"

    async def test_settings_default_when_absent(self, sql_gateway) -> None:
        assert await sql_gateway.load_settings() == AppSettings()

    async def test_is_available(self, sql_gateway) -> None:
        assert await sql_gateway.is_available() is True


class TestUnavailableStore:
    @pytest.fixture
    def null_gateway(self) -> PersistenceGateway:
        return PersistenceGateway(NullStore("devforge-state"), NullStore("devforge-state-settings"))

    async def test_operations_degrade_without_raising(self, null_gateway: PersistenceGateway) -> None:
        project = engine_ops.create_initial()

        assert await null_gateway.save(project) is False
        assert await null_gateway.load(project.id) is None
        assert await null_gateway.list() == []
        assert await null_gateway.load_settings() == AppSettings()
        assert await null_gateway.save_settings(AppSettings()) is False
        assert await null_gateway.is_available() is False


class TestReconcile:
    def test_newer_client_wins(self) -> None:
        stored = engine_ops.create_initial()
        client = stored.model_copy(update={"updated_at": stored.updated_at + timedelta(seconds=1)})
        assert PersistenceGateway.reconcile(stored, client) is client

    def test_newer_stored_wins(self) -> None:
        client = engine_ops.create_initial()
        stored = client.model_copy(update={"updated_at": client.updated_at + timedelta(seconds=1)})
        assert PersistenceGateway.reconcile(stored, client) is stored

    def test_client_wins_ties(self) -> None:
        stored = engine_ops.create_initial()
        client = stored.model_copy()
        assert PersistenceGateway.reconcile(stored, client) is client

    def test_naive_client_timestamp_compares(self) -> None:
        stored = engine_ops.create_initial()
        document = stored.model_dump(mode="json")
        document["updated_at"] = (stored.updated_at + timedelta(minutes=1)).replace(tzinfo=None).isoformat()
        client = Project.model_validate(document)

        assert PersistenceGateway.reconcile(stored, client) is client
        assert PersistenceGateway.reconcile(client, stored) is client

    def test_missing_sides(self) -> None:
        project = engine_ops.create_initial()
        assert PersistenceGateway.reconcile(None, project) is project
        assert PersistenceGateway.reconcile(project, None) is project
        assert PersistenceGateway.reconcile(None, None) is None

    def test_mismatched_ids(self) -> None:
        with pytest.raises(ValueError):
            PersistenceGateway.reconcile(engine_ops.create_initial(), engine_ops.create_initial())


class TestCreateStore:
    def test_backends(self, session_factory) -> None:
        assert isinstance(create_store(StoreConfig(backend="memory"), "s"), MemoryStore)
        assert isinstance(create_store(StoreConfig(backend="none"), "s"), NullStore)
        assert isinstance(create_store(StoreConfig(backend="sql"), "s", session_factory), SqlStore)

    def test_sql_requires_session_factory(self) -> None:
        with pytest.raises(ValueError):
            create_store(StoreConfig(backend="sql"), "s")

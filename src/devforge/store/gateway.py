"""Persistence gateway for project aggregates.

Loads, saves and lists ``Project`` aggregates against a key-value store.
The gateway never lets store failures reach its caller: an unreachable or
unconfigured store turns ``save`` into a logged no-op, ``load`` into
"not found" and ``list`` into an empty list, so the wizard keeps working on
client-held state alone.
"""

from __future__ import annotations

import structlog
from pydantic import ValidationError

from devforge.store.backends import KeyValueStore, StoreUnavailableError
from devforge.workflow.models import AppSettings, Project

logger = structlog.get_logger(__name__)

SETTINGS_KEY = "global-settings"


class PersistenceGateway:
    """Best-effort persistence of project aggregates and global settings.

    Attributes:
        store: Store holding one document per project, keyed by project id.
        settings_store: Store holding the global settings document.
    """

    def __init__(self, store: KeyValueStore, settings_store: KeyValueStore) -> None:
        self.store = store
        self.settings_store = settings_store

    async def save(self, project: Project) -> bool:
        """Upsert a project. Returns False (never raises) if the store is unavailable."""
        try:
            await self.store.set(project.id, project.model_dump(mode="json"))
        except StoreUnavailableError as exc:
            logger.warning(
                "store_unavailable",
                operation="save",
                project_id=project.id,
                error=str(exc),
            )
            return False
        logger.debug("project_saved", project_id=project.id)
        return True

    async def load(self, project_id: str) -> Project | None:
        """Return the stored project, or None when missing or the store is unavailable."""
        try:
            document = await self.store.get(project_id)
        except StoreUnavailableError as exc:
            logger.warning(
                "store_unavailable",
                operation="load",
                project_id=project_id,
                error=str(exc),
            )
            return None

        if document is None:
            return None

        try:
            return Project.model_validate(document)
        except ValidationError as exc:
            logger.error("stored_project_invalid", project_id=project_id, error=str(exc))
            return None

    async def list(self) -> list[str]:
        """Return every stored project id; empty when the store is unavailable."""
        try:
            return await self.store.list()
        except StoreUnavailableError as exc:
            logger.warning("store_unavailable", operation="list", error=str(exc))
            return []

    async def load_settings(self) -> AppSettings:
        """Return global settings, falling back to defaults."""
        try:
            document = await self.settings_store.get(SETTINGS_KEY)
        except StoreUnavailableError as exc:
            logger.warning("store_unavailable", operation="load_settings", error=str(exc))
            return AppSettings()

        if document is None:
            return AppSettings()
        try:
            return AppSettings.model_validate(document)
        except ValidationError as exc:
            logger.error("stored_settings_invalid", error=str(exc))
            return AppSettings()

    async def save_settings(self, settings: AppSettings) -> bool:
        """Store global settings. Returns False if the store is unavailable."""
        try:
            await self.settings_store.set(SETTINGS_KEY, settings.model_dump(mode="json"))
        except StoreUnavailableError as exc:
            logger.warning("store_unavailable", operation="save_settings", error=str(exc))
            return False
        return True

    async def is_available(self) -> bool:
        """Probe the project store."""
        try:
            await self.store.ping()
        except StoreUnavailableError:
            return False
        return True

    @staticmethod
    def reconcile(stored: Project | None, client: Project | None) -> Project | None:
        """Pick the newer of a stored and a client-held aggregate.

        The client copy wins ties, so a client that has been working without
        a store can push its state back once the store is reachable again.
        """
        if client is None:
            return stored
        if stored is None:
            return client
        if client.id != stored.id:
            raise ValueError(f"Cannot reconcile project {client.id} with {stored.id}")
        return client if client.updated_at >= stored.updated_at else stored

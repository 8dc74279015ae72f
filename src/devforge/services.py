"""Construction of the long-lived service graph.

Both the web application and the CLI need the same set of collaborators:
a persistence gateway over the configured store, the GitHub and Netlify
clients, the AI generator and the wizard controller wired on top of them.
``build_services`` creates them from a ``DevforgeConfig``; ``Services.aclose``
releases HTTP clients and database connections.

Example usage:
    >>> services = build_services(load_config())
    >>> await services.prepare()
    >>> project = await services.controller.create_project()
    >>> await services.aclose()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from devforge.config import DevforgeConfig
from devforge.integrations.ai import LangChainGenerator
from devforge.integrations.github import GitHubClient
from devforge.integrations.netlify import NetlifyClient
from devforge.integrations.repo_scan import RepoScanner
from devforge.store.backends import StoreUnavailableError, create_store, create_tables
from devforge.store.connection import get_engine, get_session_factory
from devforge.store.gateway import PersistenceGateway
from devforge.workflow.activity import ActivityLog
from devforge.workflow.controller import WizardController

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    """Collaborators shared by one process.

    Attributes:
        config: Resolved configuration.
        gateway: Persistence gateway for projects and settings.
        github: GitHub API client.
        netlify: Netlify API client.
        controller: The wizard controller.
        engine: SQL engine, only for the sql store backend.
    """

    config: DevforgeConfig
    gateway: PersistenceGateway
    github: GitHubClient
    netlify: NetlifyClient
    controller: WizardController
    engine: AsyncEngine | None = None

    async def prepare(self) -> None:
        """Create the blob table for the sql backend; a failure leaves the store degraded."""
        if self.engine is None:
            return
        try:
            await create_tables(self.engine)
        except StoreUnavailableError as exc:
            logger.warning("store_prepare_failed", error=str(exc))

    async def aclose(self) -> None:
        await self.github.close()
        await self.netlify.close()
        if self.engine is not None:
            await self.engine.dispose()


def build_services(config: DevforgeConfig) -> Services:
    """Wire every collaborator from configuration.

    Project documents and global settings live in two namespaces of the same
    backend: ``<store.name>`` and ``<store.name>-settings``.
    """
    engine = None
    session_factory = None
    if config.store.backend == "sql":
        engine = get_engine(config.store)
        session_factory = get_session_factory(engine)

    gateway = PersistenceGateway(
        store=create_store(config.store, config.store.name, session_factory),
        settings_store=create_store(config.store, f"{config.store.name}-settings", session_factory),
    )
    github = GitHubClient(config.github)
    netlify = NetlifyClient(config.netlify)
    controller = WizardController(
        gateway=gateway,
        generator=LangChainGenerator(config.ai),
        github=github,
        netlify=netlify,
        scanner=RepoScanner(github),
        activity=ActivityLog(),
        netlify_config=config.netlify,
    )

    logger.info("services_built", store_backend=config.store.backend, store_name=config.store.name)
    return Services(
        config=config,
        gateway=gateway,
        github=github,
        netlify=netlify,
        controller=controller,
        engine=engine,
    )

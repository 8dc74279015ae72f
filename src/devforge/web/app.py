"""FastAPI application factory for Devforge.

Creates the application with:
- CORS middleware for the wizard's browser front end
- Request logging middleware with correlation IDs
- The service graph (store, clients, controller) in app.state
- Health, project, settings and integration routers

Example usage:
    >>> from devforge.config import DevforgeConfig
    >>> from devforge.web.app import create_app
    >>>
    >>> app = create_app(DevforgeConfig())
    >>>
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from devforge import __version__
from devforge.config import DevforgeConfig
from devforge.logging import get_logger
from devforge.services import Services, build_services
from devforge.web.middleware import RequestLoggingMiddleware
from devforge.web.routes.health import create_health_router
from devforge.web.routes.integrations import create_integrations_router
from devforge.web.routes.projects import create_projects_router
from devforge.web.routes.settings import create_settings_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Prepare the store on startup; close clients and connections on shutdown."""
    services: Services = app.state.services
    config = services.config

    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)
    await services.prepare()

    yield

    logger.info("app_shutdown_begin")
    await services.aclose()
    logger.info("services_closed")


def create_app(
    config: DevforgeConfig | None = None,
    services: Services | None = None,
) -> FastAPI:
    """Create and configure a FastAPI application.

    Services are built here rather than in the lifespan so the application
    is usable by transports that do not run lifespan events.

    Args:
        config: Optional DevforgeConfig. If None, creates default config.
        services: Optional pre-built services; built from config if None.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = services.config if services is not None else DevforgeConfig()
    if services is None:
        services = build_services(config)

    app = FastAPI(
        title="Devforge",
        version=__version__,
        description="Step-gated project wizard: idea, plan, repository, docs, deploy",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.services = services
    app.state.controller = services.controller

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(create_health_router())
    app.include_router(create_projects_router())
    app.include_router(create_settings_router())
    app.include_router(create_integrations_router())

    logger.info(
        "app_created",
        cors_origins=config.web.cors_origins,
        store_backend=config.store.backend,
        version=__version__,
    )

    return app

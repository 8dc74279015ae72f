"""FastAPI route definitions for the Devforge API."""

from __future__ import annotations

from devforge.web.routes.health import (
    HealthResponse,
    ReadinessResponse,
    create_health_router,
)
from devforge.web.routes.integrations import (
    GitHubUserResponse,
    RepoScanResponse,
    create_integrations_router,
)
from devforge.web.routes.projects import (
    IdeaSubmit,
    PayloadUpdate,
    ProjectCreate,
    RepoCreate,
    SettingsUpdate,
    StateBody,
    StepApprove,
    create_projects_router,
)
from devforge.web.routes.settings import create_settings_router

__all__ = [
    # Health
    "HealthResponse",
    "ReadinessResponse",
    "create_health_router",
    # Integrations
    "GitHubUserResponse",
    "RepoScanResponse",
    "create_integrations_router",
    # Projects
    "IdeaSubmit",
    "PayloadUpdate",
    "ProjectCreate",
    "RepoCreate",
    "SettingsUpdate",
    "StateBody",
    "StepApprove",
    "create_projects_router",
    # Settings
    "create_settings_router",
]

"""FastAPI dependencies reading shared services from app state."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from devforge.store.gateway import PersistenceGateway
    from devforge.workflow.controller import WizardController


def get_controller(request: Request) -> WizardController:
    """Dependency that retrieves the wizard controller from app state."""
    return request.app.state.controller  # type: ignore[no-any-return]


def get_gateway(request: Request) -> PersistenceGateway:
    """Dependency that retrieves the persistence gateway from app state."""
    return request.app.state.controller.gateway  # type: ignore[no-any-return]

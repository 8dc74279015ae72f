"""Health check endpoints.

``/health/`` is a liveness probe. ``/health/ready`` probes the project store
and reports ``degraded`` when it is unreachable: the wizard still works in
that state, with clients holding the aggregate themselves.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from devforge.logging import get_logger
from devforge.store.gateway import PersistenceGateway
from devforge.web.dependencies import get_gateway

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Current health status ("ok")
    """

    status: str


class ReadinessResponse(BaseModel):
    """Readiness check response model.

    Attributes:
        status: "ok" or "degraded"
        store: Store connectivity ("connected", "unavailable")
    """

    status: str
    store: str


def create_health_router() -> APIRouter:
    """Create health check router.

    Routes:
        GET /health/ - Liveness check
        GET /health/ready - Readiness check with store probe
    """
    router = APIRouter(prefix="/health", tags=["health"])

    @router.get("/", response_model=HealthResponse)
    async def health() -> dict[str, Any]:
        return {"status": "ok"}

    @router.get("/ready", response_model=ReadinessResponse)
    async def readiness(
        gateway: PersistenceGateway = Depends(get_gateway),  # noqa: B008
    ) -> dict[str, Any]:
        if await gateway.is_available():
            logger.debug("readiness_check_passed", store="connected")
            return {"status": "ok", "store": "connected"}

        logger.warning("readiness_check_degraded", store="unavailable")
        return {"status": "degraded", "store": "unavailable"}

    return router

"""Global settings endpoints.

Global settings seed every project created afterwards. They are stored
apart from project aggregates; defaults are returned when the store is
unavailable.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from devforge.logging import get_logger
from devforge.web.dependencies import get_controller
from devforge.workflow.controller import WizardController
from devforge.workflow.models import AppSettings

logger = get_logger(__name__)


def create_settings_router() -> APIRouter:
    """Create the settings router.

    Routes:
        GET /settings/ - Read global settings
        PUT /settings/ - Replace global settings
    """
    router = APIRouter(prefix="/settings", tags=["settings"])

    @router.get("/", response_model=AppSettings)
    async def get_settings(
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> AppSettings:
        return await controller.load_settings()

    @router.put("/", response_model=AppSettings)
    async def put_settings(
        settings: AppSettings,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> AppSettings:
        saved = await controller.save_settings(settings)
        logger.info(
            "global_settings_saved",
            ai_provider=saved.ai_provider,
            preset_count=len(saved.rule_presets),
        )
        return saved

    return router

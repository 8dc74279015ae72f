"""Read-only endpoints backed directly by external collaborators.

Unlike step operations, these have no aggregate to record a failure on,
so collaborator errors become HTTP errors: client-side statuses from the
upstream API are passed through, anything else is reported as 502.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from pydantic import BaseModel, ValidationError

from devforge.integrations.errors import CollaboratorError
from devforge.logging import get_logger
from devforge.web.dependencies import get_controller
from devforge.workflow.controller import WizardController
from devforge.workflow.models import ConnectedRepo

logger = get_logger(__name__)

_PASSTHROUGH_STATUSES = {400, 401, 403, 404, 422}


class GitHubUserResponse(BaseModel):
    login: str


class RepoScanResponse(BaseModel):
    """Repository scan result.

    Attributes:
        files: Every file path in the repository
        detected: Which well-known files exist
    """

    files: list[str]
    detected: dict[str, bool]


def _collaborator_http_error(exc: CollaboratorError) -> HTTPException:
    status_code = exc.status_code if exc.status_code in _PASSTHROUGH_STATUSES else 502
    return HTTPException(status_code=status_code, detail=exc.message)


def create_integrations_router() -> APIRouter:
    """Create the integrations router.

    Routes:
        GET /github/user - Login of the configured GitHub token
        GET /repo-scan - Scan a GitHub repository or local directory
    """
    router = APIRouter(tags=["integrations"])

    @router.get("/github/user", response_model=GitHubUserResponse)
    async def github_user(
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> GitHubUserResponse:
        try:
            login = await controller.github.get_authenticated_user()
        except CollaboratorError as exc:
            raise _collaborator_http_error(exc) from None
        return GitHubUserResponse(login=login)

    @router.get("/repo-scan", response_model=RepoScanResponse)
    async def repo_scan(
        source: Literal["github", "local"],
        repo: str | None = None,
        path: str | None = None,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> RepoScanResponse:
        try:
            connected = ConnectedRepo(source=source, repo=repo, path=path)
        except ValidationError as exc:
            raise HTTPException(
                status_code=http_status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=exc.errors(include_url=False),
            ) from None

        try:
            result = await controller.scan_repository(connected)
        except CollaboratorError as exc:
            logger.warning("repo_scan_failed", source=source, error=exc.message)
            raise _collaborator_http_error(exc) from None
        return RepoScanResponse(files=result.files, detected=result.detected)

    return router

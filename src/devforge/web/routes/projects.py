"""Project wizard endpoints.

Every action endpoint returns the complete project aggregate. Action bodies
may carry ``state``, the client's copy of the aggregate; it is reconciled
with the stored copy (newer ``updated_at`` wins) so the wizard keeps working
when the store is unavailable.

Error mapping:
    404 - the project exists neither in the store nor in the request
    409 - the step is not in a status that allows the operation
    422 - malformed input
    Collaborator failures are not HTTP errors: they come back as 200 with
    the failed step in ``error``.

Example:
    >>> from fastapi import FastAPI
    >>> from devforge.web.routes.projects import create_projects_router
    >>>
    >>> app = FastAPI()
    >>> app.include_router(create_projects_router())
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from pydantic import BaseModel, Field

from devforge.logging import get_logger
from devforge.web.dependencies import get_controller
from devforge.workflow.activity import LogEntry
from devforge.workflow.controller import ProjectNotFoundError, WizardController
from devforge.workflow.models import AppSettings, IdeaInput, Project, RepoConfig
from devforge.workflow.state_machine import WorkflowError
from devforge.workflow.steps import Step

logger = get_logger(__name__)


class StateBody(BaseModel):
    """Request body carrying optional client-held state.

    Attributes:
        state: The client's copy of the aggregate, used when the store misses
    """

    state: Project | None = None


class ProjectCreate(BaseModel):
    """Request schema for creating a project; global settings apply when omitted."""

    settings: AppSettings | None = None


class IdeaSubmit(StateBody):
    idea: IdeaInput


class RepoCreate(StateBody):
    config: RepoConfig


class StepApprove(StateBody):
    """Approval request.

    Attributes:
        env_values: Environment variable values applied to the deployed site
    """

    env_values: dict[str, str] = Field(default_factory=dict)


class SettingsUpdate(StateBody):
    settings: AppSettings


class PayloadUpdate(StateBody):
    value: dict[str, Any]


@contextmanager
def workflow_errors() -> Iterator[None]:
    """Translate workflow rejections into HTTP errors."""
    try:
        yield
    except ProjectNotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from None
    except WorkflowError as exc:
        logger.info("workflow_operation_rejected", error=str(exc))
        raise HTTPException(status_code=http_status.HTTP_409_CONFLICT, detail=str(exc)) from None
    except ValueError as exc:
        raise HTTPException(
            status_code=http_status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from None


def create_projects_router() -> APIRouter:
    """Create the projects router.

    Routes:
        POST /projects/ - Create a project
        GET /projects/ - List project ids
        GET /projects/{project_id} - Get a project
        PUT /projects/{project_id} - Save client-held state
        POST /projects/{project_id}/idea - Submit the idea and generate the plan
        POST /projects/{project_id}/plan/generate - Regenerate the plan
        POST /projects/{project_id}/repo - Create the repository
        POST /projects/{project_id}/docs/generate - Generate documentation
        POST /projects/{project_id}/docs/scaffold - Generate the app scaffold
        POST /projects/{project_id}/docs/policy - Generate AI rules
        POST /projects/{project_id}/deploy/generate - Generate deploy configuration
        POST /projects/{project_id}/steps/{step}/approve - Approve a step
        POST /projects/{project_id}/steps/{step}/retry - Retry an errored step
        POST /projects/{project_id}/back - Reopen the previous step
        PUT /projects/{project_id}/settings - Replace project settings
        PUT /projects/{project_id}/payload/{slot} - Edit a payload slot
        GET /projects/{project_id}/activity - Activity log
    """
    router = APIRouter(prefix="/projects", tags=["projects"])

    async def resolve(
        controller: WizardController, project_id: str, body: StateBody | None
    ) -> Project:
        return await controller.get_project(project_id, body.state if body else None)

    @router.post("/", response_model=Project, status_code=http_status.HTTP_201_CREATED)
    async def create_project(
        body: ProjectCreate | None = None,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        project = await controller.create_project(body.settings if body else None)
        logger.info("project_created", project_id=project.id)
        return project

    @router.get("/", response_model=list[str])
    async def list_projects(
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> list[str]:
        return await controller.list_projects()

    @router.get("/{project_id}", response_model=Project)
    async def get_project(
        project_id: str,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            return await controller.get_project(project_id)

    @router.put("/{project_id}", response_model=Project)
    async def save_project(
        project_id: str,
        project: Project,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        if project.id != project_id:
            raise HTTPException(
                status_code=http_status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Body is project {project.id}, not {project_id}",
            )
        return await controller.save_project(project)

    @router.post("/{project_id}/idea", response_model=Project)
    async def submit_idea(
        project_id: str,
        body: IdeaSubmit,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            project = await resolve(controller, project_id, body)
            return await controller.submit_idea(project, body.idea)

    @router.post("/{project_id}/plan/generate", response_model=Project)
    async def generate_plan(
        project_id: str,
        body: StateBody | None = None,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            project = await resolve(controller, project_id, body)
            return await controller.generate_plan(project)

    @router.post("/{project_id}/repo", response_model=Project)
    async def create_repository(
        project_id: str,
        body: RepoCreate,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            project = await resolve(controller, project_id, body)
            return await controller.create_repository(project, body.config)

    @router.post("/{project_id}/docs/generate", response_model=Project)
    async def generate_docs(
        project_id: str,
        body: StateBody | None = None,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            project = await resolve(controller, project_id, body)
            return await controller.generate_docs(project)

    @router.post("/{project_id}/docs/scaffold", response_model=Project)
    async def generate_scaffold(
        project_id: str,
        body: StateBody | None = None,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            project = await resolve(controller, project_id, body)
            return await controller.generate_scaffold(project)

    @router.post("/{project_id}/docs/policy", response_model=Project)
    async def generate_policy(
        project_id: str,
        body: StateBody | None = None,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            project = await resolve(controller, project_id, body)
            return await controller.generate_policy(project)

    @router.post("/{project_id}/deploy/generate", response_model=Project)
    async def generate_deploy_config(
        project_id: str,
        body: StateBody | None = None,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            project = await resolve(controller, project_id, body)
            return await controller.generate_deploy_config(project)

    @router.post("/{project_id}/steps/{step}/approve", response_model=Project)
    async def approve_step(
        project_id: str,
        step: Step,
        body: StepApprove | None = None,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            project = await resolve(controller, project_id, body)
            return await controller.approve(project, step, body.env_values if body else None)

    @router.post("/{project_id}/steps/{step}/retry", response_model=Project)
    async def retry_step(
        project_id: str,
        step: Step,
        body: StateBody | None = None,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            project = await resolve(controller, project_id, body)
            return await controller.retry(project, step)

    @router.post("/{project_id}/back", response_model=Project)
    async def go_back(
        project_id: str,
        body: StateBody | None = None,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            project = await resolve(controller, project_id, body)
            return await controller.go_back(project)

    @router.put("/{project_id}/settings", response_model=Project)
    async def update_settings(
        project_id: str,
        body: SettingsUpdate,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            project = await resolve(controller, project_id, body)
            return await controller.update_settings(project, body.settings)

    @router.put("/{project_id}/payload/{slot}", response_model=Project)
    async def update_payload(
        project_id: str,
        slot: str,
        body: PayloadUpdate,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> Project:
        with workflow_errors():
            project = await resolve(controller, project_id, body)
            return await controller.update_payload(project, slot, body.value)

    @router.get("/{project_id}/activity", response_model=list[LogEntry])
    async def activity(
        project_id: str,
        controller: WizardController = Depends(get_controller),  # noqa: B008
    ) -> list[LogEntry]:
        return controller.activity_for(project_id)

    return router

"""Shared fixtures: sample payloads, a scripted AI generator and a wired controller.

The controller fixture runs against in-memory stores with GitHub, Netlify and
the repository scanner replaced by AsyncMocks of the real classes, so each test scripts
only the collaborator calls it cares about.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest
from pydantic import BaseModel

from devforge.integrations.ai import GenerationKind
from devforge.integrations.errors import CollaboratorError
from devforge.integrations.github import GitHubClient
from devforge.integrations.netlify import NetlifyClient
from devforge.integrations.repo_scan import RepoScanner
from devforge.store.backends import MemoryStore
from devforge.store.gateway import PersistenceGateway
from devforge.workflow import state_machine as engine
from devforge.workflow.activity import ActivityLog
from devforge.workflow.controller import WizardController
from devforge.workflow.models import (
    AppSettings,
    DeployConfig,
    DeployConfigDraft,
    EnvVar,
    FileSpec,
    GeneratedDocs,
    GeneratedScaffold,
    IdeaInput,
    MvpFeature,
    Project,
    ProjectPlan,
    PromptPolicy,
    RepoConfig,
    RepoResult,
    TechChoice,
)
from devforge.workflow.steps import Step


class ScriptedGenerator:
    """ContentGenerator returning canned results, or raising scripted errors."""

    def __init__(self, results: dict[GenerationKind, BaseModel]) -> None:
        self.results = dict(results)
        self.errors: dict[GenerationKind, CollaboratorError] = {}
        self.calls: list[tuple[GenerationKind, dict[str, Any]]] = []

    async def generate(
        self,
        kind: GenerationKind,
        payload: dict[str, Any],
        settings: AppSettings,
    ) -> BaseModel:
        self.calls.append((kind, payload))
        if kind in self.errors:
            raise self.errors[kind]
        return self.results[kind]


@pytest.fixture
def sample_idea() -> IdeaInput:
    return IdeaInput(description="A task tracker for small teams", tags=["productivity"])


@pytest.fixture
def sample_plan() -> ProjectPlan:
    return ProjectPlan(
        summary="A lightweight task tracker for teams of up to ten people.",
        goals=["Track tasks", "Assign owners", "Show progress"],
        non_goals=["Time tracking"],
        mvp_features=[
            MvpFeature(name="Task board", description="Kanban columns", priority="must"),
            MvpFeature(name="Assignees", description="One owner per task", priority="must"),
            MvpFeature(name="Due dates", description="Optional deadline", priority="should"),
            MvpFeature(name="Labels", description="Colour tags", priority="could"),
            MvpFeature(name="Search", description="Full-text search", priority="could"),
        ],
        tech_stack=[
            TechChoice(category="Frontend", choice="Next.js with TypeScript", rationale="SSR"),
            TechChoice(category="Styling", choice="Tailwind CSS", rationale="Speed"),
        ],
        open_questions=["Do we need SSO?"],
    )


@pytest.fixture
def sample_repo_config() -> RepoConfig:
    return RepoConfig(name="task-tracker", description="Team task tracker")


@pytest.fixture
def sample_repo_result() -> RepoResult:
    return RepoResult(
        url="https://github.com/octo/task-tracker",
        clone_url="https://github.com/octo/task-tracker.git",
        full_name="octo/task-tracker",
        default_branch="main",
    )


@pytest.fixture
def sample_docs() -> GeneratedDocs:
    return GeneratedDocs(
        readme="# Task Tracker\n",
        roadmap="# Roadmap\n",
        getting_started="# Getting Started\n",
        feature_list="# Features\n",
    )


@pytest.fixture
def sample_scaffold() -> GeneratedScaffold:
    return GeneratedScaffold(
        files=[
            FileSpec(path="package.json", content='{"name": "task-tracker"}'),
            FileSpec(path="app/page.tsx", content="export default function Page() {}"),
            FileSpec(path="README.md", content="scaffold readme"),
        ],
        build_command="npm run build",
        publish_dir="out",
    )


@pytest.fixture
def sample_policy() -> PromptPolicy:
    return PromptPolicy(
        project_context="Task tracker built with Next.js.",
        code_style_rules=["Use functional components"],
        dos=["Write tests"],
    )


@pytest.fixture
def sample_deploy_draft() -> DeployConfigDraft:
    return DeployConfigDraft(
        netlify_toml='[build]\ncommand = "npm run build"\npublish = "out"\n',
        env_vars=[EnvVar(key="DATABASE_URL", description="Postgres connection string")],
    )


@pytest.fixture
def generator(
    sample_plan: ProjectPlan,
    sample_docs: GeneratedDocs,
    sample_scaffold: GeneratedScaffold,
    sample_policy: PromptPolicy,
    sample_deploy_draft: DeployConfigDraft,
) -> ScriptedGenerator:
    return ScriptedGenerator(
        {
            GenerationKind.plan: sample_plan,
            GenerationKind.docs: sample_docs,
            GenerationKind.scaffold: sample_scaffold,
            GenerationKind.policy: sample_policy,
            GenerationKind.deploy_config: sample_deploy_draft,
        }
    )


@pytest.fixture
def gateway() -> PersistenceGateway:
    return PersistenceGateway(MemoryStore("devforge-state"), MemoryStore("devforge-state-settings"))


@pytest.fixture
def github(sample_repo_result: RepoResult) -> AsyncMock:
    mock = AsyncMock(spec=GitHubClient)
    mock.create_repository.return_value = sample_repo_result
    mock.commit_files.return_value = "c0ffee"
    mock.get_authenticated_user.return_value = "octo"
    return mock


@pytest.fixture
def netlify() -> AsyncMock:
    return AsyncMock(spec=NetlifyClient)


@pytest.fixture
def scanner() -> AsyncMock:
    mock = AsyncMock(spec=RepoScanner)
    mock.existing_rules.return_value = None
    return mock


@pytest.fixture
def controller(
    gateway: PersistenceGateway,
    generator: ScriptedGenerator,
    github: AsyncMock,
    netlify: AsyncMock,
    scanner: AsyncMock,
) -> WizardController:
    return WizardController(
        gateway=gateway,
        generator=generator,
        github=github,
        netlify=netlify,
        scanner=scanner,
        activity=ActivityLog(),
    )


@pytest.fixture
def make_project(
    sample_idea: IdeaInput,
    sample_plan: ProjectPlan,
    sample_repo_config: RepoConfig,
    sample_repo_result: RepoResult,
    sample_docs: GeneratedDocs,
    sample_scaffold: GeneratedScaffold,
    sample_policy: PromptPolicy,
    sample_deploy_draft: DeployConfigDraft,
) -> Callable[..., Project]:
    """Build a project whose current step is ``step``, every earlier step completed.

    With ``with_payload=True`` the current step's own payloads are filled too.
    """

    def _make(step: Step, with_payload: bool = False) -> Project:
        project = engine.create_initial()
        stages: list[tuple[Step, dict[str, Any]]] = [
            (Step.idea, {"idea": sample_idea}),
            (Step.plan, {"plan": sample_plan}),
            (Step.repo, {"repo": sample_repo_config, "repo_result": sample_repo_result}),
            (
                Step.docs,
                {"docs": sample_docs, "scaffold": sample_scaffold, "policy": sample_policy},
            ),
            (Step.deploy, {"deploy": DeployConfig(**sample_deploy_draft.model_dump())}),
        ]
        for stage, payloads in stages:
            if stage == step and not with_payload:
                return project
            for slot, value in payloads.items():
                project = engine.set_payload(project, slot, value)
            if stage == step:
                return project
            project = engine.approve_and_advance(project, stage)
        return project

    return _make

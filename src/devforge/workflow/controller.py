"""Orchestration layer for the project wizard.

``WizardController`` runs one step at a time: it checks the step may run,
calls the external collaborator with data from completed upstream steps,
records the outcome through the transition engine and saves the result.

Every public operation returns the complete updated aggregate. Collaborator
failures never escape: they are recorded on the step as ``error`` with the
collaborator's message and the errored aggregate is returned. Rejected
operations (``WorkflowError``) raise and leave the aggregate unchanged.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from pydantic import BaseModel

from devforge.config import NetlifyConfig
from devforge.integrations.ai import ContentGenerator, GenerationKind
from devforge.integrations.errors import CollaboratorError
from devforge.integrations.github import GitHubClient
from devforge.integrations.netlify import NetlifyClient, SiteParams, SiteResult
from devforge.integrations.repo_scan import RepoScanner, ScanResult
from devforge.logging import bind_project_context
from devforge.store.gateway import PersistenceGateway
from devforge.workflow import state_machine as engine
from devforge.workflow.activity import ActivityLog, LogEntry, LogLevel
from devforge.workflow.models import (
    AppSettings,
    ConnectedRepo,
    DeployConfig,
    DeployConfigDraft,
    FileSpec,
    GeneratedDocs,
    GeneratedScaffold,
    IdeaInput,
    PayloadSlot,
    Project,
    ProjectPlan,
    PromptPolicy,
    RepoConfig,
    RepoResult,
    utcnow,
)
from devforge.workflow.rules import baseline_rules, merge_rule_sets
from devforge.workflow.state_machine import (
    InvalidTransitionError,
    StepPreconditionError,
    WorkflowError,
)
from devforge.workflow.steps import Step, StepStatus

logger = structlog.get_logger(__name__)

DOCS_COMMIT_MESSAGE = "feat: add app scaffold and documentation"
DEPLOY_COMMIT_MESSAGE = "chore: add netlify configuration"

# DeployConfig fields describing the site once it exists
SITE_FIELDS = {"site_id", "site_url", "admin_url", "deploy_url", "linked"}

# Slots a user may edit directly while their step is being worked
EDITABLE_PAYLOADS: dict[str, type[BaseModel]] = {
    "idea": IdeaInput,
    "plan": ProjectPlan,
    "repo": RepoConfig,
    "docs": GeneratedDocs,
    "scaffold": GeneratedScaffold,
    "policy": PromptPolicy,
    "deploy": DeployConfig,
}


class ProjectNotFoundError(WorkflowError):
    """Raised when a project id resolves to nothing and no client state was supplied."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


class WizardController:
    """Per-step controllers sharing one protocol.

    Attributes:
        gateway: Best-effort persistence for aggregates and settings.
        generator: AI backend for plan, docs, scaffold, policy and deploy config.
        github: Source-control host client.
        netlify: Deploy host client.
        scanner: Reader for the user's connected repository.
        activity: Step-tagged log of collaborator outcomes.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        generator: ContentGenerator,
        github: GitHubClient,
        netlify: NetlifyClient,
        scanner: RepoScanner | None = None,
        activity: ActivityLog | None = None,
        netlify_config: NetlifyConfig | None = None,
    ) -> None:
        self.gateway = gateway
        self.generator = generator
        self.github = github
        self.netlify = netlify
        self.scanner = scanner or RepoScanner(github)
        self.activity = activity or ActivityLog()
        self.netlify_config = netlify_config or NetlifyConfig()
        self._finalizers: dict[Step, Callable[[Project, dict[str, str]], Awaitable[Project]]] = {
            Step.idea: self._finalize_idea,
            Step.plan: self._finalize_plan,
            Step.repo: self._finalize_repo,
            Step.docs: self._finalize_docs,
            Step.deploy: self._finalize_deploy,
        }

    # ------------------------------------------------------------------
    # Aggregate lifecycle
    # ------------------------------------------------------------------

    async def create_project(self, settings: AppSettings | None = None) -> Project:
        """Create and save a new aggregate, seeded with the global settings."""
        if settings is None:
            settings = await self.gateway.load_settings()
        project = engine.create_initial(settings)
        await self.gateway.save(project)
        self._log(project, Step.idea, "info", "Project created")
        return project

    async def get_project(self, project_id: str, state: Project | None = None) -> Project:
        """Resolve an aggregate from the store, reconciled with client-held state.

        Raises:
            ProjectNotFoundError: If neither the store nor the client has it.
            ValueError: If the client state belongs to another project.
        """
        if state is not None and state.id != project_id:
            raise ValueError(f"State for project {state.id} sent to project {project_id}")
        stored = await self.gateway.load(project_id)
        project = self.gateway.reconcile(stored, state)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    async def list_projects(self) -> list[str]:
        return await self.gateway.list()

    async def save_project(self, project: Project) -> Project:
        """Store client-held state, keeping whichever copy is newer."""
        stored = await self.gateway.load(project.id)
        winner = self.gateway.reconcile(stored, project) or project
        await self.gateway.save(winner)
        return winner

    async def update_settings(self, project: Project, settings: AppSettings) -> Project:
        """Replace the aggregate-wide settings. Not gated by step status."""
        updated = project.model_copy(deep=True)
        updated.settings = settings.model_copy(deep=True)
        updated.updated_at = utcnow()
        await self.gateway.save(updated)
        logger.info("project_settings_updated", project_id=project.id)
        return updated

    async def load_settings(self) -> AppSettings:
        return await self.gateway.load_settings()

    async def save_settings(self, settings: AppSettings) -> AppSettings:
        """Persist global settings; they seed every project created afterwards."""
        await self.gateway.save_settings(settings)
        return settings

    async def scan_repository(self, source: ConnectedRepo) -> ScanResult:
        """List a connected repository's files and flag the known ones.

        Raises:
            CollaboratorError: If the repository cannot be read.
        """
        return await self.scanner.scan(source)

    def activity_for(self, project_id: str) -> list[LogEntry]:
        return self.activity.entries(project_id)

    async def update_payload(self, project: Project, slot: str, value: dict[str, Any]) -> Project:
        """Apply a user edit to a payload slot of the step being worked.

        Raises:
            StepPreconditionError: If the owning step is not being worked.
            pydantic.ValidationError: If the value does not fit the slot.
        """
        model = EDITABLE_PAYLOADS.get(slot)
        if model is None:
            raise ValueError(f"Payload slot '{slot}' cannot be edited")
        updated = engine.set_payload(project, slot, model.model_validate(value))  # type: ignore[arg-type]
        await self.gateway.save(updated)
        return updated

    async def retry(self, project: Project, step: Step) -> Project:
        """Return an errored step to active so it can be run again."""
        updated = engine.retry(project, step)
        await self.gateway.save(updated)
        self._log(updated, step, "info", f"Retrying {step.value} step")
        return updated

    async def go_back(self, project: Project) -> Project:
        """Reopen the previous step; generated payloads are kept."""
        updated = engine.go_back(project)
        if updated is project:
            return project
        await self.gateway.save(updated)
        self._log(updated, updated.current_step, "warn", f"Returned to {updated.current_step.value} step")
        return updated

    # ------------------------------------------------------------------
    # Step operations
    # ------------------------------------------------------------------

    async def submit_idea(self, project: Project, idea: IdeaInput) -> Project:
        """Capture the idea, complete the idea step and generate the plan."""
        project = self._enter(project, Step.idea)
        project = engine.set_payload(project, "idea", idea)
        project = engine.approve_and_advance(project, Step.idea)
        await self.gateway.save(project)
        self._log(project, Step.idea, "success", "Idea submitted")
        return await self.generate_plan(project)

    async def generate_plan(self, project: Project) -> Project:
        idea = engine.read_payload(project, "idea")
        return await self._run_generation(
            project, Step.plan, "plan", GenerationKind.plan, {"idea": idea}, "project plan"
        )

    async def create_repository(self, project: Project, config: RepoConfig) -> Project:
        """Create the remote repository. The step stays active until approved.

        The config and its result are recorded together once the host accepts
        the request; a failed attempt leaves both slots as they were.
        """
        project = self._enter(project, Step.repo)
        self._log(project, Step.repo, "info", f"Creating repository {config.name}...")

        try:
            result = await self.github.create_repository(config)
        except CollaboratorError as exc:
            return await self._fail(project, Step.repo, exc)

        project = engine.set_payload(project, "repo", config)
        project = engine.set_payload(project, "repo_result", result)
        await self.gateway.save(project)
        self._log(project, Step.repo, "success", f"Repository created: {result.url}")
        return project

    async def generate_docs(self, project: Project) -> Project:
        plan = engine.read_payload(project, "plan")
        repo_result: RepoResult = engine.read_payload(project, "repo_result")
        return await self._run_generation(
            project,
            Step.docs,
            "docs",
            GenerationKind.docs,
            {"plan": plan, "repo_name": repo_result.full_name},
            "documentation",
        )

    async def generate_scaffold(self, project: Project) -> Project:
        plan = engine.read_payload(project, "plan")
        return await self._run_generation(
            project, Step.docs, "scaffold", GenerationKind.scaffold, {"plan": plan}, "app scaffold"
        )

    async def generate_policy(self, project: Project) -> Project:
        """Generate AI_RULES.md content from templates, presets and existing rules."""
        plan: ProjectPlan = engine.read_payload(project, "plan")
        project = self._enter(project, Step.docs)
        presets = project.settings.rule_presets
        baseline = baseline_rules(plan.tech_stack, presets)

        existing_rules = None
        if project.settings.connected_repo is not None:
            try:
                existing_rules = await self.scanner.existing_rules(project.settings.connected_repo)
            except CollaboratorError as exc:
                return await self._fail(project, Step.docs, exc)

        payload = {"plan": plan, "baseline": baseline, "existing_rules": existing_rules}

        def keep_presets(policy: PromptPolicy) -> PromptPolicy:
            rules = merge_rule_sets([policy, *(preset.rules for preset in presets)])
            return PromptPolicy(project_context=policy.project_context, **rules.model_dump())

        return await self._run_generation(
            project,
            Step.docs,
            "policy",
            GenerationKind.policy,
            payload,
            "AI rules",
            transform=keep_presets,
        )

    async def generate_deploy_config(self, project: Project) -> Project:
        plan: ProjectPlan = engine.read_payload(project, "plan")
        payload = {"tech_stack": plan.tech_stack_summary(), "project_type": "web-app", "has_api": True}

        site: dict[str, Any] = {}
        if project.deploy is not None and project.deploy.site_id is not None:
            # Keep the site created by an earlier approval attempt
            site = project.deploy.model_dump(include=SITE_FIELDS)

        def to_config(draft: DeployConfigDraft) -> DeployConfig:
            return DeployConfig(**draft.model_dump(), **site)

        return await self._run_generation(
            project,
            Step.deploy,
            "deploy",
            GenerationKind.deploy_config,
            payload,
            "deploy configuration",
            transform=to_config,
        )

    async def approve(
        self,
        project: Project,
        step: Step,
        env_values: dict[str, str] | None = None,
    ) -> Project:
        """User-gated approval: run the step's finalisation, then approve and advance.

        The returned aggregate either has ``step`` completed and the next step
        active, or ``step`` in error if finalisation failed.

        Args:
            project: Current aggregate.
            step: Step being approved; must be the active current step.
            env_values: Environment variable values applied to the deployed site.

        Raises:
            InvalidTransitionError: If ``step`` is not the active current step.
            StepPreconditionError: If the step has not produced what approval needs.
        """
        status = project.status_of(step)
        if step != project.current_step or status != StepStatus.active:
            raise InvalidTransitionError(step, status, StepStatus.approved)
        bind_project_context(project.id, step.value)

        try:
            project = await self._finalizers[step](project, env_values or {})
        except CollaboratorError as exc:
            return await self._fail(project, step, exc)
        if project.status_of(step) == StepStatus.error:
            return project

        project = engine.approve_and_advance(project, step)
        await self.gateway.save(project)
        self._log(project, step, "success", f"{step.value.capitalize()} step approved")
        return project

    # ------------------------------------------------------------------
    # Approval finalisers
    # ------------------------------------------------------------------

    async def _finalize_idea(self, project: Project, env_values: dict[str, str]) -> Project:
        self._require(project, Step.idea, "idea", "submit an idea first")
        return project

    async def _finalize_plan(self, project: Project, env_values: dict[str, str]) -> Project:
        self._require(project, Step.plan, "plan", "generate a plan first")
        return project

    async def _finalize_repo(self, project: Project, env_values: dict[str, str]) -> Project:
        self._require(project, Step.repo, "repo_result", "create the repository first")
        return project

    async def _finalize_docs(self, project: Project, env_values: dict[str, str]) -> Project:
        """Commit scaffold, docs and AI rules to the repository in one commit."""
        self._require(project, Step.docs, "docs", "generate documentation first")
        repo_result: RepoResult = engine.read_payload(project, "repo_result")
        files = self._repository_files(project)

        self._log(project, Step.docs, "info", f"Committing {len(files)} files to repository...")
        await self.github.commit_files(
            repo_result.full_name, files, DOCS_COMMIT_MESSAGE, branch=repo_result.default_branch
        )
        self._log(project, Step.docs, "success", "App scaffold and documentation committed")
        return project

    async def _finalize_deploy(self, project: Project, env_values: dict[str, str]) -> Project:
        """Commit netlify.toml, create the site and record where it lives.

        The site is written to the deploy payload as soon as it exists. If the
        file upload or environment variables then fail, the step errors with
        the site kept, and the next approval reuses it instead of creating
        another.
        """
        deploy: DeployConfig = self._require(
            project, Step.deploy, "deploy", "generate the deploy configuration first"
        )
        repo_result: RepoResult = engine.read_payload(project, "repo_result")

        self._log(project, Step.deploy, "info", "Committing netlify.toml...")
        await self.github.commit_files(
            repo_result.full_name,
            [FileSpec(path="netlify.toml", content=deploy.netlify_toml)],
            DEPLOY_COMMIT_MESSAGE,
            branch=repo_result.default_branch,
        )

        if deploy.site_id is None:
            site = await self._create_site(project, repo_result)
            deploy = deploy.model_copy(
                update={
                    "site_id": site.site_id,
                    "site_url": site.site_url,
                    "admin_url": site.admin_url,
                    "linked": site.linked,
                }
            )
            project = engine.set_payload(project, "deploy", deploy)
        else:
            self._log(project, Step.deploy, "info", f"Reusing Netlify site {deploy.site_id}")
        site_id = deploy.site_id or ""

        try:
            if not deploy.linked:
                self._log(
                    project, Step.deploy, "warn", "Repository link unavailable, uploading files directly"
                )
                files = self._repository_files(project)
                files.append(FileSpec(path="netlify.toml", content=deploy.netlify_toml))
                deploy_result = await self.netlify.deploy_files(site_id, files)
                deploy = deploy.model_copy(update={"deploy_url": deploy_result.deploy_url})
            if env_values:
                await self.netlify.set_env_vars(site_id, env_values)
        except CollaboratorError as exc:
            return await self._fail(project, Step.deploy, exc)

        project = engine.set_payload(project, "deploy", deploy)
        self._log(project, Step.deploy, "success", f"Site deployed: {deploy.site_url}")
        return project

    async def _create_site(self, project: Project, repo_result: RepoResult) -> SiteResult:
        deploy_key_id = await self._exchange_deploy_key(project, repo_result)

        build_command = self.netlify_config.default_build_command
        publish_dir = self.netlify_config.default_publish_dir
        if project.scaffold is not None:
            build_command, publish_dir = project.scaffold.build_command, project.scaffold.publish_dir

        self._log(project, Step.deploy, "info", "Creating Netlify site...")
        return await self.netlify.create_site(
            SiteParams(
                name=repo_result.name,
                repo_full_name=repo_result.full_name,
                build_command=build_command,
                publish_dir=publish_dir,
                repo_branch=repo_result.default_branch,
                deploy_key_id=deploy_key_id,
            )
        )

    async def _exchange_deploy_key(self, project: Project, repo_result: RepoResult) -> str | None:
        """Give Netlify read access to the repository; None if the exchange fails."""
        try:
            key = await self.netlify.create_deploy_key()
            await self.github.add_deploy_key(repo_result.full_name, "Netlify", key.public_key)
        except CollaboratorError as exc:
            self._log(project, Step.deploy, "warn", "Deploy key exchange failed", exc.message)
            return None
        return key.id

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _enter(self, project: Project, step: Step) -> Project:
        """Check ``step`` may run, re-entering it through ``active`` if it errored.

        Raises:
            InvalidTransitionError: If ``step`` is not current or is not active/error.
        """
        status = project.status_of(step)
        if step != project.current_step or status not in (StepStatus.active, StepStatus.error):
            raise InvalidTransitionError(step, status, StepStatus.active)
        bind_project_context(project.id, step.value)
        if status == StepStatus.error:
            project = engine.retry(project, step)
        return project

    async def _run_generation(
        self,
        project: Project,
        step: Step,
        slot: PayloadSlot,
        kind: GenerationKind,
        payload: dict[str, Any],
        label: str,
        transform: Callable[[Any], BaseModel] | None = None,
    ) -> Project:
        project = self._enter(project, step)
        self._log(project, step, "info", f"Generating {label}...")

        try:
            result = await self.generator.generate(kind, payload, project.settings)
        except CollaboratorError as exc:
            return await self._fail(project, step, exc)

        if transform is not None:
            result = transform(result)
        project = engine.set_payload(project, slot, result)
        await self.gateway.save(project)
        self._log(project, step, "success", f"Generated {label}")
        return project

    async def _fail(self, project: Project, step: Step, exc: CollaboratorError) -> Project:
        failed = engine.fail(project, step, exc.message)
        await self.gateway.save(failed)
        self._log(failed, step, "error", exc.message, _detail(exc))
        return failed

    @staticmethod
    def _require(project: Project, step: Step, slot: str, hint: str) -> Any:
        value = getattr(project, slot)
        if value is None:
            raise StepPreconditionError(step, hint)
        return value

    @staticmethod
    def _repository_files(project: Project) -> list[FileSpec]:
        """Scaffold files, then docs and AI_RULES.md, later paths overriding earlier ones."""
        files: dict[str, FileSpec] = {}
        if project.scaffold is not None:
            files.update((f.path, f) for f in project.scaffold.files)
        if project.docs is not None:
            files.update((f.path, f) for f in project.docs.to_files())
        if project.policy is not None:
            files["AI_RULES.md"] = FileSpec(path="AI_RULES.md", content=project.policy.to_markdown())
        return list(files.values())

    def _log(
        self,
        project: Project,
        step: Step,
        level: LogLevel,
        message: str,
        detail: str | None = None,
    ) -> None:
        self.activity.record(project.id, step, level, message, detail)


def _detail(exc: CollaboratorError) -> str | None:
    if exc.status_code is None and exc.details is None:
        return None
    parts = []
    if exc.status_code is not None:
        parts.append(f"status {exc.status_code}")
    if exc.details is not None:
        parts.append(str(exc.details)[:500])
    return ", ".join(parts)

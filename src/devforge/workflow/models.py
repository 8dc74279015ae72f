"""Project aggregate and step payload models.

The ``Project`` model is the single persisted record for one wizard run: the
status of every step, the payload each step produced, and the settings that
apply across the whole workflow. Payload models double as the structured-output
schemas requested from the AI backend, so their field descriptions are written
for the model as much as for the reader.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from devforge.workflow.steps import STEP_ORDER, Step, StepStatus


def utcnow() -> datetime:
    """Current UTC time; used for every aggregate timestamp."""
    return datetime.now(timezone.utc)


class StepState(BaseModel):
    """Status of one step plus the timestamps of its key transitions."""

    id: Step
    status: StepStatus
    approved_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    error: str | None = None


class IdeaInput(BaseModel):
    """Free-text project idea captured in the first step."""

    description: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("description must not be blank")
        return v


class MvpFeature(BaseModel):
    name: str
    description: str
    priority: Literal["must", "should", "could"]


class TechChoice(BaseModel):
    category: str = Field(..., description="e.g. Frontend, Backend, Database")
    choice: str
    rationale: str


class ProjectPlan(BaseModel):
    """AI-generated project plan."""

    summary: str = Field(..., description="A 2-3 sentence project summary")
    goals: list[str] = Field(..., description="3-5 project goals")
    non_goals: list[str] = Field(
        default_factory=list, description="2-3 things explicitly out of scope"
    )
    mvp_features: list[MvpFeature] = Field(
        ..., description="5-10 MVP features ranked by priority"
    )
    tech_stack: list[TechChoice]
    open_questions: list[str] = Field(
        default_factory=list, description="Unresolved decisions or questions"
    )

    def tech_stack_summary(self, separator: str = ", ") -> str:
        """Render the tech stack as ``Category: Choice`` pairs."""
        return separator.join(f"{t.category}: {t.choice}" for t in self.tech_stack)


class RepoConfig(BaseModel):
    """Repository the user asked the source-control host to create."""

    name: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9._-]+$")
    description: str = ""
    is_private: bool = False
    owner: str = ""


class RepoResult(BaseModel):
    url: str
    clone_url: str
    full_name: str
    default_branch: str

    @property
    def name(self) -> str:
        """Repository name without the owner prefix."""
        return self.full_name.split("/", 1)[-1]


class GeneratedDocs(BaseModel):
    """The four markdown documents committed to the new repository."""

    readme: str = Field(..., description="Full README.md content in markdown")
    roadmap: str = Field(..., description="Full ROADMAP.md content in markdown")
    getting_started: str = Field(..., description="Full GETTING_STARTED.md content")
    feature_list: str = Field(..., description="Feature list as markdown")

    def to_files(self) -> list[FileSpec]:
        return [
            FileSpec(path="README.md", content=self.readme),
            FileSpec(path="ROADMAP.md", content=self.roadmap),
            FileSpec(path="GETTING_STARTED.md", content=self.getting_started),
            FileSpec(path="FEATURES.md", content=self.feature_list),
        ]


class FileSpec(BaseModel):
    """A repository-relative file path and its text content."""

    path: str = Field(..., min_length=1)
    content: str

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        v = v.strip().removeprefix("./")
        if not v or v.startswith("/") or ".." in v.split("/"):
            raise ValueError(f"File path must be relative to the repository root: {v!r}")
        return v


class GeneratedScaffold(BaseModel):
    """Minimal runnable application generated from the plan."""

    files: list[FileSpec] = Field(..., description="Every file of the starter app")
    build_command: str = Field(..., description="Command that builds the app, e.g. npm run build")
    publish_dir: str = Field(..., description="Directory holding the built site, e.g. dist")


class RuleSet(BaseModel):
    """Coding rules grouped by section; all sections optional."""

    code_style_rules: list[str] = Field(default_factory=list)
    architecture_rules: list[str] = Field(default_factory=list)
    testing_rules: list[str] = Field(default_factory=list)
    dos: list[str] = Field(default_factory=list)
    donts: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(
            (self.code_style_rules, self.architecture_rules, self.testing_rules, self.dos, self.donts)
        )


class PromptPolicy(RuleSet):
    """AI coding-assistant policy committed as AI_RULES.md."""

    project_context: str = Field(
        default="", description="One paragraph describing the project for an AI assistant"
    )

    def to_markdown(self) -> str:
        sections = [
            ("Code Style", self.code_style_rules),
            ("Architecture", self.architecture_rules),
            ("Testing", self.testing_rules),
            ("Do", self.dos),
            ("Don't", self.donts),
        ]
        lines = ["# AI Rules", ""]
        if self.project_context:
            lines += ["## Project Context", "", self.project_context.strip(), ""]
        for title, rules in sections:
            if not rules:
                continue
            lines += [f"## {title}", ""]
            lines += [f"- {rule}" for rule in rules]
            lines.append("")
        return "\n".join(lines)


class EnvVar(BaseModel):
    key: str
    description: str = ""
    required: bool = True


class DeployConfigDraft(BaseModel):
    """Deploy configuration as generated, before any site exists."""

    netlify_toml: str = Field(..., description="Contents of netlify.toml")
    env_vars: list[EnvVar] = Field(default_factory=list)


class DeployConfig(DeployConfigDraft):
    """Deploy configuration plus the site it produced once deployed."""

    site_id: str | None = None
    site_url: str | None = None
    admin_url: str | None = None
    deploy_url: str | None = None
    linked: bool | None = None


class RulePreset(BaseModel):
    """Named rule set saved by the user and merged into every policy."""

    name: str = Field(..., min_length=1)
    rules: RuleSet = Field(default_factory=RuleSet)


class ConnectedRepo(BaseModel):
    """Existing repository the user connected as a source of rules."""

    source: Literal["github", "local"]
    repo: str | None = None
    path: str | None = None

    @model_validator(mode="after")
    def check_location(self) -> ConnectedRepo:
        if self.source == "github" and not self.repo:
            raise ValueError("github source requires 'repo' (owner/name)")
        if self.source == "local" and not self.path:
            raise ValueError("local source requires 'path'")
        return self


class AppSettings(BaseModel):
    """Settings carried across the whole aggregate."""

    ai_provider: Literal["openai", "anthropic"] = "openai"
    # Empty means the provider's configured default model
    model: str = ""
    rule_presets: list[RulePreset] = Field(default_factory=list)
    connected_repo: ConnectedRepo | None = None


PayloadSlot = Literal["idea", "plan", "repo", "repo_result", "docs", "scaffold", "policy", "deploy"]

# Step whose status governs each payload slot
PAYLOAD_OWNERS: dict[str, Step] = {
    "idea": Step.idea,
    "plan": Step.plan,
    "repo": Step.repo,
    "repo_result": Step.repo,
    "docs": Step.docs,
    "scaffold": Step.docs,
    "policy": Step.docs,
    "deploy": Step.deploy,
}


class Project(BaseModel):
    """State aggregate for one wizard run.

    Attributes:
        id: Opaque unique identifier, also the store key.
        created_at: Creation timestamp; never changes.
        updated_at: Refreshed on every mutation.
        current_step: The step currently being worked.
        steps: Status of every step.
        idea .. deploy: Per-step payload slots, None until produced.
        settings: Provider/model choice, rule presets and connected repository.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    current_step: Step = Step.idea
    steps: dict[Step, StepState]
    idea: IdeaInput | None = None
    plan: ProjectPlan | None = None
    repo: RepoConfig | None = None
    repo_result: RepoResult | None = None
    docs: GeneratedDocs | None = None
    scaffold: GeneratedScaffold | None = None
    policy: PromptPolicy | None = None
    deploy: DeployConfig | None = None
    settings: AppSettings = Field(default_factory=AppSettings)

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Read naive timestamps as UTC so client and stored copies compare."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def check_steps(self) -> Project:
        missing = [s.value for s in STEP_ORDER if s not in self.steps]
        if missing:
            raise ValueError(f"Project is missing step states: {missing}")
        return self

    def status_of(self, step: Step) -> StepStatus:
        return self.steps[step].status

    @property
    def is_finished(self) -> bool:
        """True once every step is completed."""
        return all(state.status == StepStatus.completed for state in self.steps.values())

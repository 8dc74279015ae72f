"""Project wizard CLI commands.

Each command loads the project, runs one wizard operation and prints the
resulting step table. A step that ends in ``error`` exits with code 1 after
printing the collaborator's message.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from devforge.workflow.controller import WizardController
from devforge.workflow.models import AppSettings, IdeaInput, Project, RepoConfig
from devforge.workflow.state_machine import WorkflowError
from devforge.workflow.steps import STEP_ORDER, Step, StepStatus

app = typer.Typer(help="Project wizard commands")
console = Console()

STATUS_COLORS = {
    StepStatus.locked: "dim",
    StepStatus.active: "cyan",
    StepStatus.approved: "blue",
    StepStatus.completed: "green",
    StepStatus.error: "red",
}

GENERATORS = ("plan", "docs", "scaffold", "policy", "deploy")


def _run(operation: Callable[[WizardController], Awaitable[Project]]) -> Project:
    """Run one controller operation and release services afterwards."""
    from devforge.main import get_app_context

    services = get_app_context().services

    async def _execute() -> Project:
        await services.prepare()
        try:
            return await operation(services.controller)
        finally:
            await services.aclose()

    try:
        return asyncio.run(_execute())
    except WorkflowError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e
    except ValueError as e:
        console.print(f"[red]Invalid input:[/red] {e}")
        raise typer.Exit(code=1) from e


def _print_project(project: Project) -> None:
    table = Table(title=f"Project {project.id}")
    table.add_column("Step", style="bold")
    table.add_column("Status")
    table.add_column("Detail")

    for step in STEP_ORDER:
        state = project.steps[step]
        color = STATUS_COLORS[state.status]
        marker = " <" if step == project.current_step else ""
        table.add_row(
            f"{step.value}{marker}",
            f"[{color}]{state.status.value}[/{color}]",
            state.error or "",
        )
    console.print(table)

    if project.plan is not None:
        console.print(f"[bold]Plan:[/bold] {project.plan.summary}")
    if project.repo_result is not None:
        console.print(f"[bold]Repository:[/bold] {project.repo_result.url}")
    if project.deploy is not None and project.deploy.site_url:
        console.print(f"[bold]Site:[/bold] {project.deploy.site_url}")


def _finish(project: Project) -> None:
    """Print the project; exit 1 if any step is in error."""
    _print_project(project)
    failed = [s for s in STEP_ORDER if project.status_of(s) == StepStatus.error]
    if failed:
        step = failed[0]
        panel = Panel(
            f"{project.steps[step].error}\n\n"
            f"Run [bold]devforge project retry {project.id} {step.value}[/bold] and try again.",
            title=f"{step.value} failed",
            border_style="red",
        )
        console.print(panel)
        raise typer.Exit(code=1)


@app.command()
def new(
    provider: Annotated[
        Optional[str],
        typer.Option("--provider", help="AI provider (openai or anthropic)"),
    ] = None,
    model: Annotated[
        Optional[str],
        typer.Option("--model", "-m", help="Model name"),
    ] = None,
) -> None:
    """Create a new project seeded with the global settings."""

    async def _create(controller: WizardController) -> Project:
        settings = await controller.load_settings()
        overrides = {k: v for k, v in {"ai_provider": provider, "model": model}.items() if v}
        if provider and not model and provider != settings.ai_provider:
            overrides["model"] = ""
        settings = AppSettings.model_validate({**settings.model_dump(), **overrides})
        return await controller.create_project(settings)

    project = _run(_create)
    model_name = project.settings.model or "provider default"
    panel = Panel(
        f"[green]Project created![/green]\n\n"
        f"[bold]ID:[/bold] {project.id}\n"
        f"[bold]Provider:[/bold] {project.settings.ai_provider} ({model_name})\n"
        f"[bold]Created:[/bold] {project.created_at.strftime('%Y-%m-%d %H:%M:%S')}",
        title="Project Created",
        border_style="green",
    )
    console.print(panel)


@app.command("list")
def list_projects(
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (table or json)"),
    ] = "table",
) -> None:
    """List stored projects."""
    if format not in ("table", "json"):
        console.print(f"[red]Invalid format:[/red] {format}. Use 'table' or 'json'.")
        raise typer.Exit(code=1)

    async def _list(controller: WizardController) -> list[Project]:
        projects = []
        for project_id in await controller.list_projects():
            projects.append(await controller.get_project(project_id))
        return projects

    projects = _run(_list)  # type: ignore[arg-type]

    if format == "json":
        rows = [
            {"id": p.id, "current_step": p.current_step.value, "updated_at": p.updated_at.isoformat()}
            for p in projects
        ]
        console.print(json.dumps(rows, indent=2))
        return

    if not projects:
        console.print("[yellow]No projects found.[/yellow]")
        return

    table = Table(title="Projects")
    table.add_column("ID", style="cyan")
    table.add_column("Current Step")
    table.add_column("Status")
    table.add_column("Updated", style="dim")
    for p in projects:
        status = p.status_of(p.current_step)
        color = STATUS_COLORS[status]
        table.add_row(
            p.id,
            p.current_step.value,
            f"[{color}]{status.value}[/{color}]",
            p.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command()
def show(
    project_id: Annotated[str, typer.Argument(help="Project ID")],
) -> None:
    """Show a project's step statuses."""
    project = _run(lambda c: c.get_project(project_id))
    _print_project(project)


@app.command()
def idea(
    project_id: Annotated[str, typer.Argument(help="Project ID")],
    description: Annotated[str, typer.Argument(help="What you want to build")],
    tags: Annotated[
        Optional[list[str]],
        typer.Option("--tag", "-t", help="Tag (repeatable)"),
    ] = None,
) -> None:
    """Submit the idea and generate a plan from it."""

    async def _submit(controller: WizardController) -> Project:
        project = await controller.get_project(project_id)
        return await controller.submit_idea(
            project, IdeaInput(description=description, tags=tags or [])
        )

    _finish(_run(_submit))


@app.command()
def generate(
    project_id: Annotated[str, typer.Argument(help="Project ID")],
    what: Annotated[str, typer.Argument(help=f"One of: {', '.join(GENERATORS)}")],
) -> None:
    """(Re)generate content for the current step."""
    if what not in GENERATORS:
        console.print(f"[red]Unknown generator:[/red] {what}. Use one of {', '.join(GENERATORS)}.")
        raise typer.Exit(code=1)

    async def _generate(controller: WizardController) -> Project:
        project = await controller.get_project(project_id)
        operation = {
            "plan": controller.generate_plan,
            "docs": controller.generate_docs,
            "scaffold": controller.generate_scaffold,
            "policy": controller.generate_policy,
            "deploy": controller.generate_deploy_config,
        }[what]
        return await operation(project)

    _finish(_run(_generate))


@app.command()
def repo(
    project_id: Annotated[str, typer.Argument(help="Project ID")],
    name: Annotated[str, typer.Argument(help="Repository name")],
    description: Annotated[
        str,
        typer.Option("--description", "-d", help="Repository description"),
    ] = "",
    private: Annotated[
        bool,
        typer.Option("--private", help="Create a private repository"),
    ] = False,
    owner: Annotated[
        str,
        typer.Option("--owner", help="Organisation to create the repository in"),
    ] = "",
) -> None:
    """Create the GitHub repository."""

    async def _create(controller: WizardController) -> Project:
        project = await controller.get_project(project_id)
        config = RepoConfig(name=name, description=description, is_private=private, owner=owner)
        return await controller.create_repository(project, config)

    _finish(_run(_create))


@app.command()
def approve(
    project_id: Annotated[str, typer.Argument(help="Project ID")],
    step: Annotated[Step, typer.Argument(help="Step to approve")],
    env: Annotated[
        Optional[list[str]],
        typer.Option("--env", "-e", help="KEY=VALUE for the deployed site (repeatable)"),
    ] = None,
) -> None:
    """Approve a step and move on to the next one."""
    env_values: dict[str, str] = {}
    for item in env or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            console.print(f"[red]Invalid --env value:[/red] {item}. Expected KEY=VALUE.")
            raise typer.Exit(code=1)
        env_values[key] = value

    async def _approve(controller: WizardController) -> Project:
        project = await controller.get_project(project_id)
        return await controller.approve(project, step, env_values)

    _finish(_run(_approve))


@app.command()
def retry(
    project_id: Annotated[str, typer.Argument(help="Project ID")],
    step: Annotated[Step, typer.Argument(help="Step in error")],
) -> None:
    """Return an errored step to active."""

    async def _retry(controller: WizardController) -> Project:
        project = await controller.get_project(project_id)
        return await controller.retry(project, step)

    _finish(_run(_retry))


@app.command()
def back(
    project_id: Annotated[str, typer.Argument(help="Project ID")],
) -> None:
    """Reopen the previous step."""

    async def _back(controller: WizardController) -> Project:
        project = await controller.get_project(project_id)
        return await controller.go_back(project)

    _finish(_run(_back))

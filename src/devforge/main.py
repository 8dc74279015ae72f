"""Main CLI entry point for Devforge.

This module provides the main Typer application: the ``serve`` command for
the HTTP API and the ``project`` sub-commands that drive the wizard from the
terminal.

Usage:
    devforge serve --port 8000
    devforge project new
    devforge project idea <project-id> "A task tracker for small teams"
    devforge project approve <project-id> plan
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from devforge.cli import project as project_cli
from devforge.config import DevforgeConfig, load_config
from devforge.logging import setup_logging
from devforge.services import Services, build_services

app = typer.Typer(
    name="devforge",
    help="Devforge: from idea to deployed repository, one approved step at a time",
    no_args_is_help=True,
)

app.add_typer(project_cli.app, name="project", help="Drive the project wizard")

console = Console()


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Devforge configuration
        services: Store, clients and wizard controller built from config
    """

    def __init__(self, config: DevforgeConfig):
        self.config = config
        self.services: Services = build_services(config)


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: DevforgeConfig) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Host to bind to (default from config)"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to bind to (default from config)"),
    ] = None,
) -> None:
    """Start the Devforge API server."""
    import uvicorn

    from devforge.web.app import create_app

    ctx = get_app_context()
    host = host or ctx.config.web.host
    port = port or ctx.config.web.port

    console.print("[bold cyan]Starting Devforge API[/bold cyan]")
    console.print(f"[dim]Host:[/dim] {host}")
    console.print(f"[dim]Port:[/dim] {port}")
    console.print(f"[dim]Store:[/dim] {ctx.config.store.backend}")
    console.print()

    app_instance = create_app(ctx.config, services=ctx.services)
    uvicorn.run(app_instance, host=host, port=port, log_level="info")


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure global options and initialize application context."""
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1) from e

    if verbose:
        config.logging = config.logging.model_copy(update={"level": "DEBUG"})
    setup_logging(config.logging)

    try:
        initialize_context(config)
    except ValueError as e:
        console.print(f"[red]Error initializing application:[/red] {e}")
        raise typer.Exit(code=1) from e

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()

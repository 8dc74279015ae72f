"""Integration tests for the CLI against a SQLite store on disk."""

from __future__ import annotations

import re
from pathlib import Path

import pytest
from typer.testing import CliRunner

from devforge.main import app

UUID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")


@pytest.fixture
def runner(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DEVFORGE_STORE__BACKEND", "sql")
    monkeypatch.setenv("DEVFORGE_STORE__URL", f"sqlite+aiosqlite:///{tmp_path / 'devforge.db'}")
    monkeypatch.setenv("DEVFORGE_LOGGING__LEVEL", "ERROR")
    return CliRunner()


def _new_project(runner: CliRunner) -> str:
    result = runner.invoke(app, ["project", "new"])
    assert result.exit_code == 0, result.output
    match = UUID_RE.search(result.output)
    assert match is not None
    return match.group(0)


class TestProjectCommands:
    def test_new_and_list(self, runner: CliRunner) -> None:
        project_id = _new_project(runner)

        result = runner.invoke(app, ["project", "list", "--format", "json"])

        assert result.exit_code == 0
        assert project_id in result.output

    def test_new_with_provider(self, runner: CliRunner) -> None:
        result = runner.invoke(
            app, ["project", "new", "--provider", "anthropic", "--model", "claude-sonnet-4-20250514"]
        )
        assert result.exit_code == 0
        assert "anthropic" in result.output

    def test_new_with_provider_only_uses_provider_default(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["project", "new", "--provider", "anthropic"])

        assert result.exit_code == 0
        assert "anthropic (provider default)" in result.output

    def test_show(self, runner: CliRunner) -> None:
        project_id = _new_project(runner)

        result = runner.invoke(app, ["project", "show", project_id])

        assert result.exit_code == 0
        assert "active" in result.output
        assert "locked" in result.output

    def test_show_unknown_project(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["project", "show", "missing"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_back_at_first_step_is_noop(self, runner: CliRunner) -> None:
        project_id = _new_project(runner)
        result = runner.invoke(app, ["project", "back", project_id])
        assert result.exit_code == 0

    def test_approve_without_idea(self, runner: CliRunner) -> None:
        project_id = _new_project(runner)

        result = runner.invoke(app, ["project", "approve", project_id, "idea"])

        assert result.exit_code == 1
        assert "submit an idea first" in result.output

    def test_approve_rejects_malformed_env(self, runner: CliRunner) -> None:
        project_id = _new_project(runner)
        result = runner.invoke(app, ["project", "approve", project_id, "deploy", "--env", "NOEQUALS"])
        assert result.exit_code == 1

    def test_list_rejects_unknown_format(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["project", "list", "--format", "xml"])
        assert result.exit_code == 1

    def test_generate_rejects_unknown_kind(self, runner: CliRunner) -> None:
        project_id = _new_project(runner)
        result = runner.invoke(app, ["project", "generate", project_id, "poetry"])
        assert result.exit_code == 1

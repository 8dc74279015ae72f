"""Integration tests for health, settings and integration endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock

from httpx import AsyncClient

from devforge.integrations.errors import GitHubError, RepoScanError
from devforge.integrations.repo_scan import ScanResult
from devforge.store.backends import NullStore
from devforge.store.gateway import PersistenceGateway
from devforge.workflow.controller import WizardController


class TestHealth:
    async def test_liveness(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health/")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    async def test_ready_with_store(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health/ready")
        assert response.json() == {"status": "ok", "store": "connected"}

    async def test_ready_degraded_without_store(
        self, async_client: AsyncClient, controller: WizardController
    ) -> None:
        controller.gateway = PersistenceGateway(
            NullStore("devforge-state"), NullStore("devforge-state-settings")
        )

        response = await async_client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "degraded", "store": "unavailable"}

    async def test_correlation_id_header(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health/", headers={"X-Correlation-ID": "req-123"})
        assert response.headers["X-Correlation-ID"] == "req-123"


class TestGlobalSettings:
    async def test_defaults(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/settings/")

        assert response.status_code == 200
        assert response.json()["ai_provider"] == "openai"
        assert response.json()["rule_presets"] == []

    async def test_saved_settings_seed_new_projects(self, async_client: AsyncClient) -> None:
        settings = {
            "ai_provider": "anthropic",
            "model": "claude-sonnet-4-20250514",
            "rule_presets": [{"name": "team", "rules": {"dos": ["Review every PR"]}}],
        }

        saved = await async_client.put("/settings/", json=settings)
        assert saved.status_code == 200
        assert (await async_client.get("/settings/")).json()["ai_provider"] == "anthropic"

        project = (await async_client.post("/projects/")).json()
        assert project["settings"]["rule_presets"][0]["name"] == "team"

    async def test_invalid_provider(self, async_client: AsyncClient) -> None:
        response = await async_client.put("/settings/", json={"ai_provider": "mystery"})
        assert response.status_code == 422


class TestIntegrations:
    async def test_github_user(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/github/user")
        assert response.json() == {"login": "octo"}

    async def test_github_auth_failure_passes_through(
        self, async_client: AsyncClient, github: AsyncMock
    ) -> None:
        github.get_authenticated_user.side_effect = GitHubError("Bad credentials", status_code=401)

        response = await async_client.get("/github/user")

        assert response.status_code == 401
        assert response.json()["detail"] == "Bad credentials"

    async def test_github_network_failure_is_bad_gateway(
        self, async_client: AsyncClient, github: AsyncMock
    ) -> None:
        github.get_authenticated_user.side_effect = GitHubError("GitHub request failed: timeout")
        response = await async_client.get("/github/user")
        assert response.status_code == 502

    async def test_repo_scan(self, async_client: AsyncClient, scanner: AsyncMock) -> None:
        scanner.scan.return_value = ScanResult(
            files=["AI_RULES.md", "src/index.ts"], detected={"AI_RULES.md": True, "README.md": False}
        )

        response = await async_client.get("/repo-scan", params={"source": "github", "repo": "octo/demo"})

        assert response.status_code == 200
        assert response.json()["detected"]["AI_RULES.md"] is True
        source = scanner.scan.await_args.args[0]
        assert source.repo == "octo/demo"

    async def test_repo_scan_missing_location(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/repo-scan", params={"source": "local"})
        assert response.status_code == 422

    async def test_repo_scan_missing_directory(self, async_client: AsyncClient, scanner: AsyncMock) -> None:
        scanner.scan.side_effect = RepoScanError("Directory not found: /nope", status_code=404)

        response = await async_client.get("/repo-scan", params={"source": "local", "path": "/nope"})

        assert response.status_code == 404
        assert "Directory not found" in response.json()["detail"]

"""Netlify REST client for site creation and deploys.

Two deploy paths are supported:
- A site linked to the GitHub repository, built by Netlify on every push.
- An unlinked site fed by a content-addressed file deploy, used when
  repository linking is unavailable.

``create_site`` falls back from the first to an unlinked site on its own,
so a failed link never fails the whole deployment.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from devforge.config import NetlifyConfig
from devforge.integrations.errors import NetlifyError
from devforge.workflow.models import FileSpec

logger = structlog.get_logger(__name__)


@dataclass
class SiteParams:
    """Parameters for a new site."""

    name: str
    repo_full_name: str
    build_command: str
    publish_dir: str
    repo_branch: str = "main"
    deploy_key_id: str | None = None


@dataclass
class SiteResult:
    site_id: str
    site_url: str
    admin_url: str
    linked: bool


@dataclass
class DeployKey:
    id: str
    public_key: str


@dataclass
class DeployResult:
    deploy_id: str
    deploy_url: str
    uploaded: int


class NetlifyClient:
    """Async client for the Netlify API."""

    def __init__(self, config: NetlifyConfig) -> None:
        self.config = config
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client.

        Raises:
            NetlifyError: If no token is configured.
        """
        if self.config.token is None:
            raise NetlifyError("Netlify token is not configured")
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.api_url,
                timeout=self.config.timeout_seconds,
                headers={"Authorization": f"Bearer {self.config.token.get_secret_value()}"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        client = self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error("netlify_request_error", method=method, path=path, error=str(e))
            raise NetlifyError(f"Netlify request failed: {e}") from e

        if not response.is_success:
            try:
                details = response.json()
            except ValueError:
                details = response.text[:200]
            message = (
                details.get("message") if isinstance(details, dict) else None
            ) or response.reason_phrase
            logger.warning(
                "netlify_request_failed",
                method=method,
                path=path,
                status_code=response.status_code,
                error=message,
            )
            raise NetlifyError(
                f"Netlify {method} {path} failed: {message}",
                status_code=response.status_code,
                details=details,
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _site_result(data: dict[str, Any], linked: bool) -> SiteResult:
        return SiteResult(
            site_id=data["id"],
            site_url=data.get("ssl_url") or data.get("url", ""),
            admin_url=data.get("admin_url", ""),
            linked=linked,
        )

    async def create_deploy_key(self) -> DeployKey:
        """Ask Netlify for a new deploy key pair; the public half goes to GitHub."""
        data = await self._request("POST", "/deploy_keys")
        return DeployKey(id=data["id"], public_key=data["public_key"])

    async def create_site(self, params: SiteParams) -> SiteResult:
        """Create a site linked to the repository, or an unlinked one if linking fails.

        Raises:
            NetlifyError: If even the unlinked site cannot be created.
        """
        repo: dict[str, Any] = {
            "provider": "github",
            "repo_path": params.repo_full_name,
            "repo_branch": params.repo_branch,
            "cmd": params.build_command,
            "dir": params.publish_dir,
        }
        if params.deploy_key_id:
            repo["deploy_key_id"] = params.deploy_key_id

        try:
            data = await self._request("POST", "/sites", json={"name": params.name, "repo": repo})
        except NetlifyError as e:
            logger.warning(
                "netlify_link_failed_falling_back",
                site_name=params.name,
                repo=params.repo_full_name,
                error=e.message,
            )
            data = await self._request("POST", "/sites", json={"name": params.name})
            result = self._site_result(data, linked=False)
        else:
            result = self._site_result(data, linked=True)

        logger.info(
            "netlify_site_created",
            site_id=result.site_id,
            site_url=result.site_url,
            linked=result.linked,
        )
        return result

    async def set_env_vars(self, site_id: str, values: dict[str, str]) -> None:
        """Set production values for environment variables on a site."""
        for key, value in values.items():
            await self._request(
                "PATCH",
                f"/sites/{site_id}/env/{quote(key, safe='')}",
                json={"values": [{"value": value, "context": "production"}]},
            )
        logger.info("netlify_env_vars_set", site_id=site_id, count=len(values))

    async def deploy_files(self, site_id: str, files: list[FileSpec]) -> DeployResult:
        """Deploy files directly using Netlify's content-addressed protocol.

        Each file is hashed (SHA-1), the manifest is declared in one call, and
        only the files Netlify reports as missing are uploaded.
        """
        if not files:
            raise ValueError("deploy_files requires at least one file")

        by_path = {f"/{file.path}": file.content.encode("utf-8") for file in files}
        digests = {path: hashlib.sha1(body).hexdigest() for path, body in by_path.items()}

        deploy = await self._request("POST", f"/sites/{site_id}/deploys", json={"files": digests})
        deploy_id = deploy["id"]
        required = set(deploy.get("required") or [])

        uploaded = 0
        for path, body in by_path.items():
            if digests[path] not in required:
                continue
            await self._request(
                "PUT",
                f"/deploys/{deploy_id}/files{quote(path)}",
                content=body,
                headers={"Content-Type": "application/octet-stream"},
            )
            uploaded += 1

        deploy_url = deploy.get("ssl_url") or deploy.get("deploy_ssl_url") or deploy.get("url", "")
        logger.info(
            "netlify_files_deployed",
            site_id=site_id,
            deploy_id=deploy_id,
            file_count=len(files),
            uploaded=uploaded,
        )
        return DeployResult(deploy_id=deploy_id, deploy_url=deploy_url, uploaded=uploaded)

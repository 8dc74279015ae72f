"""GitHub REST client for repository creation and batched commits.

Multi-file writes go through the Git data API as a single commit: one blob
per file, one tree, one commit, then one ref update. The branch only moves
in the final step, so a failure anywhere earlier leaves the repository's
HEAD exactly where it was.

Example usage:
    >>> from devforge.config import GitHubConfig
    >>> client = GitHubClient(GitHubConfig(token="ghp_..."))
    >>> result = await client.create_repository(RepoConfig(name="task-tracker"))
    >>> await client.commit_files(result.full_name, files, "feat: scaffold")
    >>> await client.close()
"""

from __future__ import annotations

import base64
from typing import Any

import httpx
import structlog

from devforge.config import GitHubConfig
from devforge.integrations.errors import GitHubError
from devforge.workflow.models import FileSpec, RepoConfig, RepoResult

logger = structlog.get_logger(__name__)

API_VERSION = "2022-11-28"


def _split_full_name(repo_full_name: str) -> tuple[str, str]:
    owner, _, repo = repo_full_name.partition("/")
    if not owner or not repo:
        raise ValueError(f"Expected 'owner/name', got {repo_full_name!r}")
    return owner, repo


def _error_message(response: httpx.Response) -> tuple[str, Any]:
    """Build a readable message from a GitHub error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase, None

    if not isinstance(body, dict):
        return response.reason_phrase, body

    message = body.get("message") or response.reason_phrase
    detail_messages = [
        err.get("message") or err.get("code", "")
        for err in body.get("errors", [])
        if isinstance(err, dict)
    ]
    detail_messages = [m for m in detail_messages if m]
    if detail_messages:
        message = f"{message} ({'; '.join(detail_messages)})"
    return message, body


class GitHubClient:
    """Async client for the subset of the GitHub API the wizard needs."""

    def __init__(self, config: GitHubConfig) -> None:
        self.config = config
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client.

        Raises:
            GitHubError: If no token is configured.
        """
        if self.config.token is None:
            raise GitHubError("GitHub token is not configured")
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.api_url,
                timeout=self.config.timeout_seconds,
                headers={
                    "Authorization": f"Bearer {self.config.token.get_secret_value()}",
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": API_VERSION,
                },
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
            logger.error("github_request_error", method=method, path=path, error=str(e))
            raise GitHubError(f"GitHub request failed: {e}") from e

        if not response.is_success:
            message, details = _error_message(response)
            logger.warning(
                "github_request_failed",
                method=method,
                path=path,
                status_code=response.status_code,
                error=message,
            )
            raise GitHubError(message, status_code=response.status_code, details=details)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def get_authenticated_user(self) -> str:
        """Return the login of the token's owner."""
        data = await self._request("GET", "/user")
        return data["login"]

    async def create_repository(self, config: RepoConfig) -> RepoResult:
        """Create a repository initialised with a first commit.

        Repositories are created under the authenticated user unless
        ``config.owner`` names a different account, which is treated as an
        organisation.
        """
        payload = {
            "name": config.name,
            "description": config.description,
            "private": config.is_private,
            "auto_init": True,
        }

        path = "/user/repos"
        if config.owner:
            login = await self.get_authenticated_user()
            if config.owner.lower() != login.lower():
                path = f"/orgs/{config.owner}/repos"

        data = await self._request("POST", path, json=payload)
        result = RepoResult(
            url=data["html_url"],
            clone_url=data["clone_url"],
            full_name=data["full_name"],
            default_branch=data.get("default_branch") or self.config.default_branch,
        )
        logger.info("github_repository_created", repo=result.full_name, private=config.is_private)
        return result

    async def commit_files(
        self,
        repo_full_name: str,
        files: list[FileSpec],
        message: str,
        branch: str | None = None,
    ) -> str:
        """Write all files to ``branch`` as a single commit.

        Args:
            repo_full_name: Repository in ``owner/name`` form.
            files: Files to add or overwrite.
            message: Commit message.
            branch: Target branch; defaults to the configured default branch.

        Returns:
            SHA of the new commit.

        Raises:
            GitHubError: If any step fails. The branch ref is only updated
                after every blob, the tree and the commit were created.
        """
        if not files:
            raise ValueError("commit_files requires at least one file")

        owner, repo = _split_full_name(repo_full_name)
        branch = branch or self.config.default_branch
        base = f"/repos/{owner}/{repo}/git"

        ref = await self._request("GET", f"{base}/ref/heads/{branch}")
        head_sha = ref["object"]["sha"]
        head_commit = await self._request("GET", f"{base}/commits/{head_sha}")
        base_tree_sha = head_commit["tree"]["sha"]

        tree_items = []
        for file in files:
            blob = await self._request(
                "POST",
                f"{base}/blobs",
                json={
                    "content": base64.b64encode(file.content.encode("utf-8")).decode("ascii"),
                    "encoding": "base64",
                },
            )
            tree_items.append(
                {"path": file.path, "mode": "100644", "type": "blob", "sha": blob["sha"]}
            )

        tree = await self._request(
            "POST", f"{base}/trees", json={"base_tree": base_tree_sha, "tree": tree_items}
        )
        commit = await self._request(
            "POST",
            f"{base}/commits",
            json={"message": message, "tree": tree["sha"], "parents": [head_sha]},
        )
        await self._request("PATCH", f"{base}/refs/heads/{branch}", json={"sha": commit["sha"]})

        logger.info(
            "github_files_committed",
            repo=repo_full_name,
            branch=branch,
            file_count=len(files),
            commit_sha=commit["sha"],
        )
        return commit["sha"]

    async def add_deploy_key(self, repo_full_name: str, title: str, key: str) -> int:
        """Register a read-only deploy key and return its id."""
        owner, repo = _split_full_name(repo_full_name)
        data = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/keys",
            json={"title": title, "key": key, "read_only": True},
        )
        return data["id"]

    async def get_repo_tree(self, repo_full_name: str, branch: str | None = None) -> list[str]:
        """Return every file path on ``branch``."""
        owner, repo = _split_full_name(repo_full_name)
        branch = branch or self.config.default_branch
        data = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/git/trees/{branch}",
            params={"recursive": "1"},
        )
        return [item["path"] for item in data.get("tree", []) if item.get("type") == "blob"]

    async def get_file_content(self, repo_full_name: str, path: str) -> str:
        """Return the decoded text of one file."""
        owner, repo = _split_full_name(repo_full_name)
        data = await self._request("GET", f"/repos/{owner}/{repo}/contents/{path}")
        if not isinstance(data, dict) or "content" not in data:
            raise GitHubError(f"{path} is not a file", details=data)
        return base64.b64decode(data["content"]).decode("utf-8")

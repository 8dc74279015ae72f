"""Integration tests for the GitHub client against mocked HTTP."""

from __future__ import annotations

import base64
import json

import httpx
import pytest
import respx

from devforge.config import GitHubConfig
from devforge.integrations.errors import GitHubError
from devforge.integrations.github import GitHubClient
from devforge.workflow.models import FileSpec, RepoConfig

API = "https://api.github.com"
GIT = f"{API}/repos/octo/task-tracker/git"


@pytest.fixture
async def client():
    github = GitHubClient(GitHubConfig(token="ghp_test"))
    yield github
    await github.close()


def _repo_json(name: str = "task-tracker", owner: str = "octo") -> dict:
    return {
        "html_url": f"https://github.com/{owner}/{name}",
        "clone_url": f"https://github.com/{owner}/{name}.git",
        "full_name": f"{owner}/{name}",
        "default_branch": "main",
    }


def _mock_commit_prelude() -> None:
    respx.get(f"{GIT}/ref/heads/main").mock(
        return_value=httpx.Response(200, json={"object": {"sha": "head-sha"}})
    )
    respx.get(f"{GIT}/commits/head-sha").mock(
        return_value=httpx.Response(200, json={"tree": {"sha": "base-tree"}})
    )


class TestCreateRepository:
    @respx.mock
    async def test_creates_under_user(self, client: GitHubClient) -> None:
        route = respx.post(f"{API}/user/repos").mock(return_value=httpx.Response(201, json=_repo_json()))

        result = await client.create_repository(RepoConfig(name="task-tracker", is_private=True))

        assert result.full_name == "octo/task-tracker"
        assert result.url == "https://github.com/octo/task-tracker"
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer ghp_test"
        body = json.loads(request.content)
        assert body == {"name": "task-tracker", "description": "", "private": True, "auto_init": True}

    @respx.mock
    async def test_creates_under_org(self, client: GitHubClient) -> None:
        respx.get(f"{API}/user").mock(return_value=httpx.Response(200, json={"login": "octo"}))
        route = respx.post(f"{API}/orgs/acme/repos").mock(
            return_value=httpx.Response(201, json=_repo_json(owner="acme"))
        )

        result = await client.create_repository(RepoConfig(name="task-tracker", owner="acme"))

        assert route.called
        assert result.full_name == "acme/task-tracker"

    @respx.mock
    async def test_name_taken_message(self, client: GitHubClient) -> None:
        respx.post(f"{API}/user/repos").mock(
            return_value=httpx.Response(
                422,
                json={
                    "message": "Repository creation failed.",
                    "errors": [
                        {
                            "resource": "Repository",
                            "code": "custom",
                            "message": "name already exists on this account",
                        }
                    ],
                },
            )
        )

        with pytest.raises(GitHubError) as exc_info:
            await client.create_repository(RepoConfig(name="task-tracker"))

        assert exc_info.value.status_code == 422
        assert "name already exists on this account" in exc_info.value.message

    async def test_missing_token(self) -> None:
        with pytest.raises(GitHubError, match="token is not configured"):
            await GitHubClient(GitHubConfig()).get_authenticated_user()

    @respx.mock
    async def test_network_error(self, client: GitHubClient) -> None:
        respx.get(f"{API}/user").mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(GitHubError, match="request failed"):
            await client.get_authenticated_user()


class TestCommitFiles:
    @respx.mock
    async def test_single_commit_for_all_files(self, client: GitHubClient) -> None:
        _mock_commit_prelude()
        blobs = respx.post(f"{GIT}/blobs").mock(
            side_effect=[httpx.Response(201, json={"sha": f"blob-{i}"}) for i in range(3)]
        )
        trees = respx.post(f"{GIT}/trees").mock(return_value=httpx.Response(201, json={"sha": "tree-sha"}))
        commits = respx.post(f"{GIT}/commits").mock(
            return_value=httpx.Response(201, json={"sha": "commit-sha"})
        )
        ref = respx.patch(f"{GIT}/refs/heads/main").mock(return_value=httpx.Response(200, json={}))
        files = [
            FileSpec(path="README.md", content="# Hi"),
            FileSpec(path="src/app.ts", content="export {}"),
            FileSpec(path="AI_RULES.md", content="# AI Rules"),
        ]

        sha = await client.commit_files("octo/task-tracker", files, "feat: scaffold")

        assert sha == "commit-sha"
        assert blobs.call_count == 3
        first_blob = json.loads(blobs.calls[0].request.content)
        assert base64.b64decode(first_blob["content"]).decode() == "# Hi"
        tree_body = json.loads(trees.calls.last.request.content)
        assert tree_body["base_tree"] == "base-tree"
        assert [item["path"] for item in tree_body["tree"]] == ["README.md", "src/app.ts", "AI_RULES.md"]
        commit_body = json.loads(commits.calls.last.request.content)
        assert commit_body == {"message": "feat: scaffold", "tree": "tree-sha", "parents": ["head-sha"]}
        assert json.loads(ref.calls.last.request.content) == {"sha": "commit-sha"}

    @respx.mock
    async def test_blob_failure_leaves_ref_untouched(self, client: GitHubClient) -> None:
        _mock_commit_prelude()
        respx.post(f"{GIT}/blobs").mock(
            side_effect=[
                httpx.Response(201, json={"sha": "blob-0"}),
                httpx.Response(201, json={"sha": "blob-1"}),
                httpx.Response(201, json={"sha": "blob-2"}),
                httpx.Response(500, json={"message": "Server Error"}),
            ]
        )
        trees = respx.post(f"{GIT}/trees")
        commits = respx.post(f"{GIT}/commits")
        ref = respx.patch(f"{GIT}/refs/heads/main")
        files = [FileSpec(path=f"file{i}.md", content=str(i)) for i in range(5)]

        with pytest.raises(GitHubError) as exc_info:
            await client.commit_files("octo/task-tracker", files, "feat: scaffold")

        assert exc_info.value.status_code == 500
        assert not trees.called
        assert not commits.called
        assert not ref.called

    async def test_empty_file_list_rejected(self, client: GitHubClient) -> None:
        with pytest.raises(ValueError):
            await client.commit_files("octo/task-tracker", [], "empty")


class TestReadOperations:
    @respx.mock
    async def test_repo_tree_lists_blobs_only(self, client: GitHubClient) -> None:
        route = respx.get(f"{GIT}/trees/main").mock(
            return_value=httpx.Response(
                200,
                json={
                    "tree": [
                        {"path": "src", "type": "tree"},
                        {"path": "src/index.ts", "type": "blob"},
                        {"path": "AI_RULES.md", "type": "blob"},
                    ]
                },
            )
        )

        paths = await client.get_repo_tree("octo/task-tracker")

        assert paths == ["src/index.ts", "AI_RULES.md"]
        assert route.calls.last.request.url.params["recursive"] == "1"

    @respx.mock
    async def test_file_content_decoded(self, client: GitHubClient) -> None:
        encoded = base64.b64encode(b"# AI Rules\n").decode()
        respx.get(f"{API}/repos/octo/task-tracker/contents/AI_RULES.md").mock(
            return_value=httpx.Response(200, json={"content": encoded, "encoding": "base64"})
        )

        assert await client.get_file_content("octo/task-tracker", "AI_RULES.md") == "# AI Rules\n"

    @respx.mock
    async def test_add_deploy_key(self, client: GitHubClient) -> None:
        route = respx.post(f"{API}/repos/octo/task-tracker/keys").mock(
            return_value=httpx.Response(201, json={"id": 42})
        )

        key_id = await client.add_deploy_key("octo/task-tracker", "Netlify", "ssh-ed25519 AAA")

        assert key_id == 42
        assert json.loads(route.calls.last.request.content)["read_only"] is True

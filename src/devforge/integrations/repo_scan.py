"""Scanning of a connected repository, on GitHub or on local disk.

The wizard reads a connected repository to find files it would otherwise
generate (most importantly an existing ``AI_RULES.md``) so generated content
can build on them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from devforge.integrations.errors import RepoScanError
from devforge.integrations.github import GitHubClient
from devforge.workflow.models import ConnectedRepo

logger = structlog.get_logger(__name__)

KNOWN_FILES: tuple[str, ...] = (
    "AI_RULES.md",
    "README.md",
    "ROADMAP.md",
    "GETTING_STARTED.md",
    "FEATURES.md",
    "package.json",
    "netlify.toml",
)

_SKIPPED_DIRS = {"node_modules"}


@dataclass
class ScanResult:
    files: list[str]
    detected: dict[str, bool] = field(default_factory=dict)


def scan_local_dir(root: Path) -> list[str]:
    """List files under ``root`` as POSIX relative paths, skipping hidden entries."""
    results: list[str] = []
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root)
        if any(part.startswith(".") or part in _SKIPPED_DIRS for part in rel.parts):
            continue
        if path.is_file():
            results.append(rel.as_posix())
    return results


def _resolve_local(repo_path: str, file: str | None = None) -> Path:
    root = Path(repo_path).expanduser().resolve()
    if not root.is_dir():
        raise RepoScanError(f"Directory not found: {repo_path}", status_code=404)
    if file is None:
        return root
    target = (root / file).resolve()
    if root not in target.parents:
        raise RepoScanError(f"Path escapes repository: {file}", status_code=400)
    if not target.is_file():
        raise RepoScanError(f"File not found: {file}", status_code=404)
    return target


class RepoScanner:
    """Reads file listings and contents from a connected repository."""

    def __init__(self, github: GitHubClient) -> None:
        self.github = github

    async def scan(self, source: ConnectedRepo) -> ScanResult:
        """List every file and flag which KNOWN_FILES exist.

        Raises:
            RepoScanError: If the repository cannot be read.
            GitHubError: If the GitHub API rejects the request.
        """
        if source.source == "github":
            files = await self.github.get_repo_tree(source.repo or "")
        else:
            files = scan_local_dir(_resolve_local(source.path or ""))

        present = set(files)
        result = ScanResult(files=files, detected={name: name in present for name in KNOWN_FILES})
        logger.info(
            "repository_scanned",
            source=source.source,
            file_count=len(files),
            detected=[name for name, found in result.detected.items() if found],
        )
        return result

    async def read_file(self, source: ConnectedRepo, file: str) -> str:
        """Return the text of one file in the repository."""
        if source.source == "github":
            return await self.github.get_file_content(source.repo or "", file)
        target = _resolve_local(source.path or "", file)
        try:
            return target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise RepoScanError(f"Cannot read {file}: {exc}") from exc

    async def existing_rules(self, source: ConnectedRepo) -> str | None:
        """Return AI_RULES.md from the repository, or None if it has none."""
        scan = await self.scan(source)
        if not scan.detected.get("AI_RULES.md"):
            return None
        return await self.read_file(source, "AI_RULES.md")

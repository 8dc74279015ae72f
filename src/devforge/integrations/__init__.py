"""External collaborators: GitHub, Netlify, AI generation and repository scanning."""

from __future__ import annotations

from devforge.integrations.errors import (
    CollaboratorError,
    GenerationError,
    GitHubError,
    NetlifyError,
    RepoScanError,
)
from devforge.integrations.github import GitHubClient
from devforge.integrations.netlify import (
    DeployKey,
    DeployResult,
    NetlifyClient,
    SiteParams,
    SiteResult,
)
from devforge.integrations.repo_scan import KNOWN_FILES, RepoScanner, ScanResult

__all__ = [
    # Errors
    "CollaboratorError",
    "GenerationError",
    "GitHubError",
    "NetlifyError",
    "RepoScanError",
    # GitHub
    "GitHubClient",
    # Netlify
    "DeployKey",
    "DeployResult",
    "NetlifyClient",
    "SiteParams",
    "SiteResult",
    # Repository scan
    "KNOWN_FILES",
    "RepoScanner",
    "ScanResult",
]

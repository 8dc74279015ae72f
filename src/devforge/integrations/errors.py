"""Exceptions raised by external collaborators.

Anything the AI backend, GitHub, Netlify or a repository scan reports as a
failure surfaces as a ``CollaboratorError`` subclass. The orchestration layer
catches this base class at the step boundary and records it on the step.
"""

from __future__ import annotations

from typing import Any


class CollaboratorError(Exception):
    """Base exception for external collaborator failures.

    Attributes:
        message: Human-readable failure reason, shown to the user as-is.
        status_code: HTTP status returned by the collaborator, if any.
        details: Raw error payload returned by the collaborator, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: Any = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class GitHubError(CollaboratorError):
    """Raised when a GitHub API call fails."""

    pass


class NetlifyError(CollaboratorError):
    """Raised when a Netlify API call fails."""

    pass


class GenerationError(CollaboratorError):
    """Raised when AI generation fails or returns unusable output."""

    pass


class RepoScanError(CollaboratorError):
    """Raised when a connected repository cannot be scanned or read."""

    pass

"""
Error types raised by the GitHub transport and the pagination helpers.
"""
from __future__ import annotations

from typing import Optional


class GitHubError(Exception):
    """Base class for every failure talking to the GitHub API."""


class NotFoundError(GitHubError):
    """The requested org, repository or user does not exist (HTTP 404)."""

    def __init__(self, resource: str) -> None:
        super().__init__(f"Not Found: {resource}")
        self.resource = resource


class RemoteError(GitHubError):
    """Any other API failure: auth, rate limit, server error, bad payload."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        if status is not None:
            message = f"HTTP {status}: {message}"
        super().__init__(message)
        self.status = status


class PaginationError(GitHubError):
    """A Link header advertised a last page we could not parse."""

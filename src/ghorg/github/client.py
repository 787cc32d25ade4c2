"""GitHub REST API client used by the aggregation commands."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote, urljoin

import requests

from ..config import Settings
from .errors import NotFoundError, RemoteError
from .models import Page
from .rate_limit import make_rate_limited_session, request_with_rate_limit

# GitHub max per_page is 100
MAX_PER_PAGE = 100


class GitHubClient:
    """Thin REST wrapper exposing the listing and lookup calls we need.

    List calls return a ``Page``; lookups return the decoded JSON. A 404 raises
    ``NotFoundError``; every other failure raises ``RemoteError``.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = "https://api.github.com",
        user_agent: str = "ghorg",
        timeout: float = 5.0,
        basic_auth: Optional[Tuple[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub personal access / OAuth token
            base_url: Base URL for the GitHub API
            user_agent: User agent string for API requests
            timeout: Per-request timeout in seconds
            basic_auth: ``(user, secret)`` pair used when no token is given
            session: Preconfigured session; built from the other arguments when omitted
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = logging.getLogger("ghorg.github.client")
        self._session = session or make_rate_limited_session(
            token, user_agent=user_agent, basic_auth=basic_auth
        )

    def _url(self, path: str) -> str:
        return urljoin(f"{self.base_url}/", path.lstrip('/'))

    def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = self._url(path)
        self.logger.debug("GET %s %s", url, params or "")
        try:
            response = request_with_rate_limit(
                self._session, 'GET', url,
                logger=self.logger, params=params, timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RemoteError(f"GET {path} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(path)
        if response.status_code >= 400:
            raise RemoteError(self._error_message(response), status=response.status_code)
        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            return (response.json() or {}).get('message') or response.reason or ''
        except ValueError:
            return response.reason or ''

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(f"Malformed JSON from {response.url}: {e}")

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a single resource and return its decoded body (``None`` on 204)."""
        return self._decode(self._request(path, params))

    def get_page(self, path: str, params: Optional[Dict[str, Any]] = None) -> Page:
        """GET one page of a listing, keeping the ``Link`` header for pagination."""
        response = self._request(path, params)
        return Page(items=self._decode(response), link=response.headers.get('Link'))

    @staticmethod
    def _page_params(page: int, per_page: int, **extra: Any) -> Dict[str, Any]:
        params = {'per_page': min(per_page, MAX_PER_PAGE), 'page': page}
        params.update({k: v for k, v in extra.items() if v is not None})
        return params

    def list_org_repos(
        self,
        org: str,
        repo_type: str = "public",
        page: int = 1,
        per_page: int = MAX_PER_PAGE,
    ) -> Page:
        """List organization repositories; ``repo_type`` is ``public`` or ``all``."""
        return self.get_page(
            f"orgs/{quote(org)}/repos",
            self._page_params(page, per_page, type=repo_type),
        )

    def get_repo(self, owner: str, repo: str) -> Dict[str, Any]:
        """Get a single repository."""
        return self.get(f"repos/{quote(owner)}/{quote(repo)}") or {}

    def list_contributors(
        self, owner: str, repo: str, page: int = 1, per_page: int = MAX_PER_PAGE
    ) -> Page:
        return self.get_page(
            f"repos/{quote(owner)}/{quote(repo)}/contributors",
            self._page_params(page, per_page),
        )

    def list_public_members(self, org: str, page: int = 1, per_page: int = MAX_PER_PAGE) -> Page:
        return self.get_page(f"orgs/{quote(org)}/public_members", self._page_params(page, per_page))

    def list_members(self, org: str, page: int = 1, per_page: int = MAX_PER_PAGE) -> Page:
        """List public and concealed members; needs a token with org read access."""
        return self.get_page(f"orgs/{quote(org)}/members", self._page_params(page, per_page))

    def list_user_events(self, user: str, page: int = 1, per_page: int = 30) -> Page:
        return self.get_page(f"users/{quote(user)}/events", self._page_params(page, per_page))

    def list_repo_issues(
        self,
        owner: str,
        repo: str,
        state: str = "closed",
        page: int = 1,
        per_page: int = MAX_PER_PAGE,
    ) -> Page:
        return self.get_page(
            f"repos/{quote(owner)}/{quote(repo)}/issues",
            self._page_params(page, per_page, state=state),
        )

    def check_membership(self, org: str, user: str) -> bool:
        """True when ``user`` belongs to ``org``.

        GitHub answers 204 for members; for non-members it redirects to the
        public membership check, which then 404s (raising ``NotFoundError``).
        """
        response = self._request(f"orgs/{quote(org)}/members/{quote(user)}")
        return response.status_code == 204

    def close(self) -> None:
        """Close the underlying session."""
        self._session.close()

    def __enter__(self) -> 'GitHubClient':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def create_client(settings: Settings) -> GitHubClient:
    """Build a client from settings, logging which authentication is in use."""
    log = logging.getLogger("ghorg.github.client")
    method, credentials = settings.auth_method()
    token: Optional[str] = None
    basic_auth: Optional[Tuple[str, str]] = None
    if method == "token":
        log.info("Configuring authentication via OAuth2 token")
        token = credentials
    elif method == "oauth-app":
        log.info("Configuring authentication via OAuth2 key/secret")
        basic_auth = credentials
    elif method == "basic":
        log.info("Configuring authentication via basic authentication")
        basic_auth = credentials
    else:
        log.warning("Connecting to GitHub WITHOUT authentication; may be subject to rate-limiting")

    log.debug("Creating GitHub API client for %s", settings.api_base)
    return GitHubClient(
        token=token,
        base_url=settings.api_base,
        user_agent=settings.user_agent,
        timeout=settings.timeout,
        basic_auth=basic_auth,
    )

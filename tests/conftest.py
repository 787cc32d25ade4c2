"""Pytest fixtures: an in-memory stand-in for the GitHub REST client."""

from __future__ import annotations

import threading
import time
from collections import Counter
from typing import Any, Callable, Dict, List, Optional

import pytest

from ghorg.github.errors import NotFoundError
from ghorg.github.models import Page
from ghorg.progress import ProgressTracker


def repo_payload(
    full_name: str,
    stars: int = 0,
    source: Optional[str] = None,
    private: bool = False,
) -> Dict[str, Any]:
    owner, name = full_name.split("/", 1)
    data: Dict[str, Any] = {
        "name": name,
        "full_name": full_name,
        "owner": {"login": owner},
        "stargazers_count": stars,
        "fork": source is not None,
        "private": private,
    }
    if source is not None:
        data["source"] = {"full_name": source}
    return data


def event_payload(user: str, repo: str, type: str = "PushEvent") -> Dict[str, Any]:
    return {"type": type, "actor": {"login": user}, "repo": {"name": repo}}


def issue_payload(number: int, author: str, comments: int, pull_request: bool = False) -> Dict[str, Any]:
    data: Dict[str, Any] = {"number": number, "user": {"login": author}, "comments": comments}
    if pull_request:
        data["pull_request"] = {"url": "https://example.invalid"}
    return data


def slowed(operation: Callable[..., Any], delay: float = 0.05) -> Callable[..., Any]:
    """Wrap a fake operation so calls overlap under threads; ``.calls`` counts them."""
    lock = threading.Lock()

    def wrapper(*args: Any, **kwargs: Any) -> Any:
        with lock:
            wrapper.calls += 1
        time.sleep(delay)
        return operation(*args, **kwargs)

    wrapper.calls = 0
    return wrapper


class FakeGitHub:
    """Serves canned data page by page, with GitHub-style ``Link`` headers.

    ``calls`` counts invocations per operation, ``membership_calls`` per
    ``(org, user)`` pair.
    """

    def __init__(self) -> None:
        self.org_repos: Dict[str, List[Dict[str, Any]]] = {}
        self.repos: Dict[str, Dict[str, Any]] = {}
        self.contributors: Dict[str, List[Dict[str, Any]]] = {}
        self.public_members: Dict[str, List[str]] = {}
        self.private_members: Dict[str, List[str]] = {}
        self.events: Dict[str, List[Dict[str, Any]]] = {}
        self.issues: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: Counter = Counter()
        self.membership_calls: Counter = Counter()

    # -- setup helpers

    def add_repo(self, full_name: str, stars: int = 0, source: Optional[str] = None,
                 listed: bool = True) -> Dict[str, Any]:
        data = repo_payload(full_name, stars, source)
        self.repos[full_name.lower()] = data
        if listed:
            owner = full_name.split("/", 1)[0]
            self.org_repos.setdefault(owner.lower(), []).append(data)
        return data

    # -- paging

    @staticmethod
    def _page(items: Optional[List[Any]], page: int, per_page: int, path: str) -> Page:
        if items is None:
            return Page(items=None)
        last = max(1, -(-len(items) // per_page))
        chunk = items[(page - 1) * per_page: page * per_page]
        link = None
        if last > 1:
            parts = []
            if page < last:
                parts.append(f'<https://api.github.com/{path}?per_page={per_page}&page={page + 1}>; rel="next"')
                parts.append(f'<https://api.github.com/{path}?per_page={per_page}&page={last}>; rel="last"')
            if page > 1:
                parts.append(f'<https://api.github.com/{path}?per_page={per_page}&page=1>; rel="first"')
            link = ", ".join(parts)
        return Page(items=chunk, link=link)

    # -- client surface

    def list_org_repos(self, org: str, repo_type: str = "public", page: int = 1, per_page: int = 100) -> Page:
        self.calls["list_org_repos"] += 1
        if org.lower() not in self.org_repos:
            raise NotFoundError(f"orgs/{org}/repos")
        repos = self.org_repos[org.lower()]
        if repo_type == "public":
            repos = [r for r in repos if not r.get("private")]
        return self._page(repos, page, per_page, f"orgs/{org}/repos")

    def get_repo(self, owner: str, repo: str) -> Dict[str, Any]:
        self.calls["get_repo"] += 1
        key = f"{owner}/{repo}".lower()
        if key not in self.repos:
            raise NotFoundError(f"repos/{owner}/{repo}")
        return self.repos[key]

    def list_contributors(self, owner: str, repo: str, page: int = 1, per_page: int = 100) -> Page:
        self.calls["list_contributors"] += 1
        key = f"{owner}/{repo}".lower()
        if key not in self.repos:
            raise NotFoundError(f"repos/{owner}/{repo}/contributors")
        return self._page(self.contributors.get(key), page, per_page, f"repos/{owner}/{repo}/contributors")

    def list_public_members(self, org: str, page: int = 1, per_page: int = 100) -> Page:
        self.calls["list_public_members"] += 1
        logins = self.public_members.get(org.lower(), [])
        return self._page([{"login": m} for m in logins], page, per_page, f"orgs/{org}/public_members")

    def list_members(self, org: str, page: int = 1, per_page: int = 100) -> Page:
        self.calls["list_members"] += 1
        logins = self.public_members.get(org.lower(), []) + self.private_members.get(org.lower(), [])
        return self._page([{"login": m} for m in logins], page, per_page, f"orgs/{org}/members")

    def list_user_events(self, user: str, page: int = 1, per_page: int = 30) -> Page:
        self.calls["list_user_events"] += 1
        if user not in self.events:
            raise NotFoundError(f"users/{user}/events")
        return self._page(self.events[user], page, per_page, f"users/{user}/events")

    def list_repo_issues(self, owner: str, repo: str, state: str = "closed",
                         page: int = 1, per_page: int = 100) -> Page:
        self.calls["list_repo_issues"] += 1
        key = f"{owner}/{repo}".lower()
        return self._page(self.issues.get(key, []), page, per_page, f"repos/{owner}/{repo}/issues")

    def check_membership(self, org: str, user: str) -> bool:
        self.calls["check_membership"] += 1
        self.membership_calls[(org.lower(), user.lower())] += 1
        members = self.public_members.get(org.lower(), []) + self.private_members.get(org.lower(), [])
        if user in members:
            return True
        raise NotFoundError(f"orgs/{org}/members/{user}")

    def close(self) -> None:
        self.calls["close"] += 1

    def __enter__(self) -> "FakeGitHub":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def progress() -> ProgressTracker:
    return ProgressTracker(enabled=False)

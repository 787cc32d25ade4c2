"""Organization repository listings and fork-ancestry resolution."""
from __future__ import annotations

import logging
import threading
from typing import List, Optional

from cachetools import LRUCache

from .fanout import KeyedLocks
from .github.client import GitHubClient
from .github.errors import NotFoundError
from .github.models import Repository, repo_key, split_full_name
from .github.pagination import fetch_all_pages
from .progress import ProgressTracker

logger = logging.getLogger("ghorg.repos")

# Per-run memo size; far above the repo count of any single invocation
DEFAULT_CACHE_SIZE = 10000

_MISSING = object()


class RepoCatalog:
    """Repository lookups for one command invocation, memoized by full name."""

    def __init__(
        self,
        client: GitHubClient,
        progress: Optional[ProgressTracker] = None,
        per_page: int = 100,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        self.client = client
        self.progress = progress or ProgressTracker()
        self.per_page = per_page
        self._repos: LRUCache = LRUCache(maxsize=cache_size)
        self._sources: LRUCache = LRUCache(maxsize=cache_size)
        self._lock = threading.RLock()
        # held across the remote call so concurrent lookups of one repo fetch it once
        self._repo_locks = KeyedLocks()
        self._source_locks = KeyedLocks()

    def repos_for_org(
        self,
        org: str,
        repo_type: str = "public",
        exclude_forks: bool = True,
    ) -> List[Repository]:
        """List an org's repositories across all pages.

        Args:
            org: Organization login
            repo_type: ``public`` or ``all`` (private and public)
            exclude_forks: Drop forks; they are not the org's own work

        Returns:
            Repositories in listing order
        """
        raw = fetch_all_pages(
            self.client.list_org_repos,
            {'org': org, 'repo_type': repo_type, 'per_page': self.per_page},
        )
        repos: List[Repository] = []
        for data in raw:
            repo = Repository.from_dict(data)
            if exclude_forks and repo.is_fork:
                self.progress.verbose('repos', 'Skipping fork "%s"', repo.full_name)
                continue
            if not repo.is_fork:
                # listings carry no fork source, so only non-forks are final
                with self._lock:
                    self._repos.setdefault(repo.key, repo)
            repos.append(repo)
        return repos

    def get_repo(self, full_name: str) -> Repository:
        """Fetch repository metadata, once per run per repository.

        Raises:
            NotFoundError: the repository does not exist (also remembered)
        """
        key = repo_key(full_name)
        with self._repo_locks(key):
            return self._get_repo(key, full_name)

    def _get_repo(self, key: str, full_name: str) -> Repository:
        with self._lock:
            cached = self._repos.get(key, _MISSING)
        if cached is None:
            raise NotFoundError(f"repos/{full_name}")
        if cached is not _MISSING:
            return cached

        owner, name = split_full_name(full_name)
        try:
            repo = Repository.from_dict(self.client.get_repo(owner, name))
        except NotFoundError:
            with self._lock:
                self._repos[key] = None
            raise
        with self._lock:
            self._repos[key] = repo
            # GitHub may answer for a renamed repo under its new name
            self._repos.setdefault(repo.key, repo)
        return repo

    def get_source_repo(self, full_name: str) -> Optional[Repository]:
        """Follow fork ancestry to the root repository.

        Returns the repository itself when it is not a fork, the non-fork root
        otherwise, or ``None`` if any hop of the chain no longer exists. Every
        name visited on the way is memoized against the same answer.
        """
        key = repo_key(full_name)
        with self._source_locks(key):
            return self._resolve_source(key, full_name)

    def _resolve_source(self, key: str, full_name: str) -> Optional[Repository]:
        with self._lock:
            cached = self._sources.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        visited: List[str] = []
        current = full_name
        result: Optional[Repository] = None
        while True:
            current_key = repo_key(current)
            with self._lock:
                known = self._sources.get(current_key, _MISSING)
            if known is not _MISSING:
                result = known
                break
            if current_key in visited:
                logger.warning("Fork cycle detected at %s", current)
                break
            visited.append(current_key)
            try:
                repo = self.get_repo(current)
            except NotFoundError:
                self.progress.warn('repos', 'Repository "%s" not found; dropping it', current)
                result = None
                break
            if repo.is_fork and repo.source and repo_key(repo.source) != repo.key:
                current = repo.source
                continue
            result = repo
            break

        with self._lock:
            for alias in visited:
                self._sources[alias] = result
            if result is not None:
                self._sources[result.key] = result
        return result

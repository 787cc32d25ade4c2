"""Organization membership listings and memoized membership checks."""
from __future__ import annotations

import logging
import threading
from typing import List, Optional

from cachetools import LRUCache

from .fanout import KeyedLocks
from .github.client import GitHubClient
from .github.errors import GitHubError
from .github.pagination import fetch_all_pages
from .progress import ProgressTracker

logger = logging.getLogger("ghorg.members")


class MemberDirectory:
    def __init__(
        self,
        client: GitHubClient,
        progress: Optional[ProgressTracker] = None,
        per_page: int = 100,
        cache_size: int = 10000,
    ) -> None:
        self.client = client
        self.progress = progress or ProgressTracker()
        self.per_page = per_page
        self._membership: LRUCache = LRUCache(maxsize=cache_size)
        self._lock = threading.RLock()
        self._check_locks = KeyedLocks()

    def members_of_org(self, org: str, private: bool = False) -> List[str]:
        """Logins of an org's members.

        Public members only, unless ``private`` is set; the full listing needs
        a token with read access to the org.
        """
        if private:
            self.progress.verbose('members', 'Fetching PUBLIC and PRIVATE members of org "%s"', org)
            operation = self.client.list_members
        else:
            self.progress.verbose('members', 'Fetching PUBLIC members of org "%s"', org)
            operation = self.client.list_public_members
        members = fetch_all_pages(operation, {'org': org, 'per_page': self.per_page})
        logins = [m.get('login') for m in members if isinstance(m, dict) and m.get('login')]
        with self._lock:
            for login in logins:
                self._membership[(org.lower(), login.lower())] = True
        return logins

    def is_member(self, org: str, login: str) -> bool:
        """Membership check, issued at most once per (org, user) in a run.

        Any failure of the check counts as "not a member".
        """
        key = (org.lower(), login.lower())
        with self._check_locks(key):
            with self._lock:
                if key in self._membership:
                    return self._membership[key]
            try:
                result = self.client.check_membership(org, login)
            except GitHubError as e:
                logger.debug("Membership check %s/%s failed (%s); treating as non-member", org, login, e)
                result = False
            with self._lock:
                self._membership[key] = result
        return result

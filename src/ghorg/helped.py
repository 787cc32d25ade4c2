"""Find outside users whose issues an org closed, and where they contribute.

For every non-fork repository of an org, closed issues with enough discussion
(``minimum_comment_count`` comments) point at users the org helped. Authors
who are not members of the org are then looked up: their recent public
activity, attributed to root repositories outside the org, ranked by stars.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .contributions import ContributionAggregator
from .fanout import fan_out
from .github.client import GitHubClient
from .github.errors import NotFoundError
from .github.models import HelpedRepo, HelpedUsers, Issue, Repository
from .github.pagination import fetch_all_pages
from .members import MemberDirectory
from .progress import ProgressTracker
from .repos import RepoCatalog

logger = logging.getLogger("ghorg.helped")

DEFAULT_LIMIT = 10
DEFAULT_MINIMUM_COMMENT_COUNT = 2


class HelpedUserFinder:
    def __init__(
        self,
        client: GitHubClient,
        progress: Optional[ProgressTracker] = None,
        aggregator: Optional[ContributionAggregator] = None,
        concurrency: int = 1,
        minimum_comment_count: int = DEFAULT_MINIMUM_COMMENT_COUNT,
        per_page: int = 100,
    ) -> None:
        self.client = client
        self.progress = progress or ProgressTracker()
        self.aggregator = aggregator or ContributionAggregator(
            client, self.progress, concurrency=concurrency, per_page=per_page
        )
        self.repos: RepoCatalog = self.aggregator.repos
        self.members: MemberDirectory = self.aggregator.members
        self.concurrency = max(1, concurrency)
        self.minimum_comment_count = minimum_comment_count
        self.per_page = per_page

    def _warn_missing(self, item: object, e: NotFoundError) -> None:
        self.progress.warn('helped', 'Skipping %s: %s', getattr(item, 'full_name', item), e)

    def closed_issues(self, repo: Repository) -> List[Issue]:
        owner = repo.owner or repo.full_name.partition('/')[0]
        raw = fetch_all_pages(
            self.client.list_repo_issues,
            {'owner': owner, 'repo': repo.name, 'state': 'closed', 'per_page': self.per_page},
        )
        return [Issue.from_dict(data) for data in raw if isinstance(data, dict)]

    def _helped_authors(self, org: str, minimum_comment_count: int, seen: set) -> List[str]:
        """Non-member authors of well-discussed closed issues, first seen first."""
        repos = self.repos.repos_for_org(org)
        repo_log = self.progress.new_item('repos', len(repos))
        authors: List[str] = []
        try:
            for repo, issues in fan_out(
                self.closed_issues, repos, self.concurrency, self._warn_missing
            ):
                repo_log.complete_work(1)
                logger.debug("%s: %d closed issue(s)", repo.full_name, len(issues))
                for issue in issues:
                    if issue.is_pull_request or not issue.author:
                        continue
                    if issue.comments < minimum_comment_count:
                        continue
                    key = issue.author.lower()
                    if key in seen:
                        continue
                    if self.members.is_member(org, issue.author):
                        self.progress.verbose('helped', 'Skipping "%s": member of "%s"', issue.author, org)
                        continue
                    seen.add(key)
                    authors.append(issue.author)
        finally:
            repo_log.finish()
        return authors

    def recent_external_contributions(
        self, login: str, exclude_org: str, limit: Optional[int] = DEFAULT_LIMIT
    ) -> List[HelpedRepo]:
        """Root repositories outside ``exclude_org`` that ``login`` recently worked on.

        Sorted by star count, highest first; equal counts keep the order the
        repositories first appeared in the user's activity.
        """
        counts = self.aggregator.events_for_user(login, exclude_org=exclude_org)
        found: Dict[str, HelpedRepo] = {}
        for name in counts:
            source = self.repos.get_source_repo(name)
            if source is None or source.is_owned_by(exclude_org):
                continue
            found.setdefault(source.key, {'name': source.full_name, 'stars': source.stars})
        ranked = sorted(found.values(), key=lambda r: -r['stars'])
        return ranked if limit is None else ranked[:limit]

    def find_helped_users(
        self,
        orgs: Iterable[str],
        limit: Optional[int] = DEFAULT_LIMIT,
        minimum_comment_count: Optional[int] = None,
    ) -> HelpedUsers:
        """Map each helped outside user to their top recent external repositories.

        Returns:
            ``{login: [{"name": "owner/name", "stars": int}, ...]}``
        """
        threshold = self.minimum_comment_count if minimum_comment_count is None else minimum_comment_count
        seen: set = set()
        result: HelpedUsers = {}
        # orgs run one at a time; `seen` is shared between them
        for _org, found in fan_out(
            lambda org: self._helped_in_org(org, limit, threshold, seen),
            orgs,
            1,
            self._warn_missing,
        ):
            result.update(found)
        return result

    def _helped_in_org(
        self, org: str, limit: Optional[int], minimum_comment_count: int, seen: set
    ) -> HelpedUsers:
        found: HelpedUsers = {}
        with self.progress.new_group(org):
            authors = self._helped_authors(org, minimum_comment_count, seen)
            self.progress.verbose(
                'helped', 'Found %d non-member user(s) helped by org "%s"', len(authors), org
            )
            for login, repos in fan_out(
                lambda user: self.recent_external_contributions(user, org, limit),
                authors,
                self.concurrency,
                self._warn_missing,
            ):
                found[login] = repos
        return found

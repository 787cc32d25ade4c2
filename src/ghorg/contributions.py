"""Contribution statistics across one or more GitHub organizations.

Two modes:

* internal: who contributed, and how much, to each of an org's own (non-fork)
  repositories, from the contributors listing;
* external: which repositories *outside* the org its members pushed to or
  opened pull requests against, from each member's recent public events.
  Activity in forks is credited to the fork's root repository, and forks of
  the org's own projects are dropped.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .config import DEFAULT_EVENT_TYPES, DEFAULT_EVENTS_PER_PAGE, DEFAULT_MAX_EVENT_PAGES
from .fanout import fan_out
from .github.client import GitHubClient
from .github.errors import NotFoundError
from .github.models import (
    ContributionRecord,
    Contributor,
    Event,
    MembersByRepo,
    RepoContributions,
    Repository,
    RepoTally,
)
from .github.pagination import fetch_all_pages
from .members import MemberDirectory
from .progress import ProgressTracker
from .repos import RepoCatalog

logger = logging.getLogger("ghorg.contributions")


class ContributionAggregator:
    def __init__(
        self,
        client: GitHubClient,
        progress: Optional[ProgressTracker] = None,
        repos: Optional[RepoCatalog] = None,
        members: Optional[MemberDirectory] = None,
        concurrency: int = 1,
        org_concurrency: int = 1,
        event_types: Optional[Sequence[str]] = None,
        events_per_page: int = DEFAULT_EVENTS_PER_PAGE,
        max_event_pages: Optional[int] = DEFAULT_MAX_EVENT_PAGES,
        per_page: int = 100,
    ) -> None:
        self.client = client
        self.progress = progress or ProgressTracker()
        self.repos = repos or RepoCatalog(client, self.progress, per_page=per_page)
        self.members = members or MemberDirectory(client, self.progress, per_page=per_page)
        self.concurrency = max(1, concurrency)
        self.org_concurrency = max(1, org_concurrency)
        self.event_types = list(event_types or DEFAULT_EVENT_TYPES)
        self.events_per_page = events_per_page
        self.max_event_pages = max_event_pages
        self.per_page = per_page

    def _warn_missing(self, item: object, e: NotFoundError) -> None:
        self.progress.warn('contributions', 'Skipping %s: %s', getattr(item, 'full_name', item), e)

    # -----------------------------
    # Internal contributions
    # -----------------------------

    def contributors_for_repo(self, repo: Repository) -> Dict[str, int]:
        """Contribution count per login for one repository."""
        owner = repo.owner or repo.full_name.partition('/')[0]
        raw = fetch_all_pages(
            self.client.list_contributors,
            {'owner': owner, 'repo': repo.name, 'per_page': self.per_page},
        )
        counts: Dict[str, int] = {}
        for data in raw:
            contributor = Contributor.from_dict(data)
            if contributor.login:
                counts[contributor.login] = contributor.contributions
        return counts

    def _internal_for_org(self, org: str, private: bool) -> Dict[str, RepoContributions]:
        scope = 'PRIVATE and PUBLIC' if private else 'PUBLIC'
        with self.progress.new_group(org):
            self.progress.verbose(
                'contributions',
                'Fetching INTERNAL (member-only) contributions for org "%s"; finding internal %s repos...',
                org, scope,
            )
            repos = self.repos.repos_for_org(org, repo_type='all' if private else 'public')
            self.progress.verbose('contributions', '%d %s repo(s) found', len(repos), scope)

            repo_log = self.progress.new_item('repos', len(repos))
            org_data: Dict[str, RepoContributions] = {}
            try:
                for repo, counts in fan_out(
                    self.contributors_for_repo, repos, self.concurrency, self._warn_missing
                ):
                    org_data[repo.name] = {'stars': repo.stars, 'contributors': counts}
                    repo_log.complete_work(1)
            finally:
                repo_log.finish()
        return org_data

    def contributors_in_org(self, orgs: Iterable[str], private: bool = False) -> ContributionRecord:
        """Contributors of each org's own non-fork repositories.

        Returns:
            ``{org: {repo_name: {"stars": int, "contributors": {login: count}}}}``
        """
        orgs = list(orgs)
        self.progress.verbose('contributions', '%d org(s) to process', len(orgs))
        result: ContributionRecord = {}
        for org, org_data in fan_out(
            lambda o: self._internal_for_org(o, private), orgs, self.org_concurrency, self._warn_missing
        ):
            result[org] = org_data
        return result

    # -----------------------------
    # External contributions
    # -----------------------------

    def events_for_user(
        self,
        login: str,
        exclude_org: Optional[str] = None,
        event_types: Optional[Sequence[str]] = None,
    ) -> Dict[str, int]:
        """Qualifying recent events of a user, counted per repository full name.

        Reads at most ``max_event_pages`` pages, which bounds the lookback to
        GitHub's recent-events window. Repositories owned by ``exclude_org``
        are left out. Keys keep the newest-first order of the event feed.
        """
        allowed = set(event_types or self.event_types)
        item = self.progress.new_item(f'member "{login}"')
        try:
            raw = fetch_all_pages(
                self.client.list_user_events,
                {'user': login, 'per_page': self.events_per_page},
                max_pages=self.max_event_pages,
                progress=item,
            )
        finally:
            item.finish()

        counts: Dict[str, int] = {}
        for data in raw:
            event = Event.from_dict(data)
            if event.type not in allowed or not event.repo_name:
                continue
            if exclude_org and event.owner_is(exclude_org):
                continue
            counts[event.repo_name] = counts.get(event.repo_name, 0) + 1
        logger.debug("%s: %d event(s) read, %d repo(s) qualify", login, len(raw), len(counts))
        return counts

    def members_by_repo(
        self,
        org: str,
        logins: Sequence[str],
        event_types: Optional[Sequence[str]] = None,
    ) -> MembersByRepo:
        """Tally ``{repo: {login: events}}`` for a list of users, skipping ``org``'s repos."""
        tally: MembersByRepo = {}
        for login, counts in fan_out(
            lambda user: self.events_for_user(user, exclude_org=org, event_types=event_types),
            logins,
            self.concurrency,
            self._warn_missing,
        ):
            for repo_name, count in counts.items():
                users = tally.setdefault(repo_name, {})
                users[login] = users.get(login, 0) + count
        return tally

    def attribute(self, org: str, tally: MembersByRepo) -> Dict[str, RepoContributions]:
        """Credit each touched repository's counts to its non-fork root.

        Roots owned by ``org`` are dropped (that work went back to the org),
        as are repositories that no longer exist. Forks of the same root are
        merged under the root's full name, which also carries its star count.
        """
        names = list(tally)
        repo_log = self.progress.new_item('repos', len(names))
        merged: Dict[str, RepoTally] = {}
        try:
            for name, source in fan_out(
                self.repos.get_source_repo, names, self.concurrency, self._warn_missing
            ):
                repo_log.complete_work(1)
                if source is None:
                    continue
                if source.is_owned_by(org):
                    self.progress.verbose(
                        'contributions', '"%s" is a fork of "%s"; not external to "%s"',
                        name, source.full_name, org,
                    )
                    continue
                entry = merged.setdefault(source.full_name, RepoTally(stars=source.stars))
                for login, count in tally[name].items():
                    entry.add(login, count)
        finally:
            repo_log.finish()
        return {name: entry.to_dict() for name, entry in merged.items()}

    def _external_for_org(
        self, org: str, private: bool, event_types: Optional[Sequence[str]]
    ) -> Dict[str, RepoContributions]:
        with self.progress.new_group(org):
            self.progress.verbose('contributions', 'Fetching EXTERNAL contributions for org "%s"', org)
            logins = self.members.members_of_org(org, private=private)
            self.progress.verbose(
                'contributions', 'Found %d %s member(s) in org "%s"; gathering events...',
                len(logins), 'PUBLIC and PRIVATE' if private else 'PUBLIC', org,
            )
            tally = self.members_by_repo(org, logins, event_types)
            result = self.attribute(org, tally)
            self.progress.verbose(
                'contributions', 'Member(s) of org "%s" contributed to %d unique repo(s).',
                org, len(result),
            )
        return result

    def org_member_contributions(
        self,
        orgs: Iterable[str],
        private: bool = False,
        event_types: Optional[Sequence[str]] = None,
    ) -> Dict[str, Dict[str, RepoContributions]]:
        """Contributions of each org's members to repositories outside the org.

        Returns:
            ``{org: {"owner/name": {"stars": int, "contributors": {login: count}}}}``
        """
        orgs = list(orgs)
        self.progress.verbose('contributions', '%d org(s) to process', len(orgs))
        result: Dict[str, Dict[str, RepoContributions]] = {}
        for org, org_data in fan_out(
            lambda o: self._external_for_org(o, private, event_types),
            orgs,
            self.org_concurrency,
            self._warn_missing,
        ):
            result[org] = org_data
        return result

    def aggregate_contributions(
        self,
        orgs: List[str],
        private: bool = False,
        external: bool = False,
        event_types: Optional[Sequence[str]] = None,
    ) -> ContributionRecord:
        if external:
            return self.org_member_contributions(orgs, private=private, event_types=event_types)
        return self.contributors_in_org(orgs, private=private)

"""
Data models for GitHub API responses and aggregation results.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, TypedDict


def split_full_name(full_name: str) -> Tuple[str, str]:
    """Split ``owner/name`` into its two parts."""
    owner, _, name = full_name.partition('/')
    if not owner or not name:
        raise ValueError(f"Expected 'owner/name', got {full_name!r}")
    return owner, name


def repo_key(full_name: str) -> str:
    """Normalized identity for a repository full name."""
    return full_name.strip().lower()


@dataclass
class Page:
    """One page of a listing: the decoded body and the raw ``Link`` header."""
    items: Any = None
    link: Optional[str] = None


@dataclass
class Repository:
    """Repository information from GitHub API."""
    name: str
    full_name: str
    owner: str = ""
    stars: int = 0
    is_fork: bool = False
    is_private: bool = False
    # Full name of the repo this one was forked from (GitHub's ``source``,
    # falling back to ``parent``)
    source: Optional[str] = None

    @property
    def key(self) -> str:
        return repo_key(self.full_name)

    def is_owned_by(self, org: str) -> bool:
        return self.owner.lower() == org.lower()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Repository':
        """Create a Repository instance from a dictionary."""
        full_name = data.get('full_name') or ''
        owner = (data.get('owner') or {}).get('login') or full_name.partition('/')[0]
        upstream = data.get('source') or data.get('parent') or {}
        return cls(
            name=data.get('name') or full_name.partition('/')[2],
            full_name=full_name,
            owner=owner,
            stars=data.get('stargazers_count', 0) or 0,
            is_fork=bool(data.get('fork', False)),
            is_private=bool(data.get('private', False)),
            source=upstream.get('full_name'),
        )


@dataclass
class Contributor:
    """Repository contributor information."""
    login: str
    contributions: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Contributor':
        """Create a Contributor instance from a dictionary."""
        return cls(
            login=data.get('login') or '',
            contributions=data.get('contributions', 0) or 0,
        )


@dataclass
class Event:
    """A user's public activity event."""
    type: str
    repo_name: str
    actor: str = ""
    created_at: Optional[str] = None

    def owner_is(self, org: str) -> bool:
        return self.repo_name.partition('/')[0].lower() == org.lower()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Event':
        return cls(
            type=data.get('type') or '',
            repo_name=(data.get('repo') or {}).get('name') or '',
            actor=(data.get('actor') or {}).get('login') or '',
            created_at=data.get('created_at'),
        )


@dataclass
class Issue:
    """An issue (or pull request) in a repository listing."""
    number: int
    author: str
    comments: int = 0
    is_pull_request: bool = False
    title: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Issue':
        return cls(
            number=data.get('number', 0),
            author=(data.get('user') or {}).get('login') or '',
            comments=data.get('comments', 0) or 0,
            is_pull_request='pull_request' in data,
            title=data.get('title') or '',
        )


class RepoContributions(TypedDict):
    """Star count and per-user contribution counts for one repository."""
    stars: int
    contributors: Dict[str, int]


class HelpedRepo(TypedDict):
    """A repository a helped user recently contributed to."""
    name: str
    stars: int


# org -> repo name -> contributions
ContributionRecord = Dict[str, Dict[str, RepoContributions]]
# repo full name -> user -> event count
MembersByRepo = Dict[str, Dict[str, int]]
# login -> repos
HelpedUsers = Dict[str, List[HelpedRepo]]


@dataclass
class RepoTally:
    """Mutable accumulator used while attributing events to repositories."""
    stars: int = 0
    contributors: Dict[str, int] = field(default_factory=dict)

    def add(self, login: str, count: int) -> None:
        self.contributors[login] = self.contributors.get(login, 0) + count

    def to_dict(self) -> RepoContributions:
        return {'stars': self.stars, 'contributors': dict(self.contributors)}

"""Contribution statistics for GitHub organizations.

Example usage:
    ```python
    from ghorg import ContributionAggregator, Settings, create_client

    with create_client(Settings.from_env()) as client:
        stats = ContributionAggregator(client).contributors_in_org(["my-org"])
    ```
"""
from .config import Settings
from .contributions import ContributionAggregator
from .github import GitHubClient, create_client
from .helped import HelpedUserFinder
from .members import MemberDirectory
from .progress import ProgressItem, ProgressTracker
from .repos import RepoCatalog

__all__ = [
    'Settings',
    'ContributionAggregator',
    'GitHubClient',
    'create_client',
    'HelpedUserFinder',
    'MemberDirectory',
    'ProgressItem',
    'ProgressTracker',
    'RepoCatalog',
]

__version__ = '0.1.0'

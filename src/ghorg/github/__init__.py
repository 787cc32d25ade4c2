"""GitHub REST client, error types, models and pagination helpers.

Example usage:
    ```python
    from ghorg.github import GitHubClient, fetch_all_pages

    client = GitHubClient(token="your_github_token")
    repos = fetch_all_pages(client.list_org_repos, {"org": "org-name"})
    ```
"""
from .client import GitHubClient, create_client
from .errors import GitHubError, NotFoundError, PaginationError, RemoteError
from .models import (
    Contributor,
    Event,
    Issue,
    Page,
    Repository,
)
from .pagination import fetch_all_pages, no_content_to_list, parse_last_page
from .rate_limit import make_rate_limited_session, request_with_rate_limit

__all__ = [
    'GitHubClient',
    'create_client',
    'GitHubError',
    'NotFoundError',
    'PaginationError',
    'RemoteError',
    'Contributor',
    'Event',
    'Issue',
    'Page',
    'Repository',
    'fetch_all_pages',
    'no_content_to_list',
    'parse_last_page',
    'make_rate_limited_session',
    'request_with_rate_limit',
]

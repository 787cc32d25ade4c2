"""Page-walking helpers for GitHub list endpoints."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

import requests
from requests.utils import parse_header_links

from .errors import GitHubError, PaginationError, RemoteError
from .models import Page

logger = logging.getLogger("ghorg.github.pagination")

ListOperation = Callable[..., Any]


def no_content_to_list(value: Any) -> List[Any]:
    """GitHub answers some empty listings with 204; treat anything but a list as no items."""
    return value if isinstance(value, list) else []


def parse_last_page(link_header: Optional[str]) -> Optional[int]:
    """Return the page number of the ``rel="last"`` link, if there is one.

    Raises:
        PaginationError: a ``last`` link exists but carries no integer ``page``.
    """
    if not link_header:
        return None
    for link in parse_header_links(link_header):
        if link.get('rel') != 'last':
            continue
        url = link.get('url', '')
        values = parse_qs(urlparse(url).query).get('page')
        try:
            return int(values[0])
        except (TypeError, ValueError):
            raise PaginationError(f"Unparseable last-page link: {url!r}")
    return None


def _unpack(response: Any) -> Tuple[List[Any], Optional[str]]:
    if isinstance(response, Page):
        return no_content_to_list(response.items), response.link
    return no_content_to_list(response), None


def determine_last_page(link_header: Optional[str], current_page: int) -> int:
    try:
        last = parse_last_page(link_header)
    except PaginationError as e:
        logger.warning("%s; assuming page %d is the only page", e, current_page)
        return current_page
    if last is None or last < current_page:
        return current_page
    return last


def fetch_all_pages(
    list_operation: ListOperation,
    params: Optional[Dict[str, Any]] = None,
    *,
    max_pages: Optional[int] = None,
    progress: Optional[Any] = None,
) -> List[Any]:
    """Call ``list_operation`` page by page and concatenate the items.

    Args:
        list_operation: Callable accepting ``page=`` plus ``params``; returns a
            ``Page`` or a bare list
        params: Extra keyword arguments for every call; ``page`` sets the
            starting page (default 1)
        max_pages: Upper bound on the number of pages fetched
        progress: Optional progress item; gets the page count as work and one
            unit per fetched page

    Returns:
        Items of every page, in page order

    Raises:
        NotFoundError: the listed resource does not exist
        RemoteError: any other failure fetching a page
    """
    params = dict(params or {})
    page = int(params.pop('page', 1))
    last: Optional[int] = None
    items: List[Any] = []

    while True:
        try:
            response = list_operation(page=page, **params)
        except GitHubError:
            raise
        except requests.RequestException as e:
            raise RemoteError(str(e)) from e

        page_items, link = _unpack(response)
        if last is None:
            last = determine_last_page(link, page)
            if max_pages is not None:
                last = min(last, page + max(max_pages, 1) - 1)
            if progress is not None:
                progress.add_work(last - page + 1)

        items.extend(page_items)
        if progress is not None:
            progress.complete_work(1)

        if page >= last:
            break
        page += 1

    if progress is not None:
        progress.finish()
    return items

"""
Request pacing for the GitHub REST API.

Every call waits a short polite delay first. A 403 with no remaining quota
sleeps until ``X-RateLimit-Reset``; 429 and 5xx answers and connection errors
back off exponentially. Once ``max_attempts`` is spent the last response is
handed back, and mapping its status to an error is the caller's job.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

REQUEST_DELAY_SEC = float(os.getenv("GITHUB_REQ_DELAY", "0.35"))
MAX_ATTEMPTS = int(os.getenv("GITHUB_REQ_MAX_ATTEMPTS", "6"))
BACKOFF_BASE = float(os.getenv("GITHUB_REQ_BACKOFF_BASE", "1.7"))
# Seconds added past X-RateLimit-Reset; the server clock may run ahead of ours
RESET_SLACK_SEC = 2.0

TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})

_log = logging.getLogger("ghorg.github.rate_limit")


def make_rate_limited_session(
    token: Optional[str] = None,
    user_agent: str = "ghorg",
    basic_auth: Optional[Tuple[str, str]] = None,
) -> requests.Session:
    """Session for api.github.com or an Enterprise host.

    The mounted adapter retries idempotent calls on connection resets; quota
    handling happens in :func:`request_with_rate_limit`. A token is sent as an
    ``Authorization`` header and takes precedence over ``basic_auth``.
    """
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=Retry(
        total=3,
        backoff_factor=0.5,
        status_forcelist=sorted(TRANSIENT_STATUSES),
        allowed_methods=["GET", "HEAD"],
        raise_on_status=False,
    ))
    for prefix in ("https://", "http://"):
        session.mount(prefix, adapter)

    session.headers["Accept"] = "application/vnd.github.v3+json"
    session.headers["User-Agent"] = user_agent or "ghorg"
    if token:
        session.headers["Authorization"] = f"token {token}"
    elif basic_auth:
        session.auth = basic_auth
    return session


def seconds_until_reset(resp: requests.Response) -> Optional[float]:
    """Wait needed before quota comes back, or None when the response is not a quota refusal."""
    if resp.status_code != 403:
        return None
    try:
        if int(resp.headers.get("X-RateLimit-Remaining", "-1")) != 0:
            return None
        reset_at = int(resp.headers.get("X-RateLimit-Reset", "0"))
    except ValueError:
        return None
    return max(0.0, reset_at - time.time() + RESET_SLACK_SEC)


def _retry_delay(resp: requests.Response, attempt: int, backoff_base: float) -> Optional[Tuple[float, str]]:
    wait = seconds_until_reset(resp)
    if wait is not None:
        return wait, f"rate limit exhausted (X-RateLimit-Reset={resp.headers.get('X-RateLimit-Reset')})"
    if resp.status_code in TRANSIENT_STATUSES:
        return backoff_base ** (attempt - 1), f"HTTP {resp.status_code}"
    return None


def request_with_rate_limit(
    session: requests.Session,
    method: str,
    url: str,
    *,
    logger: Optional[logging.Logger] = None,
    min_delay_sec: float = REQUEST_DELAY_SEC,
    max_attempts: int = MAX_ATTEMPTS,
    backoff_base: float = BACKOFF_BASE,
    **kwargs: Any,
) -> requests.Response:
    """Send one request, waiting out quota refusals and transient failures.

    Connection errors are re-raised once ``max_attempts`` is reached.
    """
    log = logger or _log
    if min_delay_sec > 0:
        time.sleep(min_delay_sec)

    for attempt in range(1, max_attempts + 1):
        last_try = attempt == max_attempts
        try:
            resp = session.request(method, url, **kwargs)
        except requests.RequestException as e:
            if last_try:
                raise
            wait = backoff_base ** (attempt - 1)
            log.warning("%s %s failed (attempt %d/%d): %s; retrying in %.1fs",
                        method, url, attempt, max_attempts, e, wait)
            time.sleep(wait)
            continue

        delay = _retry_delay(resp, attempt, backoff_base)
        if delay is None or last_try:
            return resp
        wait, reason = delay
        log.warning("%s %s: %s (attempt %d/%d); retrying in %.1fs",
                    method, url, reason, attempt, max_attempts, wait)
        time.sleep(wait)

    raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

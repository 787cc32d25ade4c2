"""Runtime settings, read from the environment (and ``.env``) with CLI overrides."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Callable, List, Optional, Tuple

DEFAULT_HOST = "api.github.com"
DEFAULT_API_BASE = f"https://{DEFAULT_HOST}"
DEFAULT_EVENT_TYPES = ("PushEvent", "PullRequestEvent")
# GitHub only serves the latest 300 events of a user: 10 pages of 30
DEFAULT_EVENTS_PER_PAGE = 30
DEFAULT_MAX_EVENT_PAGES = 10
DEFAULT_PER_PAGE = 100
DEFAULT_TIMEOUT = 5.0


def api_base_for_host(host: Optional[str]) -> str:
    """Map a host name to its REST base URL; Enterprise hosts live under /api/v3."""
    if not host or host == DEFAULT_HOST:
        return DEFAULT_API_BASE
    return f"https://{host.rstrip('/')}/api/v3"


class ConfigError(ValueError):
    """An environment setting that cannot be used."""


def _env_number(name: str, default: Any, kind: Callable[[str], Any]) -> Any:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return kind(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be {'an integer' if kind is int else 'a number'}, got {raw!r}") from None


def _split_csv(value: Optional[str]) -> List[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


@dataclass
class Settings:
    token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    api_base: str = DEFAULT_API_BASE
    user_agent: str = "ghorg"
    timeout: float = DEFAULT_TIMEOUT
    concurrency: int = 1
    event_types: List[str] = field(default_factory=lambda: list(DEFAULT_EVENT_TYPES))
    events_per_page: int = DEFAULT_EVENTS_PER_PAGE
    max_event_pages: int = DEFAULT_MAX_EVENT_PAGES
    per_page: int = DEFAULT_PER_PAGE

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        api_base = env.get("GITHUB_API") or api_base_for_host(env.get("GITHUB_HOST"))
        return cls(
            token=env.get("GITHUB_TOKEN") or env.get("GITHUB_OAUTH_TOKEN") or None,
            client_id=env.get("GITHUB_CLIENT_ID") or None,
            client_secret=env.get("GITHUB_CLIENT_SECRET") or None,
            username=env.get("GITHUB_USERNAME") or None,
            password=env.get("GITHUB_PASSWORD") or None,
            api_base=api_base,
            timeout=_env_number("GHORG_TIMEOUT", DEFAULT_TIMEOUT, float),
            concurrency=max(1, _env_number("GHORG_CONCURRENCY", 1, int)),
            event_types=_split_csv(env.get("GHORG_EVENT_TYPES")) or list(DEFAULT_EVENT_TYPES),
            max_event_pages=_env_number("GHORG_MAX_EVENT_PAGES", DEFAULT_MAX_EVENT_PAGES, int),
        )

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def auth_method(self) -> Tuple[str, Any]:
        """Pick the credentials to use, in order: token, OAuth app key/secret, username/password."""
        if self.token:
            return "token", self.token
        if self.client_id and self.client_secret:
            return "oauth-app", (self.client_id, self.client_secret)
        if self.username and self.password:
            return "basic", (self.username, self.password)
        return "none", None

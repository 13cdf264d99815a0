"""Retry, rate-limit and cache settings for outbound HTTP calls."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import httpx
from httpx_retries import Retry

from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

# decides from a decoded JSON body whether the response may be cached
CachePredicate = Callable[[object], bool]

CacheBackend = Literal["memory", "sqlite"]
HTTP_CACHE_ENV = "JOBSYNC_HTTP_CACHE"


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    attempts: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    methods: frozenset[str] = frozenset({"GET", "POST"})
    statuses: frozenset[int] = frozenset({429, 500, 502, 503, 504})
    exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )

    def build(self) -> Retry:
        return Retry(
            total=self.attempts,
            backoff_factor=self.backoff_factor,
            max_backoff_wait=self.max_backoff_wait,
            respect_retry_after_header=True,
            allowed_methods=sorted(self.methods),
            status_forcelist=sorted(self.statuses),
            retry_on_exceptions=self.exceptions,
        )


@dataclass(slots=True, frozen=True)
class RateLimit:
    requests: int
    period_seconds: float


@dataclass(slots=True, frozen=True)
class CacheConfig:
    """Response cache settings; ``sqlite_path`` defaults to the data directory."""

    backend: CacheBackend = "memory"
    sqlite_path: Path | None = None
    ttl_seconds: float | None = 300.0
    predicate: CachePredicate | None = None


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    cache: CacheConfig | None = None
    default_headers: Mapping[str, str] | None = None


def cache_from_env(
    predicate: CachePredicate | None = None,
    *,
    default: CacheBackend | Literal["off"] = "memory",
) -> CacheConfig | None:
    """Read ``JOBSYNC_HTTP_CACHE`` (``memory``, ``sqlite`` or ``off``)."""

    raw = (os.getenv(HTTP_CACHE_ENV) or default).strip().lower()
    if raw == "off":
        return None
    if raw == "memory":
        return CacheConfig(backend="memory", predicate=predicate)
    if raw == "sqlite":
        return CacheConfig(backend="sqlite", predicate=predicate)
    raise ConfigurationError(f"{HTTP_CACHE_ENV} must be one of memory, sqlite, off (got {raw!r})")

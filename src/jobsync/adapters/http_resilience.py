"""httpx client wrapper adding retries, a request budget and an optional response cache."""

from __future__ import annotations

import json
from contextlib import nullcontext
from logging import getLogger
from typing import TYPE_CHECKING, Any, TypedDict, Unpack

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import RetryTransport

from jobsync.config.storage import get_http_cache_path

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import HeaderTypes, QueryParamTypes, RequestData

    from jobsync.config.http_resilience import CachePredicate, CacheConfig, ResilienceConfig

log = getLogger(__name__)


class RequestOptions(TypedDict, total=False):
    params: QueryParamTypes | None
    headers: HeaderTypes | None
    data: RequestData | None


class ResilientClient:
    """One client per logical API; close it (or use ``async with``) when done."""

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.requests, config.ratelimit.period_seconds)
            if config.ratelimit is not None
            else None
        )
        self._client: httpx.AsyncClient = _build_client(config)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: str, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        return await self._send("GET", url, kwargs)

    async def post(self, url: str, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        return await self._send("POST", url, kwargs)

    async def _send(self, method: str, url: str, options: RequestOptions) -> httpx.Response:
        async with self._limiter or nullcontext():
            response = await self._client.request(method, url, **options)
        # path only: query strings may carry an API key
        log.debug(
            f"{self.config.name}: {method} {response.request.url.path} -> {response.status_code}"
        )
        return response


def _build_client(config: ResilienceConfig) -> httpx.AsyncClient:
    options: dict[str, Any] = {
        "timeout": config.timeout_seconds,
        "transport": RetryTransport(retry=config.retry.build()),
    }
    if config.base_url is not None:
        options["base_url"] = config.base_url
    if config.default_headers:
        options["headers"] = dict(config.default_headers)

    if config.cache is None:
        return httpx.AsyncClient(**options)
    storage = _build_storage(config.cache)
    if config.cache.predicate is None:
        return AsyncCacheClient(**options, storage=storage)
    policy = FilterPolicy(response_filters=[_JsonPredicateFilter(config.cache.predicate)])
    return AsyncCacheClient(**options, storage=storage, policy=policy)


def _build_storage(cache: CacheConfig) -> AsyncSqliteStorage:
    if cache.backend == "sqlite":
        database_path = str(cache.sqlite_path or get_http_cache_path())
    else:
        database_path = ":memory:"
    return AsyncSqliteStorage(database_path=database_path, default_ttl=cache.ttl_seconds)


class _JsonPredicateFilter(BaseFilter[HishelCacheResponse]):
    """Cache a response only when its decoded JSON body satisfies the predicate."""

    def __init__(self, predicate: CachePredicate) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if body is None:
            return False
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            return False
        return bool(self._predicate(payload))


__all__ = ["RequestOptions", "ResilientClient"]

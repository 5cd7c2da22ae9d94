"""Shared async HTTP client for providers and the catalog store.

Requests go through an optional rate limiter, then a retrying transport, and,
for providers, a hishel cache in front of both.
"""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, TypedDict, Unpack

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, BaseFilter, FilterPolicy
from hishel import Request as CacheRequest
from hishel import Response as CacheResponse
from hishel.httpx import AsyncCacheTransport
from httpx_retries import Retry, RetryTransport

from shelfsync.config.http_resilience import (
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
)
from shelfsync.config.storage import get_http_cache_path
from shelfsync.domain.errors import ProviderUnavailable

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import HeaderTypes, QueryParamTypes, URLTypes

__all__ = [
    "CacheConfig",
    "RateLimit",
    "RequestOptions",
    "ResilienceConfig",
    "ResilientClient",
    "RetryPolicy",
    "shared_limiter",
]

log = logging.getLogger(__name__)


class RequestOptions(TypedDict, total=False):
    params: QueryParamTypes | None
    headers: HeaderTypes | None
    json: object


def _retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        backoff_jitter=policy.backoff_jitter,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=sorted(policy.allowed_methods),
        status_forcelist=sorted(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
    )


class _GetOnlyFilter(BaseFilter[CacheRequest]):
    def needs_body(self) -> bool:
        return False

    def apply(self, item: CacheRequest, body: bytes | None) -> bool:  # noqa: ARG002
        return item.method == "GET"


class _SuccessOnlyFilter(BaseFilter[CacheResponse]):
    """Stores every 2xx answer for the cache TTL, whatever its freshness headers say."""

    def needs_body(self) -> bool:
        return False

    def apply(self, item: CacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        return HTTPStatus.OK <= item.status_code < HTTPStatus.MULTIPLE_CHOICES


def _cache_storage(config: CacheConfig | None) -> AsyncSqliteStorage | None:
    if config is None or not config.enabled:
        return None
    if config.backend == "sqlite":
        database_path = config.sqlite_path or str(get_http_cache_path())
    elif config.backend == "memory":
        database_path = ":memory:"
    else:
        raise ValueError(f"Unsupported cache backend: {config.backend}")
    return AsyncSqliteStorage(database_path=database_path, default_ttl=config.default_ttl_seconds)


def _build_client(
    config: ResilienceConfig,
    transport: httpx.AsyncBaseTransport | None,
) -> httpx.AsyncClient:
    client_transport: httpx.AsyncBaseTransport = RetryTransport(
        transport=transport, retry=_retry(config.retry)
    )
    storage = _cache_storage(config.cache)
    if storage is not None:
        client_transport = AsyncCacheTransport(
            next_transport=client_transport,
            storage=storage,
            policy=FilterPolicy(
                request_filters=[_GetOnlyFilter()],
                response_filters=[_SuccessOnlyFilter()],
            ),
        )

    options: dict[str, Any] = {
        "timeout": config.timeout_seconds,
        "transport": client_transport,
        "headers": dict(config.default_headers or {}),
    }
    if config.base_url is not None:
        options["base_url"] = config.base_url
    return httpx.AsyncClient(**options)


_limiters: dict[tuple[str, int, float], AsyncLimiter] = {}


def shared_limiter(name: str, limit: RateLimit | None) -> AsyncLimiter | None:
    """One limiter per upstream for the whole process, however many clients are built."""

    if limit is None:
        return None
    key = (name, limit.max_calls, limit.per_seconds)
    limiter = _limiters.get(key)
    if limiter is None:
        limiter = _limiters[key] = AsyncLimiter(limit.max_calls, limit.per_seconds)
    return limiter


class ResilientClient:
    """Rate-limited, retrying and optionally caching async HTTP client.

    ``transport`` replaces the network underneath retries and caching; tests
    pass an ``httpx.MockTransport``. Use as an async context manager.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter = shared_limiter(config.name, config.ratelimit)
        self._client = _build_client(config, transport)

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

    async def request(
        self,
        method: str,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        if self._limiter is None:
            response = await self._client.request(method, url, **kwargs)
        else:
            async with self._limiter:
                response = await self._client.request(method, url, **kwargs)
        log.debug(
            "%s %s %s -> %d",
            self.config.name,
            method,
            response.request.url,
            response.status_code,
        )
        return response

    async def get(self, url: URLTypes, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def get_json(
        self,
        url: URLTypes,
        *,
        allow_not_found: bool = False,
        **kwargs: Unpack[RequestOptions],
    ) -> Any:
        """GET ``url`` and decode its JSON body.

        Returns ``None`` for a 404 when ``allow_not_found`` is set. Any other
        non-2xx status or an undecodable body raises ``ProviderUnavailable``.
        """

        response = await self.get(url, **kwargs)
        if allow_not_found and response.status_code == HTTPStatus.NOT_FOUND:
            return None
        self._check_status(response)
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ProviderUnavailable(self.config.name, f"invalid JSON: {exc}") from exc

    async def get_text(self, url: URLTypes, **kwargs: Unpack[RequestOptions]) -> str:
        response = await self.get(url, **kwargs)
        self._check_status(response)
        return response.text

    def _check_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        raise ProviderUnavailable(
            self.config.name,
            f"HTTP {response.status_code} from {response.request.url.path}",
        )

"""HTTP client for the Google Books volumes API."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from shelfsync.adapters.http_resilience import ResilientClient
from shelfsync.domain.errors import ProviderUnavailable

from .schema import VolumesResponse

if TYPE_CHECKING:
    from collections.abc import Callable

    from shelfsync.config.http_resilience import ResilienceConfig
    from shelfsync.domain.lookup.query import SearchHints

log = getLogger(__name__)

MAX_RESULTS: Final[int] = 40


class GoogleBooksAPIError(ProviderUnavailable):
    """Raised when the Google Books API returns an unexpected response."""

    def __init__(self, reason: str) -> None:
        super().__init__("Google Books", reason)


def build_search_query(title: str, author: str | None, hints: SearchHints | None) -> str:
    query = f"intitle:{title}"
    if author:
        query += f" inauthor:{author}"
    if hints is not None and hints.publisher:
        query += f" inpublisher:{hints.publisher}"
    if hints is not None and hints.subject:
        query += f" subject:{hints.subject}"
    return query


class GoogleBooksClient:
    """Low-level HTTP client for the Google Books API."""

    def __init__(
        self,
        *,
        resilience: ResilienceConfig,
        api_key: str | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._resilience = resilience
        self._api_key = api_key
        self._client_factory = client_factory or ResilientClient

    async def fetch_by_isbn(self, isbn: str) -> VolumesResponse:
        return await self._fetch_volumes({"q": f"isbn:{isbn}"})

    async def search(
        self,
        *,
        title: str,
        author: str | None = None,
        hints: SearchHints | None = None,
        limit: int = MAX_RESULTS,
    ) -> VolumesResponse:
        params = {
            "q": build_search_query(title, author, hints),
            "maxResults": str(min(limit, MAX_RESULTS)),
        }
        return await self._fetch_volumes(params)

    async def _fetch_volumes(self, params: dict[str, str]) -> VolumesResponse:
        if self._api_key:
            params["key"] = self._api_key
        async with self._client_factory(self._resilience) as client:
            payload = await client.get_json("volumes", params=params)

        if not isinstance(payload, dict):
            raise GoogleBooksAPIError("Unexpected Google Books response payload")
        try:
            response = VolumesResponse.model_validate(payload)
        except ValidationError as exc:
            raise GoogleBooksAPIError(f"Malformed volumes payload: {exc}") from exc
        log.debug("Google Books returned %d of %d volume(s)", len(response.items), response.total_items)
        return response

"""HTTP client for the Open Library APIs."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from shelfsync.adapters.http_resilience import ResilientClient
from shelfsync.domain.errors import ProviderUnavailable

from .schema import BooksApiRecord, EditionsResponse, SearchResponse

if TYPE_CHECKING:
    from collections.abc import Callable

    from pydantic import BaseModel

    from shelfsync.config.http_resilience import ResilienceConfig
    from shelfsync.domain.lookup.query import SearchHints

log = getLogger(__name__)

SEARCH_LIMIT: Final[int] = 40
EDITIONS_LIMIT: Final[int] = 30


class OpenLibraryAPIError(ProviderUnavailable):
    """Raised when Open Library returns an unexpected response."""

    def __init__(self, reason: str) -> None:
        super().__init__("Open Library", reason)


def _validate[ModelT: BaseModel](model: type[ModelT], payload: object) -> ModelT:
    if not isinstance(payload, dict):
        raise OpenLibraryAPIError(f"Unexpected {model.__name__} payload")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise OpenLibraryAPIError(f"Malformed {model.__name__} payload: {exc}") from exc


class OpenLibraryClient:
    """Low-level HTTP client for Open Library."""

    def __init__(
        self,
        *,
        resilience: ResilienceConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._resilience = resilience
        self._client_factory = client_factory or ResilientClient

    async def fetch_by_isbn(self, isbn: str) -> BooksApiRecord | None:
        bibkey = f"ISBN:{isbn}"
        params = {"bibkeys": bibkey, "format": "json", "jscmd": "data"}
        async with self._client_factory(self._resilience) as client:
            payload = await client.get_json("api/books", params=params)

        if not isinstance(payload, dict):
            raise OpenLibraryAPIError("Unexpected Books API payload")
        entry = payload.get(bibkey)
        if entry is None:
            return None
        return _validate(BooksApiRecord, entry)

    async def search(
        self,
        *,
        title: str,
        author: str | None = None,
        hints: SearchHints | None = None,
        limit: int = SEARCH_LIMIT,
    ) -> SearchResponse:
        params: dict[str, str] = {"title": title}
        if author:
            params["author"] = author
        if hints is not None:
            optional = {
                "publisher": hints.publisher,
                "subject": hints.subject,
                "place": hints.place,
                "first_publish_year": hints.year,
                "language": hints.language,
            }
            params.update({name: value for name, value in optional.items() if value})
        params["limit"] = str(limit)

        async with self._client_factory(self._resilience) as client:
            payload = await client.get_json("search.json", params=params)
        return _validate(SearchResponse, payload)

    async def fetch_editions(self, work_key: str, *, limit: int = EDITIONS_LIMIT) -> EditionsResponse:
        key = work_key if work_key.startswith("/works/") else f"/works/{work_key}"
        async with self._client_factory(self._resilience) as client:
            payload = await client.get_json(
                f"{key.lstrip('/')}/editions.json", params={"limit": str(limit)}
            )
        return _validate(EditionsResponse, payload)

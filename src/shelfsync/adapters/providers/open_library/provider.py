"""Open Library as a metadata provider."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from shelfsync.domain.errors import ProviderUnavailable
from shelfsync.domain.lookup.query import IdentifierKey, TextQuery

from .client import OpenLibraryClient
from .schema import BooksApiRecord, OpenLibrarySearchResult
from .translator import PROVIDER_NAME, translate_book, translate_search

if TYPE_CHECKING:
    from collections.abc import Callable

    from shelfsync.adapters.http_resilience import ResilientClient
    from shelfsync.config.http_resilience import ResilienceConfig
    from shelfsync.domain.lookup.query import SearchHints, SearchKey
    from shelfsync.domain.records import CandidateRecord

    from .schema import EditionsResponse, OpenLibraryPayload, SearchResponse

log = getLogger(__name__)


class OpenLibraryProvider:
    """ISBN lookups via the Books API; text search via search.json.

    A text search also pulls the editions of the top work, which surfaces
    older printings the search index does not list on their own.
    """

    def __init__(
        self,
        *,
        resilience: ResilienceConfig,
        client: OpenLibraryClient | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
        fetch_editions: bool = True,
    ) -> None:
        self._client = client or OpenLibraryClient(
            resilience=resilience, client_factory=client_factory
        )
        self._fetch_editions = fetch_editions

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    @property
    def supports_identifier(self) -> bool:
        return True

    @property
    def supports_text(self) -> bool:
        return True

    async def query(
        self, key: SearchKey, hints: SearchHints | None = None
    ) -> OpenLibraryPayload | None:
        match key:
            case IdentifierKey(value=isbn):
                return await self._client.fetch_by_isbn(isbn)
            case TextQuery(title=str() as title, author=author):
                search = await self._client.search(title=title, author=author, hints=hints)
                if not search.docs:
                    return None
                return OpenLibrarySearchResult(search, await self._top_work_editions(search))
            case _:
                return None

    async def _top_work_editions(self, search: SearchResponse) -> EditionsResponse | None:
        if not self._fetch_editions:
            return None
        work_key = next((doc.key for doc in search.docs if doc.key), None)
        if work_key is None:
            return None
        try:
            editions = await self._client.fetch_editions(work_key)
        except (ProviderUnavailable, httpx.HTTPError) as exc:
            log.warning("Open Library editions for %s unavailable: %s", work_key, exc)
            return None
        log.debug("Open Library listed %d edition(s) for %s", len(editions.entries), work_key)
        return editions

    def normalize(self, raw: OpenLibraryPayload) -> list[CandidateRecord]:
        if isinstance(raw, BooksApiRecord):
            return [translate_book(raw)]
        return translate_search(raw)

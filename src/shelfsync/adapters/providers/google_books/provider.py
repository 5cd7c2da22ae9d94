"""Google Books as a metadata provider."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from shelfsync.domain.lookup.query import IdentifierKey, TextQuery

from .client import GoogleBooksClient
from .translator import PROVIDER_NAME, translate_volumes

if TYPE_CHECKING:
    from collections.abc import Callable

    from shelfsync.adapters.http_resilience import ResilientClient
    from shelfsync.config.http_resilience import ResilienceConfig
    from shelfsync.domain.lookup.query import SearchHints, SearchKey
    from shelfsync.domain.records import CandidateRecord

    from .schema import VolumesResponse

log = getLogger(__name__)


class GoogleBooksProvider:
    def __init__(
        self,
        *,
        resilience: ResilienceConfig,
        api_key: str | None = None,
        client: GoogleBooksClient | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._client = client or GoogleBooksClient(
            resilience=resilience,
            api_key=api_key,
            client_factory=client_factory,
        )

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    @property
    def supports_identifier(self) -> bool:
        return True

    @property
    def supports_text(self) -> bool:
        return True

    async def query(self, key: SearchKey, hints: SearchHints | None = None) -> VolumesResponse | None:
        match key:
            case IdentifierKey(value=isbn):
                response = await self._client.fetch_by_isbn(isbn)
            case TextQuery(title=str() as title, author=author):
                response = await self._client.search(title=title, author=author, hints=hints)
            case _:
                log.debug("Google Books needs a title to search")
                return None
        return response if response.items else None

    def normalize(self, raw: VolumesResponse) -> list[CandidateRecord]:
        return translate_volumes(raw)

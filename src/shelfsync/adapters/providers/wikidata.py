"""Wikidata lookup through the public SPARQL endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shelfsync.adapters.http_resilience import ResilientClient
from shelfsync.domain.errors import ProviderUnavailable
from shelfsync.domain.lookup.query import IdentifierKey
from shelfsync.domain.records import CandidateRecord

if TYPE_CHECKING:
    from collections.abc import Callable

    from shelfsync.config.http_resilience import ResilienceConfig
    from shelfsync.domain.lookup.query import SearchHints, SearchKey

log = logging.getLogger(__name__)

PROVIDER_NAME: Final[str] = "Wikidata"

SPARQL_TEMPLATE: Final[str] = """
SELECT ?book ?bookLabel ?authorLabel ?publisherLabel ?publicationDate ?pages WHERE {{
  {{ ?book wdt:P212 "{isbn}" }} UNION {{ ?book wdt:P957 "{isbn}" }}
  OPTIONAL {{ ?book wdt:P50 ?author }}
  OPTIONAL {{ ?book wdt:P123 ?publisher }}
  OPTIONAL {{ ?book wdt:P577 ?publicationDate }}
  OPTIONAL {{ ?book wdt:P1104 ?pages }}
  SERVICE wikibase:label {{ bd:serviceParam wikibase:language "en". }}
}}
LIMIT 1
"""


class WikidataAPIError(ProviderUnavailable):
    def __init__(self, reason: str) -> None:
        super().__init__(PROVIDER_NAME, reason)


class SparqlValue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    value: str


class BookBinding(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    book: SparqlValue | None = None
    book_label: SparqlValue | None = Field(default=None, alias="bookLabel")
    author_label: SparqlValue | None = Field(default=None, alias="authorLabel")
    publisher_label: SparqlValue | None = Field(default=None, alias="publisherLabel")
    publication_date: SparqlValue | None = Field(default=None, alias="publicationDate")
    pages: SparqlValue | None = None


class SparqlResults(BaseModel):
    bindings: list[BookBinding] = Field(default_factory=list["BookBinding"])


class SparqlResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: SparqlResults = Field(default_factory=SparqlResults)


def build_query(isbn: str) -> str:
    return SPARQL_TEMPLATE.format(isbn=isbn.replace("-", ""))


def _value(binding: SparqlValue | None) -> str | None:
    return binding.value if binding is not None else None


def _pages(binding: SparqlValue | None) -> int | None:
    raw = _value(binding)
    if raw is None:
        return None
    try:
        return int(float(raw))
    except ValueError:
        log.debug("Ignoring non-numeric Wikidata page count %r", raw)
        return None


def translate_binding(binding: BookBinding) -> CandidateRecord:
    return CandidateRecord(
        title=_value(binding.book_label),
        author=_value(binding.author_label),
        publisher=_value(binding.publisher_label),
        published_date=_value(binding.publication_date),
        page_count=_pages(binding.pages),
        data_sources=[PROVIDER_NAME],
    )


class WikidataProvider:
    def __init__(
        self,
        *,
        resilience: ResilienceConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._resilience = resilience
        self._client_factory = client_factory or ResilientClient

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    @property
    def supports_identifier(self) -> bool:
        return True

    @property
    def supports_text(self) -> bool:
        return False

    async def query(self, key: SearchKey, hints: SearchHints | None = None) -> BookBinding | None:  # noqa: ARG002
        if not isinstance(key, IdentifierKey):
            return None
        url = self._resilience.base_url
        if url is None:
            raise WikidataAPIError("Missing Wikidata base_url in resilience configuration")
        params = {"query": build_query(key.value), "format": "json"}
        async with self._client_factory(self._resilience) as client:
            payload = await client.get_json(
                url, params=params, headers={"Accept": "application/sparql-results+json"}
            )
        if not isinstance(payload, dict):
            raise WikidataAPIError("Unexpected SPARQL response payload")
        try:
            response = SparqlResponse.model_validate(payload)
        except ValidationError as exc:
            raise WikidataAPIError(f"Malformed SPARQL payload: {exc}") from exc
        bindings = response.results.bindings
        return bindings[0] if bindings else None

    def normalize(self, raw: BookBinding) -> list[CandidateRecord]:
        return [translate_binding(raw)]

"""Library of Congress lookup via the loc.gov JSON search API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from shelfsync.adapters.http_resilience import ResilientClient
from shelfsync.domain.errors import ProviderUnavailable
from shelfsync.domain.lookup.query import IdentifierKey
from shelfsync.domain.records import CandidateRecord

if TYPE_CHECKING:
    from collections.abc import Callable

    from shelfsync.config.http_resilience import ResilienceConfig
    from shelfsync.domain.lookup.query import SearchHints, SearchKey

log = logging.getLogger(__name__)

PROVIDER_NAME: Final[str] = "Library of Congress"
_PUBLISHER_MARKER: Final[str] = "Publisher"


class LibraryOfCongressAPIError(ProviderUnavailable):
    def __init__(self, reason: str) -> None:
        super().__init__(PROVIDER_NAME, reason)


def _as_list(value: object) -> object:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return value


class LocResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    date: str | None = None
    contributor: list[str] = Field(default_factory=list)
    location: list[str] = Field(default_factory=list)
    description: list[str] = Field(default_factory=list)
    language: list[str] = Field(default_factory=list)
    subject: list[str] = Field(default_factory=list)
    number_lccn: list[str] = Field(default_factory=list)

    _coerce_lists = field_validator(
        "contributor", "location", "description", "language", "subject", "number_lccn",
        mode="before",
    )(_as_list)


class LocSearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: list[LocResult] = Field(default_factory=list["LocResult"])


def translate_result(result: LocResult) -> CandidateRecord:
    publisher = next((c for c in result.contributor if _PUBLISHER_MARKER in c), None)
    return CandidateRecord(
        title=result.title,
        author=result.contributor[0] if result.contributor else None,
        published_date=result.date,
        place_of_publication=result.location[0] if result.location else None,
        publisher=publisher,
        description=result.description[0] if result.description else None,
        language=result.language[0] if result.language else None,
        subjects=list(result.subject),
        lccn=result.number_lccn[0] if result.number_lccn else None,
        data_sources=[PROVIDER_NAME],
    )


class LibraryOfCongressProvider:
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

    async def query(self, key: SearchKey, hints: SearchHints | None = None) -> LocResult | None:  # noqa: ARG002
        if not isinstance(key, IdentifierKey):
            return None
        params = {"q": key.value, "fo": "json", "at": "results", "c": "150"}
        async with self._client_factory(self._resilience) as client:
            payload = await client.get_json("search/", params=params)
        if not isinstance(payload, dict):
            raise LibraryOfCongressAPIError("Unexpected loc.gov response payload")
        try:
            response = LocSearchResponse.model_validate(payload)
        except ValidationError as exc:
            raise LibraryOfCongressAPIError(f"Malformed search payload: {exc}") from exc
        return response.results[0] if response.results else None

    def normalize(self, raw: LocResult) -> list[CandidateRecord]:
        return [translate_result(raw)]

"""ISBNdb lookup adapter (requires an API key)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar, Final

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

PROVIDER_NAME: Final[str] = "ISBNdb"


class ISBNdbAPIError(ProviderUnavailable):
    """Raised when ISBNdb returns an unexpected response."""

    def __init__(self, reason: str) -> None:
        super().__init__(PROVIDER_NAME, reason)


class ISBNdbBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "ISBNdb %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


def _first_of_list(value: object) -> object:
    if isinstance(value, list):
        return value[0] if value else None
    return value


class ISBNdbBook(ISBNdbBaseModel):
    title: str | None = None
    title_long: str | None = None
    isbn: str | None = None
    isbn13: str | None = None
    isbn10: str | None = None
    authors: list[str] = Field(default_factory=list)
    publisher: str | None = None
    date_published: str | None = None
    pages: int | None = None
    language: str | None = None
    image: str | None = None
    edition: str | None = None
    synopsis: str | None = None
    overview: str | None = None
    excerpt: str | None = None
    subjects: list[str] = Field(default_factory=list)
    dimensions: str | None = None
    binding: str | None = None
    dewey_decimal: str | None = None

    _normalize_dewey = field_validator("dewey_decimal", mode="before")(_first_of_list)


class ISBNdbBookResponse(ISBNdbBaseModel):
    book: ISBNdbBook | None = None


def translate_book(book: ISBNdbBook) -> CandidateRecord:
    return CandidateRecord(
        title=book.title or book.title_long,
        author=", ".join(book.authors) or None,
        isbn13=book.isbn13,
        isbn10=book.isbn10,
        description=book.synopsis or book.overview,
        excerpt=book.excerpt,
        publisher=book.publisher,
        published_date=book.date_published,
        page_count=book.pages,
        language=book.language,
        cover_image_url=book.image,
        edition=book.edition,
        subjects=list(book.subjects),
        dimensions=book.dimensions,
        binding=book.binding,
        dewey_decimal=book.dewey_decimal,
        data_sources=[PROVIDER_NAME],
    )


class ISBNdbProvider:
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

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    @property
    def supports_identifier(self) -> bool:
        return True

    @property
    def supports_text(self) -> bool:
        return False

    async def query(self, key: SearchKey, hints: SearchHints | None = None) -> ISBNdbBook | None:  # noqa: ARG002
        if not isinstance(key, IdentifierKey):
            return None
        if not self._api_key:
            log.debug("ISBNdb API key not configured, skipping")
            return None
        async with self._client_factory(self._resilience) as client:
            payload = await client.get_json(
                f"book/{key.value}",
                allow_not_found=True,
                headers={"Authorization": self._api_key},
            )
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise ISBNdbAPIError("Unexpected ISBNdb response payload")
        try:
            return ISBNdbBookResponse.model_validate(payload).book
        except ValidationError as exc:
            raise ISBNdbAPIError(f"Malformed book payload: {exc}") from exc

    def normalize(self, raw: ISBNdbBook) -> list[CandidateRecord]:
        return [translate_book(raw)]

"""Open Library payloads: the Books API, search.json and work editions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OpenLibraryBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class NamedRef(OpenLibraryBaseModel):
    name: str
    url: str | None = None


class KeyRef(OpenLibraryBaseModel):
    key: str


class CoverLinks(OpenLibraryBaseModel):
    small: str | None = None
    medium: str | None = None
    large: str | None = None


def _text_value(value: object) -> object:
    # text fields come either as plain strings or as {"type": "/type/text", "value": ...}
    if isinstance(value, Mapping):
        return cast(Mapping[str, object], value).get("value")
    return value


class BooksApiRecord(OpenLibraryBaseModel):
    """One entry of ``/api/books?jscmd=data``."""

    title: str | None = None
    subtitle: str | None = None
    key: str | None = None
    url: str | None = None
    notes: str | None = None
    authors: list[NamedRef] = Field(default_factory=list["NamedRef"])
    publishers: list[NamedRef] = Field(default_factory=list["NamedRef"])
    publish_places: list[NamedRef] = Field(default_factory=list["NamedRef"])
    subjects: list[NamedRef] = Field(default_factory=list["NamedRef"])
    publish_date: str | None = None
    number_of_pages: int | None = None
    cover: CoverLinks | None = None
    identifiers: dict[str, list[str]] = Field(default_factory=dict)

    _normalize_notes = field_validator("notes", mode="before")(_text_value)


class SearchDoc(OpenLibraryBaseModel):
    key: str | None = None
    title: str | None = None
    author_name: list[str] = Field(default_factory=list)
    first_publish_year: int | None = None
    publisher: list[str] = Field(default_factory=list)
    number_of_pages_median: int | None = None
    cover_i: int | None = None
    isbn: list[str] = Field(default_factory=list)
    language: list[str] = Field(default_factory=list)


class SearchResponse(OpenLibraryBaseModel):
    num_found: int = Field(default=0, alias="numFound")
    docs: list[SearchDoc] = Field(default_factory=list["SearchDoc"])


class Edition(OpenLibraryBaseModel):
    key: str | None = None
    title: str | None = None
    subtitle: str | None = None
    by_statement: str | None = None
    publish_date: str | None = None
    publishers: list[str] = Field(default_factory=list)
    publish_places: list[str] = Field(default_factory=list)
    number_of_pages: int | None = None
    isbn_13: list[str] = Field(default_factory=list)
    isbn_10: list[str] = Field(default_factory=list)
    lccn: list[str] = Field(default_factory=list)
    oclc_numbers: list[str] = Field(default_factory=list)
    covers: list[int] = Field(default_factory=list)
    languages: list[KeyRef] = Field(default_factory=list["KeyRef"])
    physical_format: str | None = None
    edition_name: str | None = None
    pagination: str | None = None


class EditionsResponse(OpenLibraryBaseModel):
    size: int | None = None
    entries: list[Edition] = Field(default_factory=list["Edition"])


@dataclass(slots=True, frozen=True)
class OpenLibrarySearchResult:
    """Works matching a text query plus the editions of the best-matching work."""

    search: SearchResponse
    editions: EditionsResponse | None = None


type OpenLibraryPayload = BooksApiRecord | OpenLibrarySearchResult

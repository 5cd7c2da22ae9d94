"""Pydantic models for the catalog REST API responses."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

log = logging.getLogger(__name__)


class CatalogBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "Catalog %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class ContributorPayload(CatalogBaseModel):
    display_name: str
    role: str | None = None
    role_id: int | None = None
    role_name: str | None = None
    ordinal: int = 0
    person_id: str | None = None
    sort_name: str | None = None


class IdentifierPayload(CatalogBaseModel):
    identifier_type: str | None = None
    identifier_type_id: int | None = None
    identifier_type_name: str | None = None
    value: str
    is_primary: bool = False


class SubjectPayload(CatalogBaseModel):
    scheme: str | None = None
    scheme_id: int | None = None
    text: str


class SeriesPayload(CatalogBaseModel):
    name: str
    volume_number: str | None = None


class WorkPayload(CatalogBaseModel):
    work_id: str | None = None
    title: str
    subtitle: str | None = None
    sort_title: str | None = None
    original_title: str | None = None
    description: str | None = None
    language: str | None = None
    metadata_json: str | None = None
    contributors: list[ContributorPayload] = Field(default_factory=list["ContributorPayload"])
    subjects: list[SubjectPayload] = Field(default_factory=list["SubjectPayload"])
    series: SeriesPayload | None = None


class EditionPayload(CatalogBaseModel):
    edition_id: str | None = None
    work_id: str | None = None
    edition_title: str | None = None
    edition_subtitle: str | None = None
    publisher: str | None = None
    published_year: int | None = None
    page_count: int | None = None
    format: str | None = None
    binding: str | None = None
    edition_statement: str | None = None
    place_of_publication: str | None = None
    description: str | None = None
    metadata_json: str | None = None
    identifiers: list[IdentifierPayload] = Field(default_factory=list["IdentifierPayload"])


class ItemPayload(CatalogBaseModel):
    item_id: str
    household_id: str | None = None
    work_id: str | None = None
    edition_id: str | None = None
    kind: int | None = None
    title: str | None = None
    subtitle: str | None = None
    notes: str | None = None
    barcode: str | None = None
    location: str | None = None
    status: str | None = None
    condition: str | None = None
    acquired_on: date | None = None
    price: float | None = None
    created_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("createdAt", "createdUtc", "created_at")
    )
    metadata_json: str | None = None
    work: WorkPayload | None = None
    edition: EditionPayload | None = None
    tags: list[str] = Field(default_factory=list)


class CreatedItemPayload(CatalogBaseModel):
    item_id: str = Field(validation_alias=AliasChoices("itemId", "id", "item_id"))


class DuplicateItemPayload(CatalogBaseModel):
    item_id: str
    title: str
    subtitle: str | None = None
    authors: str | None = None
    publisher: str | None = None
    published_year: int | None = None
    format: str | None = None
    page_count: int | None = None
    barcode: str | None = None
    location: str | None = None
    condition: str | None = None
    notes: str | None = None
    created_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("createdUtc", "createdAt", "created_at")
    )
    edition_id: str | None = None
    identifiers: str | None = None
    tags: str | None = None


class DuplicateGroupPayload(CatalogBaseModel):
    group_key: str | None = None
    title: str
    author: str | None = None
    items: list[DuplicateItemPayload] = Field(default_factory=list["DuplicateItemPayload"])


class MergeResultPayload(CatalogBaseModel):
    deleted_count: int


class MergeAllResultPayload(CatalogBaseModel):
    groups_merged: int
    total_deleted: int

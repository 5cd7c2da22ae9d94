"""Pydantic models describing the Google Books volumes API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class GoogleBooksBaseModel(BaseModel):
    # the volumes API carries dozens of access/sale flags nobody here reads
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class IndustryIdentifier(GoogleBooksBaseModel):
    type: str
    identifier: str


class ImageLinks(GoogleBooksBaseModel):
    small_thumbnail: str | None = Field(default=None, alias="smallThumbnail")
    thumbnail: str | None = None
    small: str | None = None
    medium: str | None = None
    large: str | None = None
    extra_large: str | None = Field(default=None, alias="extraLarge")


class Dimensions(GoogleBooksBaseModel):
    height: str | None = None
    width: str | None = None
    thickness: str | None = None


class SeriesInfo(GoogleBooksBaseModel):
    series_id: str | None = Field(default=None, alias="seriesId")
    series_name: str | None = Field(default=None, alias="seriesName")
    volume_number: str | None = Field(default=None, alias="volumeNumber")
    book_display_number: str | None = Field(default=None, alias="bookDisplayNumber")


class VolumeInfo(GoogleBooksBaseModel):
    title: str | None = None
    subtitle: str | None = None
    authors: list[str] = Field(default_factory=list)
    publisher: str | None = None
    published_date: str | None = Field(default=None, alias="publishedDate")
    description: str | None = None
    industry_identifiers: list[IndustryIdentifier] = Field(
        default_factory=list["IndustryIdentifier"], alias="industryIdentifiers"
    )
    page_count: int | None = Field(default=None, alias="pageCount")
    print_type: str | None = Field(default=None, alias="printType")
    main_category: str | None = Field(default=None, alias="mainCategory")
    categories: list[str] = Field(default_factory=list)
    average_rating: float | None = Field(default=None, alias="averageRating")
    ratings_count: int | None = Field(default=None, alias="ratingsCount")
    language: str | None = None
    image_links: ImageLinks | None = Field(default=None, alias="imageLinks")
    preview_link: str | None = Field(default=None, alias="previewLink")
    info_link: str | None = Field(default=None, alias="infoLink")
    dimensions: Dimensions | None = None
    series_info: SeriesInfo | None = Field(default=None, alias="seriesInfo")

    _normalize_text = field_validator("title", "subtitle", "publisher", "description", mode="before")(
        _blank_to_none
    )

    def identifier(self, kind: str) -> str | None:
        for entry in self.industry_identifiers:
            if entry.type == kind:
                return entry.identifier
        return None


class SaleInfo(GoogleBooksBaseModel):
    country: str | None = None
    saleability: str | None = None
    buy_link: str | None = Field(default=None, alias="buyLink")


class Volume(GoogleBooksBaseModel):
    id: str
    etag: str | None = None
    self_link: str | None = Field(default=None, alias="selfLink")
    volume_info: VolumeInfo = Field(alias="volumeInfo")
    sale_info: SaleInfo | None = Field(default=None, alias="saleInfo")


class VolumesResponse(GoogleBooksBaseModel):
    kind: str | None = None
    total_items: int = Field(default=0, alias="totalItems")
    items: list[Volume] = Field(default_factory=list["Volume"])

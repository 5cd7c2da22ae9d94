"""Translate Google Books volumes into candidate records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from shelfsync.domain.records import CandidateRecord

if TYPE_CHECKING:
    from .schema import Dimensions, ImageLinks, Volume, VolumesResponse

PROVIDER_NAME: Final[str] = "Google Books"


def _https(url: str | None) -> str | None:
    if not url:
        return None
    return url.replace("http:", "https:", 1)


def _cover(links: ImageLinks | None) -> str | None:
    if links is None:
        return None
    return _https(links.thumbnail or links.small_thumbnail)


def _dimensions(dimensions: Dimensions | None) -> str | None:
    if dimensions is None:
        return None
    parts = (dimensions.height, dimensions.width, dimensions.thickness)
    if not any(parts):
        return None
    return " x ".join(part or "?" for part in parts)


def translate_volume(volume: Volume) -> CandidateRecord:
    info = volume.volume_info
    series = info.series_info
    return CandidateRecord(
        title=info.title,
        subtitle=info.subtitle,
        author=", ".join(info.authors) or None,
        description=info.description,
        publisher=info.publisher,
        published_date=info.published_date,
        page_count=info.page_count,
        language=info.language,
        main_category=info.main_category,
        categories=list(info.categories),
        isbn13=info.identifier("ISBN_13"),
        isbn10=info.identifier("ISBN_10"),
        issn=info.identifier("ISSN"),
        google_books_id=volume.id,
        format=info.print_type,
        average_rating=info.average_rating,
        ratings_count=info.ratings_count,
        cover_image_url=_cover(info.image_links),
        preview_link=info.preview_link,
        info_link=info.info_link,
        dimensions=_dimensions(info.dimensions),
        series=series.series_name if series else None,
        volume_number=(series.volume_number or series.book_display_number) if series else None,
        buy_link=volume.sale_info.buy_link if volume.sale_info else None,
        data_sources=[PROVIDER_NAME],
    )


def translate_volumes(response: VolumesResponse) -> list[CandidateRecord]:
    return [translate_volume(volume) for volume in response.items]

"""Translate Open Library payloads into candidate records."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final

from shelfsync.domain.records import CandidateRecord

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .schema import BooksApiRecord, Edition, OpenLibrarySearchResult, SearchDoc

PROVIDER_NAME: Final[str] = "Open Library"
EDITIONS_SOURCE: Final[str] = "Open Library Editions"
COVER_URL: Final[str] = "https://covers.openlibrary.org/b/id/{cover_id}-L.jpg"

_OLID = re.compile(r"/(?:works|books)/(OL\w+)")
_ISBN13_LENGTH: Final[int] = 13


def extract_olid(*paths: str | None) -> str | None:
    for path in paths:
        if not path:
            continue
        match = _OLID.search(path)
        if match:
            return match.group(1)
    return None


def cover_url(cover_id: int | None) -> str | None:
    if cover_id is None or cover_id <= 0:
        return None
    return COVER_URL.format(cover_id=cover_id)


def _first(values: Sequence[str]) -> str | None:
    return values[0] if values else None


def _joined(names: Sequence[str]) -> str | None:
    return ", ".join(names) or None


def translate_book(record: BooksApiRecord) -> CandidateRecord:
    identifiers = record.identifiers
    cover = record.cover
    return CandidateRecord(
        title=record.title,
        subtitle=record.subtitle,
        author=_joined([author.name for author in record.authors]),
        olid=extract_olid(record.key, record.url),
        description=record.notes or record.subtitle,
        publisher=_joined([publisher.name for publisher in record.publishers]),
        published_date=record.publish_date,
        page_count=record.number_of_pages,
        cover_image_url=(cover.large or cover.medium or cover.small) if cover else None,
        subjects=[subject.name for subject in record.subjects],
        place_of_publication=_joined([place.name for place in record.publish_places]),
        isbn13=_first(identifiers.get("isbn_13", [])),
        isbn10=_first(identifiers.get("isbn_10", [])),
        lccn=_first(identifiers.get("lccn", [])),
        oclc_number=_first(identifiers.get("oclc", [])),
        goodreads_id=_first(identifiers.get("goodreads", [])),
        library_thing_id=_first(identifiers.get("librarything", [])),
        data_sources=[PROVIDER_NAME],
    )


def translate_search_doc(doc: SearchDoc) -> CandidateRecord:
    isbn = next((value for value in doc.isbn if len(value) == _ISBN13_LENGTH), _first(doc.isbn))
    return CandidateRecord(
        title=doc.title,
        author=_joined(doc.author_name),
        published_date=str(doc.first_publish_year) if doc.first_publish_year else None,
        publisher=_first(doc.publisher),
        page_count=doc.number_of_pages_median,
        cover_image_url=cover_url(doc.cover_i),
        olid=extract_olid(doc.key),
        isbn13=isbn if isbn and len(isbn) == _ISBN13_LENGTH else None,
        isbn10=isbn if isbn and len(isbn) != _ISBN13_LENGTH else None,
        data_sources=[PROVIDER_NAME],
    )


def translate_edition(edition: Edition) -> CandidateRecord:
    language = edition.languages[0].key.removeprefix("/languages/") if edition.languages else None
    return CandidateRecord(
        title=edition.title,
        subtitle=edition.subtitle,
        author=edition.by_statement,
        published_date=edition.publish_date,
        publisher=_first(edition.publishers),
        place_of_publication=_first(edition.publish_places),
        page_count=edition.number_of_pages,
        isbn13=_first(edition.isbn_13),
        isbn10=_first(edition.isbn_10),
        lccn=_first(edition.lccn),
        oclc_number=_first(edition.oclc_numbers),
        olid=extract_olid(edition.key),
        cover_image_url=cover_url(edition.covers[0]) if edition.covers else None,
        language=language,
        format=edition.physical_format,
        binding=edition.physical_format,
        edition_statement=edition.edition_name,
        physical_description=edition.pagination,
        data_sources=[EDITIONS_SOURCE],
    )


def translate_search(result: OpenLibrarySearchResult) -> list[CandidateRecord]:
    """Works first, then edition variants whose ISBN no work already carries."""

    records = [translate_search_doc(doc) for doc in result.search.docs]
    if result.editions is None:
        return records

    seen_isbns = {record.primary_isbn for record in records if record.primary_isbn}
    for edition in result.editions.entries:
        record = translate_edition(edition)
        if record.primary_isbn and record.primary_isbn in seen_isbns:
            continue
        if record.primary_isbn:
            seen_isbns.add(record.primary_isbn)
        records.append(record)
    return records

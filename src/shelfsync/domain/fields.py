"""Field tables shared by the diff engine and the merge applicator."""

from __future__ import annotations

from enum import StrEnum
from typing import Final

from .records import CONTRIBUTOR_FIELD_ROLES, IDENTIFIER_FIELD_TYPES

__all__ = [
    "CONTRIBUTOR_FIELDS",
    "CONTRIBUTOR_FIELD_ROLES",
    "EDITION_FIELDS",
    "EDITION_METADATA_FIELDS",
    "ENRICHABLE_FIELDS",
    "FIELD_LABELS",
    "IDENTIFIER_FIELDS",
    "IDENTIFIER_FIELD_TYPES",
    "IMPORTANT_FIELDS",
    "SERIES_FIELDS",
    "SUBJECT_FIELDS",
    "WORK_FIELDS",
    "WORK_METADATA_FIELDS",
    "FieldCategory",
    "field_category",
    "field_label",
]


class FieldCategory(StrEnum):
    BASIC_INFO = "Basic Info"
    PUBLICATION = "Publication"
    IDENTIFIERS = "Identifiers"
    CLASSIFICATION = "Classification"
    PHYSICAL = "Physical"
    CONTRIBUTORS = "Contributors"
    SERIES = "Series"
    CONTENT = "Content"
    RATINGS = "Ratings"
    LINKS = "Links"
    AWARDS = "Awards"
    OTHER = "Other"


ENRICHABLE_FIELDS: Final[tuple[str, ...]] = (
    "title",
    "subtitle",
    "author",
    "original_title",
    "cover_image_url",
    "description",
    "publisher",
    "published_date",
    "page_count",
    "language",
    "categories",
    "subjects",
    "isbn10",
    "isbn13",
    "issn",
    "lccn",
    "oclc_number",
    "oclc_work_id",
    "doi",
    "asin",
    "google_books_id",
    "goodreads_id",
    "library_thing_id",
    "olid",
    "dnb_id",
    "bnf_id",
    "nla_id",
    "bl_id",
    "dewey_decimal",
    "lcc",
    "call_number",
    "bisac_codes",
    "thema",
    "fast_subjects",
    "main_category",
    "format",
    "binding",
    "dimensions",
    "weight",
    "edition_statement",
    "place_of_publication",
    "edition",
    "copyright",
    "printing_history",
    "physical_description",
    "pagination",
    "original_publication_date",
    "translator",
    "illustrator",
    "editor",
    "narrator",
    "series",
    "volume_number",
    "number_of_volumes",
    "excerpt",
    "first_sentence",
    "table_of_contents",
    "reading_age",
    "lexile_score",
    "average_rating",
    "ratings_count",
    "reviews_count",
    "preview_link",
    "info_link",
    "buy_link",
    "awards",
)

FIELD_LABELS: Final[dict[str, str]] = {
    "title": "Title",
    "subtitle": "Subtitle",
    "author": "Author",
    "original_title": "Original Title",
    "cover_image_url": "Cover Image",
    "description": "Description",
    "publisher": "Publisher",
    "published_date": "Published Date",
    "page_count": "Page Count",
    "language": "Language",
    "categories": "Categories",
    "subjects": "Subjects",
    "isbn10": "ISBN-10",
    "isbn13": "ISBN-13",
    "issn": "ISSN",
    "lccn": "LCCN",
    "oclc_number": "OCLC Number",
    "oclc_work_id": "OCLC Work ID",
    "doi": "DOI",
    "asin": "ASIN",
    "google_books_id": "Google Books ID",
    "goodreads_id": "Goodreads ID",
    "library_thing_id": "LibraryThing ID",
    "olid": "Open Library ID",
    "dnb_id": "DNB ID",
    "bnf_id": "BNF ID",
    "nla_id": "NLA ID",
    "bl_id": "British Library ID",
    "dewey_decimal": "Dewey Decimal",
    "lcc": "LC Classification",
    "call_number": "Call Number",
    "bisac_codes": "BISAC Codes",
    "thema": "Thema Codes",
    "fast_subjects": "FAST Subjects",
    "main_category": "Main Category",
    "format": "Format",
    "binding": "Binding",
    "dimensions": "Dimensions",
    "weight": "Weight",
    "edition_statement": "Edition Statement",
    "place_of_publication": "Place of Publication",
    "edition": "Edition",
    "copyright": "Copyright",
    "printing_history": "Printing History",
    "physical_description": "Physical Description",
    "pagination": "Pagination",
    "original_publication_date": "Original Publication Date",
    "translator": "Translator",
    "illustrator": "Illustrator",
    "editor": "Editor",
    "narrator": "Narrator",
    "series": "Series",
    "volume_number": "Volume Number",
    "number_of_volumes": "Number of Volumes",
    "excerpt": "Excerpt",
    "first_sentence": "First Sentence",
    "table_of_contents": "Table of Contents",
    "reading_age": "Reading Age",
    "lexile_score": "Lexile Score",
    "average_rating": "Average Rating",
    "ratings_count": "Ratings Count",
    "reviews_count": "Reviews Count",
    "preview_link": "Preview Link",
    "info_link": "Info Link",
    "buy_link": "Buy Link",
    "awards": "Awards",
}

_CATEGORY_MEMBERS: Final[dict[FieldCategory, tuple[str, ...]]] = {
    FieldCategory.BASIC_INFO: (
        "title",
        "subtitle",
        "author",
        "original_title",
        "cover_image_url",
        "description",
        "language",
    ),
    FieldCategory.PUBLICATION: (
        "publisher",
        "published_date",
        "page_count",
        "format",
        "binding",
        "edition",
        "edition_statement",
        "place_of_publication",
        "original_publication_date",
        "copyright",
        "printing_history",
    ),
    FieldCategory.IDENTIFIERS: tuple(IDENTIFIER_FIELD_TYPES),
    FieldCategory.CLASSIFICATION: (
        "categories",
        "subjects",
        "dewey_decimal",
        "lcc",
        "call_number",
        "bisac_codes",
        "thema",
        "fast_subjects",
        "main_category",
    ),
    FieldCategory.PHYSICAL: ("dimensions", "weight", "physical_description", "pagination"),
    FieldCategory.CONTRIBUTORS: ("translator", "illustrator", "editor", "narrator"),
    FieldCategory.SERIES: ("series", "volume_number", "number_of_volumes"),
    FieldCategory.CONTENT: (
        "excerpt",
        "first_sentence",
        "table_of_contents",
        "reading_age",
        "lexile_score",
    ),
    FieldCategory.RATINGS: ("average_rating", "ratings_count", "reviews_count"),
    FieldCategory.LINKS: ("preview_link", "info_link", "buy_link"),
    FieldCategory.AWARDS: ("awards",),
}

_CATEGORY_BY_FIELD: Final[dict[str, FieldCategory]] = {
    name: category for category, names in _CATEGORY_MEMBERS.items() for name in names
}


def field_category(key: str) -> FieldCategory:
    return _CATEGORY_BY_FIELD.get(key, FieldCategory.OTHER)


def field_label(key: str) -> str:
    return FIELD_LABELS.get(key, key)


# Sub-entity partitions used when a set of approved diffs becomes a patch.
# Every enrichable field belongs to exactly one of them.

WORK_METADATA_FIELDS: Final[tuple[str, ...]] = (
    "dewey_decimal",
    "lcc",
    "call_number",
    "main_category",
    "bisac_codes",
    "thema",
    "fast_subjects",
    "table_of_contents",
    "first_sentence",
    "excerpt",
    "reading_age",
    "lexile_score",
    "average_rating",
    "ratings_count",
    "reviews_count",
    "original_publication_date",
    "number_of_volumes",
    "preview_link",
    "info_link",
    "buy_link",
    "awards",
)

WORK_FIELDS: Final[frozenset[str]] = frozenset(
    ("title", "subtitle", "original_title", "description", "language", *WORK_METADATA_FIELDS)
)

EDITION_METADATA_FIELDS: Final[tuple[str, ...]] = (
    "dimensions",
    "weight",
    "physical_description",
    "pagination",
    "copyright",
    "printing_history",
    "edition",
    "cover_image_url",
)

EDITION_FIELDS: Final[frozenset[str]] = frozenset(
    (
        "publisher",
        "published_date",
        "page_count",
        "format",
        "binding",
        "edition_statement",
        "place_of_publication",
        *EDITION_METADATA_FIELDS,
    )
)

IDENTIFIER_FIELDS: Final[frozenset[str]] = frozenset(IDENTIFIER_FIELD_TYPES)
CONTRIBUTOR_FIELDS: Final[frozenset[str]] = frozenset(CONTRIBUTOR_FIELD_ROLES)
SUBJECT_FIELDS: Final[frozenset[str]] = frozenset(("subjects", "categories"))
SERIES_FIELDS: Final[frozenset[str]] = frozenset(("series", "volume_number"))

# A "fill" lookup keeps asking providers while any of these is still missing.
IMPORTANT_FIELDS: Final[tuple[str, ...]] = (
    "title",
    "author",
    "cover_image_url",
    "description",
    "publisher",
    "published_date",
    "page_count",
    "language",
    "call_number",
    "subjects",
    "dewey_decimal",
    "lcc",
    "subtitle",
    "format",
)

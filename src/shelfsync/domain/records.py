"""Record shapes exchanged between providers, the diff engine and the catalog store."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import date


def is_empty(value: object) -> bool:
    """Absent, an empty string or an empty list all count as "not supplied"."""

    if value is None or value == "":
        return True
    return isinstance(value, (list, tuple)) and len(value) == 0


class IdentifierType(StrEnum):
    ISBN10 = "isbn10"
    ISBN13 = "isbn13"
    ISSN = "issn"
    LCCN = "lccn"
    OCLC = "oclc"
    OCLC_WORK_ID = "oclc_work_id"
    DOI = "doi"
    ASIN = "asin"
    GOOGLE_BOOKS_ID = "google_books_id"
    GOODREADS_ID = "goodreads_id"
    LIBRARY_THING_ID = "library_thing_id"
    OPEN_LIBRARY_ID = "open_library_id"
    DNB = "dnb"
    BNF = "bnf"
    NLA = "nla"
    BL = "bl"

    @property
    def family(self) -> str:
        """Identifier types that share a primary flag."""

        if self in (IdentifierType.ISBN10, IdentifierType.ISBN13):
            return "isbn"
        return self.value


class ContributorRole(StrEnum):
    AUTHOR = "author"
    EDITOR = "editor"
    TRANSLATOR = "translator"
    ILLUSTRATOR = "illustrator"
    NARRATOR = "narrator"


class SubjectScheme(StrEnum):
    LCSH = "lcsh"
    DEWEY = "dewey"
    CUSTOM = "custom"


# Order matters: it is the order identifiers are emitted in a patch.
IDENTIFIER_FIELD_TYPES: Final[Mapping[str, IdentifierType]] = {
    "isbn13": IdentifierType.ISBN13,
    "isbn10": IdentifierType.ISBN10,
    "issn": IdentifierType.ISSN,
    "lccn": IdentifierType.LCCN,
    "oclc_number": IdentifierType.OCLC,
    "oclc_work_id": IdentifierType.OCLC_WORK_ID,
    "doi": IdentifierType.DOI,
    "asin": IdentifierType.ASIN,
    "google_books_id": IdentifierType.GOOGLE_BOOKS_ID,
    "goodreads_id": IdentifierType.GOODREADS_ID,
    "library_thing_id": IdentifierType.LIBRARY_THING_ID,
    "olid": IdentifierType.OPEN_LIBRARY_ID,
    "dnb_id": IdentifierType.DNB,
    "bnf_id": IdentifierType.BNF,
    "nla_id": IdentifierType.NLA,
    "bl_id": IdentifierType.BL,
}

# Order matters: ordinals are assigned across roles in this order.
CONTRIBUTOR_FIELD_ROLES: Final[Mapping[str, ContributorRole]] = {
    "author": ContributorRole.AUTHOR,
    "editor": ContributorRole.EDITOR,
    "translator": ContributorRole.TRANSLATOR,
    "illustrator": ContributorRole.ILLUSTRATOR,
    "narrator": ContributorRole.NARRATOR,
}


@dataclass(slots=True)
class CandidateRecord:
    """Partial bibliographic data returned by one provider (or merged from several).

    ``None`` or an empty list means the provider did not supply the field.
    """

    title: str | None = None
    subtitle: str | None = None
    author: str | None = None
    original_title: str | None = None
    cover_image_url: str | None = None
    description: str | None = None
    publisher: str | None = None
    published_date: str | None = None
    page_count: int | None = None
    language: str | None = None
    categories: list[str] = field(default_factory=list[str])
    subjects: list[str] = field(default_factory=list[str])
    isbn10: str | None = None
    isbn13: str | None = None
    issn: str | None = None
    lccn: str | None = None
    oclc_number: str | None = None
    oclc_work_id: str | None = None
    doi: str | None = None
    asin: str | None = None
    google_books_id: str | None = None
    goodreads_id: str | None = None
    library_thing_id: str | None = None
    olid: str | None = None
    dnb_id: str | None = None
    bnf_id: str | None = None
    nla_id: str | None = None
    bl_id: str | None = None
    dewey_decimal: str | None = None
    lcc: str | None = None
    call_number: str | None = None
    bisac_codes: list[str] = field(default_factory=list[str])
    thema: list[str] = field(default_factory=list[str])
    fast_subjects: list[str] = field(default_factory=list[str])
    main_category: str | None = None
    format: str | None = None
    binding: str | None = None
    dimensions: str | None = None
    weight: str | None = None
    edition_statement: str | None = None
    place_of_publication: str | None = None
    edition: str | None = None
    copyright: str | None = None
    printing_history: str | None = None
    physical_description: str | None = None
    pagination: str | None = None
    original_publication_date: str | None = None
    translator: str | None = None
    illustrator: str | None = None
    editor: str | None = None
    narrator: str | None = None
    series: str | None = None
    volume_number: str | None = None
    number_of_volumes: int | None = None
    excerpt: str | None = None
    first_sentence: str | None = None
    table_of_contents: str | None = None
    reading_age: str | None = None
    lexile_score: str | None = None
    average_rating: float | None = None
    ratings_count: int | None = None
    reviews_count: int | None = None
    preview_link: str | None = None
    info_link: str | None = None
    buy_link: str | None = None
    awards: list[str] = field(default_factory=list[str])
    data_sources: list[str] = field(default_factory=list[str])

    def get(self, name: str) -> Any:
        if name not in CANDIDATE_FIELDS:
            raise KeyError(name)
        return getattr(self, name)

    def as_field_map(self) -> dict[str, Any]:
        values = {name: getattr(self, name) for name in CANDIDATE_FIELDS}
        return {name: value for name, value in values.items() if not is_empty(value)}

    def is_usable(self) -> bool:
        return self.title is not None and bool(self.title.strip())

    @property
    def primary_isbn(self) -> str | None:
        return self.isbn13 or self.isbn10


CANDIDATE_FIELDS: Final[tuple[str, ...]] = tuple(
    f.name for f in fields(CandidateRecord) if f.name != "data_sources"
)


@dataclass(slots=True)
class WorkMetadata:
    title: str
    subtitle: str | None = None
    original_title: str | None = None
    description: str | None = None
    language: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict[str, Any])


@dataclass(slots=True)
class EditionMetadata:
    publisher: str | None = None
    published_year: int | None = None
    page_count: int | None = None
    format: str | None = None
    binding: str | None = None
    edition_statement: str | None = None
    place_of_publication: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict[str, Any])


@dataclass(slots=True, frozen=True)
class Identifier:
    type: IdentifierType
    value: str
    is_primary: bool = False


@dataclass(slots=True, frozen=True)
class Contributor:
    role: ContributorRole
    ordinal: int
    display_name: str


@dataclass(slots=True, frozen=True)
class Subject:
    scheme: SubjectScheme
    text: str


@dataclass(slots=True, frozen=True)
class SeriesMembership:
    name: str
    volume_number: str | None = None


@dataclass(slots=True)
class ItemAttributes:
    """Per-copy attributes. Reconciliation never reads or writes them."""

    location: str | None = None
    condition: str | None = None
    acquired_on: date | None = None
    status: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict[str, Any])


@dataclass(slots=True)
class CanonicalRecord:
    """Snapshot of one catalog item as the remote store holds it."""

    item_id: str
    work: WorkMetadata
    edition: EditionMetadata = field(default_factory=EditionMetadata)
    identifiers: list[Identifier] = field(default_factory=list[Identifier])
    contributors: list[Contributor] = field(default_factory=list[Contributor])
    subjects: list[Subject] = field(default_factory=list[Subject])
    series: SeriesMembership | None = None
    item: ItemAttributes = field(default_factory=ItemAttributes)

    def identifier(self, identifier_type: IdentifierType) -> str | None:
        for identifier in self.identifiers:
            if identifier.type is identifier_type:
                return identifier.value
        return None

    def contributor_names(self, role: ContributorRole) -> list[str]:
        matching = [c for c in self.contributors if c.role is role]
        return [c.display_name for c in sorted(matching, key=lambda c: c.ordinal)]

    def as_field_map(self) -> dict[str, Any]:
        """Flatten the record into the vocabulary ``CandidateRecord`` uses."""

        flat: dict[str, Any] = {}
        for key, value in self.work.metadata.items():
            if key in CANDIDATE_FIELDS:
                flat[key] = value
        for key, value in self.edition.metadata.items():
            if key in CANDIDATE_FIELDS:
                flat[key] = value

        flat["title"] = self.work.title
        flat["subtitle"] = self.work.subtitle
        flat["original_title"] = self.work.original_title
        flat["description"] = self.work.description
        flat["language"] = self.work.language

        flat["publisher"] = self.edition.publisher
        if self.edition.published_year is not None:
            flat["published_date"] = str(self.edition.published_year)
        flat["page_count"] = self.edition.page_count
        flat["format"] = self.edition.format
        flat["binding"] = self.edition.binding
        flat["edition_statement"] = self.edition.edition_statement
        flat["place_of_publication"] = self.edition.place_of_publication

        for name, identifier_type in IDENTIFIER_FIELD_TYPES.items():
            flat[name] = self.identifier(identifier_type)
        for name, role in CONTRIBUTOR_FIELD_ROLES.items():
            names = self.contributor_names(role)
            flat[name] = ", ".join(names) if names else None

        flat["subjects"] = [s.text for s in self.subjects if s.scheme is not SubjectScheme.CUSTOM]
        flat["categories"] = [s.text for s in self.subjects if s.scheme is SubjectScheme.CUSTOM]

        if self.series is not None:
            flat["series"] = self.series.name
            flat["volume_number"] = self.series.volume_number

        return {key: value for key, value in flat.items() if not is_empty(value)}


@dataclass(slots=True, frozen=True)
class DuplicateItem:
    item_id: str
    title: str
    author: str | None = None
    created_at: datetime | None = None
    isbn: str | None = None
    publisher: str | None = None
    published_year: int | None = None
    location: str | None = None
    condition: str | None = None
    cover_url: str | None = None


def _age_key(item: DuplicateItem) -> tuple[bool, datetime]:
    created = item.created_at
    if created is None:
        return True, datetime.max.replace(tzinfo=UTC)
    if created.tzinfo is None:
        created = created.replace(tzinfo=UTC)
    return False, created


@dataclass(slots=True, frozen=True)
class DuplicateGroup:
    """Two or more catalog items believed to be copies of the same book.

    Items are kept oldest first; undated items go last in their incoming order.
    """

    group_key: str
    title: str
    author: str | None
    items: tuple[DuplicateItem, ...]

    def __post_init__(self) -> None:
        if len(self.items) < 2:  # noqa: PLR2004
            raise ValueError(f"Duplicate group {self.group_key!r} needs at least two items")
        object.__setattr__(self, "items", tuple(sorted(self.items, key=_age_key)))

    @property
    def item_ids(self) -> tuple[str, ...]:
        return tuple(item.item_id for item in self.items)

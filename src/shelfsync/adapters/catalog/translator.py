"""Translate catalog API payloads into canonical records and duplicate groups."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Final

from pydantic.alias_generators import to_snake

from shelfsync.domain.records import (
    CanonicalRecord,
    Contributor,
    ContributorRole,
    DuplicateGroup,
    DuplicateItem,
    EditionMetadata,
    Identifier,
    IdentifierType,
    ItemAttributes,
    SeriesMembership,
    Subject,
    SubjectScheme,
    WorkMetadata,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .schema import (
        ContributorPayload,
        DuplicateGroupPayload,
        DuplicateItemPayload,
        IdentifierPayload,
        ItemPayload,
        SubjectPayload,
    )

log = logging.getLogger(__name__)

# Numeric lookup ids used by older catalog builds.
IDENTIFIER_TYPE_IDS: Final[dict[int, IdentifierType]] = {
    1: IdentifierType.ISBN10,
    2: IdentifierType.ISBN13,
    3: IdentifierType.LCCN,
    4: IdentifierType.OCLC,
    5: IdentifierType.ISSN,
    6: IdentifierType.DOI,
}
CONTRIBUTOR_ROLE_IDS: Final[dict[int, ContributorRole]] = {
    1: ContributorRole.AUTHOR,
    2: ContributorRole.EDITOR,
    3: ContributorRole.TRANSLATOR,
    4: ContributorRole.ILLUSTRATOR,
    5: ContributorRole.NARRATOR,
}
SUBJECT_SCHEME_IDS: Final[dict[int, SubjectScheme]] = {
    1: SubjectScheme.LCSH,
    2: SubjectScheme.DEWEY,
    99: SubjectScheme.CUSTOM,
}


def parse_metadata_json(raw: str | None) -> dict[str, Any]:
    """Decode a ``metadataJson`` column into a dict with snake_case keys."""

    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        log.warning("Ignoring malformed metadataJson: %.80s", raw)
        return {}
    if not isinstance(decoded, dict):
        return {}
    return {to_snake(str(key)): value for key, value in decoded.items()}


def _enum_value[EnumT: (IdentifierType, ContributorRole, SubjectScheme)](
    enum_type: type[EnumT],
    name: str | None,
    numeric: int | None,
    by_id: dict[int, EnumT],
) -> EnumT | None:
    if name:
        try:
            return enum_type(name.strip().casefold().replace("-", "").replace(" ", "_"))
        except ValueError:
            pass
    if numeric is not None:
        return by_id.get(numeric)
    return None


def _identifier(payload: IdentifierPayload) -> Identifier | None:
    identifier_type = _enum_value(
        IdentifierType,
        payload.identifier_type or payload.identifier_type_name,
        payload.identifier_type_id,
        IDENTIFIER_TYPE_IDS,
    )
    if identifier_type is None:
        log.debug("Skipping identifier of unknown type: %s", payload.value)
        return None
    return Identifier(type=identifier_type, value=payload.value, is_primary=payload.is_primary)


def _contributor(payload: ContributorPayload) -> Contributor | None:
    role = _enum_value(
        ContributorRole,
        payload.role or payload.role_name,
        payload.role_id,
        CONTRIBUTOR_ROLE_IDS,
    )
    if role is None:
        log.debug("Skipping contributor %s with unknown role", payload.display_name)
        return None
    return Contributor(role=role, ordinal=payload.ordinal, display_name=payload.display_name)


def _subject(payload: SubjectPayload) -> Subject:
    scheme = _enum_value(SubjectScheme, payload.scheme, payload.scheme_id, SUBJECT_SCHEME_IDS)
    return Subject(scheme=scheme or SubjectScheme.CUSTOM, text=payload.text)


def _compact[T](values: Iterable[T | None]) -> list[T]:
    return [value for value in values if value is not None]


def translate_item(payload: ItemPayload) -> CanonicalRecord:
    work_payload = payload.work
    edition_payload = payload.edition

    if work_payload is not None:
        work = WorkMetadata(
            title=work_payload.title,
            subtitle=work_payload.subtitle,
            original_title=work_payload.original_title,
            description=work_payload.description,
            language=work_payload.language,
            metadata=parse_metadata_json(work_payload.metadata_json),
        )
        contributors = _compact(_contributor(c) for c in work_payload.contributors)
        subjects = [_subject(s) for s in work_payload.subjects]
        series = (
            SeriesMembership(
                name=work_payload.series.name,
                volume_number=work_payload.series.volume_number,
            )
            if work_payload.series is not None
            else None
        )
    else:
        work = WorkMetadata(title=payload.title or "", subtitle=payload.subtitle)
        contributors, subjects, series = [], [], None

    if edition_payload is not None:
        edition = EditionMetadata(
            publisher=edition_payload.publisher,
            published_year=edition_payload.published_year,
            page_count=edition_payload.page_count,
            format=edition_payload.format,
            binding=edition_payload.binding,
            edition_statement=edition_payload.edition_statement,
            place_of_publication=edition_payload.place_of_publication,
            metadata=parse_metadata_json(edition_payload.metadata_json),
        )
        identifiers = _compact(_identifier(i) for i in edition_payload.identifiers)
    else:
        edition = EditionMetadata()
        identifiers = []

    item = ItemAttributes(
        location=payload.location,
        condition=payload.condition,
        acquired_on=payload.acquired_on,
        status=payload.status,
        notes=payload.notes,
        created_at=payload.created_at,
        metadata=parse_metadata_json(payload.metadata_json),
    )
    return CanonicalRecord(
        item_id=payload.item_id,
        work=work,
        edition=edition,
        identifiers=identifiers,
        contributors=contributors,
        subjects=subjects,
        series=series,
        item=item,
    )


def parse_identifier_list(raw: str | None) -> dict[IdentifierType, str]:
    """Decode the ``"2:978...||1:0..."`` form the duplicate listing flattens identifiers to."""

    parsed: dict[IdentifierType, str] = {}
    if not raw:
        return parsed
    for entry in raw.split("||"):
        kind, sep, value = entry.partition(":")
        if not sep or not value.strip():
            continue
        kind = kind.strip()
        identifier_type = _enum_value(
            IdentifierType,
            None if kind.isdigit() else kind,
            int(kind) if kind.isdigit() else None,
            IDENTIFIER_TYPE_IDS,
        )
        if identifier_type is not None:
            parsed.setdefault(identifier_type, value.strip())
    return parsed


def translate_duplicate_item(payload: DuplicateItemPayload, *, base_url: str) -> DuplicateItem:
    identifiers = parse_identifier_list(payload.identifiers)
    isbn = identifiers.get(IdentifierType.ISBN13) or identifiers.get(IdentifierType.ISBN10)
    cover_url = f"{base_url}api/editions/{payload.edition_id}/cover" if payload.edition_id else None
    return DuplicateItem(
        item_id=payload.item_id,
        title=payload.title,
        author=payload.authors,
        created_at=payload.created_at,
        isbn=isbn,
        publisher=payload.publisher,
        published_year=payload.published_year,
        location=payload.location,
        condition=payload.condition,
        cover_url=cover_url,
    )


def translate_duplicate_groups(
    payloads: Iterable[DuplicateGroupPayload],
    *,
    base_url: str,
) -> list[DuplicateGroup]:
    groups: list[DuplicateGroup] = []
    for payload in payloads:
        items = tuple(translate_duplicate_item(i, base_url=base_url) for i in payload.items)
        group_key = payload.group_key or f"{payload.title}|{payload.author or ''}"
        if len(items) < 2:  # noqa: PLR2004
            log.warning("Skipping duplicate group %r with %d item(s)", group_key, len(items))
            continue
        groups.append(
            DuplicateGroup(
                group_key=group_key,
                title=payload.title,
                author=payload.author,
                items=items,
            )
        )
    return groups

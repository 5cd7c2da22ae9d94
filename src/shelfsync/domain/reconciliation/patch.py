"""Turn approved field diffs into a patch against the catalog store's record shape.

Related-entity lists (identifiers, contributors, subjects) are replace-whole on
the store side, so whenever one of their fields is touched the full list is
rebuilt from the working copy rather than sent as a delta.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final

from shelfsync.domain.fields import (
    CONTRIBUTOR_FIELD_ROLES,
    CONTRIBUTOR_FIELDS,
    EDITION_FIELDS,
    EDITION_METADATA_FIELDS,
    IDENTIFIER_FIELD_TYPES,
    IDENTIFIER_FIELDS,
    SERIES_FIELDS,
    SUBJECT_FIELDS,
    WORK_FIELDS,
    WORK_METADATA_FIELDS,
)
from shelfsync.domain.records import (
    Contributor,
    Identifier,
    SeriesMembership,
    Subject,
    SubjectScheme,
    is_empty,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from shelfsync.domain.records import CanonicalRecord, IdentifierType

    from .diff import FieldDiff

ENRICHED_AT_KEY: Final[str] = "enriched_at"
ENRICHMENT_SOURCES_KEY: Final[str] = "enrichment_sources"

_NAME_SEPARATORS = re.compile(r"\s*[,;&]\s*")
_YEAR = re.compile(r"\d{4}")


@dataclass(slots=True)
class RecordPatch:
    """Sub-entity sections to send to the store; ``None`` sections are left untouched."""

    item_metadata: dict[str, Any]
    work: dict[str, Any] | None = None
    edition: dict[str, Any] | None = None
    identifiers: list[Identifier] | None = None
    contributors: list[Contributor] | None = None
    subjects: list[Subject] | None = None
    series: SeriesMembership | None = None
    touched_fields: frozenset[str] = field(default_factory=frozenset)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.work is not None:
            payload["work"] = _section_payload(self.work)
        if self.edition is not None:
            payload["edition"] = _section_payload(self.edition)
        if self.identifiers is not None:
            payload["identifiers"] = [
                {
                    "identifierType": identifier.type.value,
                    "value": identifier.value,
                    "isPrimary": identifier.is_primary,
                }
                for identifier in self.identifiers
            ]
        if self.contributors is not None:
            payload["contributors"] = [
                {
                    "displayName": contributor.display_name,
                    "role": contributor.role.value,
                    "ordinal": contributor.ordinal,
                }
                for contributor in self.contributors
            ]
        if self.subjects is not None:
            payload["subjects"] = [
                {"scheme": subject.scheme.value, "text": subject.text} for subject in self.subjects
            ]
        if self.series is not None:
            payload["series"] = {
                "name": self.series.name,
                "volumeNumber": self.series.volume_number,
            }
        payload["itemMetadataJson"] = json.dumps(camelize_keys(self.item_metadata), default=str)
        return payload


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camelize_keys(values: Mapping[str, Any]) -> dict[str, Any]:
    return {to_camel(key): value for key, value in values.items()}


def _section_payload(section: Mapping[str, Any]) -> dict[str, Any]:
    body = {to_camel(key): value for key, value in section.items() if key != "metadata"}
    metadata = section.get("metadata") or {}
    body["metadataJson"] = json.dumps(camelize_keys(metadata), default=str) if metadata else None
    return body


def split_names(value: object) -> list[str]:
    if is_empty(value):
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part for part in _NAME_SEPARATORS.split(str(value).strip()) if part]


def extract_year(value: object) -> int | None:
    if is_empty(value):
        return None
    match = _YEAR.search(str(value))
    return int(match.group(0)) if match else None


def _coerce_int(value: object) -> int | None:
    if is_empty(value):
        return None
    try:
        return int(float(str(value)))
    except (ValueError, OverflowError):
        return None


def _text_or_none(value: object) -> str | None:
    return None if is_empty(value) else str(value)


def _merged_metadata(
    existing: Mapping[str, Any],
    working: Mapping[str, Any],
    names: Iterable[str],
) -> dict[str, Any]:
    metadata = dict(existing)
    for name in names:
        value = working.get(name)
        if not is_empty(value):
            metadata[name] = value
    return metadata


def _build_identifiers(
    original: CanonicalRecord,
    working: Mapping[str, Any],
    touched: frozenset[str],
) -> list[Identifier]:
    entries: list[tuple[IdentifierType, str]] = []
    for name, identifier_type in IDENTIFIER_FIELD_TYPES.items():
        if name in touched:
            value = working.get(name)
            if not is_empty(value):
                entries.append((identifier_type, str(value)))
            continue
        entries.extend(
            (identifier_type, existing.value)
            for existing in original.identifiers
            if existing.type is identifier_type
        )

    # ISBN-13 precedes ISBN-10 in the field table, so it takes the family's primary flag.
    seen_families: set[str] = set()
    identifiers: list[Identifier] = []
    for identifier_type, value in entries:
        is_primary = identifier_type.family not in seen_families
        seen_families.add(identifier_type.family)
        identifiers.append(Identifier(type=identifier_type, value=value, is_primary=is_primary))
    return identifiers


def _build_contributors(
    original: CanonicalRecord,
    working: Mapping[str, Any],
    touched: frozenset[str],
) -> list[Contributor]:
    contributors: list[Contributor] = []
    ordinal = 1
    for name, role in CONTRIBUTOR_FIELD_ROLES.items():
        if name in touched:
            names = split_names(working.get(name))
        else:
            names = original.contributor_names(role)
        for display_name in names:
            contributors.append(Contributor(role=role, ordinal=ordinal, display_name=display_name))
            ordinal += 1
    return contributors


def _build_subjects(original: CanonicalRecord, working: Mapping[str, Any]) -> list[Subject]:
    seen: set[str] = set()
    subjects: list[Subject] = []

    def add(scheme: SubjectScheme, text: object) -> None:
        label = str(text).strip()
        if not label or label in seen:
            return
        seen.add(label)
        subjects.append(Subject(scheme=scheme, text=label))

    for existing in original.subjects:
        add(existing.scheme, existing.text)
    for text in working.get("subjects") or ():
        add(SubjectScheme.LCSH, text)
    for text in working.get("categories") or ():
        add(SubjectScheme.CUSTOM, text)
    return subjects


def build_patch(
    original: CanonicalRecord,
    approved_diffs: Sequence[FieldDiff],
    *,
    data_sources: Sequence[str],
    now: datetime | None = None,
) -> RecordPatch:
    working = original.as_field_map()
    for diff in approved_diffs:
        working[diff.key] = diff.candidate_value
    touched = frozenset(diff.key for diff in approved_diffs)

    stamp = (now or datetime.now(UTC)).astimezone(UTC)
    item_metadata = dict(original.item.metadata)
    item_metadata[ENRICHED_AT_KEY] = stamp.isoformat()
    item_metadata[ENRICHMENT_SOURCES_KEY] = list(data_sources)
    patch = RecordPatch(item_metadata=item_metadata, touched_fields=touched)

    if touched & WORK_FIELDS:
        patch.work = {
            "title": _text_or_none(working.get("title")) or original.work.title,
            "subtitle": _text_or_none(working.get("subtitle")),
            "original_title": _text_or_none(working.get("original_title")),
            "description": _text_or_none(working.get("description")),
            "language": _text_or_none(working.get("language")),
            "metadata": _merged_metadata(original.work.metadata, working, WORK_METADATA_FIELDS),
        }

    if touched & EDITION_FIELDS:
        patch.edition = {
            "publisher": _text_or_none(working.get("publisher")),
            "published_year": extract_year(working.get("published_date")),
            "page_count": _coerce_int(working.get("page_count")),
            "format": _text_or_none(working.get("format")),
            "binding": _text_or_none(working.get("binding")),
            "edition_statement": _text_or_none(working.get("edition_statement")),
            "place_of_publication": _text_or_none(working.get("place_of_publication")),
            "metadata": _merged_metadata(
                original.edition.metadata, working, EDITION_METADATA_FIELDS
            ),
        }

    if touched & IDENTIFIER_FIELDS:
        patch.identifiers = _build_identifiers(original, working, touched)

    if touched & CONTRIBUTOR_FIELDS:
        patch.contributors = _build_contributors(original, working, touched)

    if touched & SUBJECT_FIELDS:
        patch.subjects = _build_subjects(original, working)

    series_name = _text_or_none(working.get("series"))
    if touched & SERIES_FIELDS and series_name:
        patch.series = SeriesMembership(
            name=series_name,
            volume_number=_text_or_none(working.get("volume_number")),
        )

    return patch

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from shelfsync.domain.reconciliation.diff import compute_diffs
from shelfsync.domain.reconciliation.patch import (
    ENRICHED_AT_KEY,
    ENRICHMENT_SOURCES_KEY,
    build_patch,
    extract_year,
    split_names,
)
from shelfsync.domain.records import (
    CandidateRecord,
    ContributorRole,
    IdentifierType,
    Subject,
    SubjectScheme,
)
from tests.helpers.fakes import make_record

if TYPE_CHECKING:
    from shelfsync.domain.reconciliation.patch import RecordPatch
    from shelfsync.domain.records import CanonicalRecord

NOW = datetime(2024, 5, 1, 12, tzinfo=UTC)


def _patch_for(
    record_kwargs: dict[str, Any], candidate: CandidateRecord
) -> tuple[CanonicalRecord, RecordPatch]:
    record = make_record(**record_kwargs)
    diffs = compute_diffs(record.as_field_map(), candidate)
    return record, build_patch(record, diffs, data_sources=["Google Books"], now=NOW)


def test_isbn13_takes_the_primary_flag_from_isbn10() -> None:
    _, patch = _patch_for({"isbn10": "0143127748"}, CandidateRecord(isbn13="9780143127741"))

    assert patch.identifiers is not None
    by_type = {identifier.type: identifier for identifier in patch.identifiers}
    assert by_type[IdentifierType.ISBN13].is_primary
    assert not by_type[IdentifierType.ISBN10].is_primary
    assert by_type[IdentifierType.ISBN10].value == "0143127748"


def test_at_most_one_primary_per_identifier_family() -> None:
    _, patch = _patch_for(
        {"isbn10": "0143127748"},
        CandidateRecord(isbn13="9780143127741", lccn="2014049525", oclc_number="123"),
    )

    assert patch.identifiers is not None
    families: dict[str, int] = {}
    for identifier in patch.identifiers:
        families[identifier.type.family] = families.get(identifier.type.family, 0) + int(
            identifier.is_primary
        )
    assert families == {"isbn": 1, "lccn": 1, "oclc": 1}


def test_untouched_sections_are_left_out() -> None:
    _, patch = _patch_for({}, CandidateRecord(publisher="Harper"))

    assert patch.edition is not None
    assert patch.edition["publisher"] == "Harper"
    assert patch.work is None
    assert patch.identifiers is None
    assert patch.contributors is None
    assert patch.subjects is None
    assert patch.touched_fields == frozenset({"publisher"})


def test_contributors_are_rebuilt_with_sequential_ordinals() -> None:
    _, patch = _patch_for(
        {"authors": ()},
        CandidateRecord(author="Terry Pratchett & Neil Gaiman", translator="Someone; Other"),
    )

    assert patch.contributors is not None
    assert [(c.role, c.ordinal, c.display_name) for c in patch.contributors] == [
        (ContributorRole.AUTHOR, 1, "Terry Pratchett"),
        (ContributorRole.AUTHOR, 2, "Neil Gaiman"),
        (ContributorRole.TRANSLATOR, 3, "Someone"),
        (ContributorRole.TRANSLATOR, 4, "Other"),
    ]


def test_untouched_roles_keep_existing_contributors() -> None:
    _, patch = _patch_for({"authors": ("Umberto Eco",)}, CandidateRecord(translator="William Weaver"))

    assert patch.contributors is not None
    assert [(c.role, c.display_name) for c in patch.contributors] == [
        (ContributorRole.AUTHOR, "Umberto Eco"),
        (ContributorRole.TRANSLATOR, "William Weaver"),
    ]


def test_subjects_are_unioned_and_deduplicated() -> None:
    record = make_record()
    record.subjects = [Subject(SubjectScheme.LCSH, "History")]
    diffs = compute_diffs(
        record.as_field_map(),
        CandidateRecord(subjects=["History", "Anthropology"], categories=["Non-fiction"]),
    )

    patch = build_patch(record, diffs, data_sources=[], now=NOW)

    assert patch.subjects == [
        Subject(SubjectScheme.LCSH, "History"),
        Subject(SubjectScheme.LCSH, "Anthropology"),
        Subject(SubjectScheme.CUSTOM, "Non-fiction"),
    ]


def test_published_date_becomes_a_year_and_metadata_is_merged() -> None:
    record = make_record()
    record.edition.metadata = {"weight": "1 lb"}
    diffs = compute_diffs(
        record.as_field_map(),
        CandidateRecord(published_date="2015-02-10", dimensions="24 x 16 cm", page_count=464),
    )

    patch = build_patch(record, diffs, data_sources=["ISBNdb"], now=NOW)

    assert patch.edition is not None
    assert patch.edition["published_year"] == 2015
    assert patch.edition["page_count"] == 464
    assert patch.edition["metadata"] == {"weight": "1 lb", "dimensions": "24 x 16 cm"}


def test_item_metadata_records_enrichment_provenance() -> None:
    record = make_record()
    record.item.metadata = {"shelf": "A3"}

    patch = build_patch(record, [], data_sources=["Google Books", "Open Library"], now=NOW)

    assert patch.item_metadata == {
        "shelf": "A3",
        ENRICHED_AT_KEY: NOW.isoformat(),
        ENRICHMENT_SOURCES_KEY: ["Google Books", "Open Library"],
    }


def test_payload_uses_camel_case_wire_names() -> None:
    _, patch = _patch_for(
        {"isbn10": "0143127748"},
        CandidateRecord(isbn13="9780143127741", dewey_decimal="909", series="Brief Histories"),
    )

    payload = patch.to_payload()

    assert payload["identifiers"][0] == {
        "identifierType": "isbn13",
        "value": "9780143127741",
        "isPrimary": True,
    }
    assert json.loads(payload["work"]["metadataJson"]) == {"deweyDecimal": "909"}
    assert payload["series"] == {"name": "Brief Histories", "volumeNumber": None}
    assert json.loads(payload["itemMetadataJson"])["enrichmentSources"] == ["Google Books"]
    assert "edition" not in payload


def test_split_names_and_extract_year() -> None:
    assert split_names("A, B ; C & D") == ["A", "B", "C", "D"]
    assert split_names(["  A ", ""]) == ["A"]
    assert split_names(None) == []
    assert extract_year("October 1, 1988") == 1988
    assert extract_year("n.d.") is None

"""End-to-end enrichment: look a record up, diff it, apply what the user approves."""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from shelfsync.domain.errors import CatalogStoreError
from shelfsync.domain.lookup.orchestrator import ProgressEvent, notify_progress
from shelfsync.domain.lookup.query import IdentifierKey, TextQuery
from shelfsync.domain.reconciliation.diff import FieldDiff, compute_diffs
from shelfsync.domain.reconciliation.duplicates import primary_author
from shelfsync.domain.reconciliation.patch import build_patch
from shelfsync.domain.records import CandidateRecord, ContributorRole, IdentifierType

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Iterable, Sequence
    from datetime import datetime

    from shelfsync.domain.lookup.orchestrator import LookupOrchestrator
    from shelfsync.domain.ports.catalog import CatalogStore
    from shelfsync.domain.ports.progress import ProgressSink
    from shelfsync.domain.reconciliation.patch import RecordPatch
    from shelfsync.domain.records import CanonicalRecord

log = logging.getLogger(__name__)

NO_DATA_FOUND: Final[str] = "No data found from any provider"
_LOOKUP_ISBN = re.compile(r"^\d{10,13}$")


@dataclass(slots=True)
class EnrichmentResult:
    item_id: str
    title: str
    diffs: list[FieldDiff] = field(default_factory=list[FieldDiff])
    candidate: CandidateRecord | None = None
    data_sources: list[str] = field(default_factory=list[str])
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.candidate is not None


def _lookup_isbn(record: CanonicalRecord) -> str | None:
    for identifier_type in (IdentifierType.ISBN13, IdentifierType.ISBN10):
        value = record.identifier(identifier_type)
        if value:
            cleaned = value.replace("-", "").replace(" ", "")
            if _LOOKUP_ISBN.match(cleaned):
                return cleaned
    return None


def enrich_record(
    record: CanonicalRecord,
    *,
    orchestrator: LookupOrchestrator,
    progress: ProgressSink | None = None,
    abort: threading.Event | None = None,
) -> EnrichmentResult:
    """Find candidate data for ``record`` and diff it against what is stored.

    Tries an ISBN lookup first and falls back to a title/author search.
    """

    candidate: CandidateRecord | None = None
    isbn = _lookup_isbn(record)
    if isbn is not None:
        candidate = orchestrator.run_lookup(
            IdentifierKey(isbn), progress=progress, abort=abort
        ).record

    if candidate is None and not (abort is not None and abort.is_set()):
        authors = record.contributor_names(ContributorRole.AUTHOR)
        query = TextQuery(
            title=record.work.title,
            author=primary_author(", ".join(authors)) if authors else None,
        )
        results = orchestrator.search_multiple(query, progress=progress, abort=abort)
        candidate = results[0] if results else None

    if candidate is None:
        return EnrichmentResult(item_id=record.item_id, title=record.work.title, error=NO_DATA_FOUND)

    return EnrichmentResult(
        item_id=record.item_id,
        title=record.work.title,
        diffs=compute_diffs(record.as_field_map(), candidate),
        candidate=candidate,
        data_sources=list(candidate.data_sources),
    )


def apply_enrichment(
    record: CanonicalRecord,
    approved_diffs: Sequence[FieldDiff],
    *,
    store: CatalogStore,
    data_sources: Sequence[str],
    now: datetime | None = None,
) -> RecordPatch | None:
    """Write the approved diffs to the store. ``PatchRejected`` propagates."""

    if not approved_diffs:
        return None
    patch = build_patch(record, approved_diffs, data_sources=data_sources, now=now)
    store.patch_record(record.item_id, patch)
    log.info(
        "Applied %d field(s) to %s from %s",
        len(approved_diffs),
        record.item_id,
        ", ".join(data_sources) or "unknown sources",
    )
    return patch


type DiffApprover = Callable[[EnrichmentResult], Sequence[FieldDiff]]


def new_fields_only(result: EnrichmentResult) -> list[FieldDiff]:
    return [diff for diff in result.diffs if diff.is_new_field]


def all_fields(result: EnrichmentResult) -> list[FieldDiff]:
    return list(result.diffs)


class RecordOutcome(StrEnum):
    APPLIED = "applied"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass(slots=True, frozen=True)
class RecordReport:
    item_id: str
    outcome: RecordOutcome
    title: str | None = None
    applied_fields: tuple[str, ...] = ()
    error: str | None = None


@dataclass(slots=True)
class BatchEnrichmentResult:
    reports: list[RecordReport] = field(default_factory=list[RecordReport])
    aborted: bool = False

    def count(self, outcome: RecordOutcome) -> int:
        return self.tally()[outcome]

    def tally(self) -> Counter[RecordOutcome]:
        return Counter(report.outcome for report in self.reports)


def _enrich_one(
    item_id: str,
    *,
    store: CatalogStore,
    orchestrator: LookupOrchestrator,
    approve: DiffApprover,
    abort: threading.Event | None,
) -> RecordReport:
    try:
        record = store.get_record(item_id)
    except CatalogStoreError as exc:
        log.warning("Could not load %s: %s", item_id, exc)
        return RecordReport(item_id, RecordOutcome.ERROR, error=str(exc))

    title = record.work.title
    try:
        result = enrich_record(record, orchestrator=orchestrator, abort=abort)
    except Exception as exc:
        log.exception("Enrichment lookup for %s failed", item_id)
        return RecordReport(item_id, RecordOutcome.ERROR, title=title, error=str(exc))
    if result.error is not None:
        return RecordReport(item_id, RecordOutcome.NOT_FOUND, title=title, error=result.error)
    if not result.diffs:
        return RecordReport(item_id, RecordOutcome.UNCHANGED, title=title)

    approved = list(approve(result))
    if not approved:
        return RecordReport(item_id, RecordOutcome.SKIPPED, title=title)

    try:
        apply_enrichment(record, approved, store=store, data_sources=result.data_sources)
    except CatalogStoreError as exc:
        log.warning("Could not apply enrichment to %s: %s", item_id, exc)
        return RecordReport(item_id, RecordOutcome.ERROR, title=title, error=str(exc))
    return RecordReport(
        item_id,
        RecordOutcome.APPLIED,
        title=title,
        applied_fields=tuple(diff.key for diff in approved),
    )


def run_batch_enrichment(
    item_ids: Iterable[str],
    *,
    store: CatalogStore,
    orchestrator: LookupOrchestrator,
    approve: DiffApprover = new_fields_only,
    abort: threading.Event | None = None,
    progress: ProgressSink | None = None,
) -> BatchEnrichmentResult:
    """Enrich records one at a time; one record failing never stops the run.

    The abort flag is checked between records. Records already written stay
    written.
    """

    ids = list(item_ids)
    batch = BatchEnrichmentResult()
    for index, item_id in enumerate(ids, start=1):
        if abort is not None and abort.is_set():
            log.info("Batch enrichment aborted with %d record(s) left", len(ids) - index + 1)
            batch.reports.extend(
                RecordReport(remaining, RecordOutcome.SKIPPED) for remaining in ids[index - 1 :]
            )
            batch.aborted = True
            break

        report = _enrich_one(
            item_id,
            store=store,
            orchestrator=orchestrator,
            approve=approve,
            abort=abort,
        )
        batch.reports.append(report)
        notify_progress(progress, ProgressEvent(index, len(ids), report.title or item_id))

    tally = batch.tally()
    log.info(
        "Batch enrichment finished: %s",
        ", ".join(f"{outcome}={tally[outcome]}" for outcome in RecordOutcome),
    )
    return batch

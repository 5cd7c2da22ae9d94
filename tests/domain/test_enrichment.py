from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from shelfsync.domain.enrichment import (
    NO_DATA_FOUND,
    RecordOutcome,
    all_fields,
    apply_enrichment,
    enrich_record,
    new_fields_only,
    run_batch_enrichment,
)
from shelfsync.domain.errors import PatchRejected
from shelfsync.domain.lookup.orchestrator import LookupOrchestrator, LookupOutcome, LookupPolicy
from shelfsync.domain.lookup.query import IdentifierKey, TextQuery
from shelfsync.domain.records import CandidateRecord
from tests.helpers.fakes import FakeCatalogStore, FakeProvider, make_record

if TYPE_CHECKING:
    from shelfsync.domain.ports.progress import ProgressSink

FAST = LookupPolicy(provider_timeout_seconds=1, inter_call_delay_seconds=0)


def _orchestrator(*providers: FakeProvider) -> LookupOrchestrator:
    return LookupOrchestrator(providers, policy=FAST)


def test_enrich_record_uses_isbn_lookup_first() -> None:
    provider = FakeProvider(
        "Google Books",
        [CandidateRecord(title="Sapiens", publisher="Harper", page_count=464)],
    )
    record = make_record(isbn13="978-0-06-231609-7", publisher="Harper")

    result = enrich_record(record, orchestrator=_orchestrator(provider))

    assert provider.calls[0][0] == IdentifierKey("9780062316097")
    assert result.found
    assert [d.key for d in result.diffs] == ["page_count"]
    assert result.data_sources == ["Google Books"]
    assert result.error is None


def test_enrich_record_falls_back_to_text_search() -> None:
    id_only = FakeProvider("ids", text=False)
    text = FakeProvider("text", [CandidateRecord(title="Sapiens", language="en")], identifier=False)
    record = make_record(isbn13="9780062316097", authors=("Yuval Noah Harari", "Someone Else"))

    result = enrich_record(record, orchestrator=_orchestrator(id_only, text))

    assert text.calls[0][0] == TextQuery(title="Sapiens", author="Yuval Noah Harari")
    assert [d.key for d in result.diffs] == ["language"]


def test_enrich_record_without_any_data() -> None:
    result = enrich_record(make_record(), orchestrator=_orchestrator(FakeProvider("empty")))

    assert not result.found
    assert result.error == NO_DATA_FOUND
    assert result.diffs == []


def test_apply_enrichment_patches_store() -> None:
    store = FakeCatalogStore()
    record = make_record()
    result = enrich_record(
        record,
        orchestrator=_orchestrator(FakeProvider("p", [CandidateRecord(title="Sapiens", language="en")])),
    )
    now = datetime(2024, 1, 1, tzinfo=UTC)

    patch = apply_enrichment(
        record, result.diffs, store=store, data_sources=result.data_sources, now=now
    )

    assert patch is not None
    assert store.patches == [("item-1", patch)]
    assert patch.work is not None
    assert patch.work["language"] == "en"


def test_apply_enrichment_with_nothing_approved_is_a_no_op() -> None:
    store = FakeCatalogStore()

    assert apply_enrichment(make_record(), [], store=store, data_sources=[]) is None
    assert store.patches == []


def test_apply_enrichment_propagates_rejection() -> None:
    store = FakeCatalogStore()
    store.patch_errors["item-1"] = PatchRejected("item-1", "title too long")
    record = make_record()
    result = enrich_record(
        record,
        orchestrator=_orchestrator(FakeProvider("p", [CandidateRecord(title="Sapiens", language="en")])),
    )

    with pytest.raises(PatchRejected):
        apply_enrichment(record, result.diffs, store=store, data_sources=["p"])


def test_approvers() -> None:
    record = make_record(publisher="Harper")
    result = enrich_record(
        record,
        orchestrator=_orchestrator(
            FakeProvider("p", [CandidateRecord(title="Sapiens", publisher="Harvill", language="en")])
        ),
    )

    assert [d.key for d in new_fields_only(result)] == ["language"]
    assert [d.key for d in all_fields(result)] == ["publisher", "language"]


def test_batch_keeps_going_past_individual_failures() -> None:
    records = [
        make_record("applied", isbn13="9780000000001"),
        make_record("unchanged", isbn13="9780000000002", publisher="Harper"),
        make_record("rejected", isbn13="9780000000003"),
        make_record("skipped", isbn13="9780000000004", publisher="Penguin"),
    ]
    store = FakeCatalogStore(records)
    store.patch_errors["rejected"] = PatchRejected("rejected", "invalid")
    provider = FakeProvider("p", [CandidateRecord(title="Sapiens", publisher="Harper")])
    progress: list[tuple[int, int, str]] = []

    result = run_batch_enrichment(
        ["applied", "unchanged", "missing", "rejected", "skipped"],
        store=store,
        orchestrator=_orchestrator(provider),
        progress=lambda current, total, label: progress.append((current, total, label)),
    )

    assert [r.outcome for r in result.reports] == [
        RecordOutcome.APPLIED,
        RecordOutcome.UNCHANGED,
        RecordOutcome.ERROR,
        RecordOutcome.ERROR,
        RecordOutcome.SKIPPED,
    ]
    assert result.reports[0].applied_fields == ("publisher",)
    assert [item_id for item_id, _ in store.patches] == ["applied"]
    assert result.count(RecordOutcome.ERROR) == 2
    assert not result.aborted
    assert [event[0] for event in progress] == [1, 2, 3, 4, 5]
    assert progress[0] == (1, 5, "Sapiens")
    assert progress[2] == (3, 5, "missing")


def test_batch_reports_not_found() -> None:
    store = FakeCatalogStore([make_record()])

    result = run_batch_enrichment(
        ["item-1"], store=store, orchestrator=_orchestrator(FakeProvider("empty"))
    )

    assert result.reports[0].outcome is RecordOutcome.NOT_FOUND
    assert result.reports[0].error == NO_DATA_FOUND


def test_batch_abort_skips_remaining_records() -> None:
    abort = threading.Event()
    store = FakeCatalogStore([make_record("a"), make_record("b"), make_record("c")])
    provider = FakeProvider("p", [CandidateRecord(title="Sapiens", language="en")])

    def stop_after_first(current: int, total: int, label: str) -> None:
        del total, label
        if current == 1:
            abort.set()

    result = run_batch_enrichment(
        ["a", "b", "c"],
        store=store,
        orchestrator=_orchestrator(provider),
        abort=abort,
        progress=stop_after_first,
    )

    assert result.aborted
    assert [(r.item_id, r.outcome) for r in result.reports] == [
        ("a", RecordOutcome.APPLIED),
        ("b", RecordOutcome.SKIPPED),
        ("c", RecordOutcome.SKIPPED),
    ]
    assert [item_id for item_id, _ in store.patches] == ["a"]


class ExplodingOrchestrator(LookupOrchestrator):
    def __init__(self, failing_isbn: str, *providers: FakeProvider) -> None:
        super().__init__(providers, policy=FAST)
        self._failing_isbn = failing_isbn

    def run_lookup(
        self,
        key: str | IdentifierKey,
        *,
        progress: ProgressSink | None = None,
        abort: threading.Event | None = None,
    ) -> LookupOutcome:
        identifier = IdentifierKey(key) if isinstance(key, str) else key
        if identifier.value == self._failing_isbn:
            raise KeyError("volumeInfo")
        return super().run_lookup(key, progress=progress, abort=abort)


def test_batch_survives_unexpected_lookup_error(caplog: pytest.LogCaptureFixture) -> None:
    store = FakeCatalogStore(
        [make_record("a", isbn13="9780000000001"), make_record("b", isbn13="9780000000002")]
    )
    orchestrator = ExplodingOrchestrator(
        "9780000000001", FakeProvider("p", [CandidateRecord(title="Sapiens", publisher="Harper")])
    )

    with caplog.at_level(logging.ERROR):
        result = run_batch_enrichment(["a", "b"], store=store, orchestrator=orchestrator)

    assert [(r.item_id, r.outcome) for r in result.reports] == [
        ("a", RecordOutcome.ERROR),
        ("b", RecordOutcome.APPLIED),
    ]
    assert result.reports[0].title == "Sapiens"
    assert "volumeInfo" in (result.reports[0].error or "")
    assert "Enrichment lookup for a failed" in caplog.text
    assert [item_id for item_id, _ in store.patches] == ["b"]

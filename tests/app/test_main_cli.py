from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from shelfsync.domain.enrichment import (
    BatchEnrichmentResult,
    EnrichmentResult,
    RecordOutcome,
    RecordReport,
)
from shelfsync.domain.errors import MergeConflict
from shelfsync.domain.lookup.query import SearchHints
from shelfsync.domain.reconciliation.diff import EMPTY_PLACEHOLDER, compute_diffs
from shelfsync.domain.reconciliation.review import DuplicateReviewSession
from shelfsync.domain.records import CandidateRecord
from shelfsync.ui import cli
from tests.helpers.fakes import FakeCatalogStore, make_group

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable


@pytest.fixture(autouse=True)
def _no_dotenv(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)


def _scripted(answers: Iterable[str]) -> Callable[[str], str]:
    remaining = iter(answers)
    return lambda _prompt: next(remaining)


def test_lookup_prints_candidate(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    def fake_lookup(key: str, **kwargs: object) -> CandidateRecord:
        captured["key"] = key
        captured.update(kwargs)
        return CandidateRecord(
            title="Sapiens",
            author="Yuval Noah Harari",
            publisher="Harper",
            isbn13="9780062316097",
            data_sources=["Google Books"],
        )

    monkeypatch.setattr(cli, "lookup_book", fake_lookup)

    cli.main(["lookup", "978-0-06-231609-7"])

    out = capsys.readouterr().out
    assert captured["key"] == "978-0-06-231609-7"
    assert captured["progress"] is not None
    assert "Sapiens by Yuval Noah Harari" in out
    assert "Harper | 9780062316097" in out
    assert "sources: Google Books" in out


def test_lookup_without_result(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(cli, "lookup_book", lambda *_args, **_kwargs: None)

    cli.main(["lookup", "9780000000000"])

    assert "No data found from any provider" in capsys.readouterr().out


def test_search_passes_hints_and_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_search(query: str, hints: SearchHints | None, **kwargs: object) -> list[CandidateRecord]:
        captured["query"] = query
        captured["hints"] = hints
        captured.update(kwargs)
        return [CandidateRecord(title="The Name of the Rose")]

    monkeypatch.setattr(cli, "search_books", fake_search)

    cli.main(["search", "the name of the rose by eco", "--publisher", "Harcourt", "--limit", "3"])

    assert captured["query"] == "the name of the rose by eco"
    assert captured["hints"] == SearchHints(publisher="Harcourt")
    assert captured["limit"] == 3


def test_search_without_hints(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_search(query: str, hints: SearchHints | None, **kwargs: object) -> list[CandidateRecord]:
        del query, kwargs
        captured["hints"] = hints
        return []

    monkeypatch.setattr(cli, "search_books", fake_search)

    cli.main(["search", "dune"])

    assert captured["hints"] is None


@pytest.mark.parametrize(
    "argv",
    [
        ["search", "dune", "--limit", "0"],
        ["search", "dune", "--year", "nineteen"],
    ],
)
def test_invalid_arguments_exit_with_usage_error(
    monkeypatch: pytest.MonkeyPatch, argv: list[str]
) -> None:
    def fail(*_args: object, **_kwargs: object) -> list[CandidateRecord]:
        raise AssertionError("search should not run")

    monkeypatch.setattr(cli, "search_books", fail)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 2


def test_runtime_failure_exits_with_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def explode(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("network gone")

    monkeypatch.setattr(cli, "lookup_book", explode)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["lookup", "9780000000000"])

    assert excinfo.value.code == 1


def test_enrich_dry_run_prints_preview(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    candidate = CandidateRecord(title="Sapiens", publisher="HarperCollins", page_count=464)
    preview = EnrichmentResult(
        item_id="item-1",
        title="Sapiens",
        diffs=compute_diffs({"title": "Sapiens", "publisher": "Harper"}, candidate),
        candidate=candidate,
        data_sources=["Google Books"],
    )

    def fail(*_args: object, **_kwargs: object) -> BatchEnrichmentResult:
        raise AssertionError("dry run must not write")

    monkeypatch.setattr(cli, "preview_enrichment", lambda item_ids: [preview])
    monkeypatch.setattr(cli, "enrich_items", fail)

    cli.main(["enrich", "item-1", "--dry-run"])

    out = capsys.readouterr().out
    assert "item-1: Sapiens" in out
    assert "~ Publisher: Harper -> HarperCollins" in out
    assert f"+ Page Count: {EMPTY_PLACEHOLDER} -> 464" in out


def test_enrich_all_fields(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    def fake_enrich(item_ids: list[str], **kwargs: object) -> BatchEnrichmentResult:
        captured["item_ids"] = item_ids
        captured.update(kwargs)
        return BatchEnrichmentResult(
            reports=[
                RecordReport("item-1", RecordOutcome.APPLIED, applied_fields=("publisher",)),
                RecordReport("item-2", RecordOutcome.NOT_FOUND, error="nothing"),
            ]
        )

    monkeypatch.setattr(cli, "enrich_items", fake_enrich)

    cli.main(["enrich", "item-1", "item-2", "--all-fields"])

    out = capsys.readouterr().out
    assert captured["item_ids"] == ["item-1", "item-2"]
    assert captured["apply_new_only"] is False
    assert "item-1: applied (publisher)" in out
    assert "item-2: not_found - nothing" in out
    assert "applied=1, not_found=1" in out


def test_merge_all_with_confirmation_flag(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    store = FakeCatalogStore(groups=[make_group("dune", 2), make_group("emma", 3)])
    monkeypatch.setattr(cli, "build_catalog_store", lambda: store)

    cli.main(["duplicates", "merge-all", "--yes"])

    assert store.merge_all_calls == 1
    assert "Merged 2 group(s), deleted 3 record(s)" in capsys.readouterr().out


def test_merge_all_cancelled(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    store = FakeCatalogStore(groups=[make_group("dune", 2)])
    monkeypatch.setattr(cli, "build_catalog_store", lambda: store)
    monkeypatch.setattr("builtins.input", lambda _prompt: "n")

    cli.main(["duplicates", "merge-all"])

    assert store.merge_all_calls == 0
    assert "Cancelled" in capsys.readouterr().out


def test_review_merges_with_toggled_keep(capsys: pytest.CaptureFixture[str]) -> None:
    store = FakeCatalogStore(groups=[make_group("dune", 2), make_group("emma", 3)])
    session = DuplicateReviewSession(store.groups, store=store)

    cli.run_review(session, prompt=_scripted(["m", "t 2", "m"]))

    assert store.merges == [("dune-0", ("dune-1",)), ("emma-0", ("emma-2",))]
    assert session.is_complete
    assert "merged=2" in capsys.readouterr().out


def test_review_reports_bad_input_and_failed_merge(capsys: pytest.CaptureFixture[str]) -> None:
    store = FakeCatalogStore(groups=[make_group("dune", 2)])
    store.merge_error = MergeConflict("group changed")
    session = DuplicateReviewSession(store.groups, store=store)

    cli.run_review(session, prompt=_scripted(["t 9", "x", "m", "q"]))

    out = capsys.readouterr().out
    assert "Number must be between 1 and 2" in out
    assert "Unknown command: 'x'" in out
    assert "Error: Failed to merge: group changed" in out
    assert "Reviewed 0/1" in out
    assert session.error is None

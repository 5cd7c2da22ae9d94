"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from shelfsync.adapters.catalog import HttpCatalogStore
from shelfsync.adapters.providers import build_default_providers
from shelfsync.config import get_catalog_config, get_lookup_policy, get_providers_config
from shelfsync.domain.enrichment import (
    EnrichmentResult,
    all_fields,
    enrich_record,
    new_fields_only,
    run_batch_enrichment,
)
from shelfsync.domain.errors import CatalogStoreError
from shelfsync.domain.lookup.orchestrator import LookupOrchestrator
from shelfsync.domain.reconciliation import review

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Iterable

    from shelfsync.domain.enrichment import BatchEnrichmentResult
    from shelfsync.domain.lookup.orchestrator import LookupPolicy
    from shelfsync.domain.lookup.query import SearchHints, SearchKey
    from shelfsync.domain.ports.catalog import CatalogStore, MergeAllResult
    from shelfsync.domain.ports.progress import ProgressSink
    from shelfsync.domain.records import CandidateRecord

log = getLogger(__name__)


def build_orchestrator(*, policy: LookupPolicy | None = None) -> LookupOrchestrator:
    """Default provider chain with the configured lookup policy."""

    providers = build_default_providers(get_providers_config())
    effective_policy = policy or get_lookup_policy()
    log.debug(
        "Lookup chain: %s (mode=%s)",
        ", ".join(p.name for p in providers),
        effective_policy.identifier_merge_mode,
    )
    return LookupOrchestrator(providers, policy=effective_policy)


def build_catalog_store(
    *,
    token_provider: Callable[[], str | None] | None = None,
) -> HttpCatalogStore:
    return HttpCatalogStore(config=get_catalog_config(), token_provider=token_provider)


def lookup_book(
    key: str,
    *,
    orchestrator: LookupOrchestrator | None = None,
    progress: ProgressSink | None = None,
    abort: threading.Event | None = None,
) -> CandidateRecord | None:
    effective = orchestrator or build_orchestrator()
    log.info("Looking up %s", key)
    return effective.lookup(key, progress=progress, abort=abort)


def search_books(
    query: str | SearchKey,
    hints: SearchHints | None = None,
    *,
    limit: int | None = None,
    orchestrator: LookupOrchestrator | None = None,
    progress: ProgressSink | None = None,
    abort: threading.Event | None = None,
) -> list[CandidateRecord]:
    effective = orchestrator or build_orchestrator()
    results = effective.search_multiple(query, hints=hints, progress=progress, abort=abort)
    log.info("Search returned %d candidate(s)", len(results))
    return results[:limit] if limit is not None else results


def preview_enrichment(
    item_ids: Iterable[str],
    *,
    store: CatalogStore | None = None,
    orchestrator: LookupOrchestrator | None = None,
) -> list[EnrichmentResult]:
    """Diff each record against provider data without writing anything."""

    effective_store = store or build_catalog_store()
    effective_orchestrator = orchestrator or build_orchestrator()
    results: list[EnrichmentResult] = []
    for item_id in item_ids:
        try:
            record = effective_store.get_record(item_id)
        except CatalogStoreError as exc:
            log.warning("Could not load %s: %s", item_id, exc)
            results.append(EnrichmentResult(item_id=item_id, title="", error=str(exc)))
            continue
        results.append(enrich_record(record, orchestrator=effective_orchestrator))
    return results


def enrich_items(
    item_ids: Iterable[str],
    *,
    apply_new_only: bool = True,
    store: CatalogStore | None = None,
    orchestrator: LookupOrchestrator | None = None,
    progress: ProgressSink | None = None,
    abort: threading.Event | None = None,
) -> BatchEnrichmentResult:
    ids = list(item_ids)
    log.info(
        "Starting enrichment: items=%d, mode=%s",
        len(ids),
        "new fields" if apply_new_only else "all fields",
    )
    result = run_batch_enrichment(
        ids,
        store=store or build_catalog_store(),
        orchestrator=orchestrator or build_orchestrator(),
        approve=new_fields_only if apply_new_only else all_fields,
        abort=abort,
        progress=progress,
    )
    log.info("Finished enrichment: aborted=%s", result.aborted)
    return result


def start_duplicate_review(
    *,
    store: CatalogStore | None = None,
) -> review.DuplicateReviewSession:
    effective_store = store or build_catalog_store()
    groups = effective_store.get_duplicate_groups()
    log.info("Loaded %d duplicate group(s) for review", len(groups))
    return review.DuplicateReviewSession(groups, store=effective_store)


def merge_all_duplicates(*, store: CatalogStore | None = None) -> MergeAllResult:
    return review.merge_all_duplicates(store or build_catalog_store())

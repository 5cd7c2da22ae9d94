"""Cascading lookup across metadata providers.

Providers are queried one after another in priority order, never concurrently.
Each call is bounded by its own timeout. A provider that fails, times out
or has nothing simply contributes nothing; the lookup only comes back empty
when every provider did.

The async generators are the primary interface: they yield a
:class:`ProgressEvent` after every provider attempt and finish with an outcome.
The synchronous wrappers drive them with ``asyncio.run`` and forward progress
to an optional sink.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import httpx

from shelfsync.domain.errors import ProviderUnavailable
from shelfsync.domain.fields import IMPORTANT_FIELDS
from shelfsync.domain.reconciliation.merge import (
    dedupe_candidates,
    merge_candidates,
    rank_candidates,
)
from shelfsync.domain.records import is_empty

from .query import IdentifierKey, SearchHints, TextQuery, search_key_for

if TYPE_CHECKING:
    import threading
    from collections.abc import AsyncIterator, Sequence

    from shelfsync.domain.ports.progress import ProgressSink
    from shelfsync.domain.ports.providers import MetadataProvider
    from shelfsync.domain.records import CandidateRecord

    from .query import SearchKey

log = logging.getLogger(__name__)


class IdentifierMergeMode(StrEnum):
    FIRST = "first"
    FILL = "fill"


@dataclass(slots=True, frozen=True)
class LookupPolicy:
    """Knobs for one orchestrator.

    ``FIRST`` stops an identifier lookup at the first usable result. ``FILL``
    keeps asking lower-priority providers until none of the important fields
    is missing, merging what each one adds.
    """

    provider_timeout_seconds: float = 8.0
    inter_call_delay_seconds: float = 0.25
    max_text_providers: int = 4
    max_results: int = 50
    identifier_merge_mode: IdentifierMergeMode = IdentifierMergeMode.FIRST


class AttemptStatus(StrEnum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"


@dataclass(slots=True, frozen=True)
class ProgressEvent:
    current: int
    total: int
    label: str


@dataclass(slots=True, frozen=True)
class ProviderAttempt:
    provider: str
    status: AttemptStatus
    record_count: int = 0
    error: str | None = None


@dataclass(slots=True, frozen=True)
class LookupOutcome:
    record: CandidateRecord | None
    attempts: tuple[ProviderAttempt, ...] = ()


@dataclass(slots=True, frozen=True)
class SearchOutcome:
    records: list[CandidateRecord] = field(default_factory=list["CandidateRecord"])
    attempts: tuple[ProviderAttempt, ...] = ()


def _missing_important_fields(record: CandidateRecord) -> list[str]:
    return [name for name in IMPORTANT_FIELDS if is_empty(getattr(record, name))]


def _credit(record: CandidateRecord, provider: str) -> CandidateRecord:
    if provider not in record.data_sources:
        record.data_sources.append(provider)
    return record


def _is_aborted(abort: threading.Event | None) -> bool:
    return abort is not None and abort.is_set()


def notify_progress(sink: ProgressSink | None, event: ProgressEvent) -> None:
    """Forward ``event`` to ``sink``; a failing sink never breaks the lookup."""

    if sink is None:
        return
    try:
        sink(event.current, event.total, event.label)
    except Exception:  # noqa: BLE001
        log.warning("Progress sink raised for %s", event, exc_info=True)


class LookupOrchestrator:
    def __init__(
        self,
        providers: Sequence[MetadataProvider[Any]],
        *,
        policy: LookupPolicy | None = None,
    ) -> None:
        self._providers = tuple(providers)
        self._policy = policy or LookupPolicy()

    @property
    def providers(self) -> tuple[MetadataProvider[Any], ...]:
        return self._providers

    @property
    def policy(self) -> LookupPolicy:
        return self._policy

    async def _attempt(
        self,
        provider: MetadataProvider[Any],
        key: SearchKey,
        hints: SearchHints | None,
    ) -> tuple[ProviderAttempt, list[CandidateRecord]]:
        name = provider.name
        try:
            raw = await asyncio.wait_for(
                provider.query(key, hints),
                timeout=self._policy.provider_timeout_seconds,
            )
            records = [] if raw is None else provider.normalize(raw)
        except TimeoutError:
            log.warning(
                "%s timed out after %.1fs", name, self._policy.provider_timeout_seconds
            )
            return ProviderAttempt(name, AttemptStatus.TIMEOUT, error="timeout"), []
        except (ProviderUnavailable, httpx.HTTPError, ValueError) as exc:
            # pydantic's ValidationError is a ValueError
            log.warning("%s failed: %s", name, exc)
            return ProviderAttempt(name, AttemptStatus.FAILED, error=str(exc)), []
        except Exception as exc:
            log.exception("%s raised unexpectedly for %s", name, key)
            return ProviderAttempt(name, AttemptStatus.FAILED, error=repr(exc)), []

        usable = [_credit(record, name) for record in records if record.is_usable()]
        if not usable:
            log.info("%s had nothing for %s", name, key)
            return ProviderAttempt(name, AttemptStatus.EMPTY), []
        log.debug("%s returned %d record(s)", name, len(usable))
        return ProviderAttempt(name, AttemptStatus.OK, record_count=len(usable)), usable

    async def stream_lookup(
        self,
        key: IdentifierKey,
        *,
        abort: threading.Event | None = None,
    ) -> AsyncIterator[ProgressEvent | LookupOutcome]:
        providers = [p for p in self._providers if p.supports_identifier]
        total = len(providers)
        attempts: list[ProviderAttempt] = []
        merged: CandidateRecord | None = None

        for index, provider in enumerate(providers, start=1):
            if _is_aborted(abort):
                log.info("Lookup for %s aborted before %s", key.value, provider.name)
                attempts.extend(
                    ProviderAttempt(p.name, AttemptStatus.SKIPPED) for p in providers[index - 1 :]
                )
                break

            attempt, records = await self._attempt(provider, key, None)
            attempts.append(attempt)
            yield ProgressEvent(index, total, provider.name)
            if not records:
                continue

            if self._policy.identifier_merge_mode is IdentifierMergeMode.FIRST:
                merged = records[0]
                break

            merged = (
                records[0]
                if merged is None
                else merge_candidates(merged, records[0], provider.name)
            )
            missing = _missing_important_fields(merged)
            if not missing:
                break
            log.debug("Still missing %s after %s", ", ".join(missing), provider.name)

        if merged is None:
            log.info("No provider had data for %s", key.value)
        yield LookupOutcome(merged, tuple(attempts))

    async def stream_search(
        self,
        query: str | SearchKey,
        *,
        hints: SearchHints | None = None,
        abort: threading.Event | None = None,
    ) -> AsyncIterator[ProgressEvent | SearchOutcome]:
        key = search_key_for(query, hints) if isinstance(query, str) else query

        if isinstance(key, IdentifierKey):
            async for item in self.stream_lookup(key, abort=abort):
                if isinstance(item, ProgressEvent):
                    yield item
                else:
                    records = [item.record] if item.record is not None else []
                    yield SearchOutcome(records, item.attempts)
            return

        if hints is not None:
            key = TextQuery(key.title, key.author, key.hints.merged_over(hints))

        providers = [p for p in self._providers if p.supports_text]
        providers = providers[: self._policy.max_text_providers]
        total = len(providers)
        attempts: list[ProviderAttempt] = []
        collected: list[CandidateRecord] = []

        for index, provider in enumerate(providers, start=1):
            if _is_aborted(abort):
                log.info("Search for %r aborted before %s", key.text, provider.name)
                attempts.extend(
                    ProviderAttempt(p.name, AttemptStatus.SKIPPED) for p in providers[index - 1 :]
                )
                break
            if index > 1 and self._policy.inter_call_delay_seconds > 0:
                await asyncio.sleep(self._policy.inter_call_delay_seconds)

            attempt, records = await self._attempt(provider, key, key.hints)
            attempts.append(attempt)
            collected.extend(records)
            yield ProgressEvent(index, total, provider.name)

        ranked = rank_candidates(dedupe_candidates(collected), key)
        yield SearchOutcome(ranked[: self._policy.max_results], tuple(attempts))

    async def _drain_lookup(
        self,
        key: IdentifierKey,
        progress: ProgressSink | None,
        abort: threading.Event | None,
    ) -> LookupOutcome:
        outcome = LookupOutcome(None)
        async for item in self.stream_lookup(key, abort=abort):
            if isinstance(item, ProgressEvent):
                notify_progress(progress, item)
            else:
                outcome = item
        return outcome

    async def _drain_search(
        self,
        query: str | SearchKey,
        hints: SearchHints | None,
        progress: ProgressSink | None,
        abort: threading.Event | None,
    ) -> SearchOutcome:
        outcome = SearchOutcome()
        async for item in self.stream_search(query, hints=hints, abort=abort):
            if isinstance(item, ProgressEvent):
                notify_progress(progress, item)
            else:
                outcome = item
        return outcome

    def run_lookup(
        self,
        key: str | IdentifierKey,
        *,
        progress: ProgressSink | None = None,
        abort: threading.Event | None = None,
    ) -> LookupOutcome:
        identifier = IdentifierKey(key) if isinstance(key, str) else key
        return asyncio.run(self._drain_lookup(identifier, progress, abort))

    def lookup(
        self,
        key: str | SearchKey,
        *,
        progress: ProgressSink | None = None,
        abort: threading.Event | None = None,
    ) -> CandidateRecord | None:
        """Best single record for ``key``, or ``None`` when no provider had one.

        Free text goes through :meth:`search_multiple` and returns its top result.
        """

        resolved = search_key_for(key) if isinstance(key, str) else key
        if isinstance(resolved, IdentifierKey):
            return self.run_lookup(resolved, progress=progress, abort=abort).record
        results = self.search_multiple(resolved, progress=progress, abort=abort)
        return results[0] if results else None

    def run_search(
        self,
        query: str | SearchKey,
        *,
        hints: SearchHints | None = None,
        progress: ProgressSink | None = None,
        abort: threading.Event | None = None,
    ) -> SearchOutcome:
        return asyncio.run(self._drain_search(query, hints, progress, abort))

    def search_multiple(
        self,
        query: str | SearchKey,
        *,
        hints: SearchHints | None = None,
        progress: ProgressSink | None = None,
        abort: threading.Event | None = None,
    ) -> list[CandidateRecord]:
        """Ranked candidates for ``query``, most likely match first."""

        return self.run_search(query, hints=hints, progress=progress, abort=abort).records

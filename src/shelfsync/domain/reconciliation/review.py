"""Duplicate review: walk a user through duplicate groups one decision at a time.

Each group starts ``pending`` and moves exactly once to ``merged``, ``skipped``
or ``not-duplicates``. Only merges touch the catalog store; the other two are
local bookkeeping. The session is single-writer: a second mutating event while
one is still running is rejected instead of queued.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import TYPE_CHECKING

from shelfsync.domain.errors import (
    CatalogStoreError,
    InvalidTransitionError,
    ReviewInProgressError,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shelfsync.domain.ports.catalog import CatalogStore, MergeAllResult
    from shelfsync.domain.records import DuplicateGroup

log = logging.getLogger(__name__)


class ReviewDecision(StrEnum):
    PENDING = "pending"
    MERGED = "merged"
    SKIPPED = "skipped"
    NOT_DUPLICATES = "not-duplicates"


class ReviewState(StrEnum):
    REVIEWING = "reviewing"
    COMPLETE = "complete"


@dataclass(slots=True, frozen=True)
class Merge:
    group_index: int
    keep_id: str
    delete_ids: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class NotDuplicates:
    group_index: int


@dataclass(slots=True, frozen=True)
class Skip:
    group_index: int


@dataclass(slots=True, frozen=True)
class GoTo:
    index: int


type ReviewEvent = Merge | NotDuplicates | Skip | GoTo


@dataclass(slots=True, frozen=True)
class ReviewStats:
    merged: int = 0
    skipped: int = 0
    not_duplicates: int = 0
    total_deleted: int = 0


def find_next_pending(decisions: Sequence[ReviewDecision], after_index: int) -> int:
    """Index of the next pending group after ``after_index``, wrapping around.

    Returns ``len(decisions)`` when nothing is pending.
    """

    count = len(decisions)
    for offset in range(1, count + 1):
        index = (after_index + offset) % count
        if decisions[index] is ReviewDecision.PENDING:
            return index
    return count


def build_keep_map(group: DuplicateGroup) -> dict[str, bool]:
    """Keep the oldest item, mark the rest for deletion."""

    return {item.item_id: index == 0 for index, item in enumerate(group.items)}


class DuplicateReviewSession:
    """One review pass over a snapshot of duplicate groups."""

    def __init__(self, groups: Sequence[DuplicateGroup], *, store: CatalogStore) -> None:
        self._groups: tuple[DuplicateGroup, ...] = tuple(groups)
        self._decisions: list[ReviewDecision] = [ReviewDecision.PENDING] * len(self._groups)
        self._store = store
        self._current_index = 0
        self._stats = ReviewStats()
        self._error: str | None = None
        self._lock = threading.Lock()
        self._keep_map: dict[str, bool] = {}
        self._reset_keep_map()

    @property
    def groups(self) -> tuple[DuplicateGroup, ...]:
        return self._groups

    @property
    def decisions(self) -> tuple[ReviewDecision, ...]:
        return tuple(self._decisions)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_group(self) -> DuplicateGroup | None:
        if self._current_index >= len(self._groups):
            return None
        return self._groups[self._current_index]

    @property
    def stats(self) -> ReviewStats:
        return self._stats

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def pending_count(self) -> int:
        return sum(1 for d in self._decisions if d is ReviewDecision.PENDING)

    @property
    def reviewed_count(self) -> int:
        return len(self._decisions) - self.pending_count

    @property
    def duplicate_item_count(self) -> int:
        """Items that a keep-oldest merge of every group would delete."""

        return sum(len(group.items) - 1 for group in self._groups)

    @property
    def is_complete(self) -> bool:
        return self.pending_count == 0

    @property
    def state(self) -> ReviewState:
        return ReviewState.COMPLETE if self.is_complete else ReviewState.REVIEWING

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    @property
    def keep_map(self) -> dict[str, bool]:
        return dict(self._keep_map)

    def decision(self, index: int) -> ReviewDecision:
        return self._decisions[index]

    def clear_error(self) -> None:
        self._error = None

    def toggle_keep(self, item_id: str) -> bool:
        """Flip ``item_id`` between keep and delete; returns the new keep flag.

        Un-keeping the only kept item does nothing.
        """

        if item_id not in self._keep_map:
            raise InvalidTransitionError(f"Item {item_id} is not in the open group")
        if self._keep_map[item_id] and sum(self._keep_map.values()) == 1:
            return True
        self._keep_map[item_id] = not self._keep_map[item_id]
        return self._keep_map[item_id]

    def merge_current(self) -> None:
        """Merge the open group using its keep map; the first kept item survives."""

        group = self.current_group
        if group is None:
            raise InvalidTransitionError("No open group to merge")
        kept = [item_id for item_id in group.item_ids if self._keep_map.get(item_id)]
        deleted = tuple(item_id for item_id in group.item_ids if not self._keep_map.get(item_id))
        self.dispatch(Merge(self._current_index, kept[0], deleted))

    def dispatch(self, event: ReviewEvent) -> None:
        if not self._lock.acquire(blocking=False):
            raise ReviewInProgressError("A review transition is already in progress")
        try:
            match event:
                case Merge():
                    self._merge(event)
                case NotDuplicates(group_index=index):
                    self._decide(index, ReviewDecision.NOT_DUPLICATES)
                case Skip(group_index=index):
                    self._decide(index, ReviewDecision.SKIPPED)
                case GoTo(index=index):
                    self._go_to(index)
                case _:
                    raise InvalidTransitionError(f"Unknown review event: {event!r}")
        finally:
            self._lock.release()

    def _require_pending(self, index: int) -> DuplicateGroup:
        if not 0 <= index < len(self._groups):
            raise InvalidTransitionError(f"Group index {index} out of range")
        decision = self._decisions[index]
        if decision is not ReviewDecision.PENDING:
            raise InvalidTransitionError(f"Group {index} was already decided: {decision}")
        return self._groups[index]

    def _merge(self, event: Merge) -> None:
        group = self._require_pending(event.group_index)
        if not event.delete_ids:
            raise InvalidTransitionError("A merge must delete at least one item")
        if event.keep_id in event.delete_ids:
            raise InvalidTransitionError("The kept item cannot also be deleted")
        members = set(group.item_ids)
        strangers = {event.keep_id, *event.delete_ids} - members
        if strangers:
            raise InvalidTransitionError(
                f"Items not in group {event.group_index}: {', '.join(sorted(strangers))}"
            )

        try:
            result = self._store.merge_duplicates(event.keep_id, list(event.delete_ids))
        except CatalogStoreError as exc:
            log.warning("Merge of group %s failed: %s", group.group_key, exc)
            self._error = f"Failed to merge: {exc}"
            return

        log.info(
            "Merged group %s: kept %s, deleted %d",
            group.group_key,
            event.keep_id,
            result.deleted_count,
        )
        self._error = None
        self._decisions[event.group_index] = ReviewDecision.MERGED
        self._stats = replace(
            self._stats,
            merged=self._stats.merged + 1,
            total_deleted=self._stats.total_deleted + result.deleted_count,
        )
        self._advance(event.group_index)

    def _decide(self, index: int, decision: ReviewDecision) -> None:
        self._require_pending(index)
        self._decisions[index] = decision
        if decision is ReviewDecision.SKIPPED:
            self._stats = replace(self._stats, skipped=self._stats.skipped + 1)
        else:
            self._stats = replace(self._stats, not_duplicates=self._stats.not_duplicates + 1)
        self._advance(index)

    def _go_to(self, index: int) -> None:
        if not 0 <= index < len(self._groups):
            raise InvalidTransitionError(f"Group index {index} out of range")
        self._current_index = index
        self._reset_keep_map()

    def _advance(self, after_index: int) -> None:
        self._current_index = find_next_pending(self._decisions, after_index)
        self._reset_keep_map()

    def _reset_keep_map(self) -> None:
        group = self.current_group
        self._keep_map = build_keep_map(group) if group is not None else {}


def merge_all_duplicates(store: CatalogStore) -> MergeAllResult:
    """Keep the oldest item of every group and delete the rest in one store call."""

    result = store.merge_all_duplicates()
    log.info(
        "Merged all duplicates: %d groups, %d items deleted",
        result.groups_merged,
        result.total_deleted,
    )
    return result

"""Port for the remote catalog store that owns canonical records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shelfsync.domain.reconciliation.patch import RecordPatch
    from shelfsync.domain.records import CanonicalRecord, DuplicateGroup


@dataclass(slots=True, frozen=True)
class MergeResult:
    deleted_count: int


@dataclass(slots=True, frozen=True)
class MergeAllResult:
    groups_merged: int
    total_deleted: int


@dataclass(slots=True, frozen=True)
class RecordQuery:
    """Filters understood by the store's item listing."""

    text: str | None = None
    tag: str | None = None
    subject: str | None = None
    status: str | None = None
    location: str | None = None
    take: int | None = None
    skip: int | None = None


@runtime_checkable
class CatalogStore(Protocol):
    """Request/response access to one household's catalog."""

    def create_record(self, patch: RecordPatch) -> str: ...

    def patch_record(self, item_id: str, patch: RecordPatch) -> None: ...

    def get_record(self, item_id: str) -> CanonicalRecord: ...

    def list_records(self, query: RecordQuery | None = None) -> list[CanonicalRecord]: ...

    def merge_duplicates(self, keep_id: str, delete_ids: Sequence[str]) -> MergeResult: ...

    def merge_all_duplicates(self) -> MergeAllResult: ...

    def get_duplicate_groups(self) -> list[DuplicateGroup]: ...


__all__ = ["CatalogStore", "MergeAllResult", "MergeResult", "RecordQuery"]

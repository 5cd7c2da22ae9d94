"""Reconciliation: diffing, patch construction, candidate merging and duplicate review."""

from __future__ import annotations

from .diff import FieldDiff, compute_diffs, format_diff_value, group_by_category, is_different
from .duplicates import duplicate_key, group_duplicates, normalize_text
from .merge import dedupe_candidates, merge_candidates, rank_candidates
from .patch import RecordPatch, build_patch
from .review import (
    DuplicateReviewSession,
    GoTo,
    Merge,
    NotDuplicates,
    ReviewDecision,
    ReviewEvent,
    ReviewState,
    ReviewStats,
    Skip,
    merge_all_duplicates,
)

__all__ = [
    "DuplicateReviewSession",
    "FieldDiff",
    "GoTo",
    "Merge",
    "NotDuplicates",
    "RecordPatch",
    "ReviewDecision",
    "ReviewEvent",
    "ReviewState",
    "ReviewStats",
    "Skip",
    "build_patch",
    "compute_diffs",
    "dedupe_candidates",
    "duplicate_key",
    "format_diff_value",
    "group_by_category",
    "group_duplicates",
    "is_different",
    "merge_all_duplicates",
    "merge_candidates",
    "normalize_text",
    "rank_candidates",
]

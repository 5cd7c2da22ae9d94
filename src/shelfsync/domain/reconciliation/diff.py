"""Field-level comparison of a catalog record against candidate data.

Everything here is pure: no I/O, no logging, safe to call from any thread.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from shelfsync.domain.fields import ENRICHABLE_FIELDS, FieldCategory, field_category, field_label
from shelfsync.domain.records import CandidateRecord, is_empty

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

__all__ = [
    "FieldDiff",
    "compute_diffs",
    "format_diff_value",
    "group_by_category",
    "is_different",
    "is_empty",
]

EMPTY_PLACEHOLDER: Final[str] = "—"
_MAX_DISPLAY_CHARS: Final[int] = 200


@dataclass(slots=True, frozen=True)
class FieldDiff:
    key: str
    label: str
    category: FieldCategory
    current_value: Any
    candidate_value: Any
    is_new_field: bool


def _list_token(value: object) -> str:
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def is_different(current: object, candidate: object) -> bool:
    """Whether ``candidate`` would change ``current``.

    An empty candidate never counts as a change, so existing data is never
    proposed for removal. Lists only differ when the candidate adds an element.
    """

    if is_empty(candidate):
        return False
    if is_empty(current):
        return True

    if isinstance(current, (list, tuple)) and isinstance(candidate, (list, tuple)):
        current_tokens = {_list_token(v) for v in current}
        return any(_list_token(v) not in current_tokens for v in candidate)

    if isinstance(current, str) and isinstance(candidate, str):
        return current.strip().lower() != candidate.strip().lower()

    return str(current) != str(candidate)


def compute_diffs(
    current: Mapping[str, Any],
    candidate: CandidateRecord | Mapping[str, Any],
    allow_list: Sequence[str] = ENRICHABLE_FIELDS,
) -> list[FieldDiff]:
    """Return one diff per allow-listed field the candidate would add or change."""

    candidate_map = (
        candidate.as_field_map() if isinstance(candidate, CandidateRecord) else candidate
    )
    diffs: list[FieldDiff] = []
    for key in allow_list:
        current_value = current.get(key)
        candidate_value = candidate_map.get(key)
        if is_empty(candidate_value) or not is_different(current_value, candidate_value):
            continue
        diffs.append(
            FieldDiff(
                key=key,
                label=field_label(key),
                category=field_category(key),
                current_value=current_value,
                candidate_value=candidate_value,
                is_new_field=is_empty(current_value),
            )
        )
    return diffs


def format_diff_value(value: object) -> str:
    if is_empty(value):
        return EMPTY_PLACEHOLDER
    if isinstance(value, (list, tuple)):
        return ", ".join(_display_element(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, default=str)
    if isinstance(value, str) and len(value) > _MAX_DISPLAY_CHARS:
        return value[:_MAX_DISPLAY_CHARS] + "..."
    return str(value)


def _display_element(value: object) -> str:
    if isinstance(value, dict):
        label = value.get("text") or value.get("name")
        return str(label) if label else json.dumps(value, default=str)
    return str(value)


def group_by_category(diffs: Iterable[FieldDiff]) -> dict[FieldCategory, list[FieldDiff]]:
    """Bucket diffs by display category, in category declaration order."""

    buckets: dict[FieldCategory, list[FieldDiff]] = {}
    for diff in diffs:
        buckets.setdefault(diff.category, []).append(diff)
    return {category: buckets[category] for category in FieldCategory if category in buckets}

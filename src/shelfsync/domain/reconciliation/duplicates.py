"""Group catalog items that look like copies of the same book."""

from __future__ import annotations

import re
import unicodedata
from datetime import UTC
from typing import TYPE_CHECKING

from shelfsync.domain.records import DuplicateGroup, DuplicateItem

from .patch import split_names

if TYPE_CHECKING:
    from collections.abc import Iterable

_PUNCTUATION = re.compile(r"[^\w\s]")


def normalize_text(value: str | None) -> str:
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    cleaned = _PUNCTUATION.sub("", stripped.casefold())
    return " ".join(cleaned.split())


def primary_author(author: str | None) -> str | None:
    names = split_names(author)
    return names[0] if names else None


def duplicate_key(title: str | None, author: str | None) -> str:
    return f"{normalize_text(title)}|{normalize_text(primary_author(author))}"


def _sort_key(item: DuplicateItem) -> tuple[bool, float, str]:
    created = item.created_at
    if created is not None and created.tzinfo is None:
        created = created.replace(tzinfo=UTC)
    timestamp = created.timestamp() if created is not None else 0.0
    return created is None, timestamp, item.item_id


def group_duplicates(records: Iterable[DuplicateItem]) -> list[DuplicateGroup]:
    """Bucket items by normalized title and primary author.

    Groups come out in order of first appearance; single-item buckets are dropped.
    Items without a usable title are never grouped.
    """

    buckets: dict[str, list[DuplicateItem]] = {}
    for item in records:
        if not normalize_text(item.title):
            continue
        buckets.setdefault(duplicate_key(item.title, item.author), []).append(item)

    groups: list[DuplicateGroup] = []
    for key, items in buckets.items():
        if len(items) < 2:  # noqa: PLR2004
            continue
        ordered = sorted(items, key=_sort_key)
        oldest = ordered[0]
        groups.append(
            DuplicateGroup(
                group_key=key,
                title=oldest.title,
                author=oldest.author,
                items=tuple(ordered),
            )
        )
    return groups

"""Aggregate candidates from several providers and rank free-text results."""

from __future__ import annotations

import logging
from dataclasses import replace
from difflib import SequenceMatcher
from typing import TYPE_CHECKING, Any

from shelfsync.domain.lookup.query import canonical_isbn
from shelfsync.domain.records import CANDIDATE_FIELDS, CandidateRecord, is_empty

from .duplicates import normalize_text, primary_author
from .patch import extract_year

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from shelfsync.domain.lookup.query import TextQuery

log = logging.getLogger(__name__)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def merge_candidates(
    base: CandidateRecord,
    incoming: CandidateRecord,
    source: str | None = None,
) -> CandidateRecord:
    """Fill the gaps in ``base`` from ``incoming`` without overwriting anything.

    Lists are unioned in order, numbers keep the larger value. ``source`` (or
    the incoming record's own sources when omitted) is credited only when the
    incoming record actually contributed a value.
    """

    updates: dict[str, Any] = {}
    for name in CANDIDATE_FIELDS:
        current = getattr(base, name)
        offered = getattr(incoming, name)
        if is_empty(offered):
            continue
        if is_empty(current):
            updates[name] = list(offered) if isinstance(offered, list) else offered
        elif isinstance(current, list) and isinstance(offered, list):
            combined = list(dict.fromkeys([*current, *offered]))
            if len(combined) > len(current):
                updates[name] = combined
        elif _is_number(current) and _is_number(offered) and offered > current:
            updates[name] = offered

    if not updates:
        return base

    credited = [source] if source else incoming.data_sources
    sources = list(dict.fromkeys([*base.data_sources, *credited]))
    log.debug(
        "Merged %s from %s",
        ", ".join(sorted(updates)),
        source or ", ".join(incoming.data_sources) or "unknown source",
    )
    return replace(base, **updates, data_sources=sources)


def dedupe_candidates(candidates: Iterable[CandidateRecord]) -> list[CandidateRecord]:
    """Collapse candidates that share an ISBN; ISBN-less ones stay separate."""

    merged: list[CandidateRecord] = []
    position_by_isbn: dict[str, int] = {}
    for candidate in candidates:
        isbn = canonical_isbn(candidate.primary_isbn)
        if isbn is None:
            merged.append(candidate)
            continue
        position = position_by_isbn.get(isbn)
        if position is None:
            position_by_isbn[isbn] = len(merged)
            merged.append(candidate)
            continue
        merged[position] = merge_candidates(merged[position], candidate)
    return merged


def _title_score(candidate: CandidateRecord, wanted: str) -> float:
    title = normalize_text(candidate.title)
    if not wanted or not title:
        return 0.0
    score = SequenceMatcher(None, title, wanted).ratio() * 10
    if title == wanted:
        score += 5
    elif wanted in title:
        score += 3
    return score


def _author_score(candidate: CandidateRecord, wanted: str | None) -> float:
    if not wanted or not candidate.author:
        return 0.0
    author = normalize_text(candidate.author)
    tokens = [token for token in normalize_text(primary_author(wanted)).split() if len(token) > 1]
    if tokens and all(token in author for token in tokens):
        return 4.0
    if any(token in author for token in tokens):
        return 2.0
    return 0.0


def _contains(haystack: object, needle: str | None) -> bool:
    if not needle or is_empty(haystack):
        return False
    wanted = normalize_text(needle)
    if isinstance(haystack, list):
        return any(wanted in normalize_text(str(item)) for item in haystack)
    return wanted in normalize_text(str(haystack))


def _hint_score(candidate: CandidateRecord, query: TextQuery) -> float:
    hints = query.hints
    score = 0.0
    if _contains(candidate.publisher, hints.publisher):
        score += 2
    wanted_year = extract_year(hints.year)
    if wanted_year is not None and extract_year(candidate.published_date) == wanted_year:
        score += 2
    language = candidate.language
    if hints.language and language and language.casefold()[:2] == hints.language.casefold()[:2]:
        score += 1
    if _contains(candidate.subjects, hints.subject) or _contains(
        candidate.categories, hints.subject
    ):
        score += 1
    if _contains(candidate.place_of_publication, hints.place):
        score += 1
    return score


def _completeness_score(candidate: CandidateRecord) -> float:
    score = len(candidate.as_field_map()) * 0.05
    if candidate.primary_isbn:
        score += 1
    if candidate.cover_image_url:
        score += 0.5
    return score


def candidate_score(candidate: CandidateRecord, query: TextQuery) -> float:
    return (
        _title_score(candidate, normalize_text(query.title))
        + _author_score(candidate, query.author)
        + _hint_score(candidate, query)
        + _completeness_score(candidate)
    )


def rank_candidates(
    candidates: Sequence[CandidateRecord],
    query: TextQuery,
) -> list[CandidateRecord]:
    """Most likely match first; equal scores keep their provider order."""

    return sorted(candidates, key=lambda candidate: -candidate_score(candidate, query))

"""Search keys: identifier detection and free-text query parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Final

_ISBN_SEPARATORS = re.compile(r"[-\s]")
_ISBN10 = re.compile(r"^\d{9}[\dX]$")
_ISBN13 = re.compile(r"^\d{13}$")
_BY_AUTHOR = re.compile(r"^(.+?)\s+by\s+(.+)$", re.IGNORECASE)

_PREFIX_KEYS: Final[dict[str, tuple[str, ...]]] = {
    "publisher": ("publisher", "pub"),
    "subject": ("subject", "subj", "category", "cat"),
    "place": ("place", "city"),
    "year": ("year", "yr"),
    "language": ("language", "lang"),
}


def _prefix_pattern(keys: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(keys)
    return re.compile(
        rf"\s*\b(?:{alternatives}):\s*\"([^\"]+)\"|\s*\b(?:{alternatives}):\s*(\S+)",
        re.IGNORECASE,
    )


_PREFIX_PATTERNS: Final[dict[str, re.Pattern[str]]] = {
    name: _prefix_pattern(keys) for name, keys in _PREFIX_KEYS.items()
}


def detect_isbn(text: str) -> str | None:
    """Return the cleaned ISBN-10/13 when ``text`` looks like one, else ``None``."""

    cleaned = _ISBN_SEPARATORS.sub("", text.strip()).upper()
    if _ISBN13.match(cleaned) or _ISBN10.match(cleaned):
        return cleaned
    return None


def isbn10_to_isbn13(isbn10: str) -> str | None:
    if not _ISBN10.match(isbn10):
        return None
    core = "978" + isbn10[:9]
    total = sum(int(digit) * (1 if i % 2 == 0 else 3) for i, digit in enumerate(core))
    return core + str((10 - total % 10) % 10)


def canonical_isbn(value: str | None) -> str | None:
    """ISBN-13 form of ``value`` for comparisons; ``None`` when it is not an ISBN."""

    if not value:
        return None
    isbn = detect_isbn(value)
    if isbn is None:
        return None
    if len(isbn) == 10:  # noqa: PLR2004
        return isbn10_to_isbn13(isbn)
    return isbn


@dataclass(slots=True, frozen=True)
class SearchHints:
    publisher: str | None = None
    place: str | None = None
    year: str | None = None
    language: str | None = None
    subject: str | None = None

    def merged_over(self, fallback: SearchHints | None) -> SearchHints:
        """Fill this instance's gaps from ``fallback``."""

        if fallback is None:
            return self
        return replace(
            self,
            publisher=self.publisher or fallback.publisher,
            place=self.place or fallback.place,
            year=self.year or fallback.year,
            language=self.language or fallback.language,
            subject=self.subject or fallback.subject,
        )

    def is_empty(self) -> bool:
        return not any((self.publisher, self.place, self.year, self.language, self.subject))


@dataclass(slots=True, frozen=True)
class IdentifierKey:
    value: str


@dataclass(slots=True, frozen=True)
class TextQuery:
    title: str | None
    author: str | None = None
    hints: SearchHints = SearchHints()

    @property
    def text(self) -> str:
        return " ".join(part for part in (self.title, self.author) if part)


type SearchKey = IdentifierKey | TextQuery


def parse_query(text: str, hints: SearchHints | None = None) -> TextQuery:
    """Split ``publisher:"Penguin" the name of the rose by eco`` into its parts.

    Prefixes found in the text win over the caller's ``hints``.
    """

    remaining = text.strip()
    parsed: dict[str, str] = {}
    for name, pattern in _PREFIX_PATTERNS.items():
        match = pattern.search(remaining)
        if match is None:
            continue
        parsed[name] = (match.group(1) or match.group(2)).strip()
        remaining = (remaining[: match.start()] + " " + remaining[match.end() :]).strip()

    merged_hints = SearchHints(**parsed).merged_over(hints)
    remaining = " ".join(remaining.split())

    by_match = _BY_AUTHOR.match(remaining)
    if by_match:
        return TextQuery(
            title=by_match.group(1).strip(),
            author=by_match.group(2).strip(),
            hints=merged_hints,
        )
    return TextQuery(title=remaining or None, hints=merged_hints)


def search_key_for(text: str, hints: SearchHints | None = None) -> SearchKey:
    isbn = detect_isbn(text)
    if isbn is not None:
        return IdentifierKey(isbn)
    return parse_query(text, hints)

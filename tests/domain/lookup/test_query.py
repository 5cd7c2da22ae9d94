from __future__ import annotations

import pytest

from shelfsync.domain.lookup.query import (
    IdentifierKey,
    SearchHints,
    TextQuery,
    canonical_isbn,
    detect_isbn,
    isbn10_to_isbn13,
    parse_query,
    search_key_for,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("978-0-14-312774-1", "9780143127741"),
        (" 0 14 312774 8 ", "0143127748"),
        ("080442957x", "080442957X"),
        ("12345", None),
        ("the name of the rose", None),
    ],
)
def test_detect_isbn(text: str, expected: str | None) -> None:
    assert detect_isbn(text) == expected


def test_isbn10_converts_to_isbn13() -> None:
    assert isbn10_to_isbn13("0140328726") == "9780140328721"
    assert canonical_isbn("0-14-032872-6") == "9780140328721"
    assert canonical_isbn("not an isbn") is None


def test_parse_query_splits_title_and_author() -> None:
    query = parse_query("The Name of the Rose by Umberto Eco")

    assert query == TextQuery(title="The Name of the Rose", author="Umberto Eco")


def test_parse_query_extracts_prefixes() -> None:
    query = parse_query('publisher:"Penguin Books" lang:en the hobbit year:1937')

    assert query.title == "the hobbit"
    assert query.author is None
    assert query.hints == SearchHints(publisher="Penguin Books", year="1937", language="en")


def test_parsed_prefixes_win_over_caller_hints() -> None:
    query = parse_query(
        "dune pub:Ace",
        SearchHints(publisher="Chilton", subject="Science fiction"),
    )

    assert query.hints.publisher == "Ace"
    assert query.hints.subject == "Science fiction"


def test_search_key_for_chooses_identifier_or_text() -> None:
    assert search_key_for("978-0143127741") == IdentifierKey("9780143127741")
    assert isinstance(search_key_for("sapiens"), TextQuery)


def test_text_property_joins_title_and_author() -> None:
    assert TextQuery(title="Dune", author="Frank Herbert").text == "Dune Frank Herbert"
    assert TextQuery(title=None).text == ""

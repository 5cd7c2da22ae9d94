"""Open Library adapter."""

from __future__ import annotations

from .client import OpenLibraryAPIError, OpenLibraryClient
from .provider import OpenLibraryProvider
from .schema import BooksApiRecord, EditionsResponse, OpenLibrarySearchResult, SearchResponse
from .translator import translate_book, translate_edition, translate_search, translate_search_doc

__all__ = [
    "BooksApiRecord",
    "EditionsResponse",
    "OpenLibraryAPIError",
    "OpenLibraryClient",
    "OpenLibraryProvider",
    "OpenLibrarySearchResult",
    "SearchResponse",
    "translate_book",
    "translate_edition",
    "translate_search",
    "translate_search_doc",
]

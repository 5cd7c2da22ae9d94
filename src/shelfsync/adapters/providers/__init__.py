"""Bibliographic metadata providers."""

from __future__ import annotations

from .dnb import DnbProvider
from .google_books import GoogleBooksProvider
from .isbndb import ISBNdbProvider
from .library_of_congress import LibraryOfCongressProvider
from .open_library import OpenLibraryProvider
from .registry import build_default_providers
from .wikidata import WikidataProvider

__all__ = [
    "DnbProvider",
    "GoogleBooksProvider",
    "ISBNdbProvider",
    "LibraryOfCongressProvider",
    "OpenLibraryProvider",
    "WikidataProvider",
    "build_default_providers",
]

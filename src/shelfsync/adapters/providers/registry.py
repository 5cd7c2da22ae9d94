"""Default provider chain in priority order."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .dnb import DnbProvider
from .google_books import GoogleBooksProvider
from .isbndb import ISBNdbProvider
from .library_of_congress import LibraryOfCongressProvider
from .open_library import OpenLibraryProvider
from .wikidata import WikidataProvider

if TYPE_CHECKING:
    from collections.abc import Callable

    from shelfsync.adapters.http_resilience import ResilientClient
    from shelfsync.config.http_resilience import ResilienceConfig
    from shelfsync.config.providers import ProvidersConfig
    from shelfsync.domain.ports.providers import MetadataProvider


def build_default_providers(
    config: ProvidersConfig,
    *,
    client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
) -> list[MetadataProvider[Any]]:
    """Google Books, Open Library, ISBNdb, Library of Congress, DNB, Wikidata.

    ISBNdb answers nothing when no API key is configured.
    """

    return [
        GoogleBooksProvider(
            resilience=config.google_books,
            api_key=config.google_books_api_key,
            client_factory=client_factory,
        ),
        OpenLibraryProvider(resilience=config.open_library, client_factory=client_factory),
        ISBNdbProvider(
            resilience=config.isbndb,
            api_key=config.isbndb_api_key,
            client_factory=client_factory,
        ),
        LibraryOfCongressProvider(
            resilience=config.library_of_congress, client_factory=client_factory
        ),
        DnbProvider(resilience=config.dnb, client_factory=client_factory),
        WikidataProvider(resilience=config.wikidata, client_factory=client_factory),
    ]

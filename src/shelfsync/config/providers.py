"""Bibliographic provider configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from shelfsync import __version__

from .env import optional_env_var
from .errors import ConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

GOOGLE_BOOKS_BASE_URL: Final[str] = "https://www.googleapis.com/books/v1/"
OPEN_LIBRARY_BASE_URL: Final[str] = "https://openlibrary.org/"
ISBNDB_BASE_URL: Final[str] = "https://api2.isbndb.com/"
LOC_BASE_URL: Final[str] = "https://www.loc.gov/"
DNB_SRU_URL: Final[str] = "https://services.dnb.de/sru/dnb"
WIKIDATA_SPARQL_URL: Final[str] = "https://query.wikidata.org/sparql"

_CACHE_BACKENDS: Final[frozenset[str]] = frozenset({"sqlite", "memory", "off"})


@dataclass(frozen=True, slots=True)
class ProvidersConfig:
    google_books: ResilienceConfig
    open_library: ResilienceConfig
    isbndb: ResilienceConfig
    library_of_congress: ResilienceConfig
    dnb: ResilienceConfig
    wikidata: ResilienceConfig
    google_books_api_key: str | None = None
    isbndb_api_key: str | None = None


def user_agent(contact: str | None = None) -> str:
    if contact:
        return f"shelfsync/{__version__} ({contact})"
    return f"shelfsync/{__version__}"


def _cache_config() -> CacheConfig | None:
    backend = (optional_env_var("SHELFSYNC_HTTP_CACHE") or "sqlite").lower()
    if backend not in _CACHE_BACKENDS:
        choices = ", ".join(sorted(_CACHE_BACKENDS))
        raise ConfigurationError(f"SHELFSYNC_HTTP_CACHE must be one of {choices}, got {backend!r}")
    if backend == "off":
        return None
    return CacheConfig(backend="sqlite" if backend == "sqlite" else "memory")


def get_providers_config() -> ProvidersConfig:
    headers = {"User-Agent": user_agent(optional_env_var("SHELFSYNC_CONTACT"))}
    cache = _cache_config()

    def resilience(name: str, base_url: str, max_calls: int, per_seconds: float) -> ResilienceConfig:
        return ResilienceConfig(
            name=name,
            base_url=base_url,
            ratelimit=RateLimit(max_calls=max_calls, per_seconds=per_seconds),
            retry=RetryPolicy(),
            cache=cache,
            default_headers=headers,
        )

    return ProvidersConfig(
        google_books=resilience("google_books", GOOGLE_BOOKS_BASE_URL, 2, 1.0),
        open_library=resilience("open_library", OPEN_LIBRARY_BASE_URL, 3, 1.0),
        isbndb=resilience("isbndb", ISBNDB_BASE_URL, 1, 1.0),
        library_of_congress=resilience("library_of_congress", LOC_BASE_URL, 1, 1.0),
        dnb=resilience("dnb", DNB_SRU_URL, 1, 1.0),
        wikidata=resilience("wikidata", WIKIDATA_SPARQL_URL, 1, 1.0),
        google_books_api_key=optional_env_var("GOOGLE_BOOKS_API_KEY"),
        isbndb_api_key=optional_env_var("ISBNDB_API_KEY"),
    )

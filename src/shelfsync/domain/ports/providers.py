"""Port for bibliographic metadata providers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from shelfsync.domain.lookup.query import SearchHints, SearchKey
    from shelfsync.domain.records import CandidateRecord


@runtime_checkable
class MetadataProvider[RawT](Protocol):
    """One external source.

    ``query`` performs the transport and returns the provider's own raw shape
    (``None`` when it has nothing for the key). ``normalize`` turns that shape
    into candidates; raw payloads never leave the adapter otherwise.
    """

    @property
    def name(self) -> str: ...

    @property
    def supports_identifier(self) -> bool: ...

    @property
    def supports_text(self) -> bool: ...

    async def query(self, key: SearchKey, hints: SearchHints | None = None) -> RawT | None: ...

    def normalize(self, raw: RawT) -> list[CandidateRecord]: ...


__all__ = ["MetadataProvider"]

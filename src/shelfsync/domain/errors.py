"""Exception taxonomy shared by the reconciliation core."""

from __future__ import annotations


class ShelfsyncError(Exception):
    """Base class for domain errors."""


class ProviderUnavailable(ShelfsyncError):
    """A metadata provider could not be reached or answered with garbage."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class CatalogStoreError(ShelfsyncError):
    """The remote catalog store failed a read or write."""


class MergeConflict(CatalogStoreError):
    """The store rejected a duplicate merge because the group changed remotely."""


class PatchRejected(CatalogStoreError):
    """The store refused a record patch."""

    def __init__(self, item_id: str, reason: str) -> None:
        super().__init__(f"Patch for {item_id} rejected: {reason}")
        self.item_id = item_id
        self.reason = reason


class RecordNotFound(CatalogStoreError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Record {item_id} not found")
        self.item_id = item_id


class InvalidTransitionError(ShelfsyncError):
    """A review event is not allowed in the session's current state."""


class ReviewInProgressError(ShelfsyncError):
    """Another transition is still running on the same review session."""

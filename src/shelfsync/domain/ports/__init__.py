"""Domain port definitions for adapters."""

from __future__ import annotations

from .catalog import CatalogStore, MergeAllResult, MergeResult, RecordQuery
from .progress import ProgressSink
from .providers import MetadataProvider

__all__ = [
    "CatalogStore",
    "MergeAllResult",
    "MergeResult",
    "MetadataProvider",
    "ProgressSink",
    "RecordQuery",
]

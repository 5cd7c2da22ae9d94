"""Port for progress reporting to a front end."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ProgressSink(Protocol):
    """Fire-and-forget progress callback: ``(current, total, label)``."""

    def __call__(self, current: int, total: int, label: str) -> None: ...


__all__ = ["ProgressSink"]

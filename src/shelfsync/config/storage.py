"""Where shelfsync keeps files on disk."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "shelfsync"
HTTP_CACHE_FILENAME: Final[str] = "http_cache.db"


def _platform_data_home() -> Path:
    if os.name == "nt":
        local = os.getenv("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = os.getenv("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local state. The catalog lives remotely; only the provider HTTP cache is kept here."""

    data_dir: Path

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def http_cache_path(self, *, create: bool = True) -> Path:
        directory = self.resolve_data_dir()
        if create:
            directory.mkdir(parents=True, exist_ok=True)
        return directory / HTTP_CACHE_FILENAME


def get_storage_config() -> StorageConfig:
    override = os.getenv("SHELFSYNC_DATA_DIR")
    if override:
        return StorageConfig(data_dir=Path(override))
    return StorageConfig(data_dir=(_platform_data_home() / APP_DIR_NAME).resolve())


def get_http_cache_path() -> Path:
    return get_storage_config().http_cache_path()

from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest

_ENV_VARS = (
    "CATALOG_API_URL",
    "CATALOG_HOUSEHOLD_ID",
    "CATALOG_API_TOKEN",
    "GOOGLE_BOOKS_API_KEY",
    "ISBNDB_API_KEY",
    "SHELFSYNC_CONTACT",
    "SHELFSYNC_HTTP_CACHE",
    "SHELFSYNC_PROVIDER_TIMEOUT",
    "SHELFSYNC_INTER_CALL_DELAY",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SHELFSYNC_DATA_DIR", str(tmp_path / "data"))


@pytest.fixture
def catalog_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOG_API_URL", "https://catalog.example.test")
    monkeypatch.setenv("CATALOG_HOUSEHOLD_ID", "house-1")

from __future__ import annotations

import json
from datetime import UTC, date, datetime

import httpx
import pytest

from shelfsync.adapters.catalog import HttpCatalogStore
from shelfsync.adapters.catalog.translator import parse_identifier_list
from shelfsync.config.catalog import CatalogConfig
from shelfsync.config.http_resilience import ResilienceConfig
from shelfsync.domain.errors import (
    CatalogStoreError,
    MergeConflict,
    PatchRejected,
    RecordNotFound,
)
from shelfsync.domain.ports.catalog import CatalogStore, RecordQuery
from shelfsync.domain.reconciliation.patch import RecordPatch
from shelfsync.domain.records import (
    ContributorRole,
    Identifier,
    IdentifierType,
    Subject,
    SubjectScheme,
)
from tests.helpers.http import RecordingHandler, load_json, make_client_factory

BASE_URL = "https://catalog.example.test/"


def _store(handler: RecordingHandler, *, token: str | None = "secret-token") -> HttpCatalogStore:
    config = CatalogConfig(
        household_id="house-1",
        resilience=ResilienceConfig(name="catalog", base_url=BASE_URL, cache=None),
        api_token=token,
    )
    return HttpCatalogStore(config=config, client_factory=make_client_factory(handler))


def test_store_satisfies_port() -> None:
    assert isinstance(_store(RecordingHandler()), CatalogStore)


def test_get_record_translates_item(caplog: pytest.LogCaptureFixture) -> None:
    handler = RecordingHandler(httpx.Response(200, json=load_json("catalog", "item.json")))

    record = _store(handler).get_record("item-1")

    assert handler.last.method == "GET"
    assert handler.last.url.path == "/api/items/item-1"
    assert handler.last.headers["Authorization"] == "Bearer secret-token"

    assert record.item_id == "item-1"
    assert record.work.title == "Sapiens"
    assert record.work.language == "en"
    assert record.work.metadata == {"dewey_decimal": "909"}
    assert record.edition.publisher == "Harper"
    assert record.edition.published_year == 2015
    assert record.edition.metadata == {}
    assert "Ignoring malformed metadataJson" in caplog.text

    assert record.identifiers == [
        Identifier(IdentifierType.ISBN13, "9780062316097", is_primary=True),
        Identifier(IdentifierType.ISBN10, "0062316095"),
    ]
    assert [(c.role, c.display_name) for c in record.contributors] == [
        (ContributorRole.AUTHOR, "Yuval Noah Harari")
    ]
    assert record.subjects == [
        Subject(SubjectScheme.LCSH, "Civilization"),
        Subject(SubjectScheme.CUSTOM, "Favorites"),
    ]
    assert record.item.acquired_on == date(2021, 3, 4)
    assert record.item.created_at == datetime(2021, 3, 4, 10, tzinfo=UTC)
    assert record.item.metadata["enrichment_sources"] == ["Google Books"]

    fields = record.as_field_map()
    assert fields["isbn13"] == "9780062316097"
    assert fields["author"] == "Yuval Noah Harari"
    assert fields["dewey_decimal"] == "909"
    assert fields["categories"] == ["Favorites"]


def test_missing_token_sends_no_authorization() -> None:
    handler = RecordingHandler(httpx.Response(200, json=load_json("catalog", "item.json")))

    _store(handler, token=None).get_record("item-1")

    assert "Authorization" not in handler.last.headers


def test_get_record_not_found() -> None:
    handler = RecordingHandler(httpx.Response(404, text="missing"))

    with pytest.raises(RecordNotFound) as excinfo:
        _store(handler).get_record("item-404")

    assert excinfo.value.item_id == "item-404"


def test_list_records_sends_filters() -> None:
    handler = RecordingHandler(httpx.Response(200, json=[load_json("catalog", "item.json")]))

    records = _store(handler).list_records(RecordQuery(text="sapiens", status="Available", take=20))

    assert handler.last.url.path == "/api/households/house-1/items"
    assert dict(handler.last.url.params) == {"q": "sapiens", "status": "Available", "take": "20"}
    assert [r.item_id for r in records] == ["item-1"]


def test_list_records_rejects_non_list() -> None:
    handler = RecordingHandler(httpx.Response(200, json={"items": []}))

    with pytest.raises(CatalogStoreError, match="Malformed item listing"):
        _store(handler).list_records()


def test_create_record_posts_payload() -> None:
    handler = RecordingHandler(httpx.Response(201, json={"id": "item-new"}))
    patch = RecordPatch(
        item_metadata={"enriched_at": "2024-05-01T00:00:00+00:00"},
        work={"title": "Sapiens", "original_title": "Kitzur toldot ha-enoshut"},
    )

    item_id = _store(handler).create_record(patch)

    assert item_id == "item-new"
    assert handler.last.method == "POST"
    assert handler.last.url.path == "/api/households/house-1/library/books"
    body = json.loads(handler.last.content)
    assert body["work"]["originalTitle"] == "Kitzur toldot ha-enoshut"
    assert json.loads(body["itemMetadataJson"]) == {"enrichedAt": "2024-05-01T00:00:00+00:00"}


def test_patch_record_accepts_empty_body() -> None:
    handler = RecordingHandler(httpx.Response(204))

    _store(handler).patch_record("item-1", RecordPatch(item_metadata={}, edition={"page_count": 443}))

    assert handler.last.method == "PATCH"
    assert handler.last.url.path == "/api/items/item-1"
    assert json.loads(handler.last.content)["edition"]["pageCount"] == 443


def test_patch_record_rejected() -> None:
    handler = RecordingHandler(httpx.Response(422, text="pageCount must be positive"))

    with pytest.raises(PatchRejected, match="pageCount must be positive") as excinfo:
        _store(handler).patch_record("item-1", RecordPatch(item_metadata={}))

    assert excinfo.value.item_id == "item-1"


def test_server_error_is_generic_store_error() -> None:
    handler = RecordingHandler(httpx.Response(500, text="boom"))

    with pytest.raises(CatalogStoreError) as excinfo:
        _store(handler).patch_record("item-1", RecordPatch(item_metadata={}))

    assert not isinstance(excinfo.value, PatchRejected)
    assert "HTTP 500" in str(excinfo.value)


def test_transport_failure_is_store_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    config = CatalogConfig(
        household_id="house-1",
        resilience=ResilienceConfig(name="catalog", base_url=BASE_URL, cache=None),
    )
    store = HttpCatalogStore(config=config, client_factory=make_client_factory(refuse))

    with pytest.raises(CatalogStoreError, match="connection refused"):
        store.get_record("item-1")


def test_invalid_json_is_store_error() -> None:
    handler = RecordingHandler(httpx.Response(200, text="<html>"))

    with pytest.raises(CatalogStoreError, match="invalid JSON"):
        _store(handler).get_record("item-1")


def test_merge_duplicates_body_and_result() -> None:
    handler = RecordingHandler(httpx.Response(200, json={"deletedCount": 2}))

    result = _store(handler).merge_duplicates("item-1", ["item-2", "item-3"])

    assert result.deleted_count == 2
    assert handler.last.url.path == "/api/households/house-1/duplicates/merge"
    assert json.loads(handler.last.content) == {
        "keepItemId": "item-1",
        "deleteItemIds": ["item-2", "item-3"],
    }


def test_merge_conflict() -> None:
    handler = RecordingHandler(httpx.Response(409, text="group changed"))

    with pytest.raises(MergeConflict, match="group changed"):
        _store(handler).merge_duplicates("item-1", ["item-2"])


def test_merge_all_duplicates() -> None:
    handler = RecordingHandler(httpx.Response(200, json={"groupsMerged": 3, "totalDeleted": 4}))

    result = _store(handler).merge_all_duplicates()

    assert handler.last.url.path == "/api/households/house-1/duplicates/merge-all"
    assert (result.groups_merged, result.total_deleted) == (3, 4)


def test_duplicate_groups_are_ordered_and_filtered(caplog: pytest.LogCaptureFixture) -> None:
    handler = RecordingHandler(httpx.Response(200, json=load_json("catalog", "duplicates.json")))

    groups = _store(handler).get_duplicate_groups()

    assert handler.last.url.path == "/api/households/house-1/duplicates"
    assert "lonely|nobody" in caplog.text
    [group] = groups
    assert group.group_key == "sapiens|harari"
    assert group.item_ids == ("item-1", "item-3", "item-2")
    oldest = group.items[0]
    assert oldest.isbn == "9780062316097"
    assert oldest.published_year == 2015
    assert oldest.cover_url == f"{BASE_URL}api/editions/edition-1/cover"
    assert group.items[1].isbn == "0062316095"
    assert group.items[2].cover_url is None


def test_parse_identifier_list() -> None:
    assert parse_identifier_list("2:9780062316097||isbn10:0062316095||7:x||bogus") == {
        IdentifierType.ISBN13: "9780062316097",
        IdentifierType.ISBN10: "0062316095",
    }
    assert parse_identifier_list(None) == {}

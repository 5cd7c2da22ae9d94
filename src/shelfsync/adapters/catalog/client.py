"""HTTP catalog store backed by the household catalog REST API."""

from __future__ import annotations

import asyncio
import json
from enum import StrEnum
from http import HTTPStatus
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from shelfsync.adapters.http_resilience import ResilientClient
from shelfsync.domain.errors import (
    CatalogStoreError,
    MergeConflict,
    PatchRejected,
    RecordNotFound,
)
from shelfsync.domain.ports.catalog import MergeAllResult, MergeResult

from .schema import (
    CreatedItemPayload,
    DuplicateGroupPayload,
    ItemPayload,
    MergeAllResultPayload,
    MergeResultPayload,
)
from .translator import translate_duplicate_groups, translate_item

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from shelfsync.adapters.http_resilience import RequestOptions
    from shelfsync.config.catalog import CatalogConfig
    from shelfsync.config.http_resilience import ResilienceConfig
    from shelfsync.domain.ports.catalog import RecordQuery
    from shelfsync.domain.reconciliation.patch import RecordPatch
    from shelfsync.domain.records import CanonicalRecord, DuplicateGroup

log = getLogger(__name__)

_ITEM_LIST = TypeAdapter(list[ItemPayload])
_GROUP_LIST = TypeAdapter(list[DuplicateGroupPayload])


class _Operation(StrEnum):
    READ = "read"
    WRITE = "write"
    MERGE = "merge"


class HttpCatalogStore:
    """``CatalogStore`` over HTTP.

    Each call runs its own event loop, so the store must not be used from
    inside a running loop.
    """

    def __init__(
        self,
        *,
        config: CatalogConfig,
        token_provider: Callable[[], str | None] | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._token_provider = token_provider or (lambda: config.api_token)
        self._client_factory = client_factory or ResilientClient

    @property
    def household_id(self) -> str:
        return self._config.household_id

    @property
    def _household_path(self) -> str:
        return f"api/households/{self._config.household_id}"

    def create_record(self, patch: RecordPatch) -> str:
        payload = asyncio.run(
            self._call(
                "POST",
                f"{self._household_path}/library/books",
                operation=_Operation.WRITE,
                subject="new record",
                json=patch.to_payload(),
            )
        )
        created = self._validate(CreatedItemPayload, payload, "created item")
        log.info("Created catalog record %s", created.item_id)
        return created.item_id

    def patch_record(self, item_id: str, patch: RecordPatch) -> None:
        asyncio.run(
            self._call(
                "PATCH",
                f"api/items/{item_id}",
                operation=_Operation.WRITE,
                subject=item_id,
                json=patch.to_payload(),
            )
        )
        log.debug("Patched %s (%s)", item_id, ", ".join(sorted(patch.touched_fields)))

    def get_record(self, item_id: str) -> CanonicalRecord:
        payload = asyncio.run(
            self._call("GET", f"api/items/{item_id}", operation=_Operation.READ, subject=item_id)
        )
        return translate_item(self._validate(ItemPayload, payload, f"item {item_id}"))

    def list_records(self, query: RecordQuery | None = None) -> list[CanonicalRecord]:
        params = _query_params(query)
        payload = asyncio.run(
            self._call(
                "GET",
                f"{self._household_path}/items",
                operation=_Operation.READ,
                subject=self.household_id,
                params=params,
            )
        )
        try:
            items = _ITEM_LIST.validate_python(payload)
        except ValidationError as exc:
            raise CatalogStoreError(f"Malformed item listing: {exc}") from exc
        return [translate_item(item) for item in items]

    def merge_duplicates(self, keep_id: str, delete_ids: Sequence[str]) -> MergeResult:
        payload = asyncio.run(
            self._call(
                "POST",
                f"{self._household_path}/duplicates/merge",
                operation=_Operation.MERGE,
                subject=keep_id,
                json={"keepItemId": keep_id, "deleteItemIds": list(delete_ids)},
            )
        )
        result = self._validate(MergeResultPayload, payload, "merge result")
        log.info("Merged %d duplicate(s) into %s", result.deleted_count, keep_id)
        return MergeResult(deleted_count=result.deleted_count)

    def merge_all_duplicates(self) -> MergeAllResult:
        payload = asyncio.run(
            self._call(
                "POST",
                f"{self._household_path}/duplicates/merge-all",
                operation=_Operation.MERGE,
                subject=self.household_id,
            )
        )
        result = self._validate(MergeAllResultPayload, payload, "merge-all result")
        log.info(
            "Merged %d duplicate group(s), %d record(s) deleted",
            result.groups_merged,
            result.total_deleted,
        )
        return MergeAllResult(groups_merged=result.groups_merged, total_deleted=result.total_deleted)

    def get_duplicate_groups(self) -> list[DuplicateGroup]:
        payload = asyncio.run(
            self._call(
                "GET",
                f"{self._household_path}/duplicates",
                operation=_Operation.READ,
                subject=self.household_id,
            )
        )
        try:
            groups = _GROUP_LIST.validate_python(payload)
        except ValidationError as exc:
            raise CatalogStoreError(f"Malformed duplicate listing: {exc}") from exc
        base_url = self._config.resilience.base_url or ""
        return translate_duplicate_groups(groups, base_url=base_url)

    async def _call(
        self,
        method: str,
        path: str,
        *,
        operation: _Operation,
        subject: str,
        **kwargs: Any,
    ) -> Any:
        headers = {"Accept": "application/json"}
        token = self._token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        options: RequestOptions = {"headers": headers, **kwargs}

        try:
            async with self._client_factory(self._config.resilience) as client:
                response = await client.request(method, path, **options)
        except httpx.HTTPError as exc:
            raise CatalogStoreError(f"{method} {path} failed: {exc}") from exc

        _raise_for_status(response, operation=operation, subject=subject)
        if not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise CatalogStoreError(f"{method} {path} returned invalid JSON: {exc}") from exc

    @staticmethod
    def _validate[ModelT: BaseModel](model: type[ModelT], payload: Any, label: str) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise CatalogStoreError(f"Malformed {label}: {exc}") from exc


def _query_params(query: RecordQuery | None) -> dict[str, str]:
    if query is None:
        return {}
    values = {
        "q": query.text,
        "tag": query.tag,
        "subject": query.subject,
        "status": query.status,
        "location": query.location,
        "take": query.take,
        "skip": query.skip,
    }
    return {key: str(value) for key, value in values.items() if value is not None}


def _raise_for_status(response: httpx.Response, *, operation: _Operation, subject: str) -> None:
    if response.is_success:
        return
    status = response.status_code
    detail = response.text.strip()[:200] or response.reason_phrase
    if status == HTTPStatus.NOT_FOUND:
        raise RecordNotFound(subject)
    if operation is _Operation.MERGE and status in (
        HTTPStatus.CONFLICT,
        HTTPStatus.PRECONDITION_FAILED,
    ):
        raise MergeConflict(f"Merge for {subject} conflicted: {detail}")
    if operation is _Operation.WRITE and status in (
        HTTPStatus.BAD_REQUEST,
        HTTPStatus.UNPROCESSABLE_ENTITY,
    ):
        raise PatchRejected(subject, detail)
    raise CatalogStoreError(
        f"Catalog {operation} for {subject} failed: HTTP {status} {detail}".rstrip()
    )

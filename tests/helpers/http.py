"""Resilient clients wired to in-process handlers instead of the network."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx

from shelfsync.adapters.http_resilience import ResilienceConfig, ResilientClient, RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Callable

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def load_json(*parts: str) -> Any:
    return json.loads(DATA_DIR.joinpath(*parts).read_text(encoding="utf-8"))


def load_text(*parts: str) -> str:
    return DATA_DIR.joinpath(*parts).read_text(encoding="utf-8")


def make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    """No cache, no retries, no rate limit: every request reaches ``handler`` once."""

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        config = replace(resilience, cache=None, retry=RetryPolicy(total=0), ratelimit=None)
        return ResilientClient(config, transport=httpx.MockTransport(handler))

    return factory


class RecordingHandler:
    """Answers every request with the queued responses, keeping the requests it saw."""

    def __init__(self, *responses: httpx.Response) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            return httpx.Response(500, text="no response queued")
        return self._responses.pop(0)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

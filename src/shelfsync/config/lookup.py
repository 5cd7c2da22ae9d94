"""Lookup cascade configuration values."""

from __future__ import annotations

from shelfsync.domain.lookup.orchestrator import LookupPolicy

from .env import float_env_var

DEFAULT_PROVIDER_TIMEOUT_SECONDS = 8.0
DEFAULT_INTER_CALL_DELAY_SECONDS = 0.25


def get_lookup_policy() -> LookupPolicy:
    return LookupPolicy(
        provider_timeout_seconds=float_env_var(
            "SHELFSYNC_PROVIDER_TIMEOUT", DEFAULT_PROVIDER_TIMEOUT_SECONDS
        ),
        inter_call_delay_seconds=float_env_var(
            "SHELFSYNC_INTER_CALL_DELAY", DEFAULT_INTER_CALL_DELAY_SECONDS
        ),
    )

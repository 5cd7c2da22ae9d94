"""Remote catalog store configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import CacheConfig, ResilienceConfig, RetryPolicy


@dataclass(frozen=True, slots=True)
class CatalogConfig:
    household_id: str
    resilience: ResilienceConfig
    api_token: str | None = None


def get_catalog_config() -> CatalogConfig:
    values = require_env_vars(("CATALOG_API_URL", "CATALOG_HOUSEHOLD_ID"))
    base_url = values["CATALOG_API_URL"].rstrip("/") + "/"
    # RetryPolicy only retries idempotent methods, so writes and merges go out once
    resilience = ResilienceConfig(
        name="catalog",
        base_url=base_url,
        timeout_seconds=30.0,
        retry=RetryPolicy(total=2),
        cache=CacheConfig(enabled=False),
    )
    return CatalogConfig(
        household_id=values["CATALOG_HOUSEHOLD_ID"],
        resilience=resilience,
        api_token=optional_env_var("CATALOG_API_TOKEN"),
    )

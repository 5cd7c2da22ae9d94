"""Application configuration helpers."""

from __future__ import annotations

from .catalog import CatalogConfig, get_catalog_config
from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .lookup import get_lookup_policy
from .providers import ProvidersConfig, get_providers_config
from .storage import StorageConfig, get_storage_config

__all__ = [
    "CacheConfig",
    "CatalogConfig",
    "ConfigurationError",
    "MissingConfigurationError",
    "ProvidersConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_catalog_config",
    "get_lookup_policy",
    "get_providers_config",
    "get_storage_config",
    "require_env_vars",
]

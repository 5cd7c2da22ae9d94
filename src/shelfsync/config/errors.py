"""Configuration errors."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A configuration value is present but unusable."""


class MissingConfigurationError(ConfigurationError):
    """A required environment variable is unset or blank."""

"""Catalog store adapter for the household catalog REST API."""

from .client import HttpCatalogStore
from .translator import translate_duplicate_groups, translate_item

__all__ = ["HttpCatalogStore", "translate_duplicate_groups", "translate_item"]

"""Google Books adapter."""

from __future__ import annotations

from .client import GoogleBooksAPIError, GoogleBooksClient
from .provider import GoogleBooksProvider
from .schema import VolumesResponse
from .translator import translate_volume, translate_volumes

__all__ = [
    "GoogleBooksAPIError",
    "GoogleBooksClient",
    "GoogleBooksProvider",
    "VolumesResponse",
    "translate_volume",
    "translate_volumes",
]

"""
Error types shared by the store layer and the HTTP boundary.
"""

from __future__ import annotations


class GeoGuideError(Exception):
    """Base class for errors raised by this package."""


class StoreError(GeoGuideError):
    """A record or blob store operation failed. Surfaced as HTTP 500."""


class StoreUnavailable(StoreError):
    """Underlying disk or managed-store I/O failed."""


class UploadFailure(StoreError):
    """Writing an uploaded file to the blob store failed."""


class ConfigurationFailure(GeoGuideError):
    """The selected backends cannot be constructed. Raised at startup only."""

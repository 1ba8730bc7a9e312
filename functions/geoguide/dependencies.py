"""
Dependency wiring for the FastAPI app.

The providers are built once by ``create_app`` and attached to
``app.state``; route handlers reach them only through these functions, so
tests can hand ``create_app`` their own stores.
"""

from __future__ import annotations

from fastapi import Request

from geoguide.config import Settings
from geoguide.db import TourStore
from geoguide.providers import Providers
from geoguide.storage import BlobStore


def get_providers(request: Request) -> Providers:
    return request.app.state.providers


def get_tour_store(request: Request) -> TourStore:
    return get_providers(request).records


def get_blob_store(request: Request) -> BlobStore:
    return get_providers(request).blobs


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings

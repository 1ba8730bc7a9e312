"""
Startup-time selection of the tour store and blob store.

``select_providers`` only looks at the ``Settings`` it is given and at the
result of the capability check, so it can be exercised without touching the
process environment.
"""

from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass
from typing import Optional

from geoguide.config import PersistenceMode, Settings, StorageMode
from geoguide.db import FileTourStore, FirestoreTourStore, InMemoryTourStore, TourStore
from geoguide.errors import ConfigurationFailure
from geoguide.samples import sample_tours
from geoguide.storage import (
    BlobStore,
    DiskBlobStore,
    GcsBlobStore,
    InMemoryBlobStore,
    S3BlobStore,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capabilities:
    """Which optional managed-backend client libraries are importable."""

    firestore: bool = False
    gcs: bool = False
    s3: bool = False


@dataclass
class Providers:
    records: TourStore
    blobs: BlobStore
    persistence_mode: PersistenceMode
    storage_mode: StorageMode


def _module_available(name: str) -> bool:
    # find_spec on a dotted name imports the parents, so check them one by one.
    parts = name.split(".")
    for depth in range(1, len(parts) + 1):
        if importlib.util.find_spec(".".join(parts[:depth])) is None:
            return False
    return True


def detect_capabilities() -> Capabilities:
    return Capabilities(
        firestore=_module_available("google.cloud.firestore"),
        gcs=_module_available("google.cloud.storage"),
        s3=_module_available("boto3"),
    )


def resolve_persistence_mode(
    settings: Settings, capabilities: Capabilities
) -> PersistenceMode:
    if settings.use_in_memory_backends:
        return PersistenceMode.MEMORY

    if settings.persistence_mode is not None:
        mode = settings.persistence_mode
        if mode is PersistenceMode.FIRESTORE and not capabilities.firestore:
            raise ConfigurationFailure(
                "PERSISTENCE_MODE=FIRESTORE requires google-cloud-firestore. "
                "Install with: pip install google-cloud-firestore"
            )
    elif settings.gcp_project_id and capabilities.firestore:
        mode = PersistenceMode.FIRESTORE
    else:
        if settings.gcp_project_id:
            logger.warning(
                "GCP_PROJECT_ID is set but google-cloud-firestore is not installed; "
                "using file persistence"
            )
        mode = PersistenceMode.FILE

    if mode is PersistenceMode.FILE and settings.is_serverless:
        logger.warning(
            "Serverless environment detected. Switching persistence to MEMORY."
        )
        mode = PersistenceMode.MEMORY
    return mode


def resolve_storage_mode(settings: Settings, capabilities: Capabilities) -> StorageMode:
    if settings.use_in_memory_backends:
        return StorageMode.MEMORY

    if settings.storage_mode is not None:
        mode = settings.storage_mode
        if mode is StorageMode.GCS:
            if not capabilities.gcs:
                raise ConfigurationFailure(
                    "STORAGE_MODE=GCS requires google-cloud-storage. "
                    "Install with: pip install google-cloud-storage"
                )
            if not settings.gcs_bucket_name:
                raise ConfigurationFailure("STORAGE_MODE=GCS requires GCS_BUCKET_NAME")
        elif mode is StorageMode.S3:
            if not capabilities.s3:
                raise ConfigurationFailure(
                    "STORAGE_MODE=S3 requires boto3. Install with: pip install boto3"
                )
            if not settings.s3_bucket:
                raise ConfigurationFailure("STORAGE_MODE=S3 requires S3_BUCKET")
    elif settings.gcs_bucket_name and capabilities.gcs:
        mode = StorageMode.GCS
    elif settings.s3_bucket and capabilities.s3:
        mode = StorageMode.S3
    else:
        mode = StorageMode.DISK

    if mode is StorageMode.DISK and settings.is_serverless:
        logger.warning(
            "Serverless environment detected. Local disk uploads will not persist."
        )
    return mode


def build_tour_store(mode: PersistenceMode, settings: Settings) -> TourStore:
    if mode is PersistenceMode.FIRESTORE:
        return FirestoreTourStore(
            project_id=settings.gcp_project_id,
            collection=settings.firestore_collection,
        )
    if mode is PersistenceMode.FILE:
        return FileTourStore(settings.tours_data_file)
    return InMemoryTourStore()


def build_blob_store(mode: StorageMode, settings: Settings) -> BlobStore:
    if mode is StorageMode.GCS:
        return GcsBlobStore(
            bucket_name=settings.gcs_bucket_name,
            project_id=settings.gcp_project_id,
        )
    if mode is StorageMode.S3:
        return S3BlobStore(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.s3_public_base_url,
        )
    if mode is StorageMode.MEMORY:
        return InMemoryBlobStore(
            base_url=settings.base_url, url_prefix=settings.uploads_url_prefix
        )
    return DiskBlobStore(
        uploads_dir=settings.uploads_dir,
        base_url=settings.base_url,
        url_prefix=settings.uploads_url_prefix,
    )


def seed_if_empty(records: TourStore) -> int:
    if records.list_all():
        return 0
    tours = sample_tours()
    for tour in tours:
        records.upsert(tour)
    logger.info("Seeded %d sample tours", len(tours))
    return len(tours)


def select_providers(
    settings: Settings, capabilities: Optional[Capabilities] = None
) -> Providers:
    """
    Choose and construct one tour store and one blob store.

    Raises:
        ConfigurationFailure: an explicitly requested managed backend cannot
            be constructed (missing library or bucket).
    """
    if capabilities is None:
        capabilities = detect_capabilities()

    persistence_mode = resolve_persistence_mode(settings, capabilities)
    storage_mode = resolve_storage_mode(settings, capabilities)
    logger.info(
        "Configuration: persistence=%s storage=%s",
        persistence_mode.value,
        storage_mode.value,
    )

    records = build_tour_store(persistence_mode, settings)
    blobs = build_blob_store(storage_mode, settings)
    if settings.seed_sample_tours and persistence_mode is not PersistenceMode.FIRESTORE:
        seed_if_empty(records)

    return Providers(
        records=records,
        blobs=blobs,
        persistence_mode=persistence_mode,
        storage_mode=storage_mode,
    )

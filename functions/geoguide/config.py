"""
Configuration and settings for the GeoGuide backend.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from geoguide.errors import ConfigurationFailure


class PersistenceMode(str, Enum):
    FILE = "FILE"
    MEMORY = "MEMORY"
    FIRESTORE = "FIRESTORE"


class StorageMode(str, Enum):
    DISK = "DISK"
    MEMORY = "MEMORY"
    GCS = "GCS"
    S3 = "S3"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service.

    Environment variable names are the upper-cased field names, e.g.
    ``GCP_PROJECT_ID`` or ``PERSISTENCE_MODE``.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Public base used to build URLs for files served from local disk.
    base_url: str = Field(default="http://localhost:8000")

    # Explicit overrides; when unset the mode is inferred from credentials.
    persistence_mode: Optional[PersistenceMode] = None
    storage_mode: Optional[StorageMode] = None

    # Firestore
    gcp_project_id: Optional[str] = None
    firestore_collection: str = Field(default="tours")

    # Google Cloud Storage
    gcs_bucket_name: Optional[str] = None

    # S3-compatible storage (AWS, Tencent COS, MinIO)
    s3_bucket: Optional[str] = None
    s3_region: Optional[str] = None
    s3_endpoint: Optional[str] = None
    s3_public_base_url: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None

    # Local persistence
    tours_data_file: str = Field(default="tours.json")
    uploads_dir: str = Field(default="uploads")
    uploads_url_prefix: str = Field(default="/uploads")
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, gt=0)

    # Serverless detection. VERCEL and AWS_LAMBDA_FUNCTION_NAME are set by
    # those platforms; SERVERLESS_RUNTIME covers everything else.
    serverless_runtime: bool = False
    vercel: Optional[str] = None
    aws_lambda_function_name: Optional[str] = None

    # Development toggles
    use_in_memory_backends: bool = False
    seed_sample_tours: bool = False

    # External collaborators
    gemini_api_key: Optional[str] = None
    google_client_id: Optional[str] = None

    @field_validator("persistence_mode", "storage_mode", mode="before")
    @classmethod
    def _upper_mode(cls, value):
        if isinstance(value, str):
            value = value.strip().upper()
            return value or None
        return value

    @property
    def is_serverless(self) -> bool:
        return bool(
            self.serverless_runtime or self.vercel or self.aws_lambda_function_name
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationFailure(f"Invalid configuration: {exc}") from exc

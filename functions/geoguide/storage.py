"""
Blob storage for uploaded media: local disk, Google Cloud Storage,
S3-compatible object storage and an in-memory test double.

Every implementation returns a URL a browser can fetch without credentials.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol
from urllib.parse import quote, urlsplit
from uuid import uuid4

import requests
from fastapi import FastAPI, HTTPException, Response
from fastapi.staticfiles import StaticFiles
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions

from geoguide.errors import ConfigurationFailure, UploadFailure

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_EXTENSION_PATTERN = re.compile(r"^\.[A-Za-z0-9]{1,10}$")

# GCS uploads can also fail in the HTTP transport or in credential refresh.
GCS_UPLOAD_ERRORS = (
    google_exceptions.GoogleAPIError,
    auth_exceptions.GoogleAuthError,
    requests.RequestException,
)


class BlobStore(Protocol):
    """Defines the operations the API needs from media storage."""

    def store(
        self, data: bytes, filename: str, content_type: Optional[str] = None
    ) -> str:
        ...

    def mount(self, app: FastAPI) -> None:
        ...


def generate_object_key(filename: str) -> str:
    """
    Unique storage key for an upload: ``<epochMillis>-<random hex><ext>``.

    The original extension is kept only when it is a short alphanumeric
    suffix, so the key is always safe as a path segment.
    """
    # Browsers on Windows may send full paths with backslashes.
    name = (filename or "").replace("\\", "/")
    suffix = PurePosixPath(name).suffix
    extension = suffix.lower() if _EXTENSION_PATTERN.match(suffix) else ""
    return f"{int(time.time() * 1000)}-{uuid4().hex[:12]}{extension}"


def _join_url(base_url: str, prefix: str, key: str) -> str:
    prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
    return f"{base_url.rstrip('/')}{prefix}/{key}"


@dataclass
class InMemoryBlobStore:
    """Test/dev double that keeps uploads in memory and serves them itself."""

    base_url: str = "http://localhost:8000"
    url_prefix: str = "/uploads"
    stored_objects: dict = field(default_factory=dict)

    def store(
        self, data: bytes, filename: str, content_type: Optional[str] = None
    ) -> str:
        key = generate_object_key(filename)
        self.stored_objects[key] = (bytes(data), content_type or DEFAULT_CONTENT_TYPE)
        return _join_url(self.base_url, self.url_prefix, key)

    def get_bytes(self, key: str) -> bytes:
        stored = self.stored_objects.get(key)
        if stored is None:
            raise FileNotFoundError(key)
        return stored[0]

    def mount(self, app: FastAPI) -> None:
        route = _join_url("", self.url_prefix, "{key}")

        @app.get(route, include_in_schema=False)
        def serve_upload(key: str) -> Response:
            stored = self.stored_objects.get(key)
            if stored is None:
                raise HTTPException(status_code=404, detail="Not found")
            data, content_type = stored
            return Response(content=data, media_type=content_type)


class DiskBlobStore:
    """Writes uploads to a local directory served by a static file handler."""

    def __init__(
        self,
        uploads_dir: str | Path,
        base_url: str,
        url_prefix: str = "/uploads",
    ):
        self.uploads_dir = Path(uploads_dir)
        self.base_url = base_url
        self.url_prefix = url_prefix
        try:
            self.uploads_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationFailure(
                f"Cannot create uploads directory {self.uploads_dir}: {exc}"
            ) from exc
        logger.info("DiskBlobStore initialized (%s)", self.uploads_dir)

    def store(
        self, data: bytes, filename: str, content_type: Optional[str] = None
    ) -> str:
        key = generate_object_key(filename)
        try:
            (self.uploads_dir / key).write_bytes(data)
        except OSError as exc:
            raise UploadFailure(f"Could not write upload {key}: {exc}") from exc
        return _join_url(self.base_url, self.url_prefix, key)

    def mount(self, app: FastAPI) -> None:
        app.mount(
            "/" + self.url_prefix.strip("/"),
            StaticFiles(directory=str(self.uploads_dir)),
            name="uploads",
        )


class GcsBlobStore:
    """
    Google Cloud Storage uploads. The bucket must already allow public reads;
    access policy is not managed here.
    """

    def __init__(self, bucket_name: str, project_id: str | None = None, client=None):
        if not bucket_name:
            raise ConfigurationFailure("GCS storage requires a bucket name")
        if client is None:
            from google.cloud import storage

            client = storage.Client(project=project_id)
        self.bucket_name = bucket_name
        self.bucket = client.bucket(bucket_name)
        logger.info("GcsBlobStore initialized (%s)", bucket_name)

    def store(
        self, data: bytes, filename: str, content_type: Optional[str] = None
    ) -> str:
        blob = self.bucket.blob(generate_object_key(filename))
        try:
            # Single request with the whole buffered file; returns once the
            # object exists.
            blob.upload_from_string(
                data, content_type=content_type or DEFAULT_CONTENT_TYPE
            )
        except GCS_UPLOAD_ERRORS as exc:
            raise UploadFailure(f"GCS upload failed: {exc}") from exc
        return blob.public_url

    def mount(self, app: FastAPI) -> None:
        # Objects are served by GCS directly.
        return None


@dataclass
class S3BlobStore:
    """
    S3-compatible storage (AWS S3, Tencent COS, MinIO).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: Optional[str] = None

    def __post_init__(self):
        if not self.bucket:
            raise ConfigurationFailure("S3 storage requires a bucket name")
        import boto3
        from botocore.config import Config

        # Use virtual-hosted style addressing to satisfy COS requirements.
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )
        logger.info("S3BlobStore initialized (%s)", self.bucket)

    def public_url(self, key: str) -> str:
        quoted = quote(key)
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{quoted}"
        if self.endpoint:
            parts = urlsplit(self.endpoint)
            return f"{parts.scheme or 'https'}://{self.bucket}.{parts.netloc}/{quoted}"
        region = self.region or "us-east-1"
        return f"https://{self.bucket}.s3.{region}.amazonaws.com/{quoted}"

    def store(
        self, data: bytes, filename: str, content_type: Optional[str] = None
    ) -> str:
        from botocore.exceptions import BotoCoreError, ClientError

        key = generate_object_key(filename)
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type or DEFAULT_CONTENT_TYPE,
            )
        except (BotoCoreError, ClientError) as exc:
            raise UploadFailure(f"S3 upload failed: {exc}") from exc
        return self.public_url(key)

    def mount(self, app: FastAPI) -> None:
        return None

"""
Pydantic schemas for the GeoGuide backend.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class MediaType(str, Enum):
    NONE = "none"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GeoPoint(CamelModel):
    # No range checks: out-of-bounds coordinates are stored as given.
    lat: float
    lng: float


class Stop(CamelModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title: str = ""
    description: str = ""
    location: GeoPoint
    media_url: Optional[str] = None
    media_type: MediaType = MediaType.NONE
    place_id: Optional[str] = None


class Tour(CamelModel):
    """A tour aggregate. Stops are embedded and kept in playback order."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    title: str = ""
    description: str = ""
    author_id: str = ""
    stops: list[Stop] = Field(default_factory=list)
    created_at: Optional[int] = None
    updated_at: Optional[int] = None
    cover_url: Optional[str] = None

    @model_validator(mode="after")
    def _check_stop_ids_unique(self) -> "Tour":
        seen: set[str] = set()
        for stop in self.stops:
            if stop.id in seen:
                raise ValueError(f"duplicate stop id: {stop.id}")
            seen.add(stop.id)
        return self

    def to_document(self) -> dict:
        """JSON-ready dict with camelCase keys, as persisted and served."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class UploadResponse(BaseModel):
    url: str


class StatusResponse(BaseModel):
    status: str
    persistence: str
    storage: str


class StopDetailsRequest(CamelModel):
    place_name: str = Field(..., min_length=1, max_length=200)


class StopDescription(BaseModel):
    description: str


class StopDetails(BaseModel):
    description: str
    lat: float
    lng: float


class NarrationRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)


class IdentityRequest(BaseModel):
    credential: str = Field(..., min_length=1)


class Identity(CamelModel):
    id: str
    name: str = ""
    email: str = ""
    picture_url: Optional[str] = None

"""
HTTP routes for the GeoGuide API.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from fastapi import (
    APIRouter,
    Body,
    Depends,
    File,
    HTTPException,
    Query,
    Response,
    UploadFile,
)
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from geoguide.auth import InvalidIdentityToken, verify_identity_token
from geoguide.config import Settings
from geoguide.db import TourStore
from geoguide.dependencies import (
    get_app_settings,
    get_blob_store,
    get_providers,
    get_tour_store,
)
from geoguide.providers import Providers
from geoguide.schemas import (
    Identity,
    IdentityRequest,
    NarrationRequest,
    StatusResponse,
    StopDetails,
    StopDescription,
    StopDetailsRequest,
    Tour,
    UploadResponse,
)
from geoguide.storage import BlobStore
from models import gemini

logger = logging.getLogger(__name__)

router = APIRouter()
status_router = APIRouter()

# Used when the generation service gives nothing usable (central Paris).
FALLBACK_STOP_DETAILS = StopDetails(
    description="Could not generate details.", lat=48.8566, lng=2.3522
)
FALLBACK_STOP_DESCRIPTION = "Could not generate description."


@status_router.get("/", response_model=StatusResponse)
def service_status(providers: Providers = Depends(get_providers)):
    return StatusResponse(
        status="ok",
        persistence=providers.persistence_mode.value,
        storage=providers.storage_mode.value,
    )


@router.get("/tours", response_model=list[Tour], response_model_exclude_none=True)
def list_tours(
    author_id: Optional[str] = Query(None, alias="authorId"),
    store: TourStore = Depends(get_tour_store),
):
    tours = store.list_all()
    if author_id is not None:
        tours = [tour for tour in tours if tour.author_id == author_id]
    return tours


@router.get(
    "/tours/{tour_id}", response_model=Tour, response_model_exclude_none=True
)
def get_tour(tour_id: str, store: TourStore = Depends(get_tour_store)):
    tour = store.get_by_id(tour_id)
    if tour is None:
        raise HTTPException(status_code=404, detail="Not found")
    return tour


@router.post(
    "/tours",
    response_model=Tour,
    response_model_exclude_none=True,
    status_code=201,
)
def create_tour(tour: Tour, store: TourStore = Depends(get_tour_store)):
    """
    Insert or fully replace a tour. A missing id is generated by the store.
    """
    return store.upsert(tour)


@router.put(
    "/tours/{tour_id}", response_model=Tour, response_model_exclude_none=True
)
def update_tour(
    tour_id: str,
    payload: dict = Body(...),
    store: TourStore = Depends(get_tour_store),
):
    """
    Merge the body over the stored tour and save the result.

    Unlike POST this keeps fields the body does not mention. The path id
    always wins over an id in the body.
    """
    existing = store.get_by_id(tour_id)
    merged = existing.to_document() if existing else {}
    merged.update(_alias_keys(payload))
    merged["id"] = tour_id
    try:
        tour = Tour.model_validate(merged)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400, detail=describe_validation_errors(exc.errors())
        )
    return store.upsert(tour)


@router.delete("/tours/{tour_id}", status_code=204)
def delete_tour(tour_id: str, store: TourStore = Depends(get_tour_store)):
    store.delete_by_id(tour_id)
    return Response(status_code=204)


@router.post("/upload", response_model=UploadResponse)
async def upload_media(
    file: Optional[UploadFile] = File(None),
    blobs: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_app_settings),
):
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    data = await file.read()
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="File too large")

    url = await run_in_threadpool(
        blobs.store, data, file.filename, file.content_type
    )
    logger.info("File uploaded: %s", url)
    return UploadResponse(url=url)


@router.post("/ai/stop-details", response_model=StopDetails)
def generate_stop_details(
    payload: StopDetailsRequest, settings: Settings = Depends(get_app_settings)
):
    details = gemini.generate_stop_details(
        payload.place_name, api_key=settings.gemini_api_key
    )
    if details is None:
        logger.warning("No stop details generated for %r", payload.place_name)
        return FALLBACK_STOP_DETAILS
    return details


@router.post("/ai/stop-description", response_model=StopDescription)
def generate_stop_description(
    payload: StopDetailsRequest, settings: Settings = Depends(get_app_settings)
):
    try:
        description = gemini.generate_stop_description(
            payload.place_name, api_key=settings.gemini_api_key
        )
    except Exception:
        logger.exception("No stop description generated for %r", payload.place_name)
        description = FALLBACK_STOP_DESCRIPTION
    return StopDescription(description=description)


@router.post("/ai/narration")
def generate_narration(
    payload: NarrationRequest, settings: Settings = Depends(get_app_settings)
):
    if not payload.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")
    try:
        pcm = gemini.synthesize_speech(payload.text, api_key=settings.gemini_api_key)
    except Exception:
        logger.exception("Speech synthesis failed")
        raise HTTPException(status_code=502, detail="Speech synthesis failed")
    return Response(content=gemini.pcm_to_wav(pcm), media_type="audio/wav")


@router.post("/auth/verify", response_model=Identity)
def verify_identity(
    payload: IdentityRequest, settings: Settings = Depends(get_app_settings)
):
    if not settings.google_client_id:
        raise HTTPException(status_code=503, detail="Sign-in is not configured")
    try:
        return verify_identity_token(payload.credential, settings.google_client_id)
    except InvalidIdentityToken as exc:
        logger.info("Rejected identity token: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid identity token")


def _alias_keys(payload: dict) -> dict:
    """Rename snake_case Tour field names to the camelCase keys stored."""
    aliases = {
        name: field.alias or name for name, field in Tour.model_fields.items()
    }
    return {aliases.get(key, key): value for key, value in payload.items()}


def describe_validation_errors(errors: Sequence[dict]) -> str:
    """One-line summary of the first validation error, for the message body."""
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    if location:
        return f"Invalid request: {location}: {message}"
    return f"Invalid request: {message}"

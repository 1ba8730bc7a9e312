"""
Tour persistence: in-memory, JSON file and Firestore implementations.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Iterable, Optional, Protocol

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from pydantic import ValidationError

from geoguide.errors import StoreUnavailable
from geoguide.schemas import Tour

logger = logging.getLogger(__name__)

TOURS_COLLECTION = "tours"

FIRESTORE_ERRORS = (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


class TourStore(Protocol):
    """Interface for tour persistence."""

    def list_all(self) -> list[Tour]:
        ...

    def get_by_id(self, tour_id: str) -> Optional[Tour]:
        ...

    def upsert(self, tour: Tour) -> Tour:
        ...

    def delete_by_id(self, tour_id: str) -> None:
        ...


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_tour_id() -> str:
    return f"tour-{_now_ms()}"


def prepare_for_save(tour: Tour, previous_created_at: Optional[int] = None) -> Tour:
    """
    Return a copy of the tour ready to be written: id assigned if missing,
    updatedAt set to now. A missing createdAt is taken from the record being
    replaced, or set to now on first save.
    """
    now = _now_ms()
    created_at = tour.created_at
    if created_at is None:
        created_at = previous_created_at
    return tour.model_copy(
        update={
            "id": tour.id or generate_tour_id(),
            "created_at": created_at if created_at is not None else now,
            "updated_at": now,
        },
        deep=True,
    )


class InMemoryTourStore:
    """Ordered list of tours held in process memory."""

    def __init__(self, tours: Iterable[Tour] | None = None):
        self.tours: list[Tour] = list(tours or [])

    def list_all(self) -> list[Tour]:
        return list(self.tours)

    def get_by_id(self, tour_id: str) -> Optional[Tour]:
        for tour in self.tours:
            if tour.id == tour_id:
                return tour
        return None

    def upsert(self, tour: Tour) -> Tour:
        existing = self.get_by_id(tour.id) if tour.id else None
        stored = prepare_for_save(tour, existing.created_at if existing else None)
        if existing is None:
            self.tours.append(stored)
        else:
            self.tours[self.tours.index(existing)] = stored
        return stored

    def delete_by_id(self, tour_id: str) -> None:
        self.tours = [tour for tour in self.tours if tour.id != tour_id]

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.tours.clear()


class FileTourStore(InMemoryTourStore):
    """
    In-memory store mirrored to a single pretty-printed JSON document.

    Every mutation rewrites the whole document. A document that cannot be
    read or parsed at startup is logged and treated as an empty store.
    """

    def __init__(self, data_file: str | Path):
        super().__init__()
        self.data_file = Path(data_file)
        self.tours = self._load()
        logger.info(
            "FileTourStore initialized (%s, %d tours)", self.data_file, len(self.tours)
        )

    def _load(self) -> list[Tour]:
        if not self.data_file.exists():
            return []
        try:
            raw = json.loads(self.data_file.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("expected a JSON array of tours")
            return [Tour.model_validate(item) for item in raw]
        except (OSError, ValueError) as exc:
            logger.error(
                "Could not load %s, starting with an empty store: %s",
                self.data_file,
                exc,
            )
            return []

    def _flush(self) -> None:
        documents = [tour.to_document() for tour in self.tours]
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            self.data_file.write_text(
                json.dumps(documents, indent=2, ensure_ascii=False), encoding="utf-8"
            )
        except OSError as exc:
            raise StoreUnavailable(f"Could not write {self.data_file}: {exc}") from exc

    def upsert(self, tour: Tour) -> Tour:
        previous = list(self.tours)
        stored = super().upsert(tour)
        self._flush_or_restore(previous)
        return stored

    def delete_by_id(self, tour_id: str) -> None:
        previous = list(self.tours)
        super().delete_by_id(tour_id)
        self._flush_or_restore(previous)

    def _flush_or_restore(self, previous: list[Tour]) -> None:
        # Memory must not get ahead of the document on a failed write.
        try:
            self._flush()
        except StoreUnavailable:
            self.tours = previous
            raise


class FirestoreTourStore:
    """
    One Firestore document per tour, keyed by tour id.

    Writes are plain ``set`` calls: last write wins, no version checks.
    """

    def __init__(
        self,
        project_id: str | None = None,
        collection: str = TOURS_COLLECTION,
        client=None,
    ):
        if client is None:
            from google.cloud import firestore

            client = firestore.Client(project=project_id)
        self.collection = client.collection(collection)
        logger.info(
            "FirestoreTourStore initialized (project=%s, collection=%s)",
            project_id,
            collection,
        )

    @staticmethod
    def _to_tour(snapshot) -> Tour:
        try:
            return Tour.model_validate(snapshot.to_dict())
        except ValidationError as exc:
            raise StoreUnavailable(
                f"Firestore document {snapshot.id} is not a valid tour: {exc}"
            ) from exc

    def list_all(self) -> list[Tour]:
        try:
            snapshots = list(self.collection.stream())
        except FIRESTORE_ERRORS as exc:
            raise StoreUnavailable(f"Firestore list failed: {exc}") from exc
        return [self._to_tour(snapshot) for snapshot in snapshots]

    def get_by_id(self, tour_id: str) -> Optional[Tour]:
        try:
            snapshot = self.collection.document(tour_id).get()
        except FIRESTORE_ERRORS as exc:
            raise StoreUnavailable(f"Firestore get failed: {exc}") from exc
        if not snapshot.exists:
            return None
        return self._to_tour(snapshot)

    def upsert(self, tour: Tour) -> Tour:
        previous_created_at = None
        if tour.id and tour.created_at is None:
            previous_created_at = self._stored_created_at(tour.id)
        stored = prepare_for_save(tour, previous_created_at)
        try:
            self.collection.document(stored.id).set(stored.to_document())
        except FIRESTORE_ERRORS as exc:
            raise StoreUnavailable(f"Firestore write failed: {exc}") from exc
        return stored

    def _stored_created_at(self, tour_id: str) -> Optional[int]:
        try:
            snapshot = self.collection.document(tour_id).get()
        except FIRESTORE_ERRORS as exc:
            raise StoreUnavailable(f"Firestore get failed: {exc}") from exc
        if not snapshot.exists:
            return None
        created_at = (snapshot.to_dict() or {}).get("createdAt")
        return created_at if isinstance(created_at, int) else None

    def delete_by_id(self, tour_id: str) -> None:
        try:
            self.collection.document(tour_id).delete()
        except FIRESTORE_ERRORS as exc:
            raise StoreUnavailable(f"Firestore delete failed: {exc}") from exc

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions

from geoguide.db import (
    FileTourStore,
    FirestoreTourStore,
    InMemoryTourStore,
    prepare_for_save,
)
from geoguide.errors import StoreUnavailable
from geoguide.schemas import Tour


def make_tour(tour_id="tour-1", **overrides):
    data = {
        "id": tour_id,
        "title": "Historic Walk",
        "description": "A walk",
        "authorId": "user-1",
        "stops": [
            {
                "id": "stop-1",
                "title": "Square",
                "location": {"lat": 48.85, "lng": 2.35},
                "mediaType": "none",
            }
        ],
    }
    data.update(overrides)
    return Tour.model_validate(data)


class PrepareForSaveTests(unittest.TestCase):
    def test_assigns_id_and_timestamps(self):
        stored = prepare_for_save(Tour(title="New"))
        self.assertRegex(stored.id, r"^tour-\d+$")
        self.assertIsNotNone(stored.created_at)
        self.assertGreaterEqual(stored.updated_at, stored.created_at)

    def test_keeps_existing_id_and_created_at(self):
        stored = prepare_for_save(Tour(id="tour-5", created_at=1000))
        self.assertEqual(stored.id, "tour-5")
        self.assertEqual(stored.created_at, 1000)
        self.assertGreater(stored.updated_at, 1000)

    def test_does_not_mutate_input(self):
        tour = Tour(title="New")
        prepare_for_save(tour)
        self.assertIsNone(tour.id)
        self.assertIsNone(tour.updated_at)


class InMemoryTourStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryTourStore()

    def test_upsert_then_get_round_trips(self):
        stored = self.store.upsert(make_tour())
        fetched = self.store.get_by_id("tour-1")
        self.assertEqual(fetched.to_document(), stored.to_document())
        self.assertEqual(fetched.stops[0].location.lat, 48.85)

    def test_get_unknown_returns_none(self):
        self.assertIsNone(self.store.get_by_id("missing"))

    def test_upsert_same_id_replaces_in_place(self):
        self.store.upsert(make_tour("tour-1"))
        self.store.upsert(make_tour("tour-2"))
        self.store.upsert(make_tour("tour-1", title="Renamed"))

        tours = self.store.list_all()
        self.assertEqual([t.id for t in tours], ["tour-1", "tour-2"])
        self.assertEqual(tours[0].title, "Renamed")

    def test_upsert_preserves_created_at(self):
        first = self.store.upsert(make_tour())
        second = self.store.upsert(first.model_copy(update={"title": "Again"}))
        self.assertEqual(second.created_at, first.created_at)

    def test_replace_without_created_at_keeps_original(self):
        self.store.upsert(make_tour(createdAt=1000))
        second = self.store.upsert(make_tour(title="Replaced"))
        self.assertEqual(second.created_at, 1000)
        self.assertEqual(second.title, "Replaced")

    def test_delete_is_idempotent(self):
        self.store.upsert(make_tour())
        self.store.delete_by_id("tour-1")
        self.store.delete_by_id("tour-1")
        self.assertIsNone(self.store.get_by_id("tour-1"))
        self.assertEqual(self.store.list_all(), [])

    def test_list_all_returns_a_copy(self):
        self.store.upsert(make_tour())
        self.store.list_all().clear()
        self.assertEqual(len(self.store.list_all()), 1)

    def test_reset_clears_everything(self):
        self.store.upsert(make_tour())
        self.store.reset()
        self.assertEqual(self.store.list_all(), [])


class FileTourStoreTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.data_file = Path(self._tmp.name) / "data" / "tours.json"

    def test_missing_file_starts_empty(self):
        store = FileTourStore(self.data_file)
        self.assertEqual(store.list_all(), [])
        self.assertFalse(self.data_file.exists())

    def test_writes_survive_a_restart(self):
        store = FileTourStore(self.data_file)
        stored = store.upsert(make_tour(language="fr"))

        reloaded = FileTourStore(self.data_file)
        fetched = reloaded.get_by_id("tour-1")
        self.assertEqual(fetched.to_document(), stored.to_document())
        self.assertEqual(fetched.to_document()["language"], "fr")

    def test_document_is_pretty_printed_camel_case(self):
        FileTourStore(self.data_file).upsert(make_tour())
        text = self.data_file.read_text(encoding="utf-8")
        self.assertIn('\n  {\n    "id": "tour-1"', text)
        self.assertEqual(json.loads(text)[0]["authorId"], "user-1")

    def test_delete_is_persisted(self):
        store = FileTourStore(self.data_file)
        store.upsert(make_tour("tour-1"))
        store.upsert(make_tour("tour-2"))
        store.delete_by_id("tour-1")

        reloaded = FileTourStore(self.data_file)
        self.assertEqual([t.id for t in reloaded.list_all()], ["tour-2"])

    def test_corrupt_file_starts_empty(self):
        self.data_file.parent.mkdir(parents=True)
        self.data_file.write_text("{not json", encoding="utf-8")
        with self.assertLogs("geoguide.db", level="ERROR"):
            store = FileTourStore(self.data_file)
        self.assertEqual(store.list_all(), [])

    def test_non_array_document_starts_empty(self):
        self.data_file.parent.mkdir(parents=True)
        self.data_file.write_text('{"id": "tour-1"}', encoding="utf-8")
        with self.assertLogs("geoguide.db", level="ERROR"):
            store = FileTourStore(self.data_file)
        self.assertEqual(store.list_all(), [])

    def test_write_failure_raises_store_unavailable(self):
        # A directory in place of the data file can be neither read nor written.
        self.data_file.mkdir(parents=True)
        with self.assertLogs("geoguide.db", level="ERROR"):
            store = FileTourStore(self.data_file)
        with self.assertRaises(StoreUnavailable):
            store.upsert(make_tour())
        self.assertEqual(store.list_all(), [])

    def test_failed_write_leaves_previous_state(self):
        store = FileTourStore(self.data_file)
        store.upsert(make_tour("tour-1"))
        self.data_file.unlink()
        self.data_file.mkdir()

        with self.assertRaises(StoreUnavailable):
            store.upsert(make_tour("tour-2"))
        with self.assertRaises(StoreUnavailable):
            store.delete_by_id("tour-1")
        self.assertEqual([t.id for t in store.list_all()], ["tour-1"])


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, documents, doc_id):
        self._documents = documents
        self._id = doc_id

    def get(self):
        return FakeSnapshot(self._id, self._documents.get(self._id))

    def set(self, data):
        self._documents[self._id] = dict(data)

    def delete(self):
        self._documents.pop(self._id, None)


class FakeCollection:
    def __init__(self):
        self.documents = {}

    def document(self, doc_id):
        return FakeDocument(self.documents, doc_id)

    def stream(self):
        return iter(
            [FakeSnapshot(doc_id, data) for doc_id, data in self.documents.items()]
        )


class FakeFirestoreClient:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection())


class FirestoreTourStoreTests(unittest.TestCase):
    def setUp(self):
        self.client = FakeFirestoreClient()
        self.store = FirestoreTourStore(project_id="demo", client=self.client)

    def test_upsert_writes_document_keyed_by_id(self):
        stored = self.store.upsert(make_tour())
        documents = self.client.collections["tours"].documents
        self.assertEqual(list(documents), ["tour-1"])
        self.assertEqual(documents["tour-1"], stored.to_document())

    def test_round_trip(self):
        stored = self.store.upsert(make_tour())
        fetched = self.store.get_by_id("tour-1")
        self.assertEqual(fetched.to_document(), stored.to_document())
        self.assertEqual(
            [t.id for t in self.store.list_all()],
            ["tour-1"],
        )

    def test_get_unknown_returns_none(self):
        self.assertIsNone(self.store.get_by_id("missing"))

    def test_delete_is_idempotent(self):
        self.store.upsert(make_tour())
        self.store.delete_by_id("tour-1")
        self.store.delete_by_id("tour-1")
        self.assertIsNone(self.store.get_by_id("tour-1"))

    def test_custom_collection_name(self):
        store = FirestoreTourStore(client=self.client, collection="staging-tours")
        store.upsert(make_tour())
        self.assertIn("tour-1", self.client.collections["staging-tours"].documents)

    def test_backend_errors_raise_store_unavailable(self):
        client = MagicMock()
        collection = client.collection.return_value
        collection.stream.side_effect = google_exceptions.ServiceUnavailable("down")
        collection.document.return_value.set.side_effect = (
            google_exceptions.PermissionDenied("no")
        )
        store = FirestoreTourStore(client=client)

        with self.assertRaises(StoreUnavailable):
            store.list_all()
        with self.assertRaises(StoreUnavailable):
            store.upsert(make_tour())

    def test_credential_errors_raise_store_unavailable(self):
        client = MagicMock()
        collection = client.collection.return_value
        collection.document.return_value.get.side_effect = (
            auth_exceptions.TransportError("token refresh failed")
        )
        store = FirestoreTourStore(client=client)

        with self.assertRaises(StoreUnavailable):
            store.get_by_id("tour-1")

    def test_invalid_document_raises_store_unavailable(self):
        self.client.collection("tours").documents["tour-1"] = {
            "id": "tour-1",
            "stops": [{"id": "stop-1", "title": "No location"}],
        }
        with self.assertRaises(StoreUnavailable):
            self.store.list_all()
        with self.assertRaises(StoreUnavailable):
            self.store.get_by_id("tour-1")

    def test_replace_without_created_at_keeps_original(self):
        self.store.upsert(make_tour(createdAt=1000))
        second = self.store.upsert(make_tour(title="Replaced"))
        self.assertEqual(second.created_at, 1000)
        stored = self.client.collections["tours"].documents["tour-1"]
        self.assertEqual(stored["createdAt"], 1000)


if __name__ == "__main__":
    unittest.main()

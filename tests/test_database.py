import logging
import threading
import unittest
import uuid

from studio_calendar.database import SERVER_TIMESTAMP, CosmosDocumentStore, PollingWatch
from tests.fakes import FakeContainer

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)


class FakeDatabase:
    """Hands out one FakeContainer per collection name."""

    def __init__(self, collections=None):
        self.containers = {name: FakeContainer(docs) for name, docs in (collections or {}).items()}

    def get_container_client(self, name):
        return self.containers.setdefault(name, FakeContainer())


class ScriptedFetch:
    """Returns (or raises) the scripted results in order, then cancels the watch."""

    def __init__(self, results):
        self.results = list(results)
        self.watch = None

    def __call__(self):
        result = self.results.pop(0)
        if not self.results:
            self.watch.cancel()
        if isinstance(result, Exception):
            raise result
        return result


class TestPollingWatch(unittest.TestCase):

    def run_script(self, results):
        events = []
        fetch = ScriptedFetch(results)
        watch = PollingWatch(
            "Events", fetch,
            on_snapshot=lambda snapshot: events.append(("snapshot", snapshot)),
            on_error=lambda error: events.append(("error", str(error))),
            interval=0,
        )
        fetch.watch = watch
        watch._run()
        return events

    def test_01_unchanged_polls_are_not_redelivered(self):
        a, b = [{"id": "e1"}], [{"id": "e1"}, {"id": "e2"}]
        events = self.run_script([a, [{"id": "e1"}], b, b])
        self.assertEqual(events, [("snapshot", a), ("snapshot", b)])

    def test_02_error_then_recovery_redelivers(self):
        a, b = [{"id": "e1"}], [{"id": "e2"}]
        events = self.run_script([a, a, RuntimeError("network down"), a, b])
        self.assertEqual(events, [
            ("snapshot", a),
            ("error", "network down"),
            ("snapshot", a),
            ("snapshot", b),
        ])

    def test_03_missing_document_is_delivered_once(self):
        events = self.run_script([None, None])
        self.assertEqual(events, [("snapshot", None)])

    def test_04_thread_delivers_then_stops_on_cancel(self):
        delivered = threading.Event()
        snapshots = []

        def on_snapshot(snapshot):
            snapshots.append(snapshot)
            delivered.set()

        watch = PollingWatch("Users", lambda: [{"id": "u1"}], on_snapshot, lambda e: None, interval=0.01).start()
        self.assertTrue(delivered.wait(timeout=2))
        watch()
        watch._thread.join(timeout=2)
        self.assertFalse(watch._thread.is_alive())
        self.assertTrue(watch._thread.daemon)
        self.assertEqual(snapshots, [[{"id": "u1"}]])


class TestCosmosDocumentStore(unittest.TestCase):

    def setUp(self):
        self.database = FakeDatabase({"Events": [
            {"id": "late", "date": "2024-05-03", "time": "15:00", "_rid": "x", "_etag": "y"},
            {"id": "next", "date": "2024-05-04", "time": "09:00", "_rid": "x"},
            {"id": "early", "date": "2024-05-03", "time": "09:30", "_ts": 1},
        ]})
        self.store = CosmosDocumentStore(self.database, poll_interval=0.01)
        self.events = self.database.containers["Events"]

    def test_01_list_orders_and_strips_system_fields(self):
        docs = self.store.list("Events", ("date", "time"))
        self.assertEqual([doc["id"] for doc in docs], ["early", "late", "next"])
        self.assertFalse(any(key.startswith("_") for doc in docs for key in doc))

    def test_02_get_missing_returns_none(self):
        self.assertIsNone(self.store.get("Events", "gone"))
        self.assertEqual(self.store.get("Events", "late"), {"id": "late", "date": "2024-05-03", "time": "15:00"})

    def test_03_add_assigns_id_and_resolves_timestamps(self):
        doc_id = self.store.add("Events", {"date": "2024-05-10", "createdAt": SERVER_TIMESTAMP})
        self.assertEqual(str(uuid.UUID(doc_id)), doc_id)
        stored = self.events.items[doc_id]
        self.assertEqual(stored["id"], doc_id)
        self.assertIsInstance(stored["createdAt"], str)

    def test_04_update_merges_into_existing(self):
        self.store.update("Events", "late", {"time": "16:00", "updatedAt": SERVER_TIMESTAMP})
        stored = self.events.items["late"]
        self.assertEqual(stored["time"], "16:00")
        self.assertEqual(stored["date"], "2024-05-03")
        self.assertIsInstance(stored["updatedAt"], str)
        self.assertNotIn("_rid", stored)

    def test_05_delete(self):
        self.store.delete("Events", "late")
        self.assertNotIn("late", self.events.items)

    def test_06_watch_document_delivers_current_state(self):
        delivered = threading.Event()
        snapshots = []

        def on_snapshot(snapshot):
            snapshots.append(snapshot)
            delivered.set()

        unsubscribe = self.store.watch_document("Events", "early", on_snapshot, lambda e: None)
        self.assertTrue(delivered.wait(timeout=2))
        unsubscribe()
        unsubscribe._thread.join(timeout=2)
        self.assertEqual(snapshots[0]["time"], "09:30")


if __name__ == "__main__":
    unittest.main()

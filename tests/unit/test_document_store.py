"""
Unit tests for the in-memory document store.

Tests cover:
- Collection registry
- Create/get/update/destroy/increment
- Optimistic concurrency on update
- Copy isolation of stored documents
- Event emission
"""

import threading

import pytest

from hazedb.config import StoreSettings
from hazedb.events import EventKind
from hazedb.store import DocumentStore


class TestCollections:
    """Tests for the collection registry."""

    def test_ensure_collection_creates_once(self):
        """ensure_collection is idempotent."""
        store = DocumentStore()

        first = store.ensure_collection("users")
        second = store.ensure_collection("users")

        assert first is second
        assert store.has_collection("users")

    def test_collection_survives_being_emptied(self):
        """Destroying the last document keeps the collection."""
        store = DocumentStore()
        created = store.create("users", {"name": "Ann"})

        store.destroy("users", created["id"])

        assert store.has_collection("users")
        assert store.count("users") == 0
        assert store.collection_names() == ["users"]

    def test_unknown_collection_count_is_zero(self):
        """count() on an absent collection is 0 and does not create it."""
        store = DocumentStore()

        assert store.count("ghosts") == 0
        assert not store.has_collection("ghosts")

    def test_stores_are_independent(self):
        """Two stores never share collections."""
        a = DocumentStore()
        b = DocumentStore()

        a.create("users", {"name": "Ann"})

        assert a.count("users") == 1
        assert not b.has_collection("users")


class TestCreateAndGet:
    """Tests for create() and get()."""

    @pytest.fixture
    def store(self):
        return DocumentStore()

    def test_create_returns_id_and_version(self, store):
        """create returns the assigned id and version."""
        created = store.create("users", {"name": "Ann"})

        assert set(created) == {"id", "version"}
        assert isinstance(created["id"], str)
        assert isinstance(created["version"], int)

    def test_get_returns_document(self, store):
        """get returns the stored fields plus id and version."""
        created = store.create("users", {"name": "Ann"})

        doc = store.get("users", created["id"])

        assert doc == {"id": created["id"], "version": created["version"], "name": "Ann"}

    def test_create_ignores_caller_id_and_version(self, store):
        """Caller-supplied id and version are replaced."""
        created = store.create("users", {"id": "mine", "version": 1, "name": "Ann"})

        assert created["id"] != "mine"
        assert created["version"] != 1
        assert store.get("users", "mine") is None

    def test_ids_are_unique(self, store):
        """Every created document gets a distinct id."""
        ids = {store.create("users", {"n": i})["id"] for i in range(200)}

        assert len(ids) == 200

    def test_get_absent(self, store):
        """get returns None for an absent collection or id."""
        store.create("users", {"name": "Ann"})

        assert store.get("nope", "x") is None
        assert store.get("users", "x") is None

    def test_create_copies_input(self, store):
        """Mutating the input after create does not affect the store."""
        fields = {"name": "Ann", "tags": ["a"]}
        created = store.create("users", fields)

        fields["name"] = "Bob"
        fields["tags"].append("b")

        doc = store.get("users", created["id"])
        assert doc["name"] == "Ann"
        assert doc["tags"] == ["a"]

    def test_get_returns_copy(self, store):
        """Mutating a fetched document does not affect the store."""
        created = store.create("users", {"name": "Ann", "address": {"city": "Oslo"}})

        doc = store.get("users", created["id"])
        doc["name"] = "Bob"
        doc["address"]["city"] = "Rome"

        again = store.get("users", created["id"])
        assert again["name"] == "Ann"
        assert again["address"]["city"] == "Oslo"


class TestUpdate:
    """Tests for optimistic-concurrency update()."""

    @pytest.fixture
    def store(self):
        return DocumentStore()

    def test_update_with_current_version(self, store):
        """Update succeeds with the stored version and bumps it."""
        created = store.create("users", {"name": "Ann"})

        ok = store.update("users", {"id": created["id"], "version": created["version"], "name": "Ann2"})

        assert ok is True
        doc = store.get("users", created["id"])
        assert doc["name"] == "Ann2"
        assert doc["version"] > created["version"]

    def test_update_with_stale_version(self, store):
        """Repeating an update with the old version fails and changes nothing."""
        created = store.create("users", {"name": "Ann"})
        replacement = {"id": created["id"], "version": created["version"], "name": "Ann2"}
        assert store.update("users", replacement) is True

        stale = {"id": created["id"], "version": created["version"], "name": "Ann3"}
        assert store.update("users", stale) is False

        assert store.get("users", created["id"])["name"] == "Ann2"

    def test_update_replaces_wholesale(self, store):
        """Fields missing from the replacement are removed."""
        created = store.create("users", {"name": "Ann", "age": 30})

        store.update("users", {"id": created["id"], "version": created["version"], "name": "Ann"})

        assert "age" not in store.get("users", created["id"])

    def test_update_absent_collection(self, store):
        """Update in an absent collection fails."""
        assert store.update("users", {"id": "x", "version": 1}) is False
        assert not store.has_collection("users")

    def test_update_absent_document(self, store):
        """Update of an absent id fails."""
        store.ensure_collection("users")

        assert store.update("users", {"id": "x", "version": 1}) is False

    def test_update_without_id(self, store):
        """A replacement without an id fails."""
        store.create("users", {"name": "Ann"})

        assert store.update("users", {"version": 1, "name": "x"}) is False

    def test_update_without_version(self, store):
        """A replacement without a version is a conflict."""
        created = store.create("users", {"name": "Ann"})

        assert store.update("users", {"id": created["id"], "name": "x"}) is False

    def test_versions_strictly_increase(self, store):
        """Back-to-back updates get strictly increasing versions."""
        created = store.create("users", {"n": 0})
        versions = [created["version"]]

        for i in range(1, 20):
            doc = store.get("users", created["id"])
            doc["n"] = i
            assert store.update("users", doc) is True
            versions.append(store.get("users", created["id"])["version"])

        assert versions == sorted(set(versions))

    def test_versions_increase_across_documents(self, store):
        """Creates in the same millisecond still get distinct versions."""
        versions = [store.create("users", {})["version"] for _ in range(50)]

        assert versions == sorted(set(versions))


class TestDestroy:
    """Tests for destroy()."""

    def test_destroy_removes(self):
        """Destroyed documents are gone."""
        store = DocumentStore()
        created = store.create("tasks", {"count": 5})

        assert store.destroy("tasks", created["id"]) is True
        assert store.get("tasks", created["id"]) is None

    def test_destroy_absent_id_succeeds(self):
        """Destroying an absent id in an existing collection succeeds."""
        store = DocumentStore()
        created = store.create("tasks", {"count": 5})

        assert store.destroy("tasks", "missing") is True
        assert store.get("tasks", created["id"])["count"] == 5
        assert store.count("tasks") == 1

    def test_destroy_absent_collection_fails(self):
        """Destroying in an absent collection fails."""
        store = DocumentStore()

        assert store.destroy("tasks", "x") is False


class TestIncrement:
    """Tests for increment()."""

    @pytest.fixture
    def store(self):
        return DocumentStore()

    def test_increment_adds(self, store):
        """increment adds the amount and leaves version alone."""
        created = store.create("tasks", {"count": 5})

        store.increment("tasks", created["id"], "count", 3)

        doc = store.get("tasks", created["id"])
        assert doc["count"] == 8
        assert doc["version"] == created["version"]

    def test_increment_defaults_to_one(self, store):
        """The default amount is 1."""
        created = store.create("tasks", {"count": 5})

        store.increment("tasks", created["id"], "count")

        assert store.get("tasks", created["id"])["count"] == 6

    def test_increment_missing_field_starts_at_zero(self, store):
        """A missing field is treated as 0."""
        created = store.create("tasks", {})

        store.increment("tasks", created["id"], "views", 2)

        assert store.get("tasks", created["id"])["views"] == 2

    def test_increment_null_field_starts_at_zero(self, store):
        """A field holding None is treated as 0 and the change is announced."""
        created = store.create("tasks", {"views": None})
        events = []
        store.subscribe(events.append)

        store.increment("tasks", created["id"], "views", 4)

        assert store.get("tasks", created["id"])["views"] == 4
        assert [e.kind for e in events] == [EventKind.INCREMENTED]

    def test_repeated_increments_accumulate(self, store):
        """k increments by n equal one increment by n*k."""
        created = store.create("tasks", {"count": 0})

        for _ in range(7):
            store.increment("tasks", created["id"], "count", 3)

        assert store.get("tasks", created["id"])["count"] == 21

    def test_increment_zero_and_negative(self, store):
        """Zero and negative amounts are honored."""
        created = store.create("tasks", {"count": 5})

        store.increment("tasks", created["id"], "count", 0)
        assert store.get("tasks", created["id"])["count"] == 5

        store.increment("tasks", created["id"], "count", -2)
        assert store.get("tasks", created["id"])["count"] == 3

    def test_increment_float(self, store):
        """Floats can be incremented."""
        created = store.create("tasks", {"score": 1.5})

        store.increment("tasks", created["id"], "score", 0.25)

        assert store.get("tasks", created["id"])["score"] == 1.75

    def test_increment_absent_document_is_noop(self, store):
        """Incrementing an absent document does nothing."""
        store.increment("tasks", "missing", "count")

        assert not store.has_collection("tasks")

    def test_increment_non_numeric_is_noop(self, store):
        """Non-numeric fields (including booleans) are left untouched."""
        created = store.create("tasks", {"title": "x", "done": False})

        store.increment("tasks", created["id"], "title")
        store.increment("tasks", created["id"], "done")

        doc = store.get("tasks", created["id"])
        assert doc["title"] == "x"
        assert doc["done"] is False

    def test_increment_reserved_fields_is_noop(self, store):
        """id and version cannot be incremented."""
        created = store.create("tasks", {})

        store.increment("tasks", created["id"], "version", 10)

        assert store.get("tasks", created["id"])["version"] == created["version"]


class TestEvents:
    """Tests for change events emitted by the store."""

    @pytest.fixture
    def store(self):
        return DocumentStore()

    @pytest.fixture
    def events(self, store):
        received = []
        store.subscribe(received.append)
        return received

    def test_lifecycle_events(self, store, events):
        """Each mutation emits one event of the matching kind."""
        created = store.create("tasks", {"count": 1})
        store.increment("tasks", created["id"], "count")
        doc = store.get("tasks", created["id"])
        store.update("tasks", doc)
        store.destroy("tasks", created["id"])

        assert [e.kind for e in events] == [
            EventKind.CREATED,
            EventKind.INCREMENTED,
            EventKind.UPDATED,
            EventKind.DESTROYED,
        ]
        assert all(e.collection == "tasks" for e in events)
        assert all(e.document_id == created["id"] for e in events)

    def test_created_event_carries_full_document(self, store, events):
        """The created event carries id, version and fields."""
        created = store.create("users", {"name": "Ann"})

        assert events[0].document == {"id": created["id"], "version": created["version"], "name": "Ann"}

    def test_incremented_event_carries_new_value(self, store, events):
        """The incremented event carries the updated field."""
        created = store.create("tasks", {"count": 5})
        store.increment("tasks", created["id"], "count", 3)

        assert events[-1].document["count"] == 8

    def test_failed_operations_emit_nothing(self, store, events):
        """Conflicts, absent documents and no-op destroys are silent."""
        created = store.create("tasks", {"count": 1})
        events.clear()

        store.update("tasks", {"id": created["id"], "version": -1})
        store.update("nope", {"id": created["id"], "version": created["version"]})
        store.destroy("tasks", "missing")
        store.destroy("nope", created["id"])
        store.increment("tasks", "missing", "count")

        assert events == []

    def test_destroyed_event_document_is_a_copy(self):
        """Mutating a destroyed event's document cannot reach stored state."""
        store = DocumentStore(StoreSettings(resolve_in_place=True))
        user = store.create("users", {"name": "Ann"})
        post = store.create("posts", {"author": f"users:{user['id']}"})
        # In-place resolution makes the post hold the stored user itself
        store.get("posts", post["id"], include=["author"])
        destroyed = []
        store.subscribe(destroyed.append, kinds=[EventKind.DESTROYED])

        store.destroy("users", user["id"])
        destroyed[0].document["name"] = "Mallory"

        assert store.get("posts", post["id"])["author"]["name"] == "Ann"

    def test_event_documents_are_copies(self, store, events):
        """Mutating an event document does not affect the store."""
        created = store.create("users", {"name": "Ann"})

        events[0].document["name"] = "Bob"

        assert store.get("users", created["id"])["name"] == "Ann"

    def test_subscribe_by_kind(self, store):
        """Listeners can select event kinds."""
        destroyed = []
        store.subscribe(destroyed.append, kinds=[EventKind.DESTROYED])

        created = store.create("users", {"name": "Ann"})
        store.destroy("users", created["id"])

        assert len(destroyed) == 1
        assert destroyed[0].document["name"] == "Ann"

    def test_unsubscribe(self, store):
        """Unsubscribed listeners receive nothing further."""
        received = []
        subscription = store.subscribe(received.append)
        store.create("users", {})

        store.unsubscribe(subscription)
        store.create("users", {})

        assert len(received) == 1


class TestThreadSafeStore:
    """Tests for the locked store mode."""

    def test_concurrent_increments(self):
        """Increments from many threads are not lost with thread_safe=True."""
        store = DocumentStore(StoreSettings(thread_safe=True))
        created = store.create("counters", {"value": 0})

        def worker():
            for _ in range(500):
                store.increment("counters", created["id"], "value")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get("counters", created["id"])["value"] == 4000

    def test_listener_may_reenter_store(self):
        """Listeners may call back into a locked store."""
        store = DocumentStore(StoreSettings(thread_safe=True))
        seen = []
        store.subscribe(lambda e: seen.append(store.get(e.collection, e.document_id)))

        created = store.create("users", {"name": "Ann"})

        assert seen[0]["id"] == created["id"]

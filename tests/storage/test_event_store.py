"""Tests for EventStore."""

import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

from shared.config.bot import BotConfig, StorageConfig
from shared.events.errors import AlreadyExists, NotFound, StoreFailure
from shared.events.models import Event, EventKey
from shared.storage.backends import JsonFileBackend, SqliteBackend
from shared.storage.event_store import EventStore, build_store

T0 = datetime(2024, 1, 1, 9, 30, 15, 250000, tzinfo=timezone.utc)


class FailingBackend:
    """Backend whose every call fails like an unreachable database."""

    def __init__(self, error: Exception):
        self._error = error

    def get(self, key):
        raise self._error

    def put(self, key, value):
        raise self._error

    def delete(self, key):
        raise self._error

    def keys(self):
        raise self._error

    def close(self):
        return None


class TestPointOperations:
    def test_load_missing_raises_not_found(self, store: EventStore):
        with pytest.raises(NotFound):
            store.load(EventKey("g", "nope"))

    def test_save_then_load_round_trips(self, store: EventStore):
        key = EventKey("g", "coffee")
        event = Event("the coffee machine broke", T0)

        store.save(key, event)

        assert store.load(key) == event

    def test_save_overwrites(self, store: EventStore):
        key = EventKey("g", "coffee")
        store.save(key, Event("first", T0))
        store.save(key, Event("second", T0))

        assert store.load(key).description == "second"

    def test_remove_then_load_raises_not_found(self, store: EventStore):
        key = EventKey("g", "coffee")
        store.save(key, Event("x", T0))

        store.remove(key)

        with pytest.raises(NotFound):
            store.load(key)

    def test_remove_missing_raises_not_found(self, store: EventStore):
        with pytest.raises(NotFound):
            store.remove(EventKey("g", "never"))


class TestAtomicHelpers:
    def test_insert_rejects_existing_key_without_change(self, store: EventStore):
        key = EventKey("g", "coffee")
        original = Event("original", T0)
        store.insert(key, original)

        with pytest.raises(AlreadyExists):
            store.insert(key, Event("replacement", datetime.now(timezone.utc)))

        assert store.load(key) == original

    def test_modify_missing_raises_not_found(self, store: EventStore):
        with pytest.raises(NotFound):
            store.modify(EventKey("g", "nope"), lambda e: e)

    def test_modify_persists_and_returns_result(self, store: EventStore):
        key = EventKey("g", "coffee")
        store.save(key, Event("old", T0))

        result = store.modify(key, lambda e: e.with_description("new"))

        assert result == Event("new", T0)
        assert store.load(key) == result

    def test_concurrent_inserts_have_one_winner(self, tmp_path: Path):
        store = EventStore(SqliteBackend(tmp_path / "events.db"))
        key = EventKey("g", "race")
        outcomes = []
        barrier = threading.Barrier(8)

        def attempt(i: int):
            barrier.wait()
            try:
                store.insert(key, Event(f"writer-{i}", T0))
                outcomes.append("created")
            except AlreadyExists:
                outcomes.append("exists")

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("created") == 1
        assert outcomes.count("exists") == 7


class TestEnumeration:
    def test_list_keys_decodes_every_key(self, store: EventStore):
        keys = [EventKey("g1", "a"), EventKey("g1", "b:c"), EventKey("g2", "a")]
        for key in keys:
            store.save(key, Event("x", T0))

        assert sorted(store.list_keys(), key=str) == sorted(keys, key=str)

    def test_list_keys_skips_foreign_entries(self, backend):
        backend.put("legacy-without-separator", "{}")
        store = EventStore(backend)
        store.save(EventKey("g", "a"), Event("x", T0))

        assert store.list_keys() == [EventKey("g", "a")]

    def test_list_community_is_isolated(self, store: EventStore):
        store.save(EventKey("12", "mine"), Event("x", T0))
        store.save(EventKey("123", "theirs"), Event("x", T0))
        store.save(EventKey("1", "other"), Event("x", T0))

        assert store.list_community("12") == ["mine"]

    def test_list_community_empty(self, store: EventStore):
        assert store.list_community("nobody") == []


class TestFailureMapping:
    @pytest.mark.parametrize(
        "error",
        [sqlite3.OperationalError("database is locked"), OSError("disk gone")],
    )
    def test_every_operation_raises_store_failure(self, error):
        store = EventStore(FailingBackend(error))
        key = EventKey("g", "a")

        with pytest.raises(StoreFailure):
            store.load(key)
        with pytest.raises(StoreFailure):
            store.save(key, Event("x", T0))
        with pytest.raises(StoreFailure):
            store.remove(key)
        with pytest.raises(StoreFailure):
            store.insert(key, Event("x", T0))
        with pytest.raises(StoreFailure):
            store.list_keys()
        with pytest.raises(StoreFailure):
            store.list_community("g")

    def test_corrupt_record_raises_store_failure(self, backend):
        backend.put(EventKey("g", "a").encode(), "not json")

        with pytest.raises(StoreFailure):
            EventStore(backend).load(EventKey("g", "a"))

    def test_non_string_record_raises_store_failure(self, tmp_path: Path):
        path = tmp_path / "events.json"
        path.write_text(
            json.dumps({"g:a": {"description": "x", "since": "2024-01-01T00:00:00+00:00"}}),
            encoding="utf-8",
        )

        with pytest.raises(StoreFailure):
            EventStore(JsonFileBackend(path)).load(EventKey("g", "a"))


class TestKeyLocks:
    """Per-key locks exist only while a key is in use."""

    def test_missing_key_lookups_leave_no_locks(self, store: EventStore):
        for i in range(50):
            with pytest.raises(NotFound):
                store.load(EventKey("g", f"missing-{i}"))
            with pytest.raises(NotFound):
                store.remove(EventKey("g", f"missing-{i}"))

        assert store.active_locks == 0

    def test_every_operation_releases_its_lock(self, store: EventStore):
        key = EventKey("g", "a")

        store.insert(key, Event("x", T0))
        with pytest.raises(AlreadyExists):
            store.insert(key, Event("y", T0))
        store.modify(key, lambda existing: existing.with_description("z"))
        store.save(key, Event("w", T0))
        store.load(key)
        store.remove(key)

        assert store.active_locks == 0

    def test_failed_change_releases_its_lock(self, store: EventStore):
        key = EventKey("g", "a")
        store.save(key, Event("x", T0))

        def explode(existing):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.modify(key, explode)

        assert store.active_locks == 0

    def test_contended_key_is_released_after_all_threads(self, tmp_path: Path):
        store = EventStore(SqliteBackend(tmp_path / "events.db"))
        key = EventKey("g", "busy")
        store.save(key, Event("x", T0))
        barrier = threading.Barrier(8)

        def touch(i: int):
            barrier.wait()
            store.modify(key, lambda existing: existing.with_description(f"writer-{i}"))

        threads = [threading.Thread(target=touch, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.active_locks == 0
        assert store.load(key).description.startswith("writer-")


class TestBuildStore:
    def test_sqlite_backend_by_default(self, tmp_path: Path):
        config = BotConfig(storage=StorageConfig(path=str(tmp_path / "db" / "events.db")))

        store = build_store(config)
        store.save(EventKey("g", "a"), Event("x", T0))

        assert (tmp_path / "db" / "events.db").exists()

    def test_json_backend(self, tmp_path: Path):
        path = tmp_path / "events.json"
        config = BotConfig(storage=StorageConfig(backend="json", path=str(path)))

        store = build_store(config)
        store.save(EventKey("g", "a"), Event("x", T0))

        assert EventStore(JsonFileBackend(path)).load(EventKey("g", "a")) == Event("x", T0)

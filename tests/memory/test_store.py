"""Tests for MemoryStore."""

import sqlite3
from datetime import datetime
from pathlib import Path

import pytest

from echoes.memory import Memory, MemoryStore


@pytest.fixture
def store(tmp_path: Path) -> MemoryStore:
    """Create a MemoryStore with a temporary database."""
    db_path = tmp_path / "test_memories.db"
    store = MemoryStore(db_path)
    store.init_db()
    yield store
    store.close()


def make_memory(title: str = "Coffee", owner_id: str = "u1", **kwargs) -> Memory:
    kwargs.setdefault("event_date", datetime(2024, 3, 1, 9, 30))
    return Memory(title=title, owner_id=owner_id, latitude=40.0, longitude=-74.0, **kwargs)


class TestMemoryStoreInit:
    """Tests for MemoryStore initialization."""

    def test_creates_db_directory(self, tmp_path: Path):
        """Store creates parent directories if they don't exist."""
        nested_path = tmp_path / "nested" / "dir" / "memories.db"
        store = MemoryStore(nested_path)
        store.init_db()
        assert nested_path.exists()
        store.close()

    def test_creates_memories_table(self, store: MemoryStore):
        conn = store._get_connection()
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='memories'"
        )
        assert cursor.fetchone() is not None

    def test_init_db_idempotent(self, store: MemoryStore):
        store.init_db()
        store.init_db()


class TestMemoryStoreSave:
    def test_save_assigns_id_and_created_at(self, store: MemoryStore):
        saved = store.save(make_memory())
        assert saved.id is not None
        assert saved.created_at is not None

    def test_save_keeps_given_id(self, store: MemoryStore):
        saved = store.save(make_memory(id="m1"))
        assert saved.id == "m1"

    def test_save_requires_owner(self, store: MemoryStore):
        with pytest.raises(ValueError):
            store.save(Memory(title="orphan"))

    def test_round_trip_fields(self, store: MemoryStore):
        memory = make_memory(
            description="Morning",
            location_name="Park",
            photo=b"jpeg",
            has_photo=True,
            voice_note=b"m4a",
            has_voice_note=True,
        )
        saved = store.save(memory)
        [fetched] = store.fetch("u1")

        assert fetched == saved
        assert fetched.event_date == datetime(2024, 3, 1, 9, 30)
        assert fetched.photo == b"jpeg"
        assert fetched.voice_note == b"m4a"

    def test_flags_stored_independently(self, store: MemoryStore):
        store.save(make_memory(photo=None, has_photo=True))
        [fetched] = store.fetch("u1")
        assert fetched.has_photo is True
        assert fetched.photo is None

    def test_duplicate_id_rolls_back(self, store: MemoryStore):
        store.save(make_memory(id="m1"))
        with pytest.raises(sqlite3.IntegrityError):
            store.save(make_memory(id="m1", title="Again"))
        assert [m.title for m in store.fetch("u1")] == ["Coffee"]


class TestMemoryStoreFetch:
    def test_fetch_empty(self, store: MemoryStore):
        assert store.fetch("u1") == []

    def test_fetch_none_owner_matches_nothing(self, store: MemoryStore):
        store.save(make_memory())
        assert store.fetch(None) == []

    def test_fetch_scoped_to_owner(self, store: MemoryStore):
        store.save(make_memory(title="Mine", owner_id="u1"))
        store.save(make_memory(title="Theirs", owner_id="u2"))
        assert [m.title for m in store.fetch("u1")] == ["Mine"]
        assert [m.title for m in store.fetch("u2")] == ["Theirs"]

    def test_fetch_orders_by_event_date_desc(self, store: MemoryStore):
        store.save(make_memory(title="old", event_date=datetime(2020, 1, 1)))
        store.save(make_memory(title="new", event_date=datetime(2024, 1, 1)))
        store.save(make_memory(title="mid", event_date=datetime(2022, 1, 1)))
        assert [m.title for m in store.fetch("u1")] == ["new", "mid", "old"]

    def test_get_by_id(self, store: MemoryStore):
        saved = store.save(make_memory())
        assert store.get(saved.id) == saved
        assert store.get("missing") is None


class TestMemoryStoreDelete:
    def test_delete_by_id(self, store: MemoryStore):
        saved = store.save(make_memory())
        assert store.delete(saved.id)
        assert store.fetch("u1") == []

    def test_delete_nonexistent(self, store: MemoryStore):
        assert not store.delete("missing")


class TestMemoryStoreLifecycle:
    def test_close_and_reopen(self, tmp_path: Path):
        """Data persists after close and reopen."""
        db_path = tmp_path / "memories.db"

        store1 = MemoryStore(db_path)
        store1.init_db()
        store1.save(make_memory())
        store1.close()

        store2 = MemoryStore(db_path)
        store2.init_db()
        memories = store2.fetch("u1")
        store2.close()

        assert len(memories) == 1
        assert memories[0].title == "Coffee"

    def test_close_idempotent(self, store: MemoryStore):
        store.close()
        store.close()

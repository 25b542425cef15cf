"""SQLite storage for memories."""

import sqlite3
import uuid
from datetime import datetime
from pathlib import Path

from .models import Memory

_COLUMNS = (
    "id, owner_id, title, description, event_date, created_at, latitude, "
    "longitude, location_name, photo, voice_note, has_photo, has_voice_note"
)


class MemoryStore:
    """Persistent storage for memories using SQLite.

    Every query is scoped to a single owner. Write failures roll back the
    pending transaction and re-raise ``sqlite3.Error``.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the store with a database path.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def init_db(self) -> None:
        """Create the memories table if it doesn't exist."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS memories (
                id              TEXT PRIMARY KEY,
                owner_id        TEXT NOT NULL,
                title           TEXT NOT NULL DEFAULT '',
                description     TEXT NOT NULL DEFAULT '',
                event_date      TEXT,
                created_at      TEXT NOT NULL,
                latitude        REAL NOT NULL DEFAULT 0.0,
                longitude       REAL NOT NULL DEFAULT 0.0,
                location_name   TEXT,
                photo           BLOB,
                voice_note      BLOB,
                has_photo       INTEGER NOT NULL DEFAULT 0,
                has_voice_note  INTEGER NOT NULL DEFAULT 0
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_memories_owner_date "
            "ON memories(owner_id, event_date)"
        )
        conn.commit()

    def save(self, memory: Memory) -> Memory:
        """Insert a new memory.

        Args:
            memory: The memory to persist. Must carry an owner_id.

        Returns:
            The stored memory with its id and created_at assigned.
        """
        if memory.owner_id is None:
            raise ValueError("memory has no owner")

        stored = Memory(
            id=memory.id or str(uuid.uuid4()),
            title=memory.title,
            description=memory.description,
            event_date=memory.event_date,
            created_at=memory.created_at or datetime.now(),
            latitude=memory.latitude,
            longitude=memory.longitude,
            location_name=memory.location_name,
            photo=memory.photo,
            voice_note=memory.voice_note,
            has_photo=memory.has_photo,
            has_voice_note=memory.has_voice_note,
            owner_id=memory.owner_id,
        )

        conn = self._get_connection()
        try:
            conn.execute(
                f"INSERT INTO memories ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    stored.id,
                    stored.owner_id,
                    stored.title,
                    stored.description,
                    _to_text(stored.event_date),
                    _to_text(stored.created_at),
                    stored.latitude,
                    stored.longitude,
                    stored.location_name,
                    stored.photo,
                    stored.voice_note,
                    int(stored.has_photo),
                    int(stored.has_voice_note),
                ),
            )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        return stored

    def fetch(self, owner_id: str | None) -> list[Memory]:
        """Get all memories of an owner, most recent event first.

        Args:
            owner_id: The owner to scope by. None matches nothing.

        Returns:
            List of memories ordered by event_date descending.
        """
        if owner_id is None:
            return []
        conn = self._get_connection()
        cursor = conn.execute(
            f"SELECT {_COLUMNS} FROM memories WHERE owner_id = ? "
            "ORDER BY event_date DESC, rowid ASC",
            (owner_id,),
        )
        return [self._row_to_memory(row) for row in cursor.fetchall()]

    def get(self, memory_id: str) -> Memory | None:
        """Get a single memory by id."""
        conn = self._get_connection()
        cursor = conn.execute(
            f"SELECT {_COLUMNS} FROM memories WHERE id = ?", (memory_id,)
        )
        row = cursor.fetchone()
        return self._row_to_memory(row) if row is not None else None

    def delete(self, memory_id: str) -> bool:
        """Delete a memory by its id.

        Args:
            memory_id: The id of the memory to delete.

        Returns:
            True if a memory was deleted, False otherwise.
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute("DELETE FROM memories WHERE id = ?", (memory_id,))
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        return cursor.rowcount > 0

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _row_to_memory(self, row: sqlite3.Row) -> Memory:
        """Convert a database row to a Memory."""
        return Memory(
            id=row["id"],
            owner_id=row["owner_id"],
            title=row["title"],
            description=row["description"],
            event_date=_from_text(row["event_date"]),
            created_at=_from_text(row["created_at"]),
            latitude=row["latitude"],
            longitude=row["longitude"],
            location_name=row["location_name"],
            photo=row["photo"],
            voice_note=row["voice_note"],
            has_photo=bool(row["has_photo"]),
            has_voice_note=bool(row["has_voice_note"]),
        )


def _to_text(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_text(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None

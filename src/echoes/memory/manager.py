"""Memory manager: per-owner memory collection and its derived views."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Callable

from PIL import Image

from ..logging import JSONLLogger, get_logger
from .media import DEFAULT_JPEG_QUALITY, decode_photo, encode_photo
from .models import Location, Memory
from .store import MemoryStore

logger = logging.getLogger(__name__)

MemoriesListener = Callable[[list[Memory]], None]

UNAUTHENTICATED_MESSAGE = "No authenticated user. Please sign in first."


class MemoryManager:
    """Owns the memory collection of the signed-in user.

    Persistence failures never propagate: they are stored in
    ``error_message`` and ``memories`` keeps its last successful fetch.
    After every successful save or delete the collection is re-fetched
    before listeners are told that memories changed.
    """

    def __init__(
        self,
        store: MemoryStore,
        event_log: JSONLLogger | None = None,
        photo_quality: int = DEFAULT_JPEG_QUALITY,
    ) -> None:
        """Initialize the manager with a store.

        Args:
            store: The MemoryStore for persistence.
            event_log: Structured event log, the global one if omitted.
            photo_quality: JPEG quality used when compressing photos.
        """
        self.store = store
        self.event_log = event_log or get_logger()
        self.photo_quality = photo_quality
        self.memories: list[Memory] = []
        self.is_loading = False
        self.error_message: str | None = None
        self._current_owner_id: str | None = None
        self._listeners: list[MemoriesListener] = []

    @property
    def current_owner_id(self) -> str | None:
        return self._current_owner_id

    def add_listener(self, listener: MemoriesListener) -> None:
        """Subscribe to the memories-changed signal."""
        self._listeners.append(listener)

    def remove_listener(self, listener: MemoriesListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_current_owner(self, owner_id: str | None) -> list[Memory]:
        """Switch the active owner and re-fetch."""
        self._current_owner_id = owner_id
        self.event_log.set_owner_id(owner_id)
        return self.fetch()

    def fetch(self) -> list[Memory]:
        """Load the current owner's memories, most recent event first.

        Returns:
            The fetched collection, or the previous one on storage failure.
        """
        self.is_loading = True
        self.error_message = None
        try:
            self.memories = self.store.fetch(self._current_owner_id)
        except sqlite3.Error as e:
            self.error_message = f"Failed to fetch memories: {e}"
            logger.warning(self.error_message)
        finally:
            self.is_loading = False
        return self.memories

    def save(
        self,
        title: str,
        description: str,
        event_date: datetime,
        location: Location,
        photo: Image.Image | bytes | None = None,
        voice_note: bytes | None = None,
    ) -> bool:
        """Persist a new memory for the current owner.

        Args:
            title: Memory title. Not validated here.
            description: Free text description.
            event_date: When the memory happened.
            location: Where it happened.
            photo: Optional image or already-compressed image bytes.
            voice_note: Optional encoded audio.

        Returns:
            True if the memory was stored, False otherwise.
        """
        owner_id = self._current_owner_id
        if owner_id is None:
            self.error_message = UNAUTHENTICATED_MESSAGE
            return False

        try:
            photo_data = (
                encode_photo(photo, quality=self.photo_quality) if photo is not None else None
            )
        except (OSError, ValueError) as e:
            self.error_message = f"Failed to save memory: {e}"
            return False

        memory = Memory(
            title=title,
            description=description,
            event_date=event_date,
            location_name=location.name,
            latitude=location.latitude,
            longitude=location.longitude,
            photo=photo_data,
            has_photo=photo_data is not None,
            voice_note=voice_note,
            has_voice_note=voice_note is not None,
            owner_id=owner_id,
        )

        try:
            saved = self.store.save(memory)
        except sqlite3.Error as e:
            self.error_message = f"Failed to save memory: {e}"
            logger.warning(self.error_message)
            return False

        self.event_log.log_memory_saved(saved.id, owner_id=owner_id)
        self.fetch()
        self._notify_changed()
        return True

    def delete(self, memory: Memory) -> bool:
        """Remove a memory, re-fetch and signal the change."""
        if memory.id is None:
            return False
        try:
            self.store.delete(memory.id)
        except sqlite3.Error as e:
            self.error_message = f"Failed to delete memory: {e}"
            logger.warning(self.error_message)
            return False

        self.event_log.log_memory_deleted(memory.id, owner_id=self._current_owner_id)
        self.fetch()
        self._notify_changed()
        return True

    def search(self, query: str) -> list[Memory]:
        """Case-insensitive substring search over the fetched collection.

        An empty query returns the current collection itself.
        """
        if not query:
            return self.memories

        needle = query.casefold()
        return [
            memory
            for memory in self.memories
            if needle in (memory.title or "").casefold()
            or needle in (memory.description or "").casefold()
            or needle in (memory.location_name or "").casefold()
        ]

    def photo(self, memory: Memory) -> Image.Image | None:
        """Decode a memory's photo, None if absent or unreadable."""
        return decode_photo(memory.photo)

    def memory_count(self) -> int:
        return len(self.memories)

    def location_count(self) -> int:
        return len({m.location_name for m in self.memories if m.location_name is not None})

    def photo_count(self) -> int:
        return sum(1 for m in self.memories if m.has_photo)

    def voice_note_count(self) -> int:
        return sum(1 for m in self.memories if m.has_voice_note)

    def find(self, memory_id: str) -> Memory | None:
        """Find a fetched memory by its id."""
        return next((m for m in self.memories if m.id == memory_id), None)

    def _notify_changed(self) -> None:
        memories = self.memories
        for listener in list(self._listeners):
            try:
                listener(memories)
            except Exception:
                logger.exception("memories-changed listener failed")

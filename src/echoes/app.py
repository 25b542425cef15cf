"""Echoes application: wires auth, memories, geofencing and notifications."""

from __future__ import annotations

import logging
from datetime import datetime

from PIL import Image

from .auth import AuthenticationManager, User
from .config import EchoesConfig
from .geofence import GeofenceSynchronizer, LocationProvider, SimulatedLocationProvider
from .location import LocationService, ReverseGeocoder
from .logging import JSONLLogger
from .memory import Location, Memory, MemoryManager, MemoryStore
from .notifications import LocalNotificationCenter, NotificationDispatcher

logger = logging.getLogger(__name__)


def _build_dispatcher(config: EchoesConfig, event_log: JSONLLogger) -> NotificationDispatcher:
    if config.telegram_enabled:
        from .notifications.telegram import TelegramDispatcher

        return TelegramDispatcher(
            config.telegram_token, config.telegram_chat_id, event_log=event_log
        )
    return LocalNotificationCenter(event_log=event_log)


class EchoesApp:
    """Owns every component and the signals between them.

    Signing in or out re-scopes the memory collection; every
    memories-changed signal re-syncs the monitored regions.
    """

    def __init__(
        self,
        config: EchoesConfig,
        provider: LocationProvider | None = None,
        dispatcher: NotificationDispatcher | None = None,
        geocoder: ReverseGeocoder | None = None,
        event_log: JSONLLogger | None = None,
    ) -> None:
        self.config = config
        self.event_log = event_log or JSONLLogger(log_dir=config.log_dir)

        if config.db_path is None:
            raise ValueError("db_path not set")
        self.store = MemoryStore(config.db_path)
        self.store.init_db()
        self.memories = MemoryManager(
            self.store, event_log=self.event_log, photo_quality=config.photo_quality
        )
        self.auth = AuthenticationManager(config.credentials_path, event_log=self.event_log)

        self.provider = provider or SimulatedLocationProvider()
        self.notifications = dispatcher or _build_dispatcher(config, self.event_log)
        self.geofence = GeofenceSynchronizer(
            self.provider,
            self.notifications,
            radius=config.region_radius,
            max_regions=config.max_regions,
            event_log=self.event_log,
        )
        self.location = LocationService(self.provider, timeout=config.location_timeout)
        self.geocoder = geocoder or ReverseGeocoder(
            config.geocoder_url, user_agent=config.geocoder_user_agent
        )

        self._geofencing_allowed = False
        self.memories.add_listener(self._sync_regions)
        self.auth.add_listener(self._on_user_changed)

    async def start(self) -> None:
        """Start event handling, load the current user's memories and sync."""
        await self.geofence.start()
        self.memories.set_current_owner(self._owner_id(self.auth.current_user))
        self._geofencing_allowed = self.notifications.request_authorization()
        if self._geofencing_allowed:
            self.geofence.request_always_authorization()
        self._sync_regions(self.memories.memories)

    async def close(self) -> None:
        """Stop event handling and release storage."""
        await self.geofence.close()
        self.location.close()
        self.store.close()

    def _owner_id(self, user: User | None) -> str | None:
        return user.id if user is not None else None

    def _on_user_changed(self, user: User | None) -> None:
        self.memories.set_current_owner(self._owner_id(user))
        self._sync_regions(self.memories.memories)

    def _sync_regions(self, memories: list[Memory]) -> None:
        # Regions are only watched once notification permission is granted.
        if self._geofencing_allowed:
            self.geofence.sync_regions(memories)

    async def create_memory(
        self,
        title: str,
        latitude: float,
        longitude: float,
        description: str = "",
        event_date: datetime | None = None,
        location_name: str | None = None,
        photo: Image.Image | bytes | None = None,
        voice_note: bytes | None = None,
    ) -> bool:
        """Save a memory, resolving the place name when none is given.

        Returns:
            True if the memory was stored.
        """
        title = title.strip()
        if not title:
            self.memories.error_message = "Title cannot be empty"
            return False

        if location_name:
            location = Location(name=location_name, latitude=latitude, longitude=longitude)
        else:
            location = await self.geocoder.resolve(latitude, longitude)

        return self.memories.save(
            title=title,
            description=description.strip(),
            event_date=event_date or datetime.now(),
            location=location,
            photo=photo,
            voice_note=voice_note,
        )

    async def create_memory_here(
        self,
        title: str,
        description: str = "",
        event_date: datetime | None = None,
    ) -> bool:
        """Save a memory at the device's current location."""
        fix = await self.location.get_current_location()
        if fix is None:
            self.memories.error_message = self.location.error_message
            return False
        return await self.create_memory(
            title,
            fix.latitude,
            fix.longitude,
            description=description,
            event_date=event_date,
        )

    def open_tapped_memory(self) -> Memory | None:
        """Resolve the memory the user opened from a notification."""
        if not isinstance(self.notifications, LocalNotificationCenter):
            return None
        memory_id = self.notifications.consume_tapped_memory_id()
        if memory_id is None:
            return None
        return self.memories.find(memory_id)

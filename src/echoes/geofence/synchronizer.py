"""Keeps monitored regions in step with the memory collection."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Iterable, Protocol

from ..logging import JSONLLogger, get_logger
from ..memory.models import is_valid_coordinate
from ..notifications.dispatcher import (
    MEMORY_ID_KEY,
    MEMORY_UNLOCKED_BODY,
    MEMORY_UNLOCKED_TITLE,
    NotificationDispatcher,
    memory_unlocked_identifier,
)
from .models import AuthorizationStatus, MonitoredRegion, RegionState
from .provider import LocationDelegate, LocationProvider

logger = logging.getLogger(__name__)

DEFAULT_REGION_RADIUS = 150.0


class RegionSource(Protocol):
    """Anything with an id and a coordinate, usually a Memory."""

    id: str | None
    latitude: float
    longitude: float


class GeofenceSynchronizer(LocationDelegate):
    """Mirrors the memory collection as entry-only circular regions.

    ``sync_regions`` tears down every monitored region and rebuilds one per
    memory with a valid coordinate. Provider callbacks are redelivered onto
    the event loop captured by ``start`` and handled one at a time from a
    FIFO queue. ``sync_regions`` never awaits, so a sync pass and an event
    handler cannot interleave.
    """

    def __init__(
        self,
        provider: LocationProvider,
        dispatcher: NotificationDispatcher,
        radius: float = DEFAULT_REGION_RADIUS,
        max_regions: int | None = None,
        event_log: JSONLLogger | None = None,
    ) -> None:
        self.provider = provider
        self.dispatcher = dispatcher
        self.radius = radius
        self.max_regions = max_regions
        self.event_log = event_log or get_logger()
        self.monitored_region_ids: list[str] = []
        self.error_message: str | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue | None = None
        self._worker: asyncio.Task | None = None
        self.provider.add_delegate(self)

    # ── Lifecycle ──────────────────────────────────────────────

    async def start(self) -> None:
        """Bind to the running loop and start handling provider events."""
        if self._worker is not None and not self._worker.done():
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run(self._queue))

    async def drain(self) -> None:
        """Wait until every queued provider event has been handled.

        Callbacks posted from other threads land on the loop one iteration
        later, so the loop is yielded to before each join.
        """
        while self._queue is not None:
            await asyncio.sleep(0)
            await self._queue.join()
            if self._queue is None or self._queue.empty():
                return

    async def close(self) -> None:
        """Stop handling events. Pending events are dropped."""
        self.provider.remove_delegate(self)
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._queue = None
        self._loop = None

    async def _run(self, queue: asyncio.Queue) -> None:
        while True:
            handler, args = await queue.get()
            try:
                await handler(*args)
            except Exception:
                logger.exception("Geofence event handler failed")
            finally:
                queue.task_done()

    def _enqueue(self, handler: Callable[..., Awaitable[None]], *args: Any) -> None:
        """Redeliver a provider callback onto the owning loop."""
        loop = self._loop
        queue = self._queue
        if loop is None or queue is None or loop.is_closed():
            logger.warning("Geofence synchronizer not started, dropping %s", handler.__name__)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            queue.put_nowait((handler, args))
        else:
            loop.call_soon_threadsafe(queue.put_nowait, (handler, args))

    # ── Permission ─────────────────────────────────────────────

    def request_always_authorization(self) -> bool:
        """Request "always" permission, only if it was never asked.

        Returns:
            True if a request was made.
        """
        if self.provider.authorization_status is not AuthorizationStatus.NOT_DETERMINED:
            return False
        logger.debug("Requesting always location authorization")
        self.provider.request_always_authorization()
        return True

    # ── Sync ───────────────────────────────────────────────────

    def sync_regions(self, memories: Iterable[RegionSource]) -> list[str]:
        """Replace all monitored regions with one per valid memory.

        A no-op when location services or region monitoring are unavailable.

        Args:
            memories: The current memory collection.

        Returns:
            Identifiers of the regions now being monitored.
        """
        if not self.provider.location_services_enabled():
            logger.debug("Location services disabled, skipping region sync")
            return self.monitored_region_ids
        if not self.provider.monitoring_available():
            logger.debug("Region monitoring not available, skipping region sync")
            return self.monitored_region_ids

        for region in self.provider.monitored_regions:
            self.provider.stop_monitoring(region)

        region_ids: list[str] = []
        skipped = 0
        for memory in memories:
            lat = memory.latitude
            lon = memory.longitude
            if not is_valid_coordinate(lat, lon):
                skipped += 1
                continue
            if self.max_regions is not None and len(region_ids) >= self.max_regions:
                skipped += 1
                continue

            region = MonitoredRegion(
                region_id=memory.id or str(uuid.uuid4()),
                latitude=lat,
                longitude=lon,
                radius=self.radius,
            )
            self.provider.start_monitoring(region)
            self.provider.request_state(region)
            region_ids.append(region.region_id)

        self.monitored_region_ids = region_ids
        logger.debug("Monitoring %d regions", len(region_ids))
        self.event_log.log_regions_synced(region_ids, skipped=skipped)
        return region_ids

    # ── Provider callbacks ─────────────────────────────────────

    def on_monitoring_started(self, region: MonitoredRegion) -> None:
        logger.debug("Started monitoring %s", region.region_id)

    def on_region_state(self, region: MonitoredRegion, state: RegionState) -> None:
        self._enqueue(self._handle_region_state, region, state)

    def on_region_entered(self, region: MonitoredRegion) -> None:
        self._enqueue(self.handle_region_entered, region.region_id)

    def on_monitoring_failed(self, region: MonitoredRegion | None, error: str) -> None:
        self._enqueue(self._handle_monitoring_failed, region, error)

    def on_authorization_changed(self, status: AuthorizationStatus) -> None:
        logger.debug("Location authorization changed to %s", status.value)

    # ── Event handlers (run on the owning loop) ────────────────

    async def handle_region_entered(self, region_id: str) -> bool:
        """Send the unlock notification for an entered region.

        Entries for regions removed by a later sync are ignored.

        Returns:
            True if a notification was handed to the dispatcher.
        """
        if region_id not in self.monitored_region_ids:
            logger.debug("Ignoring entry for stale region %s", region_id)
            return False

        logger.info("Entered region %s", region_id)
        self.event_log.log_region_entered(region_id)
        await self.dispatcher.notify(
            memory_unlocked_identifier(region_id),
            MEMORY_UNLOCKED_TITLE,
            MEMORY_UNLOCKED_BODY,
            {MEMORY_ID_KEY: region_id},
        )
        return True

    async def _handle_region_state(self, region: MonitoredRegion, state: RegionState) -> None:
        # Already-inside regions are only logged to avoid duplicate notifications.
        logger.debug("Region %s state: %s", region.region_id, state.value)

    async def _handle_monitoring_failed(self, region: MonitoredRegion | None, error: str) -> None:
        self.error_message = f"Monitoring failed: {error}"
        region_id = region.region_id if region is not None else None
        logger.warning("Monitoring failed for %s: %s", region_id, error)
        self.event_log.log("monitoring_failed", memory_id=region_id, error=error)

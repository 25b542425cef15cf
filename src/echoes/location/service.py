"""Current-location lookup with permission handling and a timeout."""

from __future__ import annotations

import asyncio
import logging

from ..geofence.models import AuthorizationStatus, LocationFix
from ..geofence.provider import LocationDelegate, LocationProvider
from ..memory.models import is_valid_coordinate

logger = logging.getLogger(__name__)

DEFAULT_LOCATION_TIMEOUT = 10.0

DENIED_MESSAGE = "Location access denied. Please enable in Settings."
TIMEOUT_MESSAGE = "Location request timed out. Please try again."
INVALID_FIX_MESSAGE = "Invalid location coordinates received"


class LocationService(LocationDelegate):
    """One-shot location requests on top of a LocationProvider.

    Provider callbacks are redelivered onto the loop of the request that is
    waiting for them. Only one request is outstanding at a time: starting a
    new one resolves the previous one with None.
    """

    def __init__(
        self,
        provider: LocationProvider,
        timeout: float = DEFAULT_LOCATION_TIMEOUT,
    ) -> None:
        self.provider = provider
        self.timeout = timeout
        self.authorization_status = provider.authorization_status
        self.location: LocationFix | None = None
        self.is_loading = False
        self.error_message: str | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: asyncio.Future[LocationFix | None] | None = None
        self._auth_waiters: list[asyncio.Future[AuthorizationStatus]] = []
        self.provider.add_delegate(self)

    def request_location_permission(self) -> bool:
        """Ask for when-in-use permission if it was never asked.

        Returns:
            True if permission is already granted.
        """
        status = self.authorization_status
        if status is AuthorizationStatus.NOT_DETERMINED:
            logger.debug("Requesting when-in-use location authorization")
            self.provider.request_when_in_use_authorization()
            return False
        if status in (AuthorizationStatus.DENIED, AuthorizationStatus.RESTRICTED):
            self.error_message = DENIED_MESSAGE
            return False
        return status.is_authorized

    async def get_current_location(self) -> LocationFix | None:
        """Wait for a single valid location fix.

        Requests permission first when it is undetermined and waits for the
        answer. Fails with a message on denial, provider error, invalid
        coordinates or after ``timeout`` seconds.
        """
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._supersede()

        if not self.authorization_status.is_authorized:
            if not await self._ensure_authorized(loop):
                return None

        self.is_loading = True
        self.error_message = None
        self.location = None
        future: asyncio.Future[LocationFix | None] = loop.create_future()
        self._pending = future
        self.provider.start_updating_location()

        try:
            return await asyncio.wait_for(future, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.debug("Location request timed out")
            self.provider.stop_updating_location()
            if self.location is None and self.is_loading:
                self.is_loading = False
                self.error_message = TIMEOUT_MESSAGE
            return None
        finally:
            if self._pending is future:
                self._pending = None

    async def _ensure_authorized(self, loop: asyncio.AbstractEventLoop) -> bool:
        if self.authorization_status is AuthorizationStatus.NOT_DETERMINED:
            waiter: asyncio.Future[AuthorizationStatus] = loop.create_future()
            self._auth_waiters.append(waiter)
            self.request_location_permission()
            try:
                await asyncio.wait_for(waiter, timeout=self.timeout)
            except asyncio.TimeoutError:
                self.error_message = TIMEOUT_MESSAGE
                return False
            finally:
                if waiter in self._auth_waiters:
                    self._auth_waiters.remove(waiter)
        else:
            self.request_location_permission()
        return self.authorization_status.is_authorized

    def _supersede(self) -> None:
        """Resolve the outstanding request, if any, with None."""
        if self._pending is not None and not self._pending.done():
            logger.debug("Superseding outstanding location request")
            self._pending.set_result(None)
        self._pending = None

    def close(self) -> None:
        """Abandon any outstanding request and stop location updates."""
        self._supersede()
        for waiter in self._auth_waiters:
            if not waiter.done():
                waiter.cancel()
        self._auth_waiters.clear()
        self.provider.stop_updating_location()
        self.provider.remove_delegate(self)
        self.is_loading = False

    # ── Provider callbacks ─────────────────────────────────────

    def _redeliver(self, callback, *args) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            callback(*args)
            return
        loop.call_soon_threadsafe(callback, *args)

    def on_location_updated(self, fix: LocationFix) -> None:
        self._redeliver(self._handle_fix, fix)

    def on_location_failed(self, error: str) -> None:
        self._redeliver(self._handle_failure, error)

    def on_authorization_changed(self, status: AuthorizationStatus) -> None:
        self._redeliver(self._handle_authorization, status)

    def _handle_fix(self, fix: LocationFix) -> None:
        self.is_loading = False
        if is_valid_coordinate(fix.latitude, fix.longitude):
            self.location = fix
            self.error_message = None
            result: LocationFix | None = fix
        else:
            self.error_message = INVALID_FIX_MESSAGE
            result = None
        self.provider.stop_updating_location()
        if self._pending is not None and not self._pending.done():
            self._pending.set_result(result)

    def _handle_failure(self, error: str) -> None:
        self.is_loading = False
        self.error_message = f"Failed to get location: {error}"
        if self._pending is not None and not self._pending.done():
            self._pending.set_result(None)

    def _handle_authorization(self, status: AuthorizationStatus) -> None:
        self.authorization_status = status
        if status.is_authorized:
            self.error_message = None
        elif status in (AuthorizationStatus.DENIED, AuthorizationStatus.RESTRICTED):
            self.error_message = DENIED_MESSAGE
            self.is_loading = False
        else:
            self.is_loading = False

        for waiter in self._auth_waiters:
            if not waiter.done():
                waiter.set_result(status)

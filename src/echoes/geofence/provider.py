"""Location provider interface and an in-process simulated provider.

A provider owns permission state, one-shot location updates and the list of
monitored regions. It reports everything through ``LocationDelegate``
callbacks, which may arrive on any thread; consumers redeliver them onto
their own event loop.
"""

import logging
from abc import ABC, abstractmethod

from .models import AuthorizationStatus, LocationFix, MonitoredRegion, RegionState

logger = logging.getLogger(__name__)

DEFAULT_MAX_MONITORED_REGIONS = 20


class LocationDelegate:
    """Receiver of provider events. All methods default to no-ops."""

    def on_authorization_changed(self, status: AuthorizationStatus) -> None:
        pass

    def on_location_updated(self, fix: LocationFix) -> None:
        pass

    def on_location_failed(self, error: str) -> None:
        pass

    def on_monitoring_started(self, region: MonitoredRegion) -> None:
        pass

    def on_region_state(self, region: MonitoredRegion, state: RegionState) -> None:
        pass

    def on_region_entered(self, region: MonitoredRegion) -> None:
        pass

    def on_region_exited(self, region: MonitoredRegion) -> None:
        pass

    def on_monitoring_failed(self, region: MonitoredRegion | None, error: str) -> None:
        pass


class LocationProvider(ABC):
    """Base interface for location and region-monitoring backends."""

    def __init__(self) -> None:
        self._delegates: list[LocationDelegate] = []

    def add_delegate(self, delegate: LocationDelegate) -> None:
        if delegate not in self._delegates:
            self._delegates.append(delegate)

    def remove_delegate(self, delegate: LocationDelegate) -> None:
        if delegate in self._delegates:
            self._delegates.remove(delegate)

    def _emit(self, callback: str, *args: object) -> None:
        """Invoke a delegate callback on every registered delegate."""
        for delegate in list(self._delegates):
            getattr(delegate, callback)(*args)

    @property
    @abstractmethod
    def authorization_status(self) -> AuthorizationStatus:
        """Current location permission."""
        ...

    @abstractmethod
    def location_services_enabled(self) -> bool:
        ...

    @abstractmethod
    def monitoring_available(self) -> bool:
        """Whether circular region monitoring is supported."""
        ...

    @abstractmethod
    def request_when_in_use_authorization(self) -> None:
        ...

    @abstractmethod
    def request_always_authorization(self) -> None:
        ...

    @abstractmethod
    def start_updating_location(self) -> None:
        """Begin delivering location fixes to delegates."""
        ...

    @abstractmethod
    def stop_updating_location(self) -> None:
        ...

    @property
    @abstractmethod
    def monitored_regions(self) -> list[MonitoredRegion]:
        ...

    @abstractmethod
    def start_monitoring(self, region: MonitoredRegion) -> None:
        ...

    @abstractmethod
    def stop_monitoring(self, region: MonitoredRegion) -> None:
        ...

    @abstractmethod
    def request_state(self, region: MonitoredRegion) -> None:
        """Ask for a one-off inside/outside report for a region."""
        ...


class SimulatedLocationProvider(LocationProvider):
    """Pure Python provider driven by explicit position changes.

    Moving the simulated device with ``move_to`` reports entries and exits
    for monitored regions and feeds pending location requests. Permission
    requests are answered with ``authorization_response`` (or with the
    requested level when it is None) unless ``defer_authorization`` is set,
    in which case the host answers later through ``set_authorization``.
    """

    def __init__(
        self,
        authorization: AuthorizationStatus = AuthorizationStatus.NOT_DETERMINED,
        authorization_response: AuthorizationStatus | None = None,
        defer_authorization: bool = False,
        services_enabled: bool = True,
        monitoring_available: bool = True,
        max_regions: int = DEFAULT_MAX_MONITORED_REGIONS,
        position: tuple[float, float] | None = None,
    ) -> None:
        super().__init__()
        self._authorization = authorization
        self.authorization_response = authorization_response
        self.defer_authorization = defer_authorization
        self.services_enabled = services_enabled
        self.region_monitoring_available = monitoring_available
        self.max_regions = max_regions
        self.authorization_requests: list[AuthorizationStatus] = []
        self._position = position
        self._updating = False
        self._regions: dict[str, MonitoredRegion] = {}
        self._inside: set[str] = set()

    @property
    def authorization_status(self) -> AuthorizationStatus:
        return self._authorization

    @property
    def position(self) -> tuple[float, float] | None:
        return self._position

    @property
    def is_updating_location(self) -> bool:
        return self._updating

    def location_services_enabled(self) -> bool:
        return self.services_enabled

    def monitoring_available(self) -> bool:
        return self.region_monitoring_available

    def set_authorization(self, status: AuthorizationStatus) -> None:
        """Change permission state and report it to delegates."""
        self._authorization = status
        self._emit("on_authorization_changed", status)

    def _request_authorization(self, requested: AuthorizationStatus) -> None:
        self.authorization_requests.append(requested)
        if self._authorization is not AuthorizationStatus.NOT_DETERMINED:
            return
        if self.defer_authorization:
            return
        self.set_authorization(self.authorization_response or requested)

    def request_when_in_use_authorization(self) -> None:
        self._request_authorization(AuthorizationStatus.AUTHORIZED_WHEN_IN_USE)

    def request_always_authorization(self) -> None:
        self._request_authorization(AuthorizationStatus.AUTHORIZED_ALWAYS)

    def start_updating_location(self) -> None:
        self._updating = True
        if self._position is not None:
            self._emit("on_location_updated", LocationFix(*self._position))

    def stop_updating_location(self) -> None:
        self._updating = False

    def fail_location(self, error: str) -> None:
        """Report a location failure to delegates."""
        self._emit("on_location_failed", error)

    @property
    def monitored_regions(self) -> list[MonitoredRegion]:
        return list(self._regions.values())

    def start_monitoring(self, region: MonitoredRegion) -> None:
        if region.region_id not in self._regions and len(self._regions) >= self.max_regions:
            self._emit(
                "on_monitoring_failed",
                region,
                f"Region limit of {self.max_regions} reached",
            )
            return

        self._regions[region.region_id] = region
        self._inside.discard(region.region_id)
        # A device already inside at registration does not count as an entry.
        if self._position is not None and region.contains(*self._position):
            self._inside.add(region.region_id)
        self._emit("on_monitoring_started", region)

    def stop_monitoring(self, region: MonitoredRegion) -> None:
        self._regions.pop(region.region_id, None)
        self._inside.discard(region.region_id)

    def request_state(self, region: MonitoredRegion) -> None:
        if self._position is None:
            state = RegionState.UNKNOWN
        elif region.contains(*self._position):
            state = RegionState.INSIDE
        else:
            state = RegionState.OUTSIDE
        self._emit("on_region_state", region, state)

    def move_to(self, latitude: float, longitude: float) -> None:
        """Move the simulated device, reporting boundary crossings."""
        self._position = (latitude, longitude)

        for region in list(self._regions.values()):
            was_inside = region.region_id in self._inside
            is_inside = region.contains(latitude, longitude)
            if is_inside and not was_inside:
                self._inside.add(region.region_id)
                if region.notify_on_entry:
                    self._emit("on_region_entered", region)
            elif was_inside and not is_inside:
                self._inside.discard(region.region_id)
                if region.notify_on_exit:
                    self._emit("on_region_exited", region)

        if self._updating:
            self._emit("on_location_updated", LocationFix(latitude, longitude))

    def simulate_entry(self, region_id: str) -> bool:
        """Report an entry into a monitored region regardless of position."""
        region = self._regions.get(region_id)
        if region is None:
            return False
        self._inside.add(region_id)
        self._emit("on_region_entered", region)
        return True

    def fail_monitoring(self, region_id: str | None, error: str) -> None:
        """Report a monitoring failure for a region."""
        region = self._regions.get(region_id) if region_id is not None else None
        self._emit("on_monitoring_failed", region, error)

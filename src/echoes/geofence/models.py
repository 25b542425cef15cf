"""Data models for region monitoring."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

EARTH_RADIUS_METERS = 6_371_000.0


class AuthorizationStatus(Enum):
    """Location permission state."""

    NOT_DETERMINED = "not_determined"
    RESTRICTED = "restricted"
    DENIED = "denied"
    AUTHORIZED_WHEN_IN_USE = "authorized_when_in_use"
    AUTHORIZED_ALWAYS = "authorized_always"

    @property
    def is_authorized(self) -> bool:
        return self in (
            AuthorizationStatus.AUTHORIZED_WHEN_IN_USE,
            AuthorizationStatus.AUTHORIZED_ALWAYS,
        )


class RegionState(Enum):
    """Whether the device is currently inside a region."""

    INSIDE = "inside"
    OUTSIDE = "outside"
    UNKNOWN = "unknown"


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points (haversine)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))


@dataclass(frozen=True)
class MonitoredRegion:
    """A circular region watched for entry.

    Attributes:
        region_id: Identifier, equal to the owning memory's id.
        latitude: Center latitude.
        longitude: Center longitude.
        radius: Radius in meters.
        notify_on_entry: Always True for memory regions.
        notify_on_exit: Always False for memory regions.
    """

    region_id: str
    latitude: float
    longitude: float
    radius: float
    notify_on_entry: bool = True
    notify_on_exit: bool = False

    @property
    def center(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check whether a point lies within the region."""
        return distance_meters(self.latitude, self.longitude, latitude, longitude) <= self.radius


@dataclass(frozen=True)
class LocationFix:
    """A single position reported by a location provider."""

    latitude: float
    longitude: float
    timestamp: datetime = field(default_factory=datetime.now)

"""Region monitoring around saved memories."""

from .models import AuthorizationStatus, LocationFix, MonitoredRegion, RegionState
from .provider import LocationDelegate, LocationProvider, SimulatedLocationProvider
from .synchronizer import GeofenceSynchronizer

__all__ = [
    "AuthorizationStatus",
    "GeofenceSynchronizer",
    "LocationDelegate",
    "LocationFix",
    "LocationProvider",
    "MonitoredRegion",
    "RegionState",
    "SimulatedLocationProvider",
]

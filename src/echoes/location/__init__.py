"""Current location and place names."""

from .geocoding import ReverseGeocoder, format_place_name
from .service import LocationService

__all__ = ["LocationService", "ReverseGeocoder", "format_place_name"]

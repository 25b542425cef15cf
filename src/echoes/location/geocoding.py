"""Reverse geocoding through a Nominatim-compatible HTTP API."""

import logging
from typing import Any

import httpx

from ..memory.models import UNKNOWN_LOCATION, Location

logger = logging.getLogger(__name__)

_LOCALITY_KEYS = ("city", "town", "village", "hamlet", "suburb")


def _locality(address: dict[str, Any]) -> str | None:
    for key in _LOCALITY_KEYS:
        if address.get(key):
            return address[key]
    return None


def format_place_name(data: dict[str, Any]) -> str:
    """Pick a readable place name from a reverse geocoding result.

    Preference order: point-of-interest name, street (with house number),
    locality, state. The locality is appended when the name lacks it.
    """
    address = data.get("address") or {}
    locality = _locality(address)

    if data.get("name"):
        name = data["name"]
    elif address.get("road"):
        name = address["road"]
        if address.get("house_number"):
            name = f"{address['house_number']} {name}"
    elif locality:
        name = locality
    elif address.get("state"):
        name = address["state"]
    else:
        name = UNKNOWN_LOCATION

    if locality and locality not in name:
        name += f", {locality}"
    return name


class ReverseGeocoder:
    """Turns coordinates into place names. Never raises on lookup failure."""

    def __init__(
        self,
        base_url: str,
        user_agent: str = "echoes/0.1",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self._timeout = timeout
        self._transport = transport

    async def reverse_geocode(self, latitude: float, longitude: float) -> str:
        """Resolve a coordinate to a place name, "Unknown Location" on failure."""
        params = {
            "format": "jsonv2",
            "lat": f"{latitude:.6f}",
            "lon": f"{longitude:.6f}",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                headers={"User-Agent": self.user_agent},
            ) as client:
                response = await client.get(f"{self.base_url}/reverse", params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.warning("Geocoding error: %s", e)
            return UNKNOWN_LOCATION
        except ValueError as e:
            logger.warning("Geocoding returned invalid JSON: %s", e)
            return UNKNOWN_LOCATION

        if not isinstance(data, dict) or "error" in data:
            return UNKNOWN_LOCATION
        return format_place_name(data)

    async def resolve(self, latitude: float, longitude: float) -> Location:
        """Build a Location named after its reverse geocoded place."""
        name = await self.reverse_geocode(latitude, longitude)
        return Location(name=name, latitude=latitude, longitude=longitude, address=name)

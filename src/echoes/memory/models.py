"""Data models for stored memories."""

import math
from dataclasses import dataclass, field
from datetime import datetime

UNKNOWN_LOCATION = "Unknown Location"
UNTITLED_MEMORY = "Untitled Memory"


def sanitize_coordinate(value: float) -> float:
    """Return value if finite, otherwise 0.0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    """Check that a pair is finite and within WGS84 bounds."""
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


@dataclass(frozen=True)
class Location:
    """A named place chosen for a memory.

    Non-finite coordinates are coerced to 0.0 on construction.

    Attributes:
        name: Human readable place label.
        latitude: Degrees north.
        longitude: Degrees east.
        address: Optional postal address.
    """

    name: str
    latitude: float
    longitude: float
    address: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "latitude", sanitize_coordinate(self.latitude))
        object.__setattr__(self, "longitude", sanitize_coordinate(self.longitude))

    @property
    def coordinate(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class Memory:
    """A memory bound to a place and a moment.

    has_photo and has_voice_note are stored alongside the blobs and are not
    derived from them.

    Attributes:
        title: Short title, may be empty.
        latitude: Degrees north, always finite.
        longitude: Degrees east, always finite.
        id: Unique identifier, None until persisted.
        description: Free text.
        event_date: When the memory happened.
        created_at: When the memory was persisted.
        location_name: Place label resolved at creation time.
        photo: JPEG bytes, if any.
        voice_note: Encoded audio bytes, if any.
        has_photo: Whether a photo was attached at write time.
        has_voice_note: Whether a voice note was attached at write time.
        owner_id: Identifier of the owning user.
    """

    title: str
    latitude: float = 0.0
    longitude: float = 0.0
    id: str | None = None
    description: str = ""
    event_date: datetime | None = None
    created_at: datetime | None = None
    location_name: str | None = None
    photo: bytes | None = field(default=None, repr=False)
    voice_note: bytes | None = field(default=None, repr=False)
    has_photo: bool = False
    has_voice_note: bool = False
    owner_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "latitude", sanitize_coordinate(self.latitude))
        object.__setattr__(self, "longitude", sanitize_coordinate(self.longitude))

    @property
    def coordinate(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)

    @property
    def display_title(self) -> str:
        return self.title or UNTITLED_MEMORY

    @property
    def display_description(self) -> str:
        return self.description or ""

    @property
    def display_location_name(self) -> str:
        return self.location_name or UNKNOWN_LOCATION

    @property
    def display_date(self) -> datetime:
        return self.event_date or self.created_at or datetime.now()

"""Tests for memory data models."""

import math
from datetime import datetime

import pytest

from echoes.memory import Location, Memory, is_valid_coordinate, sanitize_coordinate


class TestSanitizeCoordinate:
    def test_finite_passes_through(self):
        assert sanitize_coordinate(40.5) == 40.5
        assert sanitize_coordinate(-74.0) == -74.0

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_becomes_zero(self, value):
        assert sanitize_coordinate(value) == 0.0


class TestIsValidCoordinate:
    def test_valid(self):
        assert is_valid_coordinate(40.0, -74.0) is True
        assert is_valid_coordinate(-90.0, 180.0) is True

    def test_out_of_range(self):
        assert is_valid_coordinate(91.0, 0.0) is False
        assert is_valid_coordinate(0.0, -180.5) is False

    def test_non_finite(self):
        assert is_valid_coordinate(math.nan, 0.0) is False
        assert is_valid_coordinate(0.0, math.inf) is False


class TestLocation:
    def test_valid_pair_unchanged(self):
        location = Location(name="Park", latitude=40.0, longitude=-74.0)
        assert location.coordinate == (40.0, -74.0)

    def test_invalid_component_coerced(self):
        location = Location(name="Nowhere", latitude=math.nan, longitude=-74.0)
        assert location.latitude == 0.0
        assert location.longitude == -74.0

    def test_both_invalid_coerced(self):
        location = Location(name="Nowhere", latitude=math.inf, longitude=math.nan)
        assert location.coordinate == (0.0, 0.0)


class TestMemory:
    """Tests for the Memory dataclass."""

    def test_create_minimal(self):
        memory = Memory(title="Coffee")
        assert memory.title == "Coffee"
        assert memory.id is None
        assert memory.has_photo is False
        assert memory.has_voice_note is False

    def test_non_finite_coordinates_coerced(self):
        memory = Memory(title="x", latitude=math.nan, longitude=math.inf)
        assert memory.coordinate == (0.0, 0.0)

    def test_presence_flags_independent_of_blobs(self):
        memory = Memory(title="x", photo=None, has_photo=True)
        assert memory.has_photo is True
        assert memory.photo is None

    def test_immutable(self):
        memory = Memory(title="Coffee")
        with pytest.raises(AttributeError):
            memory.title = "Tea"  # type: ignore[misc]

    def test_display_fallbacks(self):
        created = datetime(2024, 5, 1, 12, 0)
        memory = Memory(title="", created_at=created)
        assert memory.display_title == "Untitled Memory"
        assert memory.display_location_name == "Unknown Location"
        assert memory.display_description == ""
        assert memory.display_date == created

    def test_display_date_prefers_event_date(self):
        event = datetime(2020, 1, 1)
        memory = Memory(title="x", event_date=event, created_at=datetime(2024, 1, 1))
        assert memory.display_date == event

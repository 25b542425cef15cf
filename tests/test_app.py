"""Tests for EchoesApp wiring and the end-to-end memory scenarios."""

from datetime import datetime
from pathlib import Path

import httpx
import pytest

from echoes.app import EchoesApp
from echoes.config import EchoesConfig
from echoes.geofence import AuthorizationStatus, SimulatedLocationProvider
from echoes.location import ReverseGeocoder
from echoes.memory import Location
from echoes.notifications import LocalNotificationCenter


def make_app(tmp_path: Path, **kwargs) -> EchoesApp:
    geocoder = ReverseGeocoder(
        "https://geo.example.com",
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"name": "Bryant Park"})
        ),
    )
    kwargs.setdefault("provider", SimulatedLocationProvider())
    kwargs.setdefault("dispatcher", LocalNotificationCenter())
    return EchoesApp(EchoesConfig(data_dir=tmp_path), geocoder=geocoder, **kwargs)


@pytest.mark.asyncio
async def test_start_requests_permissions_once(tmp_path: Path):
    app = make_app(tmp_path)
    await app.start()

    assert app.provider.authorization_status is AuthorizationStatus.AUTHORIZED_ALWAYS
    assert app.provider.authorization_requests == [AuthorizationStatus.AUTHORIZED_ALWAYS]
    await app.close()


@pytest.mark.asyncio
async def test_denied_notifications_skip_geofencing(tmp_path: Path):
    app = make_app(tmp_path, dispatcher=LocalNotificationCenter(auto_grant=False))
    await app.start()

    assert app.provider.authorization_requests == []
    await app.close()


@pytest.mark.asyncio
async def test_denied_notifications_never_watch_regions(tmp_path: Path):
    app = make_app(tmp_path, dispatcher=LocalNotificationCenter(auto_grant=False))
    await app.start()
    app.auth.sign_up("Ada", "ada@example.com", "secret1")

    assert await app.create_memory("Coffee", 40.0, -74.0, location_name="Park") is True
    assert app.geofence.monitored_region_ids == []
    assert app.provider.monitored_regions == []
    await app.close()


def test_missing_db_path_rejected(tmp_path: Path):
    config = EchoesConfig(data_dir=tmp_path)
    config.db_path = None

    with pytest.raises(ValueError, match="db_path"):
        EchoesApp(config)


@pytest.mark.asyncio
async def test_create_memory_requires_sign_in(tmp_path: Path):
    app = make_app(tmp_path)
    await app.start()

    assert await app.create_memory("Coffee", 40.0, -74.0, location_name="Park") is False
    assert app.memories.error_message == "No authenticated user. Please sign in first."
    await app.close()


@pytest.mark.asyncio
async def test_create_memory_rejects_blank_title(tmp_path: Path):
    app = make_app(tmp_path)
    await app.start()
    app.auth.sign_up("Ada", "ada@example.com", "secret1")

    assert await app.create_memory("   ", 40.0, -74.0, location_name="Park") is False
    assert app.memories.memories == []
    await app.close()


@pytest.mark.asyncio
async def test_create_memory_geocodes_and_syncs(tmp_path: Path):
    app = make_app(tmp_path)
    await app.start()
    app.auth.sign_up("Ada", "ada@example.com", "secret1")

    assert await app.create_memory("Lunch", 40.7536, -73.9832) is True

    [memory] = app.memories.memories
    assert memory.location_name == "Bryant Park"
    assert app.geofence.monitored_region_ids == [memory.id]
    await app.close()


@pytest.mark.asyncio
async def test_create_memory_here(tmp_path: Path):
    provider = SimulatedLocationProvider(position=(51.5, -0.12))
    app = make_app(tmp_path, provider=provider)
    await app.start()
    app.auth.sign_up("Ada", "ada@example.com", "secret1")

    assert await app.create_memory_here("Here") is True
    assert app.memories.memories[0].coordinate == (51.5, -0.12)
    await app.close()


@pytest.mark.asyncio
async def test_user_switch_rescopes_and_resyncs(tmp_path: Path):
    app = make_app(tmp_path)
    await app.start()
    app.auth.sign_up("Ada", "ada@example.com", "secret1")
    await app.create_memory("Coffee", 40.0, -74.0, location_name="Park")

    app.auth.sign_up("Bob", "bob@example.com", "secret2")
    assert app.memories.memories == []
    assert app.geofence.monitored_region_ids == []

    app.auth.login("ada@example.com", "secret1")
    assert [m.title for m in app.memories.memories] == ["Coffee"]
    assert len(app.geofence.monitored_region_ids) == 1
    await app.close()


@pytest.mark.asyncio
async def test_returning_unlocks_and_opens_memory(tmp_path: Path):
    app = make_app(tmp_path)
    await app.start()
    app.auth.sign_up("Ada", "ada@example.com", "secret1")
    await app.create_memory("Coffee", 40.0, -74.0, location_name="Park")

    app.provider.move_to(40.0002, -74.0)
    await app.geofence.drain()

    [notification] = app.notifications.delivered
    app.notifications.handle_response(notification.payload)
    opened = app.open_tapped_memory()
    assert opened is not None
    assert opened.title == "Coffee"
    await app.close()


@pytest.mark.asyncio
async def test_session_restored_on_start(tmp_path: Path):
    first = make_app(tmp_path)
    await first.start()
    first.auth.sign_up("Ada", "ada@example.com", "secret1")
    await first.create_memory("Coffee", 40.0, -74.0, location_name="Park")
    await first.close()

    second = make_app(tmp_path)
    await second.start()
    assert [m.title for m in second.memories.memories] == ["Coffee"]
    assert len(second.geofence.monitored_region_ids) == 1
    await second.close()


class TestScenarios:
    """Scenarios spanning the memory store and region sync."""

    @pytest.mark.asyncio
    async def test_delete_removes_region_on_next_sync(self, tmp_path: Path):
        app = make_app(tmp_path)
        await app.start()
        app.auth.sign_up("Ada", "ada@example.com", "secret1")
        app.memories.save(
            "Coffee", "", datetime(2024, 1, 1), Location("Park", 40.0, -74.0)
        )
        [memory] = app.memories.memories
        assert app.geofence.sync_regions(app.memories.memories) == [memory.id]

        app.memories.delete(memory)
        assert app.geofence.sync_regions(app.memories.fetch()) == []
        assert app.provider.monitored_regions == []
        await app.close()

    @pytest.mark.asyncio
    async def test_entry_after_delete_is_not_notified(self, tmp_path: Path):
        app = make_app(tmp_path)
        await app.start()
        app.auth.sign_up("Ada", "ada@example.com", "secret1")
        await app.create_memory("Coffee", 40.0, -74.0, location_name="Park")
        [memory] = app.memories.memories

        app.memories.delete(memory)
        app.provider.move_to(40.0, -74.0)
        await app.geofence.drain()

        assert app.notifications.delivered == []
        await app.close()

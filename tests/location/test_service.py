"""Tests for LocationService."""

import asyncio

import pytest

from echoes.geofence import AuthorizationStatus, SimulatedLocationProvider
from echoes.location import LocationService
from echoes.location.service import DENIED_MESSAGE, INVALID_FIX_MESSAGE, TIMEOUT_MESSAGE


def authorized_provider(**kwargs) -> SimulatedLocationProvider:
    return SimulatedLocationProvider(
        authorization=AuthorizationStatus.AUTHORIZED_WHEN_IN_USE, **kwargs
    )


class TestPermission:
    def test_already_authorized(self):
        service = LocationService(authorized_provider())
        assert service.request_location_permission() is True

    def test_denied_sets_message(self):
        provider = SimulatedLocationProvider(authorization=AuthorizationStatus.DENIED)
        service = LocationService(provider)

        assert service.request_location_permission() is False
        assert service.error_message == DENIED_MESSAGE
        assert provider.authorization_requests == []

    def test_undetermined_requests(self):
        provider = SimulatedLocationProvider(defer_authorization=True)
        service = LocationService(provider)

        assert service.request_location_permission() is False
        assert provider.authorization_requests == [AuthorizationStatus.AUTHORIZED_WHEN_IN_USE]


class TestGetCurrentLocation:
    @pytest.mark.asyncio
    async def test_returns_fix(self):
        provider = authorized_provider(position=(40.0, -74.0))
        service = LocationService(provider)

        fix = await service.get_current_location()

        assert fix is not None
        assert (fix.latitude, fix.longitude) == (40.0, -74.0)
        assert service.location == fix
        assert service.is_loading is False
        assert provider.is_updating_location is False

    @pytest.mark.asyncio
    async def test_waits_for_permission_grant(self):
        provider = SimulatedLocationProvider(position=(40.0, -74.0))
        service = LocationService(provider)

        fix = await service.get_current_location()

        assert fix is not None
        assert service.authorization_status is AuthorizationStatus.AUTHORIZED_WHEN_IN_USE

    @pytest.mark.asyncio
    async def test_deferred_grant_is_event_driven(self):
        provider = SimulatedLocationProvider(defer_authorization=True, position=(1.0, 2.0))
        service = LocationService(provider)

        task = asyncio.create_task(service.get_current_location())
        await asyncio.sleep(0.01)
        assert not task.done()

        provider.set_authorization(AuthorizationStatus.AUTHORIZED_WHEN_IN_USE)
        fix = await task
        assert fix is not None

    @pytest.mark.asyncio
    async def test_permission_denied(self):
        provider = SimulatedLocationProvider(
            authorization_response=AuthorizationStatus.DENIED, position=(1.0, 2.0)
        )
        service = LocationService(provider)

        assert await service.get_current_location() is None
        assert service.error_message == DENIED_MESSAGE

    @pytest.mark.asyncio
    async def test_timeout(self):
        provider = authorized_provider()
        service = LocationService(provider, timeout=0.05)

        assert await service.get_current_location() is None
        assert service.error_message == TIMEOUT_MESSAGE
        assert service.is_loading is False
        assert provider.is_updating_location is False

    @pytest.mark.asyncio
    async def test_provider_failure(self):
        provider = authorized_provider()
        service = LocationService(provider)
        asyncio.get_running_loop().call_later(0.01, provider.fail_location, "gps off")

        assert await service.get_current_location() is None
        assert service.error_message == "Failed to get location: gps off"

    @pytest.mark.asyncio
    async def test_invalid_fix_rejected(self):
        provider = authorized_provider(position=(95.0, 0.0))
        service = LocationService(provider)

        assert await service.get_current_location() is None
        assert service.error_message == INVALID_FIX_MESSAGE
        assert service.location is None

    @pytest.mark.asyncio
    async def test_new_request_supersedes_old(self):
        provider = authorized_provider()
        service = LocationService(provider)

        first = asyncio.create_task(service.get_current_location())
        await asyncio.sleep(0)
        second = asyncio.create_task(service.get_current_location())
        await asyncio.sleep(0)

        provider.move_to(5.0, 6.0)

        assert await first is None
        fix = await second
        assert fix is not None
        assert (fix.latitude, fix.longitude) == (5.0, 6.0)

    @pytest.mark.asyncio
    async def test_close_resolves_pending(self):
        provider = authorized_provider()
        service = LocationService(provider)

        task = asyncio.create_task(service.get_current_location())
        await asyncio.sleep(0)
        service.close()

        assert await task is None
        assert provider.is_updating_location is False

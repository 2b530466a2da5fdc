"""
Unit tests for location providers.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.schemas.geo import Fix
from app.schemas.location import LocationPriority, LocationRequest
from app.services.location_providers import (
    DeviceLocationProvider,
    FusedLocationProvider,
    NetworkLocationProvider,
    get_location_provider,
)


@pytest.fixture
def network_provider():
    """Create a network provider instance for testing."""
    return NetworkLocationProvider(min_interval_ms=0)


def mock_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    return response


def test_device_provider_delivers_to_every_registration(device_provider: DeviceLocationProvider):
    first, second = [], []
    request = LocationRequest()
    device_provider.request_location_updates(request, first.append)
    remove = device_provider.request_location_updates(request, second.append)

    fix = Fix(latitude=1.0, longitude=2.0)
    assert device_provider.push(fix) == 2

    remove()
    assert device_provider.push(fix) == 1
    assert first == [fix, fix]
    assert second == [fix]


def test_device_provider_push_without_registrations(device_provider: DeviceLocationProvider):
    assert device_provider.push(Fix(latitude=1.0, longitude=2.0)) == 0


@pytest.mark.asyncio
async def test_network_get_fix_ip_api_shape(network_provider: NetworkLocationProvider):
    payload = {"status": "success", "lat": 60.1699, "lon": 24.9384, "city": "Helsinki"}

    with patch.object(network_provider, "_get_client") as mock_get_client:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=mock_response(payload=payload))
        mock_get_client.return_value = mock_client

        fix = await network_provider.get_fix()

    assert fix is not None
    assert fix.latitude == 60.1699
    assert fix.longitude == 24.9384
    assert fix.provider == "network"


@pytest.mark.asyncio
async def test_network_get_fix_latitude_longitude_shape(network_provider: NetworkLocationProvider):
    payload = {"latitude": 37.4219, "longitude": -122.0841}

    with patch.object(network_provider, "_get_client") as mock_get_client:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=mock_response(payload=payload))
        mock_get_client.return_value = mock_client

        fix = await network_provider.get_fix()

    assert fix is not None
    assert (fix.latitude, fix.longitude) == (37.4219, -122.0841)


@pytest.mark.asyncio
async def test_network_get_fix_failed_lookup(network_provider: NetworkLocationProvider):
    payload = {"status": "fail", "message": "reserved range"}

    with patch.object(network_provider, "_get_client") as mock_get_client:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=mock_response(payload=payload))
        mock_get_client.return_value = mock_client

        assert await network_provider.get_fix() is None


@pytest.mark.asyncio
async def test_network_get_fix_non_200(network_provider: NetworkLocationProvider):
    with patch.object(network_provider, "_get_client") as mock_get_client:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=mock_response(status_code=429))
        mock_get_client.return_value = mock_client

        assert await network_provider.get_fix() is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [httpx.TimeoutException("timed out"), httpx.ConnectError("connection refused")],
)
async def test_network_get_fix_network_errors_are_silent(
    network_provider: NetworkLocationProvider, error
):
    with patch.object(network_provider, "_get_client") as mock_get_client:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(side_effect=error)
        mock_get_client.return_value = mock_client

        assert await network_provider.get_fix() is None


@pytest.mark.asyncio
async def test_network_polling_delivers_until_removed(network_provider: NetworkLocationProvider):
    fixes = []
    got_two = asyncio.Event()

    def on_fix(fix):
        fixes.append(fix)
        if len(fixes) >= 2:
            got_two.set()

    with patch.object(
        network_provider,
        "get_fix",
        AsyncMock(return_value=Fix(latitude=1.0, longitude=2.0, provider="network")),
    ):
        remove = network_provider.request_location_updates(
            LocationRequest(interval_ms=10), on_fix
        )
        await asyncio.wait_for(got_two.wait(), timeout=1.0)
        remove()
        count = len(fixes)
        await asyncio.sleep(0.05)

    assert len(fixes) == count


@pytest.mark.asyncio
async def test_network_get_fix_list_payload(network_provider: NetworkLocationProvider):
    with patch.object(network_provider, "_get_client") as mock_get_client:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=mock_response(payload=[{"lat": 1.0}]))
        mock_get_client.return_value = mock_client

        assert await network_provider.get_fix() is None


@pytest.mark.asyncio
async def test_network_polling_survives_malformed_response(
    network_provider: NetworkLocationProvider,
):
    fixes = []
    recovered = asyncio.Event()
    good = mock_response(payload={"status": "success", "lat": 3.0, "lon": 4.0})
    bad = MagicMock()
    bad.status_code = 200
    bad.json.return_value = []

    def on_fix(fix):
        fixes.append(fix)
        recovered.set()

    with patch.object(network_provider, "_get_client") as mock_get_client:
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(side_effect=[bad, bad, good, good, good, good])
        mock_get_client.return_value = mock_client

        remove = network_provider.request_location_updates(
            LocationRequest(interval_ms=10), on_fix
        )
        await asyncio.wait_for(recovered.wait(), timeout=1.0)
        remove()

    assert fixes[0].latitude == 3.0
    assert fixes[0].longitude == 4.0


@pytest.mark.asyncio
async def test_network_polling_survives_callback_error(network_provider: NetworkLocationProvider):
    calls = []
    called_twice = asyncio.Event()

    def on_fix(fix):
        calls.append(fix)
        if len(calls) >= 2:
            called_twice.set()
        raise RuntimeError("observer failed")

    with patch.object(
        network_provider,
        "get_fix",
        AsyncMock(return_value=Fix(latitude=1.0, longitude=2.0, provider="network")),
    ):
        remove = network_provider.request_location_updates(
            LocationRequest(interval_ms=10), on_fix
        )
        await asyncio.wait_for(called_twice.wait(), timeout=1.0)
        remove()

    assert len(calls) >= 2


def test_network_poll_interval_respects_minimum():
    provider = NetworkLocationProvider(min_interval_ms=2000)

    assert provider.poll_interval(LocationRequest(interval_ms=1000)) == 2.0
    assert provider.poll_interval(LocationRequest(interval_ms=5000)) == 5.0


@pytest.mark.asyncio
async def test_network_close_releases_client(network_provider: NetworkLocationProvider):
    client = network_provider._get_client()  # pylint: disable=protected-access
    assert client is network_provider._get_client()  # pylint: disable=protected-access

    await network_provider.close()

    assert client.is_closed


def test_fused_providers_for_priority(device_provider, network_provider):
    fused = FusedLocationProvider(device_provider, network_provider)

    assert fused.providers_for(LocationPriority.HIGH_ACCURACY) == (device_provider, network_provider)
    assert fused.providers_for(LocationPriority.BALANCED_POWER_ACCURACY) == (
        device_provider,
        network_provider,
    )
    assert fused.providers_for(LocationPriority.LOW_POWER) == (network_provider,)
    assert fused.providers_for(LocationPriority.PASSIVE) == (device_provider,)


def test_fused_prefers_recent_device_fix(device_provider, network_provider):
    now = [100.0]
    fused = FusedLocationProvider(
        device_provider, network_provider, preference_factor=5.0, clock=lambda: now[0]
    )
    network_callbacks = []
    remove_network = MagicMock()

    def register_network(request, callback):
        network_callbacks.append(callback)
        return remove_network

    received = []
    with patch.object(network_provider, "request_location_updates", side_effect=register_network):
        remove = fused.request_location_updates(LocationRequest(interval_ms=1000), received.append)

    network_fix = Fix(latitude=2.0, longitude=2.0, provider="network")
    device_fix = Fix(latitude=1.0, longitude=1.0, provider="device")

    # No device fix yet, network fix passes
    network_callbacks[0](network_fix)
    device_provider.push(device_fix)

    # Device fix is 1s old, network fix dropped
    now[0] = 101.0
    network_callbacks[0](network_fix)

    # Device fix is 6s old, network fix passes
    now[0] = 106.0
    network_callbacks[0](network_fix)

    assert received == [network_fix, device_fix, network_fix]

    remove()
    remove_network.assert_called_once()
    assert device_provider.subscriber_count == 0


def test_get_location_provider_names():
    assert isinstance(get_location_provider("device"), DeviceLocationProvider)
    assert isinstance(get_location_provider("network"), NetworkLocationProvider)
    assert isinstance(get_location_provider("fused"), FusedLocationProvider)

    with pytest.raises(ValueError):
        get_location_provider("satellite")

"""
Location providers.

Sources of raw position fixes. A provider accepts a LocationRequest and a
callback and keeps calling it with fixes until the registration is removed.
Providers report nothing when they have no fix: failures are logged and the
provider tries again at the next interval.

- DeviceLocationProvider: fixes pushed by the device (GPS)
- NetworkLocationProvider: IP-based position polled over HTTP
- FusedLocationProvider: combines both according to the request priority
"""

import asyncio
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

import httpx

from app.core.config import settings
from app.schemas.geo import Fix
from app.schemas.location import LocationPriority, LocationRequest

logger = logging.getLogger(__name__)

FixCallback = Callable[[Fix], None]
RemoveRegistration = Callable[[], None]


class LocationProvider(ABC):
    """Capability interface for a platform location service."""

    name: str = "provider"

    @abstractmethod
    def request_location_updates(
        self, request: LocationRequest, callback: FixCallback
    ) -> RemoveRegistration:
        """
        Start delivering fixes to callback.

        The callback may be invoked from any thread.

        Returns:
            A callable that stops delivery
        """

    async def close(self) -> None:
        """Release provider resources."""


class DeviceLocationProvider(LocationProvider):
    """
    Provider fed by fixes the device pushes in.

    The device decides its own cadence; push() may be called from any thread.
    """

    name = "device"

    def __init__(self):
        self._lock = threading.Lock()
        self._callbacks: Dict[int, FixCallback] = {}
        self._next_id = 0

    def request_location_updates(
        self, request: LocationRequest, callback: FixCallback
    ) -> RemoveRegistration:
        with self._lock:
            registration_id = self._next_id
            self._next_id += 1
            self._callbacks[registration_id] = callback
        logger.debug("Device provider registration %s (%s)", registration_id, request.priority.value)

        def remove() -> None:
            with self._lock:
                self._callbacks.pop(registration_id, None)

        return remove

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def push(self, fix: Fix) -> int:
        """
        Deliver a fix to every registration.

        Args:
            fix: Raw fix reported by the device

        Returns:
            Number of registrations the fix was delivered to
        """
        with self._lock:
            callbacks = list(self._callbacks.values())
        for callback in callbacks:
            callback(fix)
        return len(callbacks)


class NetworkLocationProvider(LocationProvider):
    """
    Provider that estimates position from the public IP address.

    Polls the IP geolocation API once per request interval, but never more
    often than min_interval_ms to stay inside the API rate limit.
    """

    name = "network"

    def __init__(self, min_interval_ms: int = settings.NETWORK_LOCATION_MIN_INTERVAL_MS):
        self._api_url = settings.NETWORK_LOCATION_API_URL
        self._min_interval_seconds = min_interval_ms / 1000
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """
        Get or create the HTTP client for the geolocation API.
        """
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.NETWORK_LOCATION_TIMEOUT)
        return self._client

    async def get_fix(self) -> Optional[Fix]:
        """
        Query the geolocation API once.

        Returns:
            A Fix, or None when no position could be obtained
        """
        try:
            client = self._get_client()
            response = await client.get(self._api_url)

            if response.status_code != 200:
                logger.debug("Network location API returned status code: %s", response.status_code)
                return None

            return self._parse_fix(response.json())

        except httpx.TimeoutException:
            logger.debug("Network location request timed out")
        except httpx.HTTPError as e:
            logger.debug("Network location request failed: %s", str(e))
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Failed to parse network location response: %s", str(e))
        return None

    def _parse_fix(self, data: Dict) -> Optional[Fix]:
        """
        Parse a geolocation response.

        Understands both the ip-api.com shape (status/lat/lon) and the
        latitude/longitude shape used by most other IP geolocation APIs.
        """
        if not isinstance(data, dict):
            logger.warning("Unexpected network location response: %r", data)
            return None
        if data.get("status") not in (None, "success"):
            logger.debug("Network location lookup failed: %s", data.get("message"))
            return None
        if "lat" in data:
            latitude, longitude = data["lat"], data["lon"]
        else:
            latitude, longitude = data["latitude"], data["longitude"]
        if latitude is None or longitude is None:
            return None
        return Fix(latitude=float(latitude), longitude=float(longitude), provider=self.name)

    def request_location_updates(
        self, request: LocationRequest, callback: FixCallback
    ) -> RemoveRegistration:
        task = asyncio.get_running_loop().create_task(self._poll(request, callback))

        def remove() -> None:
            task.cancel()

        return remove

    def poll_interval(self, request: LocationRequest) -> float:
        return max(request.interval_seconds, self._min_interval_seconds)

    async def _poll(self, request: LocationRequest, callback: FixCallback) -> None:
        interval = self.poll_interval(request)
        while True:
            try:
                fix = await self.get_fix()
                if fix is not None:
                    callback(fix)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Network location poll failed, retrying")
            await asyncio.sleep(interval)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class FusedLocationProvider(LocationProvider):
    """
    Combines device and network positioning.

    Device fixes are preferred: a network fix is dropped while the last
    device fix is younger than interval * preference_factor.
    """

    name = "fused"

    def __init__(
        self,
        device: DeviceLocationProvider,
        network: NetworkLocationProvider,
        preference_factor: float = settings.FUSED_DEVICE_PREFERENCE_FACTOR,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._device = device
        self._network = network
        self._preference_factor = preference_factor
        self._clock = clock

    def providers_for(self, priority: LocationPriority) -> Tuple[LocationProvider, ...]:
        if priority == LocationPriority.LOW_POWER:
            return (self._network,)
        if priority == LocationPriority.PASSIVE:
            return (self._device,)
        return (self._device, self._network)

    def request_location_updates(
        self, request: LocationRequest, callback: FixCallback
    ) -> RemoveRegistration:
        last_device_fix: List[Optional[float]] = [None]
        stale_after = request.interval_seconds * self._preference_factor

        def on_device_fix(fix: Fix) -> None:
            last_device_fix[0] = self._clock()
            callback(fix)

        def on_network_fix(fix: Fix) -> None:
            seen = last_device_fix[0]
            if seen is not None and self._clock() - seen < stale_after:
                logger.debug("Dropping network fix, recent device fix available")
                return
            callback(fix)

        removers: List[RemoveRegistration] = []
        for provider in self.providers_for(request.priority):
            handler = on_device_fix if provider is self._device else on_network_fix
            removers.append(provider.request_location_updates(request, handler))

        def remove() -> None:
            for remover in removers:
                remover()

        return remove

    async def close(self) -> None:
        await self._network.close()


device_location_provider = DeviceLocationProvider()
network_location_provider = NetworkLocationProvider()


def get_location_provider(name: str = settings.LOCATION_PROVIDER) -> LocationProvider:
    """
    Resolve the configured provider name to a provider instance.

    Raises:
        ValueError: If the name is unknown
    """
    if name == "device":
        return device_location_provider
    if name == "network":
        return network_location_provider
    if name == "fused":
        return FusedLocationProvider(device_location_provider, network_location_provider)
    raise ValueError(f"Unknown location provider: {name}")


def get_device_location_provider() -> DeviceLocationProvider:
    return device_location_provider

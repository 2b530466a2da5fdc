"""
Location source.

Wraps a location provider behind a standing subscription. Fixes are turned
into validated coordinates and handed to the caller on the event loop
thread, whatever thread the provider reported them on.
"""

import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from app.core.config import settings
from app.schemas.geo import Coordinates, Fix
from app.schemas.location import LocationPriority, LocationRequest
from app.services.location_providers import LocationProvider, RemoveRegistration
from app.services.permission_gate import PermissionGate

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[Coordinates], None]


class LocationSourceError(Exception):
    """Base exception for location source errors."""


class LocationPermissionError(LocationSourceError):
    """Raised when updates are started without location permission."""


def default_location_request() -> LocationRequest:
    return LocationRequest(
        priority=LocationPriority(settings.LOCATION_PRIORITY),
        interval_ms=settings.LOCATION_UPDATE_INTERVAL_MS,
    )


class LocationSubscription:
    """Handle for a running subscription. Cancel it to stop updates."""

    def __init__(self, request: LocationRequest):
        self.request = request
        self.started_at = datetime.now(timezone.utc)
        self.last_fix_at: Optional[datetime] = None
        self.fix_count = 0
        self.rejected_count = 0
        self._remove: Optional[RemoveRegistration] = None
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def attach(self, remove: RemoveRegistration) -> None:
        self._remove = remove

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._remove is not None:
            self._remove()
            self._remove = None
        logger.info("Location updates stopped after %d fixes", self.fix_count)


class LocationSource:
    """
    Issues standing location subscriptions against a provider.

    Checks permission itself before touching the provider.
    """

    def __init__(self, provider: LocationProvider, permission_gate: PermissionGate):
        self._provider = provider
        self._permission_gate = permission_gate

    @property
    def provider(self) -> LocationProvider:
        return self._provider

    def start_updates(
        self, on_update: UpdateCallback, request: Optional[LocationRequest] = None
    ) -> LocationSubscription:
        """
        Subscribe to location updates.

        Must be called from the event loop thread; on_update always runs on
        that thread.

        Args:
            on_update: Receives every accepted coordinate
            request: Priority and interval, defaults to configured values

        Returns:
            LocationSubscription used to stop the updates

        Raises:
            LocationPermissionError: If location permission is not granted
        """
        if not self._permission_gate.has_location_permission():
            raise LocationPermissionError("Location permission is not granted")

        request = request or default_location_request()
        loop = asyncio.get_running_loop()
        loop_thread = threading.get_ident()
        subscription = LocationSubscription(request)

        def deliver(fix: Fix) -> None:
            if not subscription.active:
                return
            try:
                coordinates = fix.to_coordinates()
            except ValueError:
                subscription.rejected_count += 1
                logger.warning(
                    "Dropping invalid fix from %s: (%s, %s)",
                    fix.provider,
                    fix.latitude,
                    fix.longitude,
                )
                return
            subscription.fix_count += 1
            subscription.last_fix_at = fix.timestamp
            on_update(coordinates)

        def on_fix(fix: Fix) -> None:
            if threading.get_ident() == loop_thread:
                deliver(fix)
                return
            try:
                loop.call_soon_threadsafe(deliver, fix)
            except RuntimeError:
                logger.debug("Event loop closed, dropping fix from %s", fix.provider)

        subscription.attach(self._provider.request_location_updates(request, on_fix))
        logger.info(
            "Location updates started: provider=%s, priority=%s, interval_ms=%s",
            self._provider.name,
            request.priority.value,
            request.interval_ms,
        )
        return subscription

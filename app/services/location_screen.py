"""
Location screen.

The single screen of the app: a "Get Location" button, the current
coordinate, and its address. Ties the permission gate, location source,
location store and address resolver together. Every method runs on the
event loop, which plays the role of the UI thread.
"""

import asyncio
import logging
from typing import Dict, Optional

from app.schemas.geo import Coordinates
from app.schemas.health import ServiceHealth
from app.schemas.location import ScreenView
from app.schemas.permission import Permission
from app.services.address_resolver import AddressResolver
from app.services.geocoding_service import geocoding_service
from app.services.location_providers import LocationProvider, get_location_provider
from app.services.location_source import LocationPermissionError, LocationSource, LocationSubscription
from app.services.location_store import LocationStore
from app.services.permission_gate import HostPermissionGate, PermissionGate

logger = logging.getLogger(__name__)

BUTTON_LABEL = "Get Location"
LOCATION_NOT_AVAILABLE = "Location not available!"
RESOLVING_ADDRESS = "Resolving address..."
RATIONALE_MESSAGE = "Location access is required for this feature to work!"
SETTINGS_MESSAGE = (
    "Location access is required for this feature to work! Please enable it in mobile settings"
)


def format_location(coordinates: Coordinates) -> str:
    return f"Address: {coordinates.latitude}, {coordinates.longitude}"


def denial_message(rationale_required: bool) -> str:
    """Message shown after the user denied location access."""
    return RATIONALE_MESSAGE if rationale_required else SETTINGS_MESSAGE


class LocationScreen:
    """
    State and behaviour of the location screen.
    """

    def __init__(
        self,
        permission_gate: PermissionGate,
        location_source: LocationSource,
        store: LocationStore,
        resolver: AddressResolver,
    ):
        self._permission_gate = permission_gate
        self._location_source = location_source
        self._store = store
        self._resolver = resolver
        self._subscription: Optional[LocationSubscription] = None
        self._message: Optional[str] = None

    @property
    def permission_gate(self) -> PermissionGate:
        return self._permission_gate

    @property
    def location_provider(self) -> LocationProvider:
        return self._location_source.provider

    @property
    def store(self) -> LocationStore:
        return self._store

    @property
    def subscription(self) -> Optional[LocationSubscription]:
        return self._subscription

    @property
    def updates_active(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def on_get_location(self) -> None:
        """
        Handle a press of the "Get Location" button.

        Starts location updates when permission is already granted,
        otherwise asks for it and starts updates once granted.
        """
        if self._permission_gate.has_location_permission():
            self._start_updates()
        else:
            self._permission_gate.request_permissions(self._on_permission_result)

    def _on_permission_result(self, results: Dict[Permission, bool]) -> None:
        if results and all(results.values()):
            self._start_updates()
            return
        rationale_required = self._permission_gate.should_show_rationale()
        logger.info("Location permission denied (rationale_required=%s)", rationale_required)
        self._message = denial_message(rationale_required)

    def _start_updates(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        try:
            self._subscription = self._location_source.start_updates(self._store.update)
        except LocationPermissionError:
            # Revoked between the check and the start
            logger.warning("Location permission lost before updates could start")
            self._message = denial_message(self._permission_gate.should_show_rationale())

    async def _stop_updates_if_revoked(self) -> None:
        if not self.updates_active:
            return
        subscription = self._subscription
        # The registry query is blocking I/O, keep it off the event loop
        permitted = await asyncio.to_thread(self._permission_gate.has_location_permission)
        if not permitted and self._subscription is subscription:
            logger.info("Location permission revoked, stopping updates")
            subscription.cancel()
            self._subscription = None

    def consume_message(self) -> Optional[str]:
        """Return the pending toast message once, then clear it."""
        message, self._message = self._message, None
        return message

    async def _address_for(self, coordinates: Coordinates, wait_for_address: bool) -> str:
        address = self._resolver.peek(coordinates)
        if address is not None:
            return address
        if wait_for_address:
            address = await self._resolver.resolve(coordinates)
            if address is not None:
                return address
        else:
            self._resolver.prefetch(coordinates)
        return RESOLVING_ADDRESS

    async def render(self, wait_for_address: bool = False) -> ScreenView:
        """
        Build the screen from the current state.

        Args:
            wait_for_address: Await the address lookup instead of showing a
                placeholder while it runs

        Returns:
            ScreenView describing what to display
        """
        await self._stop_updates_if_revoked()

        coordinates = self._store.current()
        if coordinates is None:
            location_text = LOCATION_NOT_AVAILABLE
            address_text = None
        else:
            location_text = format_location(coordinates)
            address_text = await self._address_for(coordinates, wait_for_address)
            # The store may have moved on while the address was resolving
            if self._store.current() != coordinates:
                return await self.render(wait_for_address=False)

        return ScreenView(
            location_text=location_text,
            address_text=address_text,
            coordinates=coordinates,
            button_label=BUTTON_LABEL,
            message=self.consume_message(),
            permission_dialog_open=self._permission_gate.dialog_open,
            updates_active=self.updates_active,
        )

    def health_check(self) -> ServiceHealth:
        """Report the state of the location subscription."""
        if not self.updates_active:
            return ServiceHealth(healthy=True, message="Location updates not started")
        return ServiceHealth(
            healthy=True,
            message=f"Location updates active, {self._subscription.fix_count} fixes received",
        )

    def close(self) -> None:
        """Release the subscription, running lookups and any open dialog."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._resolver.close()
        self._permission_gate.cancel_pending()


def build_location_screen() -> LocationScreen:
    """Wire a screen to the configured provider, registry and geocoder."""
    permission_gate = HostPermissionGate()
    store = LocationStore()
    return LocationScreen(
        permission_gate=permission_gate,
        location_source=LocationSource(get_location_provider(), permission_gate),
        store=store,
        resolver=AddressResolver(geocoding_service, store),
    )


# Singleton instance for dependency injection
location_screen = build_location_screen()


def get_location_screen() -> LocationScreen:
    return location_screen

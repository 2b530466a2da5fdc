"""
Address resolver.

Runs reverse geocoding in background tasks so a slow geocoder never holds
up location delivery or rendering. Results are cached per coordinate; when
the location store receives a new coordinate, everything cached or in
flight for other coordinates is discarded.
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

from app.schemas.geo import Coordinates
from app.services.geocoding_service import Geocoder
from app.services.location_store import LocationStore

logger = logging.getLogger(__name__)


class AddressResolver:
    """Per-coordinate cache of reverse geocoding results."""

    def __init__(self, geocoder: Geocoder, store: Optional[LocationStore] = None):
        self._geocoder = geocoder
        self._cache: Dict[Coordinates, str] = {}
        self._inflight: Dict[Coordinates, asyncio.Task] = {}
        self._latest: Optional[Coordinates] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        if store is not None:
            self._latest = store.current()
            self._unsubscribe = store.subscribe(self._on_location)

    def _on_location(self, coordinates: Optional[Coordinates]) -> None:
        self._latest = coordinates
        self.invalidate(keep=coordinates)

    def invalidate(self, keep: Optional[Coordinates] = None) -> None:
        """
        Drop cached addresses and cancel lookups for every coordinate but keep.
        """
        self._cache = {c: a for c, a in self._cache.items() if c == keep}
        for coordinates, task in list(self._inflight.items()):
            if coordinates != keep:
                task.cancel()
                del self._inflight[coordinates]

    def peek(self, coordinates: Coordinates) -> Optional[str]:
        """Cached address for the coordinate, without starting a lookup."""
        return self._cache.get(coordinates)

    def prefetch(self, coordinates: Coordinates) -> None:
        """Start a background lookup unless one is cached or running."""
        if coordinates not in self._cache:
            self._lookup_task(coordinates)

    async def resolve(self, coordinates: Coordinates) -> Optional[str]:
        """
        Address for the coordinate, looking it up if needed.

        Concurrent callers for the same coordinate share one lookup.

        Returns:
            The address, or None if a newer coordinate superseded the lookup
        """
        cached = self._cache.get(coordinates)
        if cached is not None:
            return cached

        task = self._lookup_task(coordinates)
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # The lookup itself was cancelled by invalidate(), not our caller
            if task.cancelled():
                return None
            raise

    def _lookup_task(self, coordinates: Coordinates) -> asyncio.Task:
        task = self._inflight.get(coordinates)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._lookup(coordinates))
            self._inflight[coordinates] = task
        return task

    async def _lookup(self, coordinates: Coordinates) -> str:
        try:
            address = await self._geocoder.reverse_geocode(coordinates)
        finally:
            if self._inflight.get(coordinates) is asyncio.current_task():
                del self._inflight[coordinates]

        if self._latest is None or self._latest == coordinates:
            self._cache[coordinates] = address
        else:
            logger.debug("Discarding address for stale coordinate %s", coordinates)
        return address

    @property
    def pending_lookups(self) -> int:
        return len(self._inflight)

    def close(self) -> None:
        """Cancel running lookups and stop observing the store."""
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

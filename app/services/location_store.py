"""
Location store.

Holds the latest known coordinate for the screen. Last write wins, no
history is kept, and out-of-range coordinates are rejected at the door.
"""

import logging
from typing import Callable, Optional

from app.schemas.geo import Coordinates, is_within_bounds
from app.utils.observable import ObservableCell

logger = logging.getLogger(__name__)

CoordinatesObserver = Callable[[Optional[Coordinates]], None]


class LocationStore:
    """Single-slot observable holder of the current coordinate."""

    def __init__(self):
        self._cell: ObservableCell[Coordinates] = ObservableCell()

    def update(self, coordinates: Coordinates) -> bool:
        """
        Replace the stored coordinate and notify observers.

        Args:
            coordinates: The new position

        Returns:
            True if stored, False if the coordinate was rejected
        """
        if not is_within_bounds(coordinates.latitude, coordinates.longitude):
            logger.warning("Rejected out-of-range coordinate %s", coordinates)
            return False
        self._cell.set(coordinates)
        return True

    def current(self) -> Optional[Coordinates]:
        return self._cell.value

    def clear(self) -> None:
        self._cell.set(None)

    def subscribe(self, observer: CoordinatesObserver) -> Callable[[], None]:
        """Observe writes; the observer runs synchronously inside update()."""
        return self._cell.subscribe(observer)

"""
Single-slot observable value.

Writes publish synchronously to every observer registered at the time of
the write. There is no locking: a cell is owned by one thread (the event
loop) and must only be written from it.
"""

import logging
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Observer = Callable[[Optional[T]], None]


class ObservableCell(Generic[T]):
    """A value holder that notifies observers on every write."""

    def __init__(self, initial: Optional[T] = None):
        self._value: Optional[T] = initial
        self._observers: List[Observer] = []

    @property
    def value(self) -> Optional[T]:
        return self._value

    def set(self, value: Optional[T]) -> None:
        self._value = value
        # Snapshot so observers may unsubscribe while being notified
        for observer in list(self._observers):
            try:
                observer(value)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Observer %r failed", observer)

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """
        Register an observer.

        Returns:
            A callable that removes the observer again
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    @property
    def observer_count(self) -> int:
        return len(self._observers)

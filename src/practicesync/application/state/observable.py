"""Minimal observable value used for the UI-facing state slices.

Hey future me - each slice (library, sessions, selection, timer) owns its own
Observable, so a timer tick at 10 Hz only wakes timer subscribers and never
recomputes the filtered library. Listeners run synchronously on the loop that
set the value; a listener that raises is logged and skipped, it never breaks
the state update.
"""

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class Observable(Generic[T]):
    """A value plus change listeners and a monotonically increasing version."""

    def __init__(self, value: T, name: str = "observable") -> None:
        self._value = value
        self._listeners: list[Callable[[T], None]] = []
        self._version = 0
        self.name = name

    @property
    def value(self) -> T:
        return self._value

    @property
    def version(self) -> int:
        """Bumped on every set()/notify(); memo keys use it."""
        return self._version

    def set(self, value: T) -> None:
        self._value = value
        self.notify()

    def notify(self) -> None:
        """Publish the current value (after an in-place mutation)."""
        self._version += 1
        for listener in list(self._listeners):
            try:
                listener(self._value)
            except Exception:
                logger.exception("Error in %s listener", self.name)

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        if not callable(listener):
            raise ValueError("Listener must be callable")
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

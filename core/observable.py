"""
Observable Value

Process-wide state holder with last-value replay.

A subscriber attached at any time immediately receives the current value,
then every later change. Subscribers attach and detach freely; they never
own or influence the producer.
"""

import logging
import threading
from typing import Callable, Generic, List, TypeVar

T = TypeVar("T")


class ObservableValue(Generic[T]):
    """
    Thread-safe value holder that notifies subscribers on change.

    Usage:
        state = ObservableValue(0)
        unsubscribe = state.subscribe(lambda v: print(f"now {v}"))  # prints "now 0"
        state.set(5)                                                # prints "now 5"
        unsubscribe()
    """

    def __init__(self, initial: T, name: str = "value"):
        self.logger = logging.getLogger(__name__)
        self.name = name

        self._value = initial
        self._lock = threading.Lock()
        self._subscribers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        """Current value"""
        with self._lock:
            return self._value

    def set(self, value: T, force: bool = False) -> None:
        """
        Update the value and notify subscribers.

        Args:
            value: New value
            force: Notify even if value equals the current one
        """
        with self._lock:
            if not force and value == self._value:
                return
            self._value = value
            subscribers = list(self._subscribers)

        for callback in subscribers:
            self._notify(callback, value)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Attach a subscriber and replay the current value to it.

        Args:
            callback: Called with each value

        Returns:
            Function that detaches this subscriber
        """
        with self._lock:
            self._subscribers.append(callback)
            current = self._value

        self._notify(callback, current)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def _notify(self, callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception as e:
            self.logger.error(f"Error in {self.name} subscriber: {e}")

"""
Typed Event Channel

In-process notification channel between the recorder, the upload
pipeline and the orchestrator. Each EventBus instance is owned by whoever
wires the components together; there is no process-global bus.

Delivery is synchronous on the publishing thread. Subscribers must be quick
and must not block (hand work to a thread if needed).
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class EventType(Enum):
    """Events published by the recorder and the upload pipeline"""

    # Segment recorder
    RECORDING_STARTED = "recording_started"
    SEGMENT_STARTED = "segment_started"
    SEGMENT_COMPLETED = "segment_completed"  # payload: segment
    SEGMENT_EVICTED = "segment_evicted"  # payload: segment
    RECORDING_STOPPED = "recording_stopped"
    RECORDING_ERROR = "recording_error"  # payload: message

    # Upload pipeline
    UPLOAD_COMPLETED = "upload_completed"  # payload: segment_id, url
    UPLOAD_NOTIFICATION = "upload_notification"  # payload: segment_id, kind, message


@dataclass
class Event:
    """One published event"""

    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


class EventBus:
    """
    Subscribe/publish channel keyed by EventType.

    Usage:
        bus = EventBus()
        bus.subscribe(EventType.SEGMENT_COMPLETED, on_segment)
        bus.publish(EventType.SEGMENT_COMPLETED, segment=segment)
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self.subscribers: Dict[Optional[EventType], List[Callable[[Event], None]]] = {}

    def subscribe(
        self,
        event_type: Optional[EventType],
        callback: Callable[[Event], None],
    ) -> Callable[[], None]:
        """
        Register an event handler.

        Args:
            event_type: Event to listen for, or None for every event
            callback: Called with the Event

        Returns:
            Function that removes this handler
        """
        with self._lock:
            self.subscribers.setdefault(event_type, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self.subscribers.get(event_type, [])
                if callback in handlers:
                    handlers.remove(callback)

        return unsubscribe

    def publish(self, event_type: EventType, **data: Any) -> Event:
        """
        Send an event to its subscribers.

        A failing subscriber is logged and does not stop delivery.

        Returns:
            The published Event
        """
        event = Event(type=event_type, data=data)

        with self._lock:
            handlers = list(self.subscribers.get(event_type, []))
            handlers += self.subscribers.get(None, [])

        self.logger.debug(f"Event: {event_type.value} {data}")

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                self.logger.error(f"Error in {event_type.value} handler: {e}")

        return event

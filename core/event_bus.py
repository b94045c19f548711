"""
Event bus for committed message events.

Synchronous in-process pub/sub. The repository publishes events only after
the event store accepted them, so handler errors are logged but never
propagate: the write has already happened.
"""

import logging
from typing import Callable, Dict, List

from core.events import DomainEvent

logger = logging.getLogger(__name__)


class EventBus:
    """
    In-process event bus for message domain events.

    Subscribe by event class name (string), publish by event instance.
    Handlers are called synchronously in subscription order.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, callback: Callable):
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Name of event class to subscribe to (e.g. 'MessageDelivered')
            callback: Function to call when event is published
        """
        self._subscribers.setdefault(event_type, []).append(callback)

    def publish(self, event: DomainEvent):
        """
        Publish an event to all subscribers of that type.

        Args:
            event: Committed event instance
        """
        event_type = event.__class__.__name__

        for callback in self._subscribers.get(event_type, []):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (message_id=%s, event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.message_id,
                    event.event_id,
                )

    def publish_all(self, events: List[DomainEvent]):
        """Publish events in order."""
        for event in events:
            self.publish(event)

"""
Message repository.

Loads aggregates by replaying their stream and saves them by appending
pending events at the version they were loaded with. Committed events are
published on the event bus after the append succeeds.
"""

import logging
from uuid import UUID

from core.aggregate import MessageAggregate
from core.event_bus import EventBus
from core.event_store import EventStore

logger = logging.getLogger(__name__)


def stream_id_for(message_id: UUID) -> str:
    """Canonical stream id for a message: ``"message-<id>"``."""
    return f"message-{message_id}"


class MessageRepository:
    """Event-sourced persistence for MessageAggregate."""

    def __init__(self, store: EventStore, event_bus: EventBus | None = None):
        self.store = store
        self.event_bus = event_bus

    def load(self, message_id: UUID) -> MessageAggregate:
        """
        Rehydrate a message from its history.

        Raises:
            NotFoundError: If no stream exists for message_id
        """
        events = self.store.load(stream_id_for(message_id))
        return MessageAggregate.rehydrate(message_id, events)

    def save(self, aggregate: MessageAggregate) -> int:
        """
        Append the aggregate's pending events.

        Returns:
            New stream version

        Raises:
            ConcurrencyConflictError: If the stream moved since the aggregate was
                loaded. Pending events are kept; reload and retry the command.
        """
        pending = list(aggregate.pending_events)
        if not pending:
            return aggregate.version

        new_version = self.store.append(
            stream_id_for(aggregate.message_id),
            aggregate.persisted_version,
            pending,
        )
        committed = aggregate.mark_committed()
        logger.debug(f"Saved message {aggregate.message_id} at version {new_version}")

        if self.event_bus is not None:
            self.event_bus.publish_all(committed)

        return new_version

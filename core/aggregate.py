"""
Event-sourced message aggregate.

One aggregate per outbound message. Commands validate against the
transition table, build an event, fold it through apply_event and queue it
as pending. State is never assigned any other way, so the in-memory state
and the recorded history cannot diverge.

Lifecycle:
    not_set -> in_progress -> sent -> {delivered, rejected, expired,
                                       undeliverable, bounced*, spam*}

    * email channel only
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable
from uuid import UUID

from core.errors import InvalidIdentifierError, InvalidStateTransitionError
from core.events import (
    MessageEvent,
    RequestSentToProvider,
    ResponseReceivedFromProvider,
    ProviderStatusEvent,
    MessageDelivered,
    MessageRejected,
    MessageExpired,
    MessageUndeliverable,
    MessageBounced,
    MessageMarkedAsSpam,
)
from core.models.message import MessageChannel, MessageStatus
from core.replay import replay
from utils.timezone import to_utc

logger = logging.getLogger(__name__)

_NIL_UUID = UUID(int=0)


# =============================================================================
# TRANSITION TABLE
# =============================================================================


@dataclass(frozen=True)
class Transition:
    """Source statuses and channels that permit an event, and where it leads."""

    allowed_from: frozenset[MessageStatus]
    target: MessageStatus
    channels: frozenset[MessageChannel] = frozenset(MessageChannel)


_SENT = frozenset({MessageStatus.SENT})
_EMAIL_ONLY = frozenset({MessageChannel.EMAIL})

TRANSITIONS: dict[type, Transition] = {
    RequestSentToProvider: Transition(frozenset({MessageStatus.NOT_SET}), MessageStatus.IN_PROGRESS),
    ResponseReceivedFromProvider: Transition(frozenset({MessageStatus.IN_PROGRESS}), MessageStatus.SENT),
    MessageDelivered: Transition(_SENT, MessageStatus.DELIVERED),
    MessageRejected: Transition(_SENT, MessageStatus.REJECTED),
    MessageExpired: Transition(_SENT, MessageStatus.EXPIRED),
    MessageUndeliverable: Transition(_SENT, MessageStatus.UNDELIVERABLE),
    MessageBounced: Transition(_SENT, MessageStatus.BOUNCED, _EMAIL_ONLY),
    MessageMarkedAsSpam: Transition(_SENT, MessageStatus.SPAM, _EMAIL_ONLY),
}


# =============================================================================
# STATE AND FOLD
# =============================================================================


@dataclass(frozen=True)
class MessageState:
    """Snapshot of one message, derived purely from its events."""

    message_id: UUID
    channel: MessageChannel = MessageChannel.SMS
    status: MessageStatus = MessageStatus.NOT_SET
    sender: str | None = None
    destination: str | None = None
    body: str | None = None
    subject: str | None = None
    provider_reference: str | None = None
    provider_status: str | None = None
    status_changed_at: datetime | None = None
    version: int = 0

    @classmethod
    def empty(cls, message_id: UUID, channel: MessageChannel = MessageChannel.SMS) -> "MessageState":
        """
        Initial state for a message that has no history yet.

        Raises:
            InvalidIdentifierError: If message_id is not a UUID or is the nil UUID
        """
        if not isinstance(message_id, UUID) or message_id == _NIL_UUID:
            raise InvalidIdentifierError("Message id cannot be empty")
        return cls(message_id=message_id, channel=channel)


def check_transition(state: MessageState, event_type: type, command: str) -> MessageStatus:
    """
    Validate that an event of event_type may be applied to state.

    Returns:
        Status the message moves to

    Raises:
        InvalidStateTransitionError: If the current status or channel forbids it
    """
    transition = TRANSITIONS.get(event_type)
    if transition is None:
        raise TypeError(f"Unhandled event type: {event_type.__name__}")

    if state.status not in transition.allowed_from or state.channel not in transition.channels:
        raise InvalidStateTransitionError(state.status, command)

    return transition.target


def apply_event(state: MessageState, event: MessageEvent) -> MessageState:
    """
    Fold one event into state.

    Used both for rehydration and for applying freshly emitted events.
    A history that breaks the transition table fails here too.
    """
    target = check_transition(state, type(event), type(event).__name__)

    if event.message_id != state.message_id:
        raise InvalidIdentifierError(
            f"Event for message {event.message_id} applied to message {state.message_id}"
        )

    version = state.version + 1

    match event:
        case RequestSentToProvider():
            return replace(
                state,
                status=target,
                channel=event.channel,
                sender=event.sender,
                destination=event.destination,
                body=event.body,
                subject=event.subject,
                version=version,
            )
        case ResponseReceivedFromProvider():
            return replace(
                state,
                status=target,
                provider_reference=event.provider_reference,
                version=version,
            )
        case ProviderStatusEvent():
            return replace(
                state,
                status=target,
                provider_status=event.provider_status,
                status_changed_at=event.timestamp,
                version=version,
            )
        case _:
            raise TypeError(f"Unhandled event type: {type(event).__name__}")


# =============================================================================
# AGGREGATE
# =============================================================================


class MessageAggregate:
    """
    Authoritative state of one outbound message.

    Usage:
        aggregate = MessageAggregate.create(message_id, MessageChannel.SMS)
        aggregate.send_request_to_provider("ACME", "07777777777", "hi")
        aggregate.receive_response_from_provider("PROV-REF-1")
        repository.save(aggregate)

        # Later, from storage
        aggregate = MessageAggregate.rehydrate(message_id, events)
        aggregate.mark_delivered("delivered", delivered_at)
    """

    def __init__(self, state: MessageState):
        self._state = state
        self._pending_events: list[MessageEvent] = []

    @classmethod
    def create(cls, message_id: UUID, channel: MessageChannel = MessageChannel.SMS) -> "MessageAggregate":
        """Create an empty aggregate in NOT_SET status."""
        return cls(MessageState.empty(message_id, channel))

    @classmethod
    def rehydrate(cls, message_id: UUID, events: Iterable[MessageEvent]) -> "MessageAggregate":
        """Rebuild an aggregate from its recorded history. No events are pending afterwards."""
        # Channel starts at the default; RequestSentToProvider restores the recorded one
        return cls(replay(MessageState.empty(message_id), events, apply_event))

    # -------------------------------------------------------------------------
    # State accessors
    # -------------------------------------------------------------------------

    @property
    def state(self) -> MessageState:
        return self._state

    @property
    def message_id(self) -> UUID:
        return self._state.message_id

    @property
    def channel(self) -> MessageChannel:
        return self._state.channel

    @property
    def status(self) -> MessageStatus:
        return self._state.status

    @property
    def sender(self) -> str | None:
        return self._state.sender

    @property
    def destination(self) -> str | None:
        return self._state.destination

    @property
    def body(self) -> str | None:
        return self._state.body

    @property
    def subject(self) -> str | None:
        return self._state.subject

    @property
    def provider_reference(self) -> str | None:
        return self._state.provider_reference

    @property
    def provider_status(self) -> str | None:
        return self._state.provider_status

    @property
    def status_changed_at(self) -> datetime | None:
        return self._state.status_changed_at

    @property
    def version(self) -> int:
        """Number of events applied, including pending ones."""
        return self._state.version

    @property
    def persisted_version(self) -> int:
        """Version the event store held when this aggregate was loaded."""
        return self._state.version - len(self._pending_events)

    @property
    def pending_events(self) -> tuple[MessageEvent, ...]:
        return tuple(self._pending_events)

    def mark_committed(self) -> list[MessageEvent]:
        """
        Clear pending events after the store accepted them.

        Returns:
            The events that were pending, in emission order
        """
        committed = self._pending_events
        self._pending_events = []
        return committed

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def send_request_to_provider(
        self,
        sender: str,
        destination: str,
        body: str,
        subject: str | None = None,
    ) -> None:
        """
        Record that the message is being handed to the provider.

        Raises:
            InvalidStateTransitionError: If a request was already recorded
            ValueError: If a subject is given for a non-email message
        """
        check_transition(self._state, RequestSentToProvider, "send_request_to_provider")
        if subject is not None and self.channel != MessageChannel.EMAIL:
            raise ValueError("subject is only supported for email messages")

        self._emit(RequestSentToProvider.create(
            self.message_id, self.channel, sender, destination, body, subject
        ))

    def receive_response_from_provider(self, provider_reference: str) -> None:
        """
        Record the provider's acceptance and its reference for the message.

        Raises:
            InvalidStateTransitionError: If status is not IN_PROGRESS
            ValueError: If provider_reference is empty
        """
        check_transition(self._state, ResponseReceivedFromProvider, "receive_response_from_provider")
        if not provider_reference:
            raise ValueError("provider_reference is required")

        self._emit(ResponseReceivedFromProvider.create(self.message_id, provider_reference))

    def mark_delivered(self, provider_status: str, timestamp: datetime) -> None:
        """Record delivery. Requires SENT status."""
        self._mark(MessageDelivered, "mark_delivered", provider_status, timestamp)

    def mark_rejected(self, provider_status: str, timestamp: datetime) -> None:
        """Record rejection. Requires SENT status."""
        self._mark(MessageRejected, "mark_rejected", provider_status, timestamp)

    def mark_expired(self, provider_status: str, timestamp: datetime) -> None:
        """Record expiry. Requires SENT status."""
        self._mark(MessageExpired, "mark_expired", provider_status, timestamp)

    def mark_undeliverable(self, provider_status: str, timestamp: datetime) -> None:
        """Record that the destination cannot be reached. Requires SENT status."""
        self._mark(MessageUndeliverable, "mark_undeliverable", provider_status, timestamp)

    def mark_bounced(self, provider_status: str, timestamp: datetime) -> None:
        """Record a bounce. Requires SENT status on the email channel."""
        self._mark(MessageBounced, "mark_bounced", provider_status, timestamp)

    def mark_spam(self, provider_status: str, timestamp: datetime) -> None:
        """Record a spam complaint. Requires SENT status on the email channel."""
        self._mark(MessageMarkedAsSpam, "mark_spam", provider_status, timestamp)

    def _mark(self, event_type: type, command: str, provider_status: str, timestamp: datetime) -> None:
        check_transition(self._state, event_type, command)
        self._emit(event_type.create(self.message_id, provider_status, to_utc(timestamp)))

    def _emit(self, event: MessageEvent) -> None:
        self._state = apply_event(self._state, event)
        self._pending_events.append(event)
        logger.debug(
            "Message %s -> %s (%s)",
            self.message_id, self.status.value, type(event).__name__,
        )

"""
Domain events for the message lifecycle.

Immutable event objects that record what happened to one message. The
ordered list of these events is the only persisted state of a message;
the aggregate's status is always rebuilt from them.

Event Categories:
- RequestSentToProvider / ResponseReceivedFromProvider: hand-off to provider
- ProviderStatusEvent: delivery outcomes reported back by the provider

MessageEvent is the closed union of every concrete event. Code that folds
events matches on it exhaustively.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Union
from uuid import UUID, uuid4

from core.models.message import MessageChannel
from utils.timezone import now_utc, parse_iso


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for all message domain events."""
    message_id: UUID
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


# =============================================================================
# PROVIDER HAND-OFF EVENTS
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class RequestSentToProvider(DomainEvent):
    """Send request was recorded; the message is in flight."""
    channel: MessageChannel = MessageChannel.SMS
    sender: str
    destination: str
    body: str
    subject: str | None = None

    @classmethod
    def create(
        cls,
        message_id: UUID,
        channel: MessageChannel,
        sender: str,
        destination: str,
        body: str,
        subject: str | None = None,
    ) -> "RequestSentToProvider":
        return cls(
            message_id=message_id,
            channel=channel,
            sender=sender,
            destination=destination,
            body=body,
            subject=subject,
        )


@dataclass(frozen=True, kw_only=True)
class ResponseReceivedFromProvider(DomainEvent):
    """Provider accepted the message and assigned its own reference."""
    provider_reference: str

    @classmethod
    def create(cls, message_id: UUID, provider_reference: str) -> "ResponseReceivedFromProvider":
        return cls(message_id=message_id, provider_reference=provider_reference)


# =============================================================================
# DELIVERY OUTCOME EVENTS
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class ProviderStatusEvent(DomainEvent):
    """Delivery outcome reported by the provider."""
    provider_status: str
    timestamp: datetime

    @classmethod
    def create(cls, message_id: UUID, provider_status: str, timestamp: datetime):
        return cls(message_id=message_id, provider_status=provider_status, timestamp=timestamp)


@dataclass(frozen=True, kw_only=True)
class MessageDelivered(ProviderStatusEvent):
    """Message reached the recipient."""


@dataclass(frozen=True, kw_only=True)
class MessageRejected(ProviderStatusEvent):
    """Provider or carrier refused the message."""


@dataclass(frozen=True, kw_only=True)
class MessageExpired(ProviderStatusEvent):
    """Message validity period ran out before delivery."""


@dataclass(frozen=True, kw_only=True)
class MessageUndeliverable(ProviderStatusEvent):
    """Destination cannot receive the message."""


@dataclass(frozen=True, kw_only=True)
class MessageBounced(ProviderStatusEvent):
    """Email was bounced by the receiving server."""


@dataclass(frozen=True, kw_only=True)
class MessageMarkedAsSpam(ProviderStatusEvent):
    """Email was flagged as spam by the recipient."""


MessageEvent = Union[
    RequestSentToProvider,
    ResponseReceivedFromProvider,
    MessageDelivered,
    MessageRejected,
    MessageExpired,
    MessageUndeliverable,
    MessageBounced,
    MessageMarkedAsSpam,
]

EVENT_TYPES: dict[str, type] = {
    cls.__name__: cls for cls in MessageEvent.__args__
}


# =============================================================================
# STORAGE RECORDS
# =============================================================================

_METADATA_FIELDS = {"event_id", "occurred_at"}

_FIELD_DECODERS = {
    "message_id": UUID,
    "channel": MessageChannel,
    "timestamp": parse_iso,
}


def _encode(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def event_to_record(event: MessageEvent) -> dict[str, Any]:
    """
    Convert an event into a JSON-safe storage record.

    Returns:
        Dict with keys: event_type, event_id, occurred_at, data
    """
    data = {
        f.name: _encode(getattr(event, f.name))
        for f in fields(event)
        if f.name not in _METADATA_FIELDS
    }
    return {
        "event_type": type(event).__name__,
        "event_id": event.event_id,
        "occurred_at": event.occurred_at.isoformat(),
        "data": data,
    }


def event_from_record(record: dict[str, Any]) -> MessageEvent:
    """
    Rebuild an event from a storage record.

    Raises:
        ValueError: If event_type is not a known message event
    """
    event_cls = EVENT_TYPES.get(record["event_type"])
    if event_cls is None:
        raise ValueError(f"Unknown event type: {record['event_type']}")

    occurred_at = record["occurred_at"]
    if isinstance(occurred_at, str):
        occurred_at = parse_iso(occurred_at)

    kwargs = {}
    for name, value in record["data"].items():
        decoder = _FIELD_DECODERS.get(name)
        kwargs[name] = decoder(value) if decoder and value is not None else value

    return event_cls(event_id=record["event_id"], occurred_at=occurred_at, **kwargs)

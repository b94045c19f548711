"""Message lifecycle domain models."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class MessageStatus(str, Enum):
    """Canonical, provider-agnostic message status."""

    NOT_SET = "not_set"
    IN_PROGRESS = "in_progress"
    SENT = "sent"
    DELIVERED = "delivered"
    REJECTED = "rejected"
    EXPIRED = "expired"
    UNDELIVERABLE = "undeliverable"
    BOUNCED = "bounced"
    SPAM = "spam"
    FAILED = "failed"  # Translation only - never reached by the aggregate
    UNKNOWN = "unknown"  # Translation only - unmapped provider code

    @property
    def is_terminal(self) -> bool:
        """Whether no further status change is accepted."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    MessageStatus.DELIVERED,
    MessageStatus.REJECTED,
    MessageStatus.EXPIRED,
    MessageStatus.UNDELIVERABLE,
    MessageStatus.BOUNCED,
    MessageStatus.SPAM,
})


class MessageChannel(str, Enum):
    """Delivery channel of a message."""

    SMS = "sms"
    EMAIL = "email"


class SendMessageRequest(BaseModel):
    """Data required to send a message through a provider."""

    message_id: UUID | None = None
    channel: MessageChannel
    sender: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    body: str = Field(..., min_length=1, max_length=100000)
    subject: str | None = Field(None, max_length=255)

    @model_validator(mode="after")
    def _subject_only_for_email(self) -> "SendMessageRequest":
        if self.subject is not None and self.channel != MessageChannel.EMAIL:
            raise ValueError("subject is only supported for email messages")
        return self

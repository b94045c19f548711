"""Core domain models."""

from core.models.message import (
    MessageStatus, MessageChannel, SendMessageRequest, TERMINAL_STATUSES,
)
from core.models.provider import ProviderProxy, ProviderSendResult, ProviderStatusResult

__all__ = [
    # Message
    "MessageStatus", "MessageChannel", "SendMessageRequest", "TERMINAL_STATUSES",
    # Provider
    "ProviderProxy", "ProviderSendResult", "ProviderStatusResult",
]

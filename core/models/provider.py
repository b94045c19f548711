"""Provider proxy contract and response models."""

from datetime import datetime
from typing import Protocol

from pydantic import BaseModel

from core.models.message import MessageChannel


class ProviderSendResult(BaseModel):
    """Outcome of handing a message to a provider."""

    provider_reference: str
    raw_status: str
    request_id: str | None = None


class ProviderStatusResult(BaseModel):
    """Delivery status reported by a provider for one message."""

    raw_status: str
    timestamp: datetime | None = None


class ProviderProxy(Protocol):
    """
    Network boundary to a message provider.

    Implementations raise core.errors.ProviderError on any failure.
    """

    provider_name: str
    channel: MessageChannel

    def send(
        self,
        sender: str,
        destination: str,
        body: str,
        subject: str | None = None,
    ) -> ProviderSendResult:
        ...

    def query_status(
        self,
        provider_reference: str,
        start: datetime,
        end: datetime,
    ) -> ProviderStatusResult:
        ...

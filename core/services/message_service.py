"""
Message service for outbound message delivery.

Handles sending a message through a provider and polling the provider for
its delivery outcome. All state changes go through MessageAggregate; this
service only orchestrates the repository, the provider proxy and the
status translator.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable
from uuid import UUID, uuid4

from core.aggregate import MessageAggregate
from core.config import MessagingConfig
from core.errors import InvalidStateTransitionError, MessagingError, NotFoundError, ProviderError
from core.models import MessageStatus, ProviderProxy, SendMessageRequest
from core.repository import MessageRepository
from core.translators import StatusTranslator
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# Canonical outcome -> aggregate command. Statuses not listed issue no command.
_STATUS_COMMANDS = {
    MessageStatus.DELIVERED: MessageAggregate.mark_delivered,
    MessageStatus.REJECTED: MessageAggregate.mark_rejected,
    MessageStatus.EXPIRED: MessageAggregate.mark_expired,
    MessageStatus.UNDELIVERABLE: MessageAggregate.mark_undeliverable,
    MessageStatus.BOUNCED: MessageAggregate.mark_bounced,
    MessageStatus.SPAM: MessageAggregate.mark_spam,
}


class MessageService:
    """Service for message send and status operations."""

    def __init__(
        self,
        repository: MessageRepository,
        proxy: ProviderProxy,
        translator: StatusTranslator,
        config: MessagingConfig | None = None,
    ):
        self.repository = repository
        self.proxy = proxy
        self.translator = translator
        self.config = config or MessagingConfig()

    def send_message(self, request: SendMessageRequest) -> MessageAggregate:
        """
        Send a message through the provider and record the hand-off.

        Args:
            request: Message to send. A message_id is generated when absent.

        Returns:
            Saved aggregate in SENT status

        Raises:
            ValueError: If the provider does not carry the request's channel
            InvalidStateTransitionError: If a message with this id was already sent
            ProviderError: If the provider call fails. Nothing is saved.
            ConcurrencyConflictError: If another writer recorded the same id meanwhile
        """
        if request.channel != self.proxy.channel:
            raise ValueError(
                f"{self.proxy.provider_name} sends {self.proxy.channel.value} messages, "
                f"not {request.channel.value}"
            )

        message_id = request.message_id or uuid4()

        try:
            aggregate = self.repository.load(message_id)
        except NotFoundError:
            aggregate = MessageAggregate.create(message_id, request.channel)

        # Fails for an existing message before the provider is called
        aggregate.send_request_to_provider(
            request.sender, request.destination, request.body, request.subject
        )

        try:
            result = self.proxy.send(
                sender=request.sender,
                destination=request.destination,
                body=request.body,
                subject=request.subject,
            )
        except ProviderError as e:
            logger.error(f"Failed to send message {message_id}: {e}")
            raise

        aggregate.receive_response_from_provider(result.provider_reference)
        self.repository.save(aggregate)

        logger.info(
            f"Message {message_id} sent via {self.translator.provider} "
            f"(provider_reference={result.provider_reference})"
        )
        return aggregate

    def get_message(self, message_id: UUID) -> MessageAggregate:
        """
        Load a message by ID.

        Raises:
            NotFoundError: If the message does not exist
        """
        return self.repository.load(message_id)

    def check_message_status(
        self,
        message_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MessageStatus:
        """
        Ask the provider for a message's delivery outcome and record it.

        Args:
            message_id: Message UUID
            start: Start of the provider search window (default: end - window)
            end: End of the provider search window (default: now)

        Returns:
            Status of the message after the check

        Raises:
            NotFoundError: If the message does not exist
            InvalidStateTransitionError: If the message was never accepted by the provider
            ProviderError: If the status lookup fails
        """
        aggregate = self.repository.load(message_id)

        if aggregate.status.is_terminal:
            logger.info(f"Message {message_id} already final ({aggregate.status.value})")
            return aggregate.status

        if aggregate.status != MessageStatus.SENT:
            raise InvalidStateTransitionError(aggregate.status, "check_message_status")

        end = end or now_utc()
        start = start or end - timedelta(days=self.config.status_query_window_days)

        result = self.proxy.query_status(aggregate.provider_reference, start, end)
        status = self.translator.translate(result.raw_status)

        command = _STATUS_COMMANDS.get(status)
        if command is None:
            logger.info(
                f"Message {message_id} has no final outcome yet "
                f"(provider status {result.raw_status!r} -> {status.value})"
            )
            return aggregate.status

        command(aggregate, result.raw_status, result.timestamp or now_utc())
        self.repository.save(aggregate)

        logger.info(f"Message {message_id} marked {aggregate.status.value}")
        return aggregate.status

    def check_statuses(self, message_ids: Iterable[UUID]) -> dict[str, int]:
        """
        Check the status of several messages, continuing past failures.

        Args:
            message_ids: Messages to check

        Returns:
            Dict with counts: {"final": N, "pending": N, "failed": N}
        """
        results = {"final": 0, "pending": 0, "failed": 0}

        for message_id in message_ids:
            try:
                status = self.check_message_status(message_id)
            except MessagingError as e:
                logger.error(f"Failed to check status of message {message_id}: {e}")
                results["failed"] += 1
                continue

            if status.is_terminal:
                results["final"] += 1
            else:
                results["pending"] += 1

        return results

"""
Provider status translation.

Each provider reports delivery outcomes in its own vocabulary. A translator
maps those raw strings onto MessageStatus with a static lookup table so the
aggregate only ever sees canonical statuses.
"""

import logging
from typing import Mapping

from core.models.message import MessageStatus

logger = logging.getLogger(__name__)


class StatusTranslator:
    """Static raw-status -> MessageStatus table for one provider."""

    def __init__(self, provider: str, table: Mapping[str, MessageStatus]):
        if not provider:
            raise ValueError("provider is required")
        self.provider = provider
        self._table = dict(table)

    def translate(self, provider_status: str | None) -> MessageStatus:
        """
        Map a raw provider status to a canonical status.

        Lookup is exact. Anything not in the table, including None,
        becomes UNKNOWN rather than an error.
        """
        status = self._table.get(provider_status) if provider_status is not None else None
        if status is None:
            logger.warning(f"Unmapped {self.provider} status: {provider_status!r}")
            return MessageStatus.UNKNOWN
        return status

    def __call__(self, provider_status: str | None) -> MessageStatus:
        return self.translate(provider_status)


SMTP2GO_STATUSES: dict[str, MessageStatus] = {
    "failed": MessageStatus.FAILED,
    "deferred": MessageStatus.FAILED,
    "hardbounce": MessageStatus.BOUNCED,
    "refused": MessageStatus.BOUNCED,
    "softbounce": MessageStatus.BOUNCED,
    "returned": MessageStatus.BOUNCED,
    "delivered": MessageStatus.DELIVERED,
    "ok": MessageStatus.DELIVERED,
    "sent": MessageStatus.DELIVERED,
    "rejected": MessageStatus.REJECTED,
    "complained": MessageStatus.SPAM,
    "spam": MessageStatus.SPAM,
}

smtp2go_translator = StatusTranslator("smtp2go", SMTP2GO_STATUSES)

_TRANSLATORS: dict[str, StatusTranslator] = {
    smtp2go_translator.provider: smtp2go_translator,
}


def get_translator(provider: str) -> StatusTranslator:
    """
    Look up the translator registered for a provider.

    Raises:
        KeyError: If no translator is registered for provider
    """
    try:
        return _TRANSLATORS[provider]
    except KeyError:
        raise KeyError(f"No status translator registered for provider '{provider}'")

"""Wiring for production message services."""

from clients.postgres_client import PostgresClient
from clients.smtp2go_client import Smtp2GoClient
from clients.vault_client import get_database_url, get_smtp2go_config
from core.config import MessagingConfig
from core.event_bus import EventBus
from core.event_store import PostgresEventStore
from core.repository import MessageRepository
from core.services.message_service import MessageService
from core.translators import get_translator


def create_email_message_service(
    config: MessagingConfig | None = None,
    event_bus: EventBus | None = None,
) -> MessageService:
    """
    Build an email MessageService backed by Postgres and SMTP2Go.

    Secrets are read from Vault; everything else comes from config.
    """
    config = config or MessagingConfig()

    store = PostgresEventStore(PostgresClient(get_database_url()))
    repository = MessageRepository(store, event_bus or EventBus())

    smtp2go = get_smtp2go_config()
    proxy = Smtp2GoClient(
        base_url=config.smtp2go_base_url,
        api_key=smtp2go["api_key"],
        timeout=config.provider_timeout_seconds,
    )

    return MessageService(repository, proxy, get_translator(proxy.provider_name), config)

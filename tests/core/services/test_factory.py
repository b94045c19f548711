"""Tests for production service wiring."""

from unittest.mock import patch

from clients.smtp2go_client import Smtp2GoClient
from core.config import MessagingConfig
from core.event_bus import EventBus
from core.event_store import PostgresEventStore
from core.services.factory import create_email_message_service
from core.translators import smtp2go_translator


@patch("core.services.factory.PostgresClient")
@patch("core.services.factory.get_smtp2go_config", return_value={"api_key": "api-key"})
@patch("core.services.factory.get_database_url", return_value="postgresql://localhost/messaging")
def test_wires_service_from_vault_and_config(_db_url, _smtp2go, postgres_cls):
    bus = EventBus()
    config = MessagingConfig(provider_timeout_seconds=5, smtp2go_base_url="https://smtp2go.test/v3")

    service = create_email_message_service(config, bus)

    postgres_cls.assert_called_once_with("postgresql://localhost/messaging")
    assert isinstance(service.repository.store, PostgresEventStore)
    assert service.repository.event_bus is bus
    assert isinstance(service.proxy, Smtp2GoClient)
    assert service.proxy.api_key == "api-key"
    assert service.proxy.base_url == "https://smtp2go.test/v3/"
    assert service.proxy.timeout == 5
    assert service.translator is smtp2go_translator
    assert service.config is config

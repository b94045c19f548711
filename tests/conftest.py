"""Shared test fixtures for messaging test suite."""

import pytest
from uuid import UUID
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env")

import clients.vault_client as vault_module

from core.aggregate import MessageAggregate
from core.event_bus import EventBus
from core.event_store import InMemoryEventStore
from core.models import MessageChannel
from core.repository import MessageRepository


# =============================================================================
# TEST DATA CONSTANTS
# =============================================================================

MESSAGE_ID = UUID("6a1f2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c4d")
SENDER = "ACME"
DESTINATION = "07777777777"
BODY = "Your order has shipped"
PROVIDER_REFERENCE = "PROV-REF-1"


# =============================================================================
# VAULT
# =============================================================================


@pytest.fixture(autouse=True)
def reset_vault_singleton():
    """Ensure each test builds its own Vault client and secret cache."""
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()
    yield
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()


# =============================================================================
# AGGREGATE FIXTURES
# =============================================================================


@pytest.fixture
def message_id() -> UUID:
    return MESSAGE_ID


@pytest.fixture
def new_sms(message_id) -> MessageAggregate:
    """Fresh SMS aggregate in NOT_SET status."""
    return MessageAggregate.create(message_id, MessageChannel.SMS)


@pytest.fixture
def in_progress_sms(new_sms) -> MessageAggregate:
    new_sms.send_request_to_provider(SENDER, DESTINATION, BODY)
    return new_sms


@pytest.fixture
def sent_sms(in_progress_sms) -> MessageAggregate:
    in_progress_sms.receive_response_from_provider(PROVIDER_REFERENCE)
    return in_progress_sms


@pytest.fixture
def sent_email(message_id) -> MessageAggregate:
    aggregate = MessageAggregate.create(message_id, MessageChannel.EMAIL)
    aggregate.send_request_to_provider("noreply@acme.test", "user@example.com", BODY, "Shipped")
    aggregate.receive_response_from_provider(PROVIDER_REFERENCE)
    return aggregate


# =============================================================================
# PERSISTENCE FIXTURES
# =============================================================================


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def repository(store, event_bus) -> MessageRepository:
    return MessageRepository(store, event_bus)

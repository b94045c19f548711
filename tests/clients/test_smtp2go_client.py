"""
Tests for Smtp2GoClient.

HTTP is mocked with the responses library; assertions cover the client's
contract with calling code.
"""

import json
from datetime import datetime, timezone

import pytest
import requests
import responses

from clients.smtp2go_client import Smtp2GoClient
from core.errors import ProviderError
from core.models import MessageChannel

BASE_URL = "https://api.smtp2go.test/v3/"
SEND_URL = BASE_URL + "email/send"
SEARCH_URL = BASE_URL + "email/search"


@pytest.fixture
def client():
    return Smtp2GoClient(base_url=BASE_URL, api_key="test-api-key")


class TestSmtp2GoClientInit:
    """Fail-fast on invalid config."""

    def test_init_with_valid_credentials(self):
        client = Smtp2GoClient(base_url="https://api.smtp2go.test/v3", api_key="k", timeout=3)

        assert client.base_url == BASE_URL
        assert client.timeout == 3
        assert client.provider_name == "smtp2go"
        assert client.channel == MessageChannel.EMAIL

    def test_init_rejects_empty_base_url(self):
        with pytest.raises(ValueError, match="base_url"):
            Smtp2GoClient(base_url="", api_key="k")

    def test_init_rejects_empty_api_key(self):
        with pytest.raises(ValueError, match="api_key"):
            Smtp2GoClient(base_url=BASE_URL, api_key="")


class TestSend:

    @responses.activate
    def test_successful_send_returns_email_id(self, client):
        responses.add(
            responses.POST, SEND_URL,
            json={"request_id": "req-1", "data": {"succeeded": 1, "failed": 0, "email_id": "1rXyz-abc"}},
            status=200,
        )

        result = client.send("noreply@acme.test", "user@example.com", "hello", subject="Hi")

        assert result.provider_reference == "1rXyz-abc"
        assert result.raw_status == "accepted"
        assert result.request_id == "req-1"

    @responses.activate
    def test_payload_carries_credentials_and_message(self, client):
        responses.add(responses.POST, SEND_URL, json={"data": {"email_id": "e1"}}, status=200)

        client.send("noreply@acme.test", "user@example.com", "hello", subject="Hi")

        payload = json.loads(responses.calls[0].request.body)
        assert payload == {
            "api_key": "test-api-key",
            "sender": "noreply@acme.test",
            "to": ["user@example.com"],
            "subject": "Hi",
            "text_body": "hello",
        }

    @responses.activate
    def test_html_body(self, client):
        responses.add(responses.POST, SEND_URL, json={"data": {"email_id": "e1"}}, status=200)

        client.send("a@acme.test", "b@example.com", "<p>hello</p>", is_html=True)

        payload = json.loads(responses.calls[0].request.body)
        assert payload["html_body"] == "<p>hello</p>"
        assert "text_body" not in payload

    @responses.activate
    def test_http_error_raises_with_status_code(self, client):
        responses.add(
            responses.POST, SEND_URL,
            json={"data": {"error": "Invalid API key", "error_code": "E_ApiResponseCodes.API_KEY_INVALID"}},
            status=401,
        )

        with pytest.raises(ProviderError, match="Invalid API key") as exc_info:
            client.send("a@acme.test", "b@example.com", "hello")

        assert exc_info.value.status_code == 401
        assert exc_info.value.provider == "smtp2go"

    @responses.activate
    def test_failed_recipient_raises(self, client):
        responses.add(
            responses.POST, SEND_URL,
            json={"data": {"succeeded": 0, "failed": 1, "failures": ["b@example.com"], "email_id": "e1"}},
            status=200,
        )

        with pytest.raises(ProviderError, match="not accepted"):
            client.send("a@acme.test", "b@example.com", "hello")

    @responses.activate
    def test_invalid_json_raises(self, client):
        responses.add(responses.POST, SEND_URL, body="<html>oops</html>", status=502)

        with pytest.raises(ProviderError, match="Invalid response"):
            client.send("a@acme.test", "b@example.com", "hello")

    @responses.activate
    def test_connection_error_raises(self, client):
        responses.add(responses.POST, SEND_URL, body=requests.exceptions.ConnectionError("refused"))

        with pytest.raises(ProviderError, match="Connection failed"):
            client.send("a@acme.test", "b@example.com", "hello")


class TestQueryStatus:

    START = datetime(2024, 3, 1, tzinfo=timezone.utc)
    END = datetime(2024, 3, 8, tzinfo=timezone.utc)

    @responses.activate
    def test_returns_raw_status_and_timestamp(self, client):
        responses.add(
            responses.POST, SEARCH_URL,
            json={"data": {"emails": [
                {"email_id": "e1", "status": "delivered", "email_status_date": "2024-03-02 10:15:00"}
            ]}},
            status=200,
        )

        result = client.query_status("e1", self.START, self.END)

        assert result.raw_status == "delivered"
        assert result.timestamp == datetime(2024, 3, 2, 10, 15, tzinfo=timezone.utc)

    @responses.activate
    def test_search_payload(self, client):
        responses.add(
            responses.POST, SEARCH_URL,
            json={"data": {"emails": [{"status": "ok"}]}},
            status=200,
        )

        client.query_status("e1", self.START, self.END)

        payload = json.loads(responses.calls[0].request.body)
        assert payload == {
            "api_key": "test-api-key",
            "email_id": ["e1"],
            "start_date": "2024-03-01",
            "end_date": "2024-03-08",
        }

    @responses.activate
    def test_missing_or_bad_date_gives_no_timestamp(self, client):
        responses.add(
            responses.POST, SEARCH_URL,
            json={"data": {"emails": [{"status": "ok", "email_status_date": "yesterday"}]}},
            status=200,
        )

        assert client.query_status("e1", self.START, self.END).timestamp is None

    @responses.activate
    @pytest.mark.parametrize("emails", [[], [{"status": "ok"}, {"status": "spam"}]])
    def test_requires_exactly_one_email(self, client, emails):
        responses.add(responses.POST, SEARCH_URL, json={"data": {"emails": emails}}, status=200)

        with pytest.raises(ProviderError, match="Expected one email"):
            client.query_status("e1", self.START, self.END)

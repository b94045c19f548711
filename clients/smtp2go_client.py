"""
SMTP2Go email provider client.

Sends emails and looks up their delivery status over the SMTP2Go REST API.
Credentials and base address are constructor parameters; nothing is read
from the environment here.
"""

import logging
from datetime import datetime, timezone

import requests

from core.errors import ProviderError
from core.models.message import MessageChannel
from core.models.provider import ProviderSendResult, ProviderStatusResult

logger = logging.getLogger(__name__)

# Raw status recorded when SMTP2Go accepts a message for delivery
ACCEPTED_STATUS = "accepted"


def _parse_status_date(value: str | None) -> datetime | None:
    """SMTP2Go reports UTC timestamps, sometimes without an offset."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable SMTP2Go status date: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class Smtp2GoClient:
    """Provider proxy for SMTP2Go."""

    provider_name = "smtp2go"
    channel = MessageChannel.EMAIL

    def __init__(self, base_url: str, api_key: str, timeout: int = 10):
        """
        Initialize with provider credentials.

        Args:
            base_url: API base address (e.g. https://api.smtp2go.com/v3/)
            api_key: SMTP2Go API key
            timeout: Per-request timeout in seconds

        Raises:
            ValueError: If any credential is empty
        """
        if not base_url:
            raise ValueError("base_url is required")
        if not api_key:
            raise ValueError("api_key is required")

        self.base_url = base_url.rstrip("/") + "/"
        self.api_key = api_key
        self.timeout = timeout

    def _post(self, path: str, payload: dict) -> dict:
        """
        POST payload to an API path and return the decoded response.

        Raises:
            ProviderError: On connection failure, invalid JSON or non-200 status
        """
        url = f"{self.base_url}{path}"
        logger.debug(f"Request sent to SMTP2Go {path}")

        try:
            response = requests.post(
                url,
                json={"api_key": self.api_key, **payload},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"SMTP2Go connection failed: {e}")
            raise ProviderError(self.provider_name, f"Connection failed: {e}")

        try:
            response_data = response.json()
        except ValueError:
            logger.error(f"SMTP2Go returned invalid JSON: {response.text}")
            raise ProviderError(
                self.provider_name, "Invalid response from provider", response.status_code
            )

        if response.status_code != 200:
            error_msg = (response_data.get("data") or {}).get("error") or "Unknown error"
            logger.error(f"SMTP2Go error ({response.status_code}): {error_msg}")
            raise ProviderError(self.provider_name, error_msg, response.status_code)

        logger.debug(f"Response received from SMTP2Go {path}: request_id={response_data.get('request_id')}")
        return response_data

    def send(
        self,
        sender: str,
        destination: str,
        body: str,
        subject: str | None = None,
        is_html: bool = False,
    ) -> ProviderSendResult:
        """
        Hand an email to SMTP2Go.

        Args:
            sender: From address
            destination: Recipient address
            body: Email body
            subject: Subject line
            is_html: Send body as HTML instead of plain text

        Returns:
            Result carrying SMTP2Go's email id as provider_reference

        Raises:
            ProviderError: On gateway failure or if SMTP2Go did not accept the email
        """
        payload = {
            "sender": sender,
            "to": [destination],
            "subject": subject or "",
            "html_body" if is_html else "text_body": body,
        }
        response_data = self._post("email/send", payload)
        data = response_data.get("data") or {}

        email_id = data.get("email_id")
        if not email_id or data.get("failed"):
            failures = data.get("failures") or [data.get("error") or "no email id returned"]
            raise ProviderError(self.provider_name, f"Email not accepted: {failures}")

        logger.info(f"Email {email_id} accepted by SMTP2Go for {destination}")
        return ProviderSendResult(
            provider_reference=email_id,
            raw_status=ACCEPTED_STATUS,
            request_id=response_data.get("request_id"),
        )

    def query_status(
        self,
        provider_reference: str,
        start: datetime,
        end: datetime,
    ) -> ProviderStatusResult:
        """
        Look up the current delivery status of one email.

        Args:
            provider_reference: SMTP2Go email id
            start: Start of the search window
            end: End of the search window

        Returns:
            Raw SMTP2Go status and its timestamp

        Raises:
            ProviderError: On gateway failure or if the search does not return exactly one email
        """
        payload = {
            "email_id": [provider_reference],
            "start_date": start.strftime("%Y-%m-%d"),
            "end_date": end.strftime("%Y-%m-%d"),
        }
        response_data = self._post("email/search", payload)
        emails = (response_data.get("data") or {}).get("emails") or []

        if len(emails) != 1:
            raise ProviderError(
                self.provider_name,
                f"Expected one email for {provider_reference}, got {len(emails)}",
            )

        detail = emails[0]
        return ProviderStatusResult(
            raw_status=detail.get("status") or "",
            timestamp=_parse_status_date(detail.get("email_status_date")),
        )

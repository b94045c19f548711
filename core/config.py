"""Messaging configuration."""

from pydantic import BaseModel, Field


class MessagingConfig(BaseModel):
    """
    Messaging configuration.

    Secrets (API keys, database URL) are not part of this model; they come
    from Vault and are passed to clients at construction.
    """

    # Status polling
    status_query_window_days: int = Field(
        default=7,
        description="How far back a status lookup searches when no range is given",
        ge=1,
        le=30,
    )

    # Provider
    provider_timeout_seconds: int = Field(
        default=10,
        description="Timeout for a single provider HTTP call",
        ge=1,
        le=60,
    )
    smtp2go_base_url: str = Field(
        default="https://api.smtp2go.com/v3/",
        description="SMTP2Go API base address",
    )

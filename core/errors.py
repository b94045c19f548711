"""Typed exceptions for message lifecycle failures."""


class MessagingError(Exception):
    """Base class for messaging errors."""


class InvalidIdentifierError(MessagingError):
    """Message identifier is missing or the nil UUID."""


class InvalidStateTransitionError(MessagingError):
    """
    Command is not permitted from the aggregate's current status.

    The aggregate is left unmodified when this is raised.
    """

    def __init__(self, current_status, command: str):
        self.current_status = current_status
        self.command = command
        status = getattr(current_status, "value", current_status)
        super().__init__(f"Message at status {status} cannot accept {command}")


class NotFoundError(MessagingError):
    """No event stream exists for the requested identifier."""

    def __init__(self, stream_id: str):
        self.stream_id = stream_id
        super().__init__(f"Event stream {stream_id} not found")


class ConcurrencyConflictError(MessagingError):
    """
    Stream was written by someone else since it was loaded.

    Callers should reload the aggregate and retry the command from scratch.
    """

    def __init__(self, stream_id: str, expected_version: int, actual_version: int):
        self.stream_id = stream_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Stream {stream_id} is at version {actual_version}, "
            f"expected {expected_version}"
        )


class ProviderError(MessagingError):
    """Call to a message provider failed."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"[{provider}] {message}")

"""
Event stores for message streams.

A stream is the ordered event history of one message. Appends are
conditional on the version the caller loaded (optimistic concurrency);
this is the only mutual exclusion between writers of the same message.

Implementations:
- InMemoryEventStore: process-local, lock-guarded
- PostgresEventStore: message_events table, (stream_id, version) primary key
"""

import json
import logging
import threading
from typing import Any, Dict, List, Protocol, Sequence

import psycopg2.errors

from clients.postgres_client import PostgresClient
from core.errors import ConcurrencyConflictError, NotFoundError
from core.events import MessageEvent, event_from_record, event_to_record

logger = logging.getLogger(__name__)


class EventStore(Protocol):
    """Storage contract the repository depends on."""

    def load(self, stream_id: str) -> List[MessageEvent]:
        """Return events in recorded order. Raises NotFoundError if the stream is absent."""
        ...

    def append(self, stream_id: str, expected_version: int, events: Sequence[MessageEvent]) -> int:
        """Append events at expected_version. Raises ConcurrencyConflictError on mismatch."""
        ...


class InMemoryEventStore:
    """Event store held in process memory. Records are stored serialized."""

    def __init__(self):
        self._streams: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def load(self, stream_id: str) -> List[MessageEvent]:
        with self._lock:
            records = self._streams.get(stream_id)
            if records is None:
                raise NotFoundError(stream_id)
            records = list(records)

        return [event_from_record(record) for record in records]

    def current_version(self, stream_id: str) -> int:
        with self._lock:
            return len(self._streams.get(stream_id, []))

    def append(self, stream_id: str, expected_version: int, events: Sequence[MessageEvent]) -> int:
        records = [event_to_record(event) for event in events]

        with self._lock:
            current = len(self._streams.get(stream_id, []))
            if current != expected_version:
                raise ConcurrencyConflictError(stream_id, expected_version, current)
            if not records:
                return current

            self._streams.setdefault(stream_id, []).extend(records)
            new_version = current + len(records)

        logger.info(f"Appended {len(records)} event(s) to {stream_id} (version {new_version})")
        return new_version


# Primary key whose violation means another writer took the version
VERSION_CONSTRAINT = "message_events_pkey"

SCHEMA = """
CREATE TABLE IF NOT EXISTS message_events (
    stream_id TEXT NOT NULL,
    version INTEGER NOT NULL,
    event_type TEXT NOT NULL,
    event_id UUID NOT NULL UNIQUE,
    occurred_at TIMESTAMPTZ NOT NULL,
    data JSONB NOT NULL,
    recorded_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT message_events_pkey PRIMARY KEY (stream_id, version)
)
"""


class PostgresEventStore:
    """
    Event store backed by the message_events table.

    The version check catches stale writers up front; the primary key on
    (stream_id, version) catches writers that race past the check.
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def ensure_schema(self) -> None:
        """Create the message_events table if it does not exist."""
        self.postgres.execute(SCHEMA)

    def load(self, stream_id: str) -> List[MessageEvent]:
        rows = self.postgres.execute(
            """
            SELECT event_type, event_id, occurred_at, data
            FROM message_events
            WHERE stream_id = %s
            ORDER BY version ASC
            """,
            (stream_id,)
        )

        if not rows:
            raise NotFoundError(stream_id)

        return [
            event_from_record({**row, "event_id": str(row["event_id"])})
            for row in rows
        ]

    def current_version(self, stream_id: str) -> int:
        return self.postgres.execute_scalar(
            "SELECT COALESCE(MAX(version), 0) FROM message_events WHERE stream_id = %s",
            (stream_id,)
        )

    def append(self, stream_id: str, expected_version: int, events: Sequence[MessageEvent]) -> int:
        current = self.current_version(stream_id)
        if current != expected_version:
            raise ConcurrencyConflictError(stream_id, expected_version, current)
        if not events:
            return current

        placeholders = []
        params: List[Any] = []
        for offset, event in enumerate(events, start=1):
            record = event_to_record(event)
            placeholders.append("(%s, %s, %s, %s, %s, %s::jsonb)")
            params.extend([
                stream_id,
                expected_version + offset,
                record["event_type"],
                record["event_id"],
                record["occurred_at"],
                json.dumps(record["data"]),
            ])

        try:
            rows = self.postgres.execute_returning(
                f"""
                INSERT INTO message_events (
                    stream_id, version, event_type, event_id, occurred_at, data
                ) VALUES {", ".join(placeholders)}
                RETURNING version
                """,
                tuple(params)
            )
        except psycopg2.errors.UniqueViolation as e:
            if e.diag.constraint_name != VERSION_CONSTRAINT:
                raise
            raise ConcurrencyConflictError(
                stream_id, expected_version, self.current_version(stream_id)
            )

        new_version = max(row["version"] for row in rows)
        logger.info(f"Appended {len(events)} event(s) to {stream_id} (version {new_version})")
        return new_version

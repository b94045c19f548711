"""Tests for PostgresClient - pooled connections returning dict rows.

psycopg2's pool is patched; no database server is needed.
"""

from unittest.mock import MagicMock, patch
from uuid import UUID

import pytest

from clients.postgres_client import PostgresClient

DATABASE_URL = "postgresql://localhost/messaging_test"
EVENT_ID = UUID("00000000-0000-0000-0000-000000000001")


@pytest.fixture
def pool():
    with patch("clients.postgres_client.psycopg2.pool.ThreadedConnectionPool") as pool_cls, \
         patch("clients.postgres_client.psycopg2.extras.register_default_jsonb"):
        yield pool_cls
    PostgresClient.close_all_pools()


@pytest.fixture
def cursor(pool):
    conn = pool.return_value.getconn.return_value
    cur = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cur
    conn.cursor.return_value.__exit__.return_value = False
    return cur


@pytest.fixture
def db(pool):
    return PostgresClient(DATABASE_URL)


class TestPostgresClientInit:
    """Connection pool initialization."""

    def test_empty_url_raises(self):
        with pytest.raises(ValueError, match="database_url"):
            PostgresClient("")

    def test_creates_pool_with_bounds(self, pool):
        PostgresClient(DATABASE_URL, min_connections=1, max_connections=5)

        pool.assert_called_once_with(minconn=1, maxconn=5, dsn=DATABASE_URL, connect_timeout=30)

    def test_pool_shared_across_instances(self, pool):
        PostgresClient(DATABASE_URL)
        PostgresClient(DATABASE_URL)

        assert pool.call_count == 1


class TestExecuteMethods:
    """Query execution methods."""

    def test_execute_returns_list_of_dicts(self, db, cursor):
        cursor.description = [("num",)]
        cursor.fetchall.return_value = [{"num": 1}]

        assert db.execute("SELECT 1 AS num") == [{"num": 1}]

    def test_execute_without_result_set_returns_empty_list(self, db, cursor, pool):
        cursor.description = None

        assert db.execute("CREATE TABLE t (id int)") == []
        pool.return_value.getconn.return_value.commit.assert_called_once()

    def test_execute_single_no_rows_returns_none(self, db, cursor):
        cursor.description = [("num",)]
        cursor.fetchall.return_value = []

        assert db.execute_single("SELECT 1 WHERE false") is None

    def test_execute_scalar_returns_first_value(self, db, cursor):
        cursor.fetchone.return_value = (7,)

        assert db.execute_scalar("SELECT MAX(version) FROM message_events") == 7

    def test_execute_returning(self, db, cursor):
        cursor.fetchall.return_value = [{"version": 1}, {"version": 2}]

        assert db.execute_returning("INSERT ... RETURNING version") == [{"version": 1}, {"version": 2}]

    def test_uuid_params_converted_to_strings(self, db, cursor):
        cursor.fetchone.return_value = (1,)

        db.execute_scalar("SELECT %s, %s", (EVENT_ID, [EVENT_ID]))

        assert cursor.execute.call_args.args[1] == (str(EVENT_ID), [str(EVENT_ID)])


class TestConnectionHandling:

    def test_failed_statement_rolls_back_and_returns_connection(self, db, cursor, pool):
        conn = pool.return_value.getconn.return_value
        cursor.execute.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            db.execute("SELECT broken")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        pool.return_value.putconn.assert_called_once_with(conn)

    def test_exhausted_pool_raises(self, db, pool):
        pool.return_value.getconn.return_value = None

        with pytest.raises(RuntimeError, match="Could not get connection"):
            db.execute("SELECT 1")

    def test_close_removes_pool(self, db, pool):
        db.close()

        pool.return_value.closeall.assert_called_once()
        assert DATABASE_URL not in PostgresClient._connection_pools

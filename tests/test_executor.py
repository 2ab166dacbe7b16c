"""Tests for the PostgreSQL executor."""

from unittest.mock import MagicMock, patch

import psycopg
import pytest

from sqlbench.errors import ConnectError, SetupError, SqlbenchError, TeardownError
from sqlbench.executor import PostgresExecutor
from sqlbench.measure import ClientMeasurement, ExplainMeasurement, UnknownMethodError
from tests.conftest import make_cursor, make_query


class TestConnect:
    """Tests for PostgresExecutor.connect()."""

    def test_autocommit(self):
        with patch("sqlbench.executor.psycopg.connect") as connect:
            executor = PostgresExecutor.connect("postgres://localhost/bench")
        connect.assert_called_once_with(
            "postgres://localhost/bench", autocommit=True, prepare_threshold=None
        )
        assert executor.conn is connect.return_value

    def test_failure(self):
        with patch(
            "sqlbench.executor.psycopg.connect",
            side_effect=psycopg.OperationalError("connection refused"),
        ):
            with pytest.raises(ConnectError, match="connection refused"):
                PostgresExecutor.connect("postgres://localhost:1/bench")


class TestExecuteStatements:
    """Tests for init/destroy execution."""

    def test_runs_each_statement(self, mock_conn):
        query = make_query("init", sql="CREATE TABLE t (i int);\nVACUUM ANALYZE t;\n")
        PostgresExecutor(mock_conn).execute_statements(query, SetupError)
        assert [c.args[0] for c in mock_conn.execute.call_args_list] == [
            "CREATE TABLE t (i int)",
            "VACUUM ANALYZE t",
        ]

    def test_none_is_noop(self, mock_conn):
        PostgresExecutor(mock_conn).execute_statements(None, SetupError)
        mock_conn.execute.assert_not_called()

    def test_failure_wrapped(self, mock_conn):
        mock_conn.execute.side_effect = psycopg.Error('table "t" does not exist')
        query = make_query("destroy", sql="DROP TABLE t;")
        with pytest.raises(TeardownError, match='destroy.sql: table "t" does not exist'):
            PostgresExecutor(mock_conn).execute_statements(query, TeardownError)

    def test_stops_at_first_failure(self, mock_conn):
        mock_conn.execute.side_effect = [make_cursor(), psycopg.Error("boom"), make_cursor()]
        query = make_query("init", sql="SELECT 1; SELECT 2; SELECT 3;")
        with pytest.raises(SetupError):
            PostgresExecutor(mock_conn).execute_statements(query, SetupError)
        assert mock_conn.execute.call_count == 2


class TestBind:
    """Tests for binding measurements."""

    def test_explain(self, mock_conn):
        m = PostgresExecutor(mock_conn).bind("explain", "SELECT 1", include_planning=True)
        assert isinstance(m, ExplainMeasurement)
        assert m.include_planning is True
        assert m.conn is mock_conn

    def test_client(self, mock_conn):
        m = PostgresExecutor(mock_conn).bind("client", "SELECT 1", include_planning=False)
        assert isinstance(m, ClientMeasurement)

    def test_statement_names_unique_per_connection(self, mock_conn):
        executor = PostgresExecutor(mock_conn)
        a = executor.bind("client", "SELECT 1", include_planning=False)
        b = executor.bind("client", "SELECT 2", include_planning=False)
        assert a.statement_name == "sqlbench_1"
        assert b.statement_name == "sqlbench_2"

    def test_statement_names_restart_on_new_connection(self):
        first = PostgresExecutor(MagicMock()).bind("client", "SELECT 1", include_planning=False)
        second = PostgresExecutor(MagicMock()).bind("client", "SELECT 1", include_planning=False)
        assert first.statement_name == second.statement_name == "sqlbench_1"

    def test_unknown(self, mock_conn):
        with pytest.raises(UnknownMethodError):
            PostgresExecutor(mock_conn).bind("stopwatch", "SELECT 1", include_planning=False)


class TestServerVersion:
    """Tests for server_version()."""

    def test_version(self, mock_conn):
        mock_conn.execute.return_value = make_cursor([("PostgreSQL 16.2 on x86_64",)])
        assert PostgresExecutor(mock_conn).server_version() == "PostgreSQL 16.2 on x86_64"
        mock_conn.execute.assert_called_once_with("SELECT version();")

    def test_failure(self, mock_conn):
        mock_conn.execute.side_effect = psycopg.Error("gone")
        with pytest.raises(SqlbenchError, match="version"):
            PostgresExecutor(mock_conn).server_version()


class TestClose:
    """Tests for closing the connection."""

    def test_context_manager_closes(self):
        conn = MagicMock()
        conn.closed = False
        with PostgresExecutor(conn):
            pass
        conn.close.assert_called_once()

    def test_already_closed(self):
        conn = MagicMock()
        conn.closed = True
        PostgresExecutor(conn).close()
        conn.close.assert_not_called()

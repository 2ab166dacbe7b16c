"""Database executor for sqlbench.

Wraps the single PostgreSQL connection a benchmark runs on. All statements,
measured or not, go through this one connection in sequence; measurements
must never compete with other work on the same session.

Usage::

    from sqlbench.executor import PostgresExecutor

    with PostgresExecutor.connect("postgres://localhost/bench") as executor:
        executor.execute_statements(bench.init, SetupError)
        measurement = executor.bind("explain", "SELECT 1", include_planning=False)
        seconds = measurement.measure()
"""

from __future__ import annotations

import itertools
import logging
from types import TracebackType
from typing import TYPE_CHECKING, Protocol

import psycopg

from sqlbench.errors import ConnectError, SqlbenchError
from sqlbench.measure import Measurement, get_measurement_method
from sqlbench.queries import split_statements

if TYPE_CHECKING:
    from sqlbench.queries import Query

logger = logging.getLogger(__name__)


class QueryExecutor(Protocol):
    """Protocol for the connection a benchmark runs on."""

    def execute(self, sql: str) -> None: ...

    def execute_statements(self, query: Query | None, error_cls: type[SqlbenchError]) -> None: ...

    def bind(self, method: str, sql: str, include_planning: bool) -> Measurement: ...

    def server_version(self) -> str: ...

    def close(self) -> None: ...


class PostgresExecutor:
    """Executes statements on one exclusively owned psycopg connection."""

    def __init__(self, conn: psycopg.Connection):
        self.conn = conn
        self._statement_ids = itertools.count(1)

    @classmethod
    def connect(cls, dsn: str) -> PostgresExecutor:
        """Open a connection in autocommit mode.

        Autocommit lets init scripts run commands that refuse to run inside
        a transaction block, such as ``VACUUM``. Driver-side automatic
        preparation is disabled: a query measured with planning time must be
        planned on every execution.

        Raises:
            ConnectError: If the connection cannot be established
        """
        try:
            conn = psycopg.connect(dsn, autocommit=True, prepare_threshold=None)
        except psycopg.Error as e:
            raise ConnectError(f"failed to connect to PostgreSQL: {e}") from e
        logger.debug("Connected to PostgreSQL (server version %s)", conn.info.server_version)
        return cls(conn)

    def execute(self, sql: str) -> None:
        """Execute a statement and discard any result."""
        self.conn.execute(sql)

    def execute_statements(self, query: Query | None, error_cls: type[SqlbenchError]) -> None:
        """Execute the statements of an init or destroy query one by one.

        Args:
            query: Query to execute (``None`` is a no-op)
            error_cls: Exception raised on failure (SetupError / TeardownError)
        """
        if query is None:
            return

        statements = split_statements(query.sql)
        logger.info("Executing %s (%d statements)", query.label, len(statements))
        for stmt in statements:
            try:
                self.execute(stmt)
            except psycopg.Error as e:
                raise error_cls(f"{query.label}: {e}") from e

    def bind(self, method: str, sql: str, include_planning: bool) -> Measurement:
        """Bind a query to this connection with the named measurement method.

        Each binding gets its own prepared statement name on this connection.
        """
        measurement_cls = get_measurement_method(method)
        statement_name = f"sqlbench_{next(self._statement_ids)}"
        return measurement_cls(self.conn, sql, include_planning, statement_name=statement_name)

    def server_version(self) -> str:
        """Return the output of ``SELECT version()``."""
        try:
            row = self.conn.execute("SELECT version();").fetchone()
        except psycopg.Error as e:
            raise SqlbenchError(f"failed to determine PostgreSQL version: {e}") from e
        return row[0] if row else ""

    def close(self) -> None:
        if not self.conn.closed:
            self.conn.close()

    def __enter__(self) -> PostgresExecutor:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

"""Query duration measurement methods.

Two ways of turning one execution of a query into one duration sample:

- **client** -- wall-clock time on the client around executing the query and
  fetching every row. Without ``include_planning`` the query is prepared once
  (outside the timed region) and every sample re-executes the prepared
  statement, which takes plan generation out of the measurement but means a
  prepared statement is measured rather than an ad-hoc query.
- **explain** -- ``EXPLAIN (ANALYZE, FORMAT JSON, TIMING OFF)`` and the
  ``Execution Time`` reported by the server, plus ``Planning Time`` when
  ``include_planning`` is set.

Methods are looked up by name in :data:`MEASUREMENT_METHODS`. A measurement
is bound to one connection and one query, and is created once per query so
that prepared statements are reused across iterations.

Usage::

    from sqlbench.measure import get_measurement_method

    method = get_measurement_method("explain")
    measurement = method(conn, "SELECT 1", include_planning=False)
    seconds = measurement.measure()
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import psycopg

from sqlbench.config.loader import ConfigError
from sqlbench.errors import MalformedProfileError, MeasurementError, NegativeTimeError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

EXPLAIN_PREFIX = "EXPLAIN (ANALYZE, FORMAT JSON, TIMING OFF) "


class UnknownMethodError(ConfigError):
    """Raised when a measurement method name is not registered."""

    pass


class Measurement(Protocol):
    """A query bound to a connection that yields one duration per call."""

    def measure(self) -> float: ...

    def close(self) -> None: ...


def _strip_statement(sql: str) -> str:
    """Drop surrounding whitespace and trailing semicolons."""
    return sql.strip().rstrip(";").rstrip()


class ClientMeasurement:
    """Client-side wall-clock timing of execute + fetch-all."""

    def __init__(
        self,
        conn: psycopg.Connection,
        sql: str,
        include_planning: bool = False,
        statement_name: str = "sqlbench_1",
    ):
        self.conn = conn
        self.sql = _strip_statement(sql)
        self.include_planning = include_planning
        # Must be unique among the statements prepared on this connection
        self.statement_name = statement_name
        self._prepared = False

    def _prepare(self) -> None:
        """Create the server-side prepared statement (not timed)."""
        try:
            self.conn.execute(f"PREPARE {self.statement_name} AS {self.sql}")
        except psycopg.Error as e:
            raise MeasurementError(f"failed to prepare statement: {e}") from e
        self._prepared = True
        logger.debug("Prepared statement %s", self.statement_name)

    def _statement(self) -> str:
        if self.include_planning:
            return self.sql
        if not self._prepared:
            self._prepare()
        return f"EXECUTE {self.statement_name}"

    def measure(self) -> float:
        """Execute the query, drain all rows and return the elapsed seconds."""
        statement = self._statement()

        start = time.perf_counter()
        try:
            cursor = self.conn.execute(statement)
            # The query's cost is not fully paid until every row is fetched
            if cursor.description is not None:
                cursor.fetchall()
            cursor.close()
        except psycopg.Error as e:
            raise MeasurementError(str(e)) from e
        return time.perf_counter() - start

    def close(self) -> None:
        """Deallocate the prepared statement, if one was created."""
        if not self._prepared:
            return
        try:
            self.conn.execute(f"DEALLOCATE {self.statement_name}")
        except psycopg.Error:
            logger.warning("Failed to deallocate prepared statement %s", self.statement_name)
        self._prepared = False


@dataclass(frozen=True)
class ExplainProfile:
    """Timing fields of one ``EXPLAIN ANALYZE`` JSON profile, in milliseconds."""

    execution_ms: float
    planning_ms: float

    def total_seconds(self, include_planning: bool) -> float:
        total_ms = self.execution_ms
        if include_planning:
            total_ms += self.planning_ms
        return total_ms / 1000


def parse_explain_profile(raw: Any) -> ExplainProfile:
    """Parse the output of ``EXPLAIN (ANALYZE, FORMAT JSON)``.

    Args:
        raw: The single value returned by the EXPLAIN query. psycopg decodes
            ``json`` columns already; text and bytes are decoded here.

    Returns:
        ExplainProfile with execution and planning time

    Raises:
        MalformedProfileError: If the output is not JSON or does not describe
            exactly one statement
        NegativeTimeError: If either reported time is negative
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedProfileError(f"bad json: {e}") from e

    if not isinstance(raw, list) or len(raw) != 1 or not isinstance(raw[0], dict):
        raise MalformedProfileError(f"bad json: expected exactly one statement, got {raw!r}")

    profile = raw[0]
    if "Execution Time" not in profile:
        raise MalformedProfileError(f'bad json: missing "Execution Time" in {profile!r}')

    try:
        execution_ms = float(profile["Execution Time"])
        planning_ms = float(profile.get("Planning Time", 0.0))
    except (TypeError, ValueError) as e:
        raise MalformedProfileError(f"bad json: {e}") from e

    if execution_ms < 0:
        raise NegativeTimeError("Execution", execution_ms)
    if planning_ms < 0:
        raise NegativeTimeError("Planning", planning_ms)

    return ExplainProfile(execution_ms=execution_ms, planning_ms=planning_ms)


class ExplainMeasurement:
    """Server-reported timing via ``EXPLAIN ANALYZE``."""

    def __init__(
        self,
        conn: psycopg.Connection,
        sql: str,
        include_planning: bool = False,
        statement_name: str = "sqlbench_1",
    ):
        # statement_name is unused, nothing is prepared
        self.conn = conn
        self.sql = EXPLAIN_PREFIX + _strip_statement(sql)
        self.include_planning = include_planning

    def measure(self) -> float:
        """Run the query under EXPLAIN ANALYZE and return the reported seconds."""
        try:
            row = self.conn.execute(self.sql).fetchone()
        except psycopg.Error as e:
            raise MeasurementError(str(e)) from e
        if row is None:
            raise MalformedProfileError("bad json: EXPLAIN returned no rows")

        profile = parse_explain_profile(row[0])
        return profile.total_seconds(self.include_planning)

    def close(self) -> None:
        pass


MEASUREMENT_METHODS: dict[str, type[ClientMeasurement] | type[ExplainMeasurement]] = {
    "client": ClientMeasurement,
    "explain": ExplainMeasurement,
}


def measurement_methods() -> str:
    """Comma separated, quoted list of method names for help and error text."""
    return ", ".join(f'"{name}"' for name in sorted(MEASUREMENT_METHODS))


def get_measurement_method(name: str) -> Callable[..., Measurement]:
    """Look up a measurement method by name.

    Raises:
        UnknownMethodError: If ``name`` is not a registered method
    """
    try:
        return MEASUREMENT_METHODS[name]
    except KeyError:
        raise UnknownMethodError(  # noqa: B904
            f"unknown method: {name!r}: must be one of {measurement_methods()}"
        )

"""Runtime exceptions for sqlbench.

Configuration problems live in :mod:`sqlbench.config.loader`; everything that
can go wrong while loading inputs or running a benchmark is defined here.
Only the CLI turns these into exit codes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlbench.queries import Query


class SqlbenchError(Exception):
    """Base exception for sqlbench runtime errors."""

    pass


class LoadError(SqlbenchError):
    """Raised when a query file or baseline CSV cannot be loaded."""

    pass


class SchemaMismatchError(LoadError):
    """Raised when a CSV header or row does not match the sample schema."""

    pass


class ConnectError(SqlbenchError):
    """Raised when the database connection cannot be established."""

    pass


class SetupError(SqlbenchError):
    """Raised when a statement of the init query fails."""

    pass


class TeardownError(SqlbenchError):
    """Raised when a statement of the destroy query fails."""

    pass


class InsufficientDataError(SqlbenchError):
    """Raised when statistics are requested for an empty sample list."""

    pass


class PersistError(SqlbenchError):
    """Raised when a sample row cannot be written to the output CSV."""

    pass


class MeasurementError(SqlbenchError):
    """Raised when a query duration cannot be measured."""

    def __init__(self, message: str, query: Query | None = None):
        super().__init__(message)
        self.query = query


class MalformedProfileError(MeasurementError):
    """Raised when EXPLAIN output does not describe exactly one statement."""

    pass


class NegativeTimeError(MeasurementError):
    """PostgreSQL reported a negative execution or planning time.

    This shows up on virtualized hosts with unreliable clocks (Docker for Mac
    being the usual suspect). The runner retries the measurement when it
    sees this error instead of failing the run.
    """

    def __init__(self, field: str, value: float):
        super().__init__(f'"{field} Time" {value:f} is < 0')
        self.field = field
        self.value = value

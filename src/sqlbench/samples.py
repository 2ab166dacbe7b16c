"""CSV persistence of individual measurements.

Every sample of a run can be written to CSV as it is taken, and a CSV from a
previous run can be loaded back as a baseline to compare against. The format
is one row per sample::

    iteration,query,seconds
    1,gauss,0.000123
    1,recursive,0.001870
    2,gauss,0.000119
"""

from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import IO

from sqlbench._constants import CSV_HEADER
from sqlbench.errors import LoadError, PersistError, SchemaMismatchError
from sqlbench.queries import Query

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SampleRow:
    """One persisted measurement."""

    iteration: int
    query: str
    seconds: float

    def to_record(self) -> list[str]:
        """Serialize to a CSV record. Seconds keep full float precision."""
        return [str(self.iteration), self.query, repr(self.seconds)]

    @classmethod
    def from_record(cls, record: list[str]) -> SampleRow:
        """Parse a CSV record.

        Raises:
            SchemaMismatchError: If the record does not have exactly three columns
            LoadError: If iteration is not a positive integer or seconds is not a
                finite, non-negative number
        """
        if len(record) != len(CSV_HEADER):
            raise SchemaMismatchError(
                f"expected {len(CSV_HEADER)} columns, got {len(record)}: {record!r}"
            )
        iteration, query, seconds = record
        try:
            row = cls(iteration=int(iteration), query=query, seconds=float(seconds))
        except ValueError as e:
            raise LoadError(f"bad sample row {record!r}: {e}") from e

        if row.iteration < 1:
            raise LoadError(f"bad sample row {record!r}: iteration must be >= 1")
        if not math.isfinite(row.seconds) or row.seconds < 0:
            raise LoadError(f"bad sample row {record!r}: seconds must be finite and >= 0")
        return row


class SampleWriter:
    """Appends sample rows to a CSV file, flushing after every row.

    Rows are written synchronously so that a crash loses at most the row
    that was being written.

    Usage::

        with SampleWriter("results.csv") as sink:
            sink.write(SampleRow(1, "gauss", 0.000123))
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._file: IO[str] | None = None
        self._writer = None
        self.rows_written = 0

    def open(self) -> SampleWriter:
        """Create or truncate the file and write the header.

        Raises:
            PersistError: If the file cannot be created
        """
        try:
            self._file = open(self.path, "w", newline="")
            self._writer = csv.writer(self._file)
            self._writer.writerow(CSV_HEADER)
            self._file.flush()
        except OSError as e:
            self.close()
            raise PersistError(f"{self.path}: {e}") from e
        logger.debug("Writing samples to %s", self.path)
        return self

    def write(self, row: SampleRow) -> None:
        """Append one row.

        Raises:
            PersistError: If the row cannot be written
        """
        if self._file is None or self._writer is None:
            raise PersistError(f"{self.path}: sample writer is not open")
        try:
            self._writer.writerow(row.to_record())
            self._file.flush()
        except OSError as e:
            raise PersistError(f"{self.path}: {e}") from e
        self.rows_written += 1

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._writer = None

    def __enter__(self) -> SampleWriter:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def read_rows(path: str | Path) -> list[SampleRow]:
    """Read all sample rows from a CSV file.

    Raises:
        LoadError: If the file cannot be read or a value is not a number
        SchemaMismatchError: If the header or a row does not match the schema
    """
    path = Path(path)
    try:
        with open(path, newline="") as f:
            records = list(csv.reader(f))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise LoadError(f"{path}: {e}") from e

    if not records:
        raise SchemaMismatchError(f"{path}: empty file, expected header {','.join(CSV_HEADER)}")
    if tuple(records[0]) != CSV_HEADER:
        raise SchemaMismatchError(
            f"{path}: bad header {','.join(records[0])!r}, expected {','.join(CSV_HEADER)!r}"
        )

    rows = []
    for line, record in enumerate(records[1:], start=2):
        try:
            rows.append(SampleRow.from_record(record))
        except LoadError as e:
            raise type(e)(f"{path}:{line}: {e}") from e
    return rows


def group_rows(rows: list[SampleRow]) -> list[Query]:
    """Group sample rows into queries, preserving first-seen order."""
    queries: list[Query] = []
    lookup: dict[str, Query] = {}
    for row in rows:
        query = lookup.get(row.query)
        if query is None:
            query = Query(name=row.query)
            lookup[row.query] = query
            queries.append(query)
        query.seconds.append(row.seconds)
    return queries


def load_baseline(path: str | Path) -> list[Query]:
    """Load the measurements of a previous run from CSV.

    The resulting queries have stats computed but no path or SQL; they are
    only used for comparison and are never executed.

    Raises:
        LoadError: If the file cannot be read or parsed
    """
    queries = group_rows(read_rows(path))
    for query in queries:
        query.update_stats()
    logger.debug("Loaded baseline %s: %d queries", path, len(queries))
    return queries

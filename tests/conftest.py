"""Shared fixtures for sqlbench test suite."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from sqlbench.config import SqlbenchConfig
from sqlbench.errors import SqlbenchError
from sqlbench.queries import Query, split_statements

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def make_config(**overrides) -> SqlbenchConfig:
    """Create a SqlbenchConfig with sensible defaults for testing."""
    base: dict = {"dsn": "postgres://localhost/sqlbench_test"}
    base.update(overrides)
    return SqlbenchConfig(**base)


def make_query(name: str, seconds: Iterable[float] = (), sql: str = "") -> Query:
    """Create a Query with samples and computed stats."""
    query = Query(name=name, path=f"{name}.sql", sql=sql or f"SELECT '{name}'")
    query.seconds.extend(seconds)
    if query.seconds:
        query.update_stats()
    return query


def make_cursor(rows: list[tuple] | None = None, description: list | None = None) -> MagicMock:
    """Mock psycopg cursor returning the given rows."""
    cursor = MagicMock()
    rows = rows or []
    cursor.description = description if description is not None else [("col",)]
    cursor.fetchall.return_value = rows
    cursor.fetchone.return_value = rows[0] if rows else None
    return cursor


class FakeMeasurement:
    """Measurement returning scripted durations or raising scripted errors."""

    def __init__(self, results: Iterable[float | Exception]):
        self.results = list(results)
        self.calls = 0
        self.closed = False

    def measure(self) -> float:
        self.calls += 1
        if not self.results:
            return 0.001
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def close(self) -> None:
        self.closed = True


class FakeExecutor:
    """In-memory QueryExecutor recording everything it is asked to do."""

    def __init__(
        self,
        results: dict[str, Iterable[float | Exception]] | None = None,
        fail_on: str | None = None,
    ):
        self.results = {sql: list(r) for sql, r in (results or {}).items()}
        self.fail_on = fail_on
        self.executed: list[str] = []
        self.bound: list[tuple[str, str, bool]] = []
        self.measurements: dict[str, FakeMeasurement] = {}
        self.closed = False

    def execute(self, sql: str) -> None:
        if self.fail_on is not None and self.fail_on in sql:
            raise RuntimeError(f"statement failed: {sql}")
        self.executed.append(sql)

    def execute_statements(self, query: Query | None, error_cls: type[SqlbenchError]) -> None:
        if query is None:
            return
        for stmt in split_statements(query.sql):
            try:
                self.execute(stmt)
            except RuntimeError as e:
                raise error_cls(f"{query.label}: {e}") from e

    def bind(self, method: str, sql: str, include_planning: bool) -> FakeMeasurement:
        self.bound.append((method, sql, include_planning))
        measurement = FakeMeasurement(self.results.get(sql, []))
        self.measurements[sql] = measurement
        return measurement

    def server_version(self) -> str:
        return "PostgreSQL 16.2 (fake)"

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeExecutor:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0, step: float = 0.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def default_config() -> SqlbenchConfig:
    """A default SqlbenchConfig for tests that don't care about specifics."""
    return make_config()


@pytest.fixture
def mock_conn():
    """Mock psycopg connection whose execute() returns a one-row cursor."""
    conn = MagicMock()
    conn.execute.return_value = make_cursor([(1,)])
    return conn


@pytest.fixture
def sum_baseline_csv() -> Path:
    """Baseline CSV with 3 queries; gauss has 1169 samples."""
    return FIXTURES_DIR / "sum_baseline.csv"


@pytest.fixture
def sql_files(tmp_path: Path) -> dict[str, Path]:
    """A small benchmark: init, two queries and destroy."""
    files = {
        "init": "CREATE TABLE t AS SELECT 1 AS i;\nVACUUM ANALYZE t;\n",
        "a": "SELECT 1;\n",
        "b": "SELECT * FROM t;\n",
        "destroy": "DROP TABLE t;\n",
    }
    paths = {}
    for name, sql in files.items():
        path = tmp_path / f"{name}.sql"
        path.write_text(sql)
        paths[name] = path
    return paths

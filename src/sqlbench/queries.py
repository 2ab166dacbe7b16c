"""Query files and the benchmark they make up.

A benchmark is assembled from a list of ``.sql`` files. Each file becomes a
:class:`Query` named after its file stem. Two naming conventions are special:

- ``*init.sql`` -- executed once before measuring starts
- ``*destroy.sql`` -- executed once after measuring stops

Every other file is measured on each iteration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from sqlbench._constants import DESTROY_SUFFIX, INIT_SUFFIX
from sqlbench.errors import LoadError
from sqlbench.stats import QueryStats, compute_stats

logger = logging.getLogger(__name__)


@dataclass
class Query:
    """A named SQL query and the durations measured for it.

    Baseline queries loaded from CSV have no ``path`` or ``sql``.
    """

    name: str
    path: str = ""
    sql: str = ""
    seconds: list[float] = field(default_factory=list)
    stats: QueryStats | None = None

    @property
    def mean(self) -> float:
        """Mean duration in seconds (0.0 before stats are computed)."""
        return self.stats.mean if self.stats else 0.0

    @property
    def label(self) -> str:
        """Path when known, otherwise the name."""
        return self.path or self.name

    def update_stats(self) -> QueryStats:
        """Recompute ``stats`` from all recorded samples."""
        self.stats = compute_stats(self.seconds)
        return self.stats


@dataclass
class Benchmark:
    """Init query, measured queries and destroy query of one run.

    ``queries`` is the display order and gets re-sorted by mean on every
    :meth:`update`. ``measure_order`` is fixed at load time, so the order in
    which queries are executed (and persisted to CSV) never changes.
    """

    queries: list[Query] = field(default_factory=list)
    init: Query | None = None
    destroy: Query | None = None
    measure_order: tuple[Query, ...] = ()

    def __post_init__(self) -> None:
        if not self.measure_order:
            self.measure_order = tuple(self.queries)

    def update(self) -> None:
        """Update the stats of all queries and sort them by mean ascending."""
        for query in self.queries:
            query.update_stats()
        self.queries.sort(key=lambda q: q.mean)

    def all_queries(self) -> list[Query]:
        """Init, measured and destroy queries in execution order."""
        ordered = [self.init, *self.measure_order, self.destroy]
        return [q for q in ordered if q is not None]


def split_statements(sql: str) -> list[str]:
    """Split SQL text into individual statements on ``;``.

    Init and destroy scripts may contain non-transactional commands such as
    ``VACUUM``, which must be sent one at a time. This is a plain split: a
    ``;`` inside a string literal or dollar-quoted body breaks it.
    """
    return [stmt.strip() for stmt in sql.split(";") if stmt.strip()]


def load_query(path: str | Path) -> Query:
    """Read one query file.

    Raises:
        LoadError: If the file cannot be read
    """
    path = Path(path)
    try:
        sql = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise LoadError(f"{path}: {e}") from e
    return Query(name=path.stem, path=str(path), sql=sql)


def load_queries(paths: list[str] | list[Path]) -> list[Query]:
    """Read all query files in the given order."""
    return [load_query(p) for p in paths]


def load_benchmark(paths: list[str] | list[Path]) -> Benchmark:
    """Load query files and sort them into init, measured and destroy queries.

    Raises:
        LoadError: If a file cannot be read, no measured query is given, or
            more than one init/destroy file is given
    """
    bench = Benchmark()
    for query in load_queries(paths):
        if query.name.endswith(INIT_SUFFIX):
            if bench.init is not None:
                raise LoadError(f"more than one init query: {bench.init.path}, {query.path}")
            bench.init = query
        elif query.name.endswith(DESTROY_SUFFIX):
            if bench.destroy is not None:
                raise LoadError(
                    f"more than one destroy query: {bench.destroy.path}, {query.path}"
                )
            bench.destroy = query
        else:
            bench.queries.append(query)

    if not bench.queries:
        raise LoadError("no queries to benchmark (only init/destroy files given)")

    # Names identify queries in the CSV output and baseline lookups
    seen: dict[str, Query] = {}
    for query in bench.queries:
        if query.name in seen:
            raise LoadError(
                f"duplicate query name {query.name!r}: {seen[query.name].path}, {query.path}"
            )
        seen[query.name] = query

    bench.measure_order = tuple(bench.queries)
    logger.debug(
        "Loaded benchmark: %d queries, init=%s, destroy=%s",
        len(bench.queries),
        bench.init.path if bench.init else None,
        bench.destroy.path if bench.destroy else None,
    )
    return bench

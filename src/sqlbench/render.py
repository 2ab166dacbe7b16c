"""Table rendering of query statistics.

One column per query and one row per statistic, in milliseconds. Every value
is annotated with its ratio to a reference: the same query in the baseline
when a baseline was loaded, otherwise the first (fastest) query::

                gauss          recursive
    n           1204 (1.03x)   1204 (1.03x)
    mean        0.01 (0.98x)   1.87 (1.02x)
"""

from __future__ import annotations

import io
import shutil
from collections.abc import Sequence

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from sqlbench.queries import Query
from sqlbench.stats import QueryStats, compute_stats

# Move cursor to 0,0, then clear the screen and the scrollback buffer.
# See https://en.wikipedia.org/wiki/ANSI_escape_code#Terminal_output_sequences
CLEAR_SCREEN = "\033[0;0H\033[2J\033[3J"

STAT_ROWS = ("min", "max", "mean", "stddev", "median", "p90", "p95")

_MS = 1000


def _stats(query: Query) -> QueryStats:
    # Computed locally so rendering never mutates the query
    return query.stats if query.stats is not None else compute_stats(query.seconds)


def _fields(stats: QueryStats) -> list[float]:
    """Statistic values in milliseconds, in STAT_ROWS order."""
    return [getattr(stats, name) * _MS for name in STAT_ROWS]


def format_ratio(value: float, reference: float | None, fmt: str = "{:.2f}") -> str:
    """Format ``value`` with its ratio to ``reference``, e.g. ``2.00 (4.00x)``.

    No ratio is shown when there is no reference or the reference is zero.
    """
    text = fmt.format(value)
    if reference:
        text += f" ({value / reference:.2f}x)"
    return text


def build_table(queries: Sequence[Query], baseline: Sequence[Query] | None = None) -> Table:
    """Build the comparison table for the given queries.

    Args:
        queries: Queries in display order; each needs at least one sample
        baseline: Queries of a previous run to compare against

    Returns:
        rich Table with one column per query
    """
    table = Table(box=box.SIMPLE, show_edge=False, pad_edge=False)
    table.add_column("")
    rows: list[list[str]] = [["n"], *([name] for name in STAT_ROWS)]

    lookup = {q.name: q for q in baseline or ()}
    first_fields: list[float] | None = None

    for i, query in enumerate(queries):
        table.add_column(Text(query.name), justify="right", no_wrap=True)
        stats = _stats(query)
        fields = _fields(stats)

        reference_fields: list[float] | None = None
        reference_n: int | None = None
        if lookup:
            base = lookup.get(query.name)
            if base is not None and base.seconds:
                base_stats = _stats(base)
                reference_fields = _fields(base_stats)
                reference_n = base_stats.n
        elif i == 0:
            first_fields = fields
        else:
            reference_fields = first_fields

        rows[0].append(format_ratio(stats.n, reference_n, fmt="{:d}"))
        for j, value in enumerate(fields):
            reference = reference_fields[j] if reference_fields else None
            rows[j + 1].append(format_ratio(value, reference))

    for row in rows:
        table.add_row(*row)
    return table


def render(
    queries: Sequence[Query],
    baseline: Sequence[Query] | None = None,
    clear_screen: bool = False,
    width: int | None = None,
) -> str:
    """Render the comparison table to text.

    Args:
        queries: Queries in display order
        baseline: Queries of a previous run to compare against
        clear_screen: Prefix the table with a cursor reset + clear sequence
        width: Output width (default: terminal width)

    Returns:
        The rendered table
    """
    buf = io.StringIO()
    console = Console(
        file=buf,
        width=width or shutil.get_terminal_size().columns,
        color_system=None,
        force_terminal=False,
        highlight=False,
    )
    console.print(build_table(queries, baseline))
    prefix = CLEAR_SCREEN if clear_screen else ""
    return prefix + buf.getvalue()

"""Summary statistics over query duration samples.

Statistics are always recomputed from the full sample list.
"""

from __future__ import annotations

import math
import statistics
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlbench.errors import InsufficientDataError


@dataclass(frozen=True)
class QueryStats:
    """Statistics for one query. All durations are in seconds."""

    n: int
    min: float
    max: float
    mean: float
    stddev: float
    median: float
    p90: float
    p95: float

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict."""
        return {
            "n": self.n,
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "stddev": self.stddev,
            "median": self.median,
            "p90": self.p90,
            "p95": self.p95,
        }


def percentile(sorted_samples: Sequence[float], p: float) -> float:
    """Return the p-th percentile using linear interpolation between ranks.

    Args:
        sorted_samples: Samples in ascending order (must not be empty)
        p: Percentile in the range [0, 100]

    Returns:
        Interpolated value at rank ``p / 100 * (n - 1)``
    """
    if not sorted_samples:
        raise InsufficientDataError("percentile of empty sample list")
    if not 0 <= p <= 100:
        raise ValueError(f"percentile must be between 0 and 100, got {p}")

    rank = (p / 100) * (len(sorted_samples) - 1)
    lower = math.floor(rank)
    upper = math.ceil(rank)
    if lower == upper:
        return sorted_samples[lower]
    fraction = rank - lower
    return sorted_samples[lower] + (sorted_samples[upper] - sorted_samples[lower]) * fraction


def compute_stats(samples: Sequence[float]) -> QueryStats:
    """Compute min/max/mean/stddev/median/p90/p95 for a list of samples.

    Args:
        samples: Duration samples in seconds, in recording order

    Returns:
        QueryStats for the samples

    Raises:
        InsufficientDataError: If ``samples`` is empty
    """
    if not samples:
        raise InsufficientDataError("cannot compute statistics without samples")

    ordered = sorted(samples)
    # Sample standard deviation is undefined for a single sample
    stddev = statistics.stdev(ordered) if len(ordered) > 1 else 0.0
    # fmean can round past the extremes, e.g. fmean([0.1] * 3) > 0.1
    mean = min(max(statistics.fmean(ordered), ordered[0]), ordered[-1])

    return QueryStats(
        n=len(ordered),
        min=ordered[0],
        max=ordered[-1],
        mean=mean,
        stddev=stddev,
        median=percentile(ordered, 50),
        p90=percentile(ordered, 90),
        p95=percentile(ordered, 95),
    )

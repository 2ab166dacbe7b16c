"""Pydantic models for sqlbench configuration.

Every field can also be given on the command line; CLI flags take precedence
over the config file, which takes precedence over the defaults below.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sqlbench._constants import DEFAULT_DSN, DEFAULT_METHOD, DEFAULT_RENDER_INTERVAL


class SqlbenchConfig(BaseModel):
    """Root configuration for a sqlbench run."""

    model_config = ConfigDict(extra="forbid")

    dsn: str = Field(
        default=DEFAULT_DSN,
        description="Connection URL or DSN as understood by libpq",
    )
    method: str = Field(
        default=DEFAULT_METHOD,
        description="Method for measuring the query time (client or explain)",
    )
    include_planning: bool = Field(
        default=False,
        description="Include query planning time in the measurement",
    )
    iterations: int | None = Field(
        default=None,
        gt=0,
        description="Terminate after the given number of iterations",
    )
    seconds: float | None = Field(
        default=None,
        gt=0,
        description="Terminate after the given number of seconds",
    )
    baseline_csv: Path | None = Field(
        default=None,
        description="CSV file with baseline measurements to compare against",
    )
    output_csv: Path | None = Field(
        default=None,
        description="CSV file to write every individual measurement to",
    )
    silent: bool = Field(
        default=False,
        description="Only print stats once after terminating",
    )
    verbose: bool = Field(
        default=False,
        description="Print server version and query SQL after the run",
    )
    render_interval: float = Field(
        default=DEFAULT_RENDER_INTERVAL,
        gt=0,
        description="Seconds between live table redraws",
    )

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Ensure the measurement method is registered."""
        from sqlbench.measure import MEASUREMENT_METHODS, measurement_methods

        if v not in MEASUREMENT_METHODS:
            raise ValueError(f"unknown method {v!r}: must be one of {measurement_methods()}")
        return v

    def merged(self, **overrides: Any) -> SqlbenchConfig:
        """Return a copy with every non-None override applied.

        ``None`` means "not given on the command line", so the config file
        value (or default) is kept.
        """
        updates = {k: v for k, v in overrides.items() if v is not None}
        return self.model_validate({**self.model_dump(), **updates})

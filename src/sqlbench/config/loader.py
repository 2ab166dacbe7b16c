"""Configuration loader for sqlbench."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .schema import SqlbenchConfig


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigFileNotFoundError(ConfigError):
    """Raised when configuration file is not found."""

    pass


class ConfigParseError(ConfigError):
    """Raised when configuration file cannot be parsed."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


def _validation_error(e: ValidationError) -> ConfigValidationError:
    """Flatten a pydantic ValidationError into a ConfigValidationError."""
    errors = e.errors()
    error_messages = []
    for err in errors:
        loc = ".".join(str(x) for x in err["loc"])
        error_messages.append(f"  - {loc}: {err['msg']}")

    return ConfigValidationError(
        "Configuration validation failed:\n" + "\n".join(error_messages),
        errors=[dict(err) for err in errors],  # type: ignore[call-overload]
    )


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return as dictionary.

    Args:
        path: Path to YAML file

    Returns:
        Dictionary containing parsed YAML

    Raises:
        ConfigFileNotFoundError: If file doesn't exist
        ConfigParseError: If YAML parsing fails or the top level is not a mapping
    """
    if not path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse YAML: {e}")  # noqa: B904

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigParseError(f"Expected a mapping at the top level of {path}")
    return content


def load_config(path: str | Path) -> SqlbenchConfig:
    """Load and validate sqlbench configuration from file.

    Args:
        path: Path to configuration YAML file

    Returns:
        Validated SqlbenchConfig object

    Raises:
        ConfigFileNotFoundError: If file doesn't exist
        ConfigParseError: If YAML parsing fails
        ConfigValidationError: If validation fails
    """
    path = Path(path)
    data = load_yaml(path)

    try:
        return SqlbenchConfig.model_validate(data)
    except ValidationError as e:
        raise _validation_error(e)  # noqa: B904


def build_config(base: SqlbenchConfig | None = None, **overrides: Any) -> SqlbenchConfig:
    """Apply command line overrides on top of a loaded (or default) config.

    Raises:
        ConfigValidationError: If an override is invalid
    """
    try:
        return (base or SqlbenchConfig()).merged(**overrides)
    except ValidationError as e:
        raise _validation_error(e)  # noqa: B904


def generate_example_config_yaml() -> str:
    """Generate example configuration YAML with comments.

    All options are shown commented out with their defaults, so an
    unmodified file behaves exactly like running without one.

    Returns:
        String containing commented YAML configuration
    """
    return """# sqlbench configuration
# ======================
# Picked up automatically from ./sqlbench.yaml, or pass --config PATH.
# Command line flags always take precedence over values in this file.
#
# LEGEND:
#   # field: value  = Available option with its DEFAULT value.
#                     When commented out, this default is still ACTIVE.

## Connection URL or DSN as understood by libpq. A bare URL picks up the
## standard PostgreSQL environment variables (PGHOST, PGPORT, PGPASSWORD, ...).
# dsn: "postgres://"

## Measurement method:
##   explain -- server-reported "Execution Time" of EXPLAIN ANALYZE
##   client  -- wall-clock time on the client, including fetching all rows
# method: explain

## Add planning time. For explain this adds "Planning Time"; for client it
## disables prepared statements.
# include_planning: false

## Termination (both unset = run until interrupted)
# iterations: 100
# seconds: 60

## Baseline measurements to compare against, and where to write this run's
## individual measurements.
# baseline_csv: baseline.csv
# output_csv: results.csv

## Output
# silent: false                  # Only print stats once after terminating
# verbose: false                 # Print server version and query SQL afterwards
# render_interval: 0.1           # Seconds between live table redraws
"""

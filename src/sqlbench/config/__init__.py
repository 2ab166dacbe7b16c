"""sqlbench configuration module."""

from .loader import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
    build_config,
    generate_example_config_yaml,
    load_config,
)
from .schema import SqlbenchConfig

__all__ = [
    # Config classes
    "SqlbenchConfig",
    # Loader functions
    "build_config",
    "load_config",
    "generate_example_config_yaml",
    # Exceptions
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
]

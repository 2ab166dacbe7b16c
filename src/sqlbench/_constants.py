"""Shared constants for sqlbench."""

# Default config file name for auto-discovery
DEFAULT_CONFIG = "sqlbench.yaml"

# libpq fills in host, port, user, etc. from PGHOST, PGPORT, ... when the URL is bare.
DEFAULT_DSN = "postgres://"

DEFAULT_METHOD = "explain"

# How often the live table is redrawn while the benchmark loop is running.
DEFAULT_RENDER_INTERVAL = 0.1

# Query files whose stem ends with these suffixes wrap the benchmark instead
# of being measured.
INIT_SUFFIX = "init"
DESTROY_SUFFIX = "destroy"

CSV_HEADER = ("iteration", "query", "seconds")

"""Pytest configuration for sqlbench."""

# Prevent collection from source tree
collect_ignore = ["src", "examples"]


def pytest_configure(config):
    """Register custom test markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies, fast)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (require a PostgreSQL server)"
    )

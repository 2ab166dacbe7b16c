"""sqlbench -- measure and compare the execution time of PostgreSQL queries."""

__version__ = "1.1.0"

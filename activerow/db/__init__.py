"""Database adapter abstraction layer."""

from typing import Any

from activerow.db.base import BaseDatabaseAdapter, ExecutionResult, validate_identifier
from activerow.db.builder import SQLQueryBuilder

__all__ = ["BaseDatabaseAdapter", "ExecutionResult", "SQLQueryBuilder", "connect", "validate_identifier"]


def connect(url: str, **options: Any) -> BaseDatabaseAdapter:
    """Create a database adapter from a connection URL.

    Args:
        url: Connection URL ("duckdb:///..." or "sqlite:///...")
        **options: Adapter options (table_prefix, date_format)

    Returns:
        Connected adapter
    """
    if url.startswith("duckdb://"):
        from activerow.db.duckdb import DuckDBAdapter

        return DuckDBAdapter.from_url(url, **options)
    if url.startswith("sqlite://"):
        from activerow.db.sqlite import SQLiteAdapter

        return SQLiteAdapter.from_url(url, **options)
    raise NotImplementedError(f"Connection type {url} not yet supported")


def __getattr__(name):
    """Lazy import database adapters to avoid importing optional dependencies."""
    if name == "DuckDBAdapter":
        from activerow.db.duckdb import DuckDBAdapter

        return DuckDBAdapter
    if name == "SQLiteAdapter":
        from activerow.db.sqlite import SQLiteAdapter

        return SQLiteAdapter
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")

"""DuckDB database adapter."""

import logging
from typing import Any

import duckdb

from activerow.db.base import DEFAULT_DATE_FORMAT, BaseDatabaseAdapter, ExecutionResult
from activerow.db.builder import SQLQueryBuilder

logger = logging.getLogger(__name__)


class DuckDBAdapter(BaseDatabaseAdapter):
    """DuckDB database adapter.

    Wraps DuckDB connection to provide the unified adapter interface.
    Generated keys are read back through ``INSERT ... RETURNING``.
    """

    supports_returning = True

    def __init__(self, path: str = ":memory:", table_prefix: str = "", date_format: str = DEFAULT_DATE_FORMAT):
        """Initialize DuckDB adapter.

        Args:
            path: Database file path or ":memory:" for in-memory database
            table_prefix: Prefix prepended to derived table names
            date_format: strftime format used to store date columns
        """
        super().__init__(table_prefix=table_prefix, date_format=date_format)
        self.conn = duckdb.connect(path)
        self._last_insert_id: Any = None

    def execute(self, sql: str, params: list | tuple | None = None) -> Any:
        """Execute SQL and return DuckDB relation."""
        logger.debug("duckdb: %s", sql)
        if params is None:
            return self.conn.execute(sql)
        return self.conn.execute(sql, params)

    def execute_query(self, query: SQLQueryBuilder) -> ExecutionResult:
        """Execute an insert, update or delete statement."""
        result = self.execute(query.to_sql())

        if query.statement == "insert" and query.returning_column is not None:
            rows = result.fetchall()
            self._last_insert_id = rows[0][0] if rows else None
            return ExecutionResult(rows_affected=len(rows), success=True)

        # DuckDB reports the affected row count as a single-row result
        row = result.fetchone()
        return ExecutionResult(rows_affected=int(row[0]) if row else 0, success=True)

    def load_row_list(self, query: SQLQueryBuilder) -> list[dict[str, Any]]:
        """Execute a select and return rows as dicts."""
        result = self.execute(query.to_sql())
        columns = [col[0] for col in result.description]
        return [dict(zip(columns, row)) for row in result.fetchall()]

    def last_insert_id(self) -> Any:
        """Get the key returned by the most recent insert."""
        return self._last_insert_id

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()

    @property
    def dialect(self) -> str:
        """Get SQLGlot dialect name."""
        return "duckdb"

    @property
    def raw_connection(self) -> Any:
        """Get underlying DuckDB connection."""
        return self.conn

    @classmethod
    def from_url(cls, url: str, **options: Any) -> "DuckDBAdapter":
        """Create adapter from connection URL.

        Args:
            url: Connection URL (e.g., "duckdb:///:memory:" or "duckdb:///path/to/db.duckdb")
            **options: Extra adapter options (table_prefix, date_format)

        Returns:
            DuckDBAdapter instance
        """
        if not url.startswith("duckdb://"):
            raise ValueError(f"Invalid DuckDB URL: {url}")

        # Remove protocol prefix while preserving leading slash in file paths
        # duckdb:///:memory: -> :memory:
        # duckdb:///tmp/app.db -> /tmp/app.db
        # duckdb:/// -> :memory:
        db_path = url[len("duckdb://") :]

        # Handle :memory: special case (may have leading slash from URI)
        if db_path in ("/:memory:", ":memory:", "", "/"):
            db_path = ":memory:"

        return cls(db_path, **options)

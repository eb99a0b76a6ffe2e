"""SQLite database adapter."""

import logging
import sqlite3
from typing import Any

from activerow.db.base import DEFAULT_DATE_FORMAT, BaseDatabaseAdapter, ExecutionResult
from activerow.db.builder import SQLQueryBuilder

logger = logging.getLogger(__name__)


class SQLiteAdapter(BaseDatabaseAdapter):
    """SQLite database adapter.

    Uses the standard library driver. Generated keys come from the cursor's
    ``lastrowid``.
    """

    def __init__(self, path: str = ":memory:", table_prefix: str = "", date_format: str = DEFAULT_DATE_FORMAT):
        """Initialize SQLite adapter.

        Args:
            path: Database file path or ":memory:" for in-memory database
            table_prefix: Prefix prepended to derived table names
            date_format: strftime format used to store date columns
        """
        super().__init__(table_prefix=table_prefix, date_format=date_format)
        self.conn = sqlite3.connect(path)
        self.conn.row_factory = sqlite3.Row
        self._last_insert_id: Any = None

    def execute(self, sql: str, params: list | tuple | None = None) -> sqlite3.Cursor:
        """Execute SQL and return the cursor. Changes are committed immediately."""
        logger.debug("sqlite: %s", sql)
        cursor = self.conn.execute(sql, params or ())
        self.conn.commit()
        return cursor

    def execute_query(self, query: SQLQueryBuilder) -> ExecutionResult:
        """Execute an insert, update or delete statement."""
        cursor = self.execute(query.to_sql())
        if query.statement == "insert":
            self._last_insert_id = cursor.lastrowid
        return ExecutionResult(rows_affected=cursor.rowcount, success=True)

    def load_row_list(self, query: SQLQueryBuilder) -> list[dict[str, Any]]:
        """Execute a select and return rows as dicts."""
        cursor = self.execute(query.to_sql())
        return [dict(row) for row in cursor.fetchall()]

    def last_insert_id(self) -> Any:
        """Get the rowid generated by the most recent insert."""
        return self._last_insert_id

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()

    @property
    def dialect(self) -> str:
        """Get SQLGlot dialect name."""
        return "sqlite"

    @property
    def raw_connection(self) -> Any:
        """Get underlying sqlite3 connection."""
        return self.conn

    @classmethod
    def from_url(cls, url: str, **options: Any) -> "SQLiteAdapter":
        """Create adapter from connection URL.

        Args:
            url: Connection URL (e.g., "sqlite:///:memory:" or "sqlite:///path/to/app.db")
            **options: Extra adapter options (table_prefix, date_format)

        Returns:
            SQLiteAdapter instance
        """
        if not url.startswith("sqlite://"):
            raise ValueError(f"Invalid SQLite URL: {url}")

        db_path = url[len("sqlite://") :]
        if db_path in ("/:memory:", ":memory:", "", "/"):
            db_path = ":memory:"

        return cls(db_path, **options)

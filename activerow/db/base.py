"""Base database adapter interface."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from sqlglot import exp

from activerow.db.builder import SQLQueryBuilder

# Pattern for valid SQL identifiers: starts with letter or underscore,
# followed by letters, digits, or underscores. Also allows dots for
# qualified names (schema.table).
_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)*$")

DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def validate_identifier(value: str, name: str = "identifier") -> str:
    """Validate that a value is a safe SQL identifier.

    Prevents SQL injection by ensuring identifiers only contain safe characters.
    Allows: letters, digits, underscores, and dots (for qualified names).
    Must start with a letter or underscore.

    Args:
        value: The identifier value to validate
        name: Human-readable name for error messages (e.g., "table name", "column")

    Returns:
        The validated identifier (unchanged if valid)

    Raises:
        ValueError: If the identifier contains invalid characters
    """
    if not value:
        raise ValueError(f"Invalid {name}: cannot be empty")

    if not _IDENTIFIER_PATTERN.match(value):
        raise ValueError(
            f"Invalid {name}: '{value}'. "
            f"Identifiers must start with a letter or underscore and contain only "
            f"letters, digits, underscores, and dots."
        )

    return value


@dataclass
class ExecutionResult:
    """Outcome of a data-modifying statement."""

    rows_affected: int
    success: bool

    def __bool__(self) -> bool:
        return self.success


class BaseDatabaseAdapter(ABC):
    """Abstract base class for database adapters.

    Adapters provide the driver contract entities persist through: identifier
    and value quoting, a dialect-specific query builder, statement execution
    and row loading. Failures raised by the underlying driver are not caught.
    """

    supports_returning: bool = False

    def __init__(self, table_prefix: str = "", date_format: str = DEFAULT_DATE_FORMAT):
        self.table_prefix = table_prefix
        self.date_format = date_format

    @abstractmethod
    def execute(self, sql: str, params: list | tuple | None = None) -> Any:
        """Execute raw SQL and return the driver's result object.

        Args:
            sql: SQL statement
            params: Optional positional parameters

        Returns:
            Database-specific result object
        """
        raise NotImplementedError

    @abstractmethod
    def execute_query(self, query: SQLQueryBuilder) -> ExecutionResult:
        """Execute a built statement.

        Args:
            query: Query builder holding an insert, update or delete statement

        Returns:
            ExecutionResult with the number of affected rows
        """
        raise NotImplementedError

    @abstractmethod
    def load_row_list(self, query: SQLQueryBuilder) -> list[dict[str, Any]]:
        """Execute a select and return every row as a column -> value dict."""
        raise NotImplementedError

    def load_row(self, query: SQLQueryBuilder) -> dict[str, Any] | None:
        """Execute a select and return the first row, or None."""
        rows = self.load_row_list(query)
        return rows[0] if rows else None

    @abstractmethod
    def last_insert_id(self) -> Any:
        """Get the key generated by the most recent insert."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Close database connection."""
        raise NotImplementedError

    @property
    @abstractmethod
    def dialect(self) -> str:
        """Get SQLGlot dialect name.

        Returns:
            Dialect name (e.g., 'duckdb', 'sqlite')
        """
        raise NotImplementedError

    @property
    @abstractmethod
    def raw_connection(self) -> Any:
        """Get underlying database connection object."""
        raise NotImplementedError

    def new_query_builder(self) -> SQLQueryBuilder:
        """Create an empty query builder for this adapter's dialect."""
        return SQLQueryBuilder(dialect=self.dialect)

    def quote_name(self, identifier: str) -> str:
        """Quote a (possibly dotted) identifier for this dialect."""
        parts = validate_identifier(identifier).split(".")
        return ".".join(exp.to_identifier(part, quoted=True).sql(dialect=self.dialect) for part in parts)

    def quote(self, value: Any) -> str:
        """Render a Python value as a SQL literal for this dialect."""
        return exp.convert(value).sql(dialect=self.dialect)

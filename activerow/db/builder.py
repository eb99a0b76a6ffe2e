"""Dialect-aware statement builder on top of SQLGlot expressions."""

from typing import Any

import sqlglot
from sqlglot import exp

from activerow.exceptions import UnsupportedOperationError

_OPERATORS = {
    "=": exp.EQ,
    "!=": exp.NEQ,
    "<>": exp.NEQ,
    "<": exp.LT,
    "<=": exp.LTE,
    ">": exp.GT,
    ">=": exp.GTE,
    "like": exp.Like,
}

_CLAUSES = ("select", "from", "join", "where", "group", "having", "order", "limit", "insert", "update", "delete")


def _is_plain_identifier(value: str) -> bool:
    return all(part.isidentifier() for part in value.split("."))


def to_column(name: str | exp.Expression) -> exp.Expression:
    """Build a quoted column reference from ``column`` or ``table.column``."""
    if isinstance(name, exp.Expression):
        return name
    if name == "*":
        return exp.Star()
    parts = name.split(".")
    if not _is_plain_identifier(name) or len(parts) > 2:
        raise ValueError(f"Invalid column name: '{name}'")
    table = parts[0] if len(parts) == 2 else None
    return exp.column(parts[-1], table=table, quoted=True)


def to_table(name: str | exp.Expression) -> exp.Expression:
    """Build a quoted table reference from ``table`` or ``schema.table``."""
    if isinstance(name, exp.Expression):
        return name
    parts = name.split(".")
    if not _is_plain_identifier(name) or len(parts) > 2:
        raise ValueError(f"Invalid table name: '{name}'")
    db = parts[0] if len(parts) == 2 else None
    return exp.table_(parts[-1], db=db, quoted=True)


class SQLQueryBuilder:
    """Mutable builder for a single select, insert, update or delete statement.

    Clauses accumulate through chained calls; the statement is rendered with
    :meth:`to_sql` in the builder's dialect. Values are embedded as SQLGlot
    literals, so strings are always escaped by the dialect generator.

    Example:
        >>> builder = SQLQueryBuilder("duckdb")
        >>> builder.select("id", "email").from_("users").where("id", 42).to_sql()
        'SELECT "id", "email" FROM "users" WHERE "id" = 42'
    """

    supports_limit: bool = True

    def __init__(self, dialect: str = "duckdb"):
        self.dialect = dialect
        self.clear()

    def clear(self, clause: str | None = None) -> "SQLQueryBuilder":
        """Reset one clause, or the whole statement when no clause is given."""
        if clause is not None and clause not in _CLAUSES:
            raise ValueError(f"Unknown clause '{clause}'. Must be one of: {', '.join(_CLAUSES)}")

        if clause in (None, "from"):
            self.table: exp.Expression | None = None
        if clause in (None, "insert", "update", "delete"):
            self.statement = "select"
        if clause in (None, "select"):
            self._select: list[exp.Expression] = []
        if clause in (None, "join"):
            self._joins: list[tuple[Any, Any, str]] = []
        if clause in (None, "where"):
            self._where: list[exp.Expression] = []
        if clause in (None, "group"):
            self._group: list[exp.Expression] = []
        if clause in (None, "having"):
            self._having: list[exp.Expression] = []
        if clause in (None, "order"):
            self._order: list[Any] = []
        if clause in (None, "limit"):
            self._limit: int | None = None
            self._offset: int | None = None
        if clause in (None, "insert"):
            self._columns: list[str] = []
            self._values: list[tuple] = []
            self._returning: exp.Expression | None = None
        if clause in (None, "update"):
            self._set: dict[str, Any] = {}
        return self

    # Select statements

    def select(self, *columns: str | exp.Expression) -> "SQLQueryBuilder":
        """Add columns or expressions to the select list."""
        for column in columns:
            if isinstance(column, exp.Expression) or column == "*" or _is_plain_identifier(column):
                self._select.append(to_column(column))
            else:
                self._select.append(sqlglot.parse_one(column, dialect=self.dialect))
        return self

    def from_(self, table: str | exp.Expression) -> "SQLQueryBuilder":
        """Set the table the statement reads from."""
        self.table = to_table(table)
        return self

    def where(self, condition: str | exp.Expression, *args: Any) -> "SQLQueryBuilder":
        """Add a predicate, combined with the others using AND.

        Accepts a raw SQL condition (``where("hits > 10")``), a column/value
        pair (``where("id", 42)``) or a column/operator/value triple
        (``where("hits", ">", 10)``). A ``None`` value compares with IS NULL.
        """
        if not args:
            if isinstance(condition, exp.Expression):
                self._where.append(condition)
            else:
                self._where.append(exp.condition(condition, dialect=self.dialect))
            return self

        if len(args) == 1:
            operator, value = "=", args[0]
        elif len(args) == 2:
            operator, value = args
        else:
            raise TypeError("where() takes a condition, a column/value pair or a column/operator/value triple")

        column = to_column(condition)
        operator = operator.lower()
        if value is None and operator in ("=", "!=", "<>"):
            predicate = exp.Is(this=column, expression=exp.Null())
            self._where.append(predicate if operator == "=" else exp.Not(this=predicate))
            return self

        if operator not in _OPERATORS:
            raise ValueError(f"Unsupported operator '{operator}'")
        self._where.append(_OPERATORS[operator](this=column, expression=exp.convert(value)))
        return self

    def where_in(self, column: str, values: list | tuple) -> "SQLQueryBuilder":
        """Add a ``column IN (...)`` predicate. An empty list matches nothing."""
        if not values:
            self._where.append(exp.false())
            return self
        self._where.append(exp.In(this=to_column(column), expressions=[exp.convert(v) for v in values]))
        return self

    def where_null(self, column: str) -> "SQLQueryBuilder":
        self._where.append(exp.Is(this=to_column(column), expression=exp.Null()))
        return self

    def where_not_null(self, column: str) -> "SQLQueryBuilder":
        self._where.append(exp.Not(this=exp.Is(this=to_column(column), expression=exp.Null())))
        return self

    def join(self, table: str, on: str | exp.Expression | None = None, join_type: str = "inner") -> "SQLQueryBuilder":
        """Join another table."""
        target = to_table(table) if isinstance(table, str) and _is_plain_identifier(table) else table
        self._joins.append((target, on, join_type))
        return self

    def group(self, *columns: str) -> "SQLQueryBuilder":
        self._group.extend(to_column(c) if _is_plain_identifier(c) else sqlglot.parse_one(c, dialect=self.dialect) for c in columns)
        return self

    def having(self, condition: str | exp.Expression) -> "SQLQueryBuilder":
        if isinstance(condition, exp.Expression):
            self._having.append(condition)
        else:
            self._having.append(exp.condition(condition, dialect=self.dialect))
        return self

    def order(self, *orderings: str | exp.Expression) -> "SQLQueryBuilder":
        """Add ORDER BY terms such as ``"name DESC"``."""
        self._order.extend(orderings)
        return self

    def set_limit(self, limit: int, offset: int | None = None) -> "SQLQueryBuilder":
        """Limit the number of returned rows.

        Raises:
            UnsupportedOperationError: If this builder's dialect cannot limit rows
        """
        if not self.supports_limit:
            raise UnsupportedOperationError(f"Row limiting is not supported by the '{self.dialect}' query builder")
        self._limit = limit
        self._offset = offset
        return self

    # Data-modifying statements

    def insert(self, table: str) -> "SQLQueryBuilder":
        self.statement = "insert"
        self.table = to_table(table)
        return self

    def columns(self, *columns: str) -> "SQLQueryBuilder":
        self._columns.extend(columns)
        return self

    def values(self, *row: Any) -> "SQLQueryBuilder":
        self._values.append(tuple(row))
        return self

    def returning(self, column: str) -> "SQLQueryBuilder":
        self._returning = to_column(column)
        return self

    def update(self, table: str | None = None) -> "SQLQueryBuilder":
        """Turn the statement into an UPDATE, keeping accumulated where clauses."""
        self.statement = "update"
        if table is not None:
            self.table = to_table(table)
        return self

    def set(self, values: dict[str, Any]) -> "SQLQueryBuilder":
        self._set.update(values)
        return self

    def delete(self, table: str | None = None) -> "SQLQueryBuilder":
        """Turn the statement into a DELETE, keeping accumulated where clauses."""
        self.statement = "delete"
        if table is not None:
            self.table = to_table(table)
        return self

    @property
    def returning_column(self) -> exp.Expression | None:
        """Column requested back from an insert, if any."""
        return self._returning

    # Rendering

    def _where_clause(self) -> exp.Where | None:
        if not self._where:
            return None
        return exp.Where(this=exp.and_(*self._where))

    def to_expression(self) -> exp.Expression:
        """Build the SQLGlot expression for the current statement."""
        if self.table is None:
            raise ValueError("No table set on query builder")

        if self.statement == "insert":
            statement = exp.insert(
                exp.values(self._values),
                self.table,
                columns=[exp.to_identifier(c, quoted=True) for c in self._columns],
                dialect=self.dialect,
            )
            if self._returning is not None:
                statement.set("returning", exp.Returning(expressions=[self._returning]))
            return statement

        if self.statement == "update":
            statement = exp.Update(
                this=self.table,
                expressions=[exp.EQ(this=to_column(k), expression=exp.convert(v)) for k, v in self._set.items()],
            )
            statement.set("where", self._where_clause())
            return statement

        if self.statement == "delete":
            statement = exp.Delete(this=self.table)
            statement.set("where", self._where_clause())
            return statement

        query = exp.select(*(self._select or [exp.Star()])).from_(self.table)
        for table, on, join_type in self._joins:
            query = query.join(table, on=on, join_type=join_type, dialect=self.dialect)
        if self._where:
            query = query.where(*self._where)
        if self._group:
            query = query.group_by(*self._group)
        if self._having:
            query = query.having(*self._having)
        if self._order:
            query = query.order_by(*self._order, dialect=self.dialect)
        if self._limit is not None:
            query = query.limit(self._limit)
        if self._offset is not None:
            query = query.offset(self._offset)
        return query

    def to_sql(self) -> str:
        """Render the statement in this builder's dialect."""
        return self.to_expression().sql(dialect=self.dialect)

    def __str__(self) -> str:
        return self.to_sql()

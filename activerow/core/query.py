"""Entity-aware query wrapping an adapter's statement builder."""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from sqlglot import exp

from activerow.core.collection import Collection
from activerow.db.builder import to_column
from activerow.exceptions import MethodNotSupportedError, UnsupportedOperationError

if TYPE_CHECKING:
    from activerow.core.entity import Entity
    from activerow.core.relations import Relation
    from activerow.db.base import BaseDatabaseAdapter
    from activerow.db.builder import SQLQueryBuilder

logger = logging.getLogger(__name__)

# Builder methods a Query forwards as-is; each returns the Query for chaining
PASSTHROUGH_METHODS = frozenset(
    {
        "select",
        "where",
        "from_",
        "having",
        "join",
        "order",
        "group",
        "set_limit",
        "where_not_null",
        "where_null",
    }
)


class Query:
    """Select, insert, update and delete for one entity type.

    A Query owns a :class:`~activerow.db.builder.SQLQueryBuilder` scoped to
    the entity's table. Selects hydrate rows into entities and eager load any
    relations registered with :meth:`with_`; the builder's filtering and
    ordering methods in :data:`PASSTHROUGH_METHODS` are forwarded directly.

    Args:
        builder: Statement builder, already pointed at the entity's table
        db: Adapter used to run statements
        entity: Entity whose type the query hydrates (used as a prototype)
    """

    def __init__(self, builder: "SQLQueryBuilder", db: "BaseDatabaseAdapter", entity: "Entity"):
        self.builder = builder
        self.db = db
        self.entity = entity
        # relation name -> column list (None selects every column)
        self.eager_load: dict[str, list[str] | None] = {}

    def __getattr__(self, name: str) -> Callable:
        if name.startswith("_") or name in ("builder", "db", "entity", "eager_load"):
            raise AttributeError(name)
        if name not in PASSTHROUGH_METHODS:
            raise MethodNotSupportedError(name)

        method = getattr(self.builder, name)

        def passthrough(*args: Any, **kwargs: Any) -> "Query":
            method(*args, **kwargs)
            return self

        return passthrough

    # Reading

    def find(self, key: Any, columns: list[str] | None = None) -> "Entity | bool":
        """Find an entity by primary key.

        Returns:
            The entity, or False when no row matches
        """
        self.builder.where(self.entity.get_qualified_primary_key(), key)
        return self.get(columns).first()

    def find_last(self, columns: list[str] | None = None) -> "Entity | bool":
        """Find the entity with the highest primary key.

        Raises:
            UnsupportedOperationError: If the builder cannot limit rows
        """
        if not self.builder.supports_limit:
            raise UnsupportedOperationError("find_last() requires a query builder that supports row limits")

        self.builder.order(exp.Ordered(this=to_column(self.entity.get_qualified_primary_key()), desc=True))
        self.builder.set_limit(1)
        return self.get(columns).first()

    def first(self, columns: list[str] | None = None) -> "Entity | bool":
        """Get the first matching entity, or False."""
        if self.builder.supports_limit:
            self.builder.set_limit(1)
        return self.get(columns).first()

    def get(self, columns: list[str] | None = None) -> Collection:
        """Run the select, hydrate the rows and eager load registered relations."""
        if columns:
            self.builder.clear("select")
            aliases = type(self.entity).column_alias
            self.builder.select(*(aliases.get(column, column) for column in columns))

        entities = self.hydrate(self.db.load_row_list(self.builder))

        if entities and self.eager_load:
            entities = self.eager_load_relations(entities)

        return Collection(entities)

    def count(self) -> int:
        """Count the rows matching the current filters."""
        self.builder.clear("select").clear("order").clear("limit")
        self.builder.select("COUNT(*) AS aggregate")
        row = self.db.load_row(self.builder)
        return int(row["aggregate"]) if row else 0

    def hydrate(self, rows: list[dict[str, Any]]) -> list["Entity"]:
        """Build existing entities straight from raw rows, bypassing mutators."""
        return [self.entity.new_from_row(row) for row in rows]

    def where_in(self, column: str, values: list | tuple) -> "Query":
        self.builder.where_in(column, values)
        return self

    # Writing

    def insert(self, entity: "Entity") -> bool:
        """Insert an entity's raw attributes and store the generated key on it."""
        attributes = entity.get_attributes_raw()
        primary_key = entity.primary_key

        self.builder.insert(entity.get_table()).columns(*attributes).values(*attributes.values())
        if entity.incrementing and self.db.supports_returning:
            self.builder.returning(primary_key)

        result = self.db.execute_query(self.builder)

        if result and entity.incrementing:
            key = self.db.last_insert_id()
            if key is not None:
                entity.set_primary_key_value(key)

        return bool(result)

    def update(self, entity: "Entity") -> bool:
        """Write an entity's dirty attributes. Succeeds without a statement when nothing changed."""
        dirty = entity.get_dirty()
        if not dirty:
            return True

        self.builder.update(entity.get_table()).set(dirty)
        self.builder.where(entity.primary_key, entity.get_original_primary_key_value())
        return bool(self.db.execute_query(self.builder))

    def delete(self, entity: "Entity") -> bool:
        self.builder.delete(entity.get_table()).where(entity.primary_key, entity.get_primary_key_value())
        return bool(self.db.execute_query(self.builder))

    def update_columns(self, values: dict[str, Any]) -> int:
        """Update every row matching the current filters.

        Returns:
            Number of affected rows
        """
        self.builder.update().set(values)
        return self.db.execute_query(self.builder).rows_affected

    # Eager loading

    def with_(self, *relations: str | list[str] | dict[str, list[str] | None]) -> "Query":
        """Register relations to eager load.

        Names may be dotted for nested relations (``"profile.address"``) and
        may limit the selected columns (``"sent_messages:message_id,subject"``).
        A dict maps relation names to column lists directly.
        """
        for spec in relations:
            if isinstance(spec, dict):
                items = spec.items()
            elif isinstance(spec, str):
                items = [parse_relation_spec(spec)]
            else:
                items = [parse_relation_spec(name) for name in spec]

            for name, columns in items:
                self.add_nested_parents(name)
                self.eager_load[name] = columns
        return self

    def add_nested_parents(self, name: str) -> None:
        """Register every parent of a dotted relation path that is not registered yet."""
        parts = name.split(".")
        for i in range(1, len(parts)):
            self.eager_load.setdefault(".".join(parts[:i]), None)

    def eager_load_relations(self, models: list["Entity"]) -> list["Entity"]:
        for name, columns in list(self.eager_load.items()):
            # Nested relations are loaded by the parent relation's own query
            if "." not in name:
                models = self.eager_load_relation(models, name, columns)
        return models

    def eager_load_relation(self, models: list["Entity"], name: str, columns: list[str] | None = None) -> list["Entity"]:
        """Load one relation for a batch of entities with a single query.

        Raises:
            RelationNotFoundError: If the entity type declares no such relation
        """
        relation = self.get_relation(name)
        relation.add_eager_constraints(models)
        models = relation.init_relation(models, name)

        logger.debug("Eager loading %s.%s for %d entities", type(self.entity).__name__, name, len(models))
        return relation.match(models, relation.get(columns), name)

    def get_relation(self, name: str) -> "Relation":
        """Build an unconstrained relation, passing nested eager loads down to it."""
        relation = self.entity.new_instance().relation(name, constrained=False)

        nested = self.relations_nested_under(name)
        if nested:
            relation.query.with_(nested)
        return relation

    def relations_nested_under(self, name: str) -> dict[str, list[str] | None]:
        prefix = name + "."
        return {key[len(prefix) :]: columns for key, columns in self.eager_load.items() if key.startswith(prefix)}

    def to_sql(self) -> str:
        return self.builder.to_sql()


def parse_relation_spec(spec: str) -> tuple[str, list[str] | None]:
    """Split ``"name:col1,col2"`` into the relation name and its column list."""
    if ":" not in spec:
        return spec.strip(), None
    name, columns = spec.split(":", 1)
    return name.strip(), [column.strip() for column in columns.split(",") if column.strip()]

"""Entity base class: one object per table row."""

import inspect
import json
from typing import TYPE_CHECKING, Any, ClassVar

from activerow.core.attributes import JSON_PATH_SEPARATOR, MISSING, AttributeStore
from activerow.core.collection import Collection, loosely_equal
from activerow.core.naming import foreign_key_for, sanitize_column, table_name_for, to_snake_case
from activerow.core.query import Query
from activerow.core.registry import EntityDescriptor, describe, no_constraints, register_entity_type, resolve_entity_type
from activerow.core.relations import BelongsTo, HasMany, HasOne, Relation
from activerow.core.timestamps import TimestampPolicy
from activerow.db.base import DEFAULT_DATE_FORMAT
from activerow.exceptions import AttributeNotFoundError, JsonEncodingError, MissingPrimaryKeyError, RelationNotFoundError

if TYPE_CHECKING:
    from activerow.db.base import BaseDatabaseAdapter

# Per-instance state kept as real Python attributes, never routed to columns
_INSTANCE_STATE = frozenset({"db", "exists", "relations", "hidden", "attribute_store", "timestamp_policy"})


class Entity:
    """Base class for table-backed entities.

    Subclasses describe their table with class attributes and declare
    relations with :class:`~activerow.core.registry.relation`. Column values
    are reachable as attributes (``user.email``) or items (``user["email"]``);
    names that collide with Entity methods need the item form.

    Example:
        >>> class User(Entity):
        ...     timestamps = False
        ...     casts = {"params": "array"}
        ...     hidden = ["password"]
        ...
        ...     @relation
        ...     def profile(self):
        ...         return self.has_one(UserProfile)
        >>> user = User(db).find(42)
        >>> user.load("profile").profile.profile_key

    Class attributes:
        table: Table name; derived from the class name when None
        primary_key: Primary key column
        primary_key_type: Cast applied to the primary key when incrementing
        incrementing: Whether the database generates the primary key
        timestamps: Whether ``touch()`` maintains created/updated columns
        casts: Attribute name -> cast type
        date_columns: Attributes stored as dates without an explicit cast
        date_format: strftime format for stored dates (adapter default when None)
        hidden: Attributes and relations left out of ``to_array()``/``to_json()``
        column_alias: Accessor name -> real column name
        eager_defaults: Relations loaded by every query (``"name:col1,col2"`` limits columns)
        touches: Relations whose owners are touched when this entity is saved or deleted
        columns: Known column names; when set, unknown attribute writes are rejected
    """

    table: ClassVar[str | None] = None
    primary_key: ClassVar[str] = "id"
    primary_key_type: ClassVar[str] = "int"
    incrementing: ClassVar[bool] = True
    timestamps: ClassVar[bool] = True
    casts: ClassVar[dict[str, str]] = {}
    date_columns: ClassVar[list[str]] = []
    date_format: ClassVar[str | None] = None
    hidden: list[str] = []
    column_alias: ClassVar[dict[str, str]] = {}
    eager_defaults: ClassVar[list[str]] = []
    touches: ClassVar[list[str]] = []
    columns: ClassVar[list[str] | None] = None

    _descriptor: ClassVar[EntityDescriptor] = EntityDescriptor()

    def __init_subclass__(cls, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        cls._descriptor = describe(cls)
        register_entity_type(cls)

    def __init__(self, db: "BaseDatabaseAdapter", attributes: dict[str, Any] | None = None):
        self.db = db
        self.exists = False
        self.relations: dict[str, Any] = {}
        self.hidden = list(type(self).hidden)
        self.timestamp_policy = TimestampPolicy(self)
        self.attribute_store = AttributeStore(
            self,
            casts=self.get_casts(),
            date_columns=self.get_dates(),
            date_format=self.get_date_format(),
            get_mutators=self._descriptor.get_mutators,
            set_mutators=self._descriptor.set_mutators,
        )
        if attributes:
            self.set_attributes(attributes)

    # Attribute access protocol

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        if name.startswith("_") or name in _INSTANCE_STATE:
            raise AttributeError(name)
        return self.get_attribute(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _INSTANCE_STATE or name.startswith("_") or hasattr(type(self), name):
            object.__setattr__(self, name, value)
        else:
            self.set_attribute(name, value)

    def __getitem__(self, key: str) -> Any:
        return self.get_attribute(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set_attribute(key, value)

    def __delitem__(self, key: str) -> None:
        self.attribute_store.raw.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return self.attribute_store.has(key) or key in self.relations

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.primary_key}={self.get_primary_key_value()!r}>"

    # Table metadata

    def get_table(self) -> str:
        """Get the table name, deriving ``user_profiles`` from ``UserProfile`` when not declared."""
        if type(self).table:
            return type(self).table
        prefix = self.db.table_prefix if self.db is not None else ""
        return table_name_for(type(self).__name__, prefix)

    def get_casts(self) -> dict[str, str]:
        casts = dict(type(self).casts)
        if type(self).incrementing:
            casts[type(self).primary_key] = type(self).primary_key_type
        return casts

    def get_dates(self) -> list[str]:
        return list(dict.fromkeys(list(type(self).date_columns) + self.timestamp_policy.columns()))

    def get_date_format(self) -> str:
        if type(self).date_format:
            return type(self).date_format
        return self.db.date_format if self.db is not None else DEFAULT_DATE_FORMAT

    def get_column_alias(self, name: str) -> str:
        """Map an accessor name to its real column, e.g. ``createdAt`` -> ``created``."""
        name = sanitize_column(name)
        return type(self).column_alias.get(name, name)

    def qualify_column(self, name: str) -> str:
        """Prefix a column with the table name unless it is already qualified."""
        if "." in name:
            return name
        return f"{self.get_table()}.{name}"

    def get_qualified_primary_key(self) -> str:
        return self.qualify_column(self.primary_key)

    def get_primary_key_value(self) -> Any:
        if self.attribute_store.get_attribute_raw(self.primary_key) is MISSING:
            return None
        return self.attribute_store.get_attribute_value(self.primary_key)

    def set_primary_key_value(self, value: Any) -> None:
        self.attribute_store.set_attribute_raw(self.primary_key, value)

    def get_original_primary_key_value(self) -> Any:
        """Primary key as last loaded or saved, falling back to the current value."""
        return self.attribute_store.original.get(self.primary_key, self.attribute_store.raw.get(self.primary_key))

    # Attributes

    def _is_declared_attribute(self, key: str) -> bool:
        store = self.attribute_store
        if JSON_PATH_SEPARATOR in key:
            key = key.split(JSON_PATH_SEPARATOR, 1)[0]
            if store.has(key):
                return True
        declared = type(self).columns or ()
        return key in store.casts or store.is_date_attribute(key) or key in store.set_mutators or key in declared

    def get_attribute(self, key: str) -> Any:
        """Get an attribute or loaded relation by name.

        Attributes come first (raw values and get-mutators), then loaded
        relations. A declared relation that is not loaded reads as None, as
        does a declared cast, date or column without a value.

        Raises:
            AttributeNotFoundError: If the name is not known to the entity
        """
        key = type(self).column_alias.get(key, key)
        store = self.attribute_store

        if store.has(key):
            return store.get_attribute_value(key)
        if key in self.relations:
            return self.relations[key]
        if key in self._descriptor.relations:
            return None
        if self._is_declared_attribute(key):
            return store.get_attribute_value(key)

        raise AttributeNotFoundError(type(self).__name__, key)

    def get_attribute_value(self, key: str) -> Any:
        """Get an attribute's value after mutators, casts and date conversion. Relations are not attributes.

        Raises:
            AttributeNotFoundError: If the name is not an attribute of the entity
        """
        key = type(self).column_alias.get(key, key)
        if self.attribute_store.has(key) or self._is_declared_attribute(key):
            return self.attribute_store.get_attribute_value(key)
        raise AttributeNotFoundError(type(self).__name__, key)

    def get_attribute_raw(self, key: str, default: Any = MISSING) -> Any:
        return self.attribute_store.get_attribute_raw(key, default)

    def get_attribute_nested(self, path: str) -> Any:
        """Follow a dotted path through loaded relations: ``"profile.profile_key"``.

        Returns None as soon as a step is missing.
        """
        value: Any = self
        for segment in path.split("."):
            if isinstance(value, Entity):
                value = value.get_attribute(segment)
            elif isinstance(value, dict):
                value = value.get(segment)
            else:
                return None
        return value

    def set_attribute(self, key: str, value: Any) -> "Entity":
        """Set an attribute through mutators, date formatting and JSON encoding.

        Assigning to a declared relation name stores a loaded relation value.

        Raises:
            AttributeNotFoundError: If the entity exists (or declares ``columns``)
                and the name is not one of its attributes
        """
        key = type(self).column_alias.get(key, key)

        if key in self._descriptor.relations:
            return self.set_relation(key, value)

        if (self.exists or type(self).columns is not None) and not (
            self.attribute_store.has(key) or self._is_declared_attribute(key)
        ):
            raise AttributeNotFoundError(type(self).__name__, key)

        self.attribute_store.set_attribute(key, value)
        return self

    def set_attributes(self, attributes: dict[str, Any]) -> "Entity":
        for key, value in attributes.items():
            self.set_attribute(key, value)
        return self

    def get_attributes(self) -> dict[str, Any]:
        """Attributes processed for output (dates formatted, casts and mutators applied)."""
        return self.attribute_store.get_attributes()

    def get_attributes_raw(self) -> dict[str, Any]:
        return self.attribute_store.get_attributes_raw()

    def get_json_attribute(self, key: str) -> Any:
        """Decode a JSON attribute for editing; write it back with ``set_attribute``."""
        return self.attribute_store.get_json_attribute(key)

    def get_original(self, key: str | None = None) -> Any:
        if key is None:
            return dict(self.attribute_store.original)
        return self.attribute_store.original.get(key)

    def get_dirty(self) -> dict[str, Any]:
        return self.attribute_store.get_dirty()

    def is_dirty(self, *keys: str) -> bool:
        return self.attribute_store.is_dirty(*keys)

    def sync_original(self) -> "Entity":
        self.attribute_store.sync_original()
        return self

    def add_hidden(self, *names: str) -> None:
        """Hide more attributes or relations from this instance's serialization."""
        self.hidden.extend(name for name in names if name not in self.hidden)

    # Relations

    def relation(self, name: str, constrained: bool = True) -> Relation:
        """Build a fresh relation object for a declared relation.

        Args:
            name: Relation name
            constrained: Scope the relation to this entity. Pass False to get
                the bare relation used for eager loading.

        Raises:
            RelationNotFoundError: If the entity type declares no such relation
        """
        factory = self._descriptor.relations.get(name)
        if factory is None:
            raise RelationNotFoundError(type(self).__name__, name)

        if not constrained:
            with no_constraints():
                return factory(self)
        return factory(self)

    def new_related_instance(self, related: "str | type[Entity]") -> "Entity":
        return resolve_entity_type(related)(self.db)

    def has_one(self, related: "str | type[Entity]", foreign_key: str | None = None, local_key: str | None = None) -> HasOne:
        """Define a one-to-one relation whose foreign key lives on the related table.

        Args:
            related: Related entity class (or registered class name)
            foreign_key: Defaults to the singular of this table plus ``_id``
            local_key: Defaults to this entity's primary key
        """
        instance = self.new_related_instance(related)
        foreign_key = foreign_key or foreign_key_for(self.get_table(), self.db.table_prefix)
        local_key = local_key or self.primary_key
        return HasOne(instance.new_query(), self, foreign_key, local_key)

    def has_many(self, related: "str | type[Entity]", foreign_key: str | None = None, local_key: str | None = None) -> HasMany:
        """Define a one-to-many relation. Keys default as for :meth:`has_one`."""
        instance = self.new_related_instance(related)
        foreign_key = foreign_key or foreign_key_for(self.get_table(), self.db.table_prefix)
        local_key = local_key or self.primary_key
        return HasMany(instance.new_query(), self, foreign_key, local_key)

    def belongs_to(
        self,
        related: "str | type[Entity]",
        relation: str | None = None,
        foreign_key: str | None = None,
        owner_key: str | None = None,
    ) -> BelongsTo:
        """Define the inverse of a one-to-one or one-to-many relation.

        Args:
            related: Owner entity class (or registered class name)
            relation: Relation name; defaults to the name of the calling method
            foreign_key: Defaults to the snake-cased relation name plus ``_`` plus the owner's primary key
            owner_key: Defaults to the owner's primary key
        """
        if relation is None:
            relation = inspect.currentframe().f_back.f_code.co_name

        instance = self.new_related_instance(related)
        foreign_key = foreign_key or f"{to_snake_case(relation)}_{instance.primary_key}"
        owner_key = owner_key or instance.primary_key
        return BelongsTo(instance.new_query(), self, foreign_key, owner_key, relation)

    def get_relation_value(self, name: str) -> Any:
        """Loaded value of a relation, or None when it has not been loaded."""
        return self.relations.get(name)

    def get_relations(self) -> dict[str, Any]:
        return self.relations

    def get_relation(self, name: str) -> Any:
        return self.relations[name]

    def set_relation(self, name: str, value: Any) -> "Entity":
        self.relations[name] = value
        return self

    def unset_relation(self, name: str) -> "Entity":
        self.relations.pop(name, None)
        return self

    def relation_loaded(self, name: str) -> bool:
        return name in self.relations

    def load(self, *relations: str | list[str]) -> "Entity":
        """Eager load relations onto this already-fetched entity."""
        query = self.new_query_without_relationships().with_(*relations)
        query.eager_load_relations([self])
        return self

    # Queries

    def new_instance(self, attributes: dict[str, Any] | None = None, exists: bool = False) -> "Entity":
        instance = type(self)(self.db, attributes)
        instance.exists = exists
        return instance

    def new_from_row(self, row: dict[str, Any]) -> "Entity":
        """Build an existing entity from a raw database row, skipping mutators."""
        instance = type(self)(self.db)
        instance.exists = True
        instance.attribute_store.set_raw_attributes(row, sync=True)
        return instance

    def new_query(self) -> Query:
        """Get a query on this entity's table that eager loads ``eager_defaults``."""
        query = self.new_query_without_relationships()
        if type(self).eager_defaults:
            query.with_(list(type(self).eager_defaults))
        return query

    def new_query_without_relationships(self) -> Query:
        builder = self.db.new_query_builder().from_(self.get_table())
        return Query(builder, self.db, self)

    def find(self, key: Any, columns: list[str] | None = None) -> "Entity | bool":
        """Find an entity by primary key. Returns False when there is no such row."""
        return self.new_query().find(key, columns)

    def find_last(self, columns: list[str] | None = None) -> "Entity | bool":
        return self.new_query().find_last(columns)

    def first(self, columns: list[str] | None = None) -> "Entity | bool":
        return self.new_query().first(columns)

    def get(self, columns: list[str] | None = None) -> Collection:
        return self.new_query().get(columns)

    def count(self) -> int:
        return self.new_query_without_relationships().count()

    def with_(self, *relations: str | list[str] | dict[str, list[str] | None]) -> Query:
        """Start a query that eager loads ``relations`` on top of ``eager_defaults``."""
        return self.new_query().with_(*relations)

    # Persistence

    def save(self) -> bool:
        """Insert or update the entity.

        Existing entities only write their dirty attributes; a clean entity
        saves without touching the database.

        Returns:
            True on success
        """
        # Nothing to write, so owners are not touched either
        if not self.is_dirty():
            return True

        query = self.new_query_without_relationships()

        if self.exists:
            saved = self.perform_update(query)
        else:
            saved = self.perform_insert(query)

        if saved:
            self.finish_save()
        return saved

    def finish_save(self) -> None:
        if type(self).touches:
            self.touch_owners()
        self.sync_original()

    def perform_insert(self, query: Query) -> bool:
        if not self.attribute_store.raw:
            return True

        success = query.insert(self)
        if success:
            self.exists = True
        return success

    def perform_update(self, query: Query) -> bool:
        if not self.attribute_store.raw:
            return True
        return query.update(self)

    def update(self, attributes: dict[str, Any] | None = None) -> bool:
        """Set attributes and save. Returns False for entities that are not persisted."""
        if not self.exists:
            return False
        return self.set_attributes(attributes or {}).save()

    def delete(self, key: Any = None) -> bool:
        """Delete the entity's row.

        Args:
            key: Primary key to delete instead of the entity's own

        Returns:
            True on success, False when there is nothing to delete

        Raises:
            MissingPrimaryKeyError: If the entity type has no primary key
        """
        if not type(self).primary_key:
            raise MissingPrimaryKeyError(f"No primary key defined on entity '{type(self).__name__}'")

        if key is not None:
            self.set_primary_key_value(key)
        elif not self.exists:
            return False

        self.touch_owners()

        success = self.new_query_without_relationships().delete(self)
        if success:
            self.exists = False
        return success

    def increment(self, column: str, amount: int | float = 1, lazy: bool = False) -> "Entity | bool":
        """Add ``amount`` to a numeric column.

        With ``lazy`` the change stays in memory and the entity is returned so
        more changes can be batched into one save; otherwise it is persisted.
        """
        return self.increment_or_decrement(column, amount, lazy)

    def decrement(self, column: str, amount: int | float = 1, lazy: bool = False) -> "Entity | bool":
        return self.increment_or_decrement(column, -amount, lazy)

    def increment_or_decrement(self, column: str, amount: int | float, lazy: bool) -> "Entity | bool":
        current = self.get_attribute(column) or 0
        if isinstance(current, str):
            current = float(current) if "." in current else int(current)
        self.set_attribute(column, current + amount)

        if lazy:
            return self
        return self.update() if self.exists else self.save()

    # Timestamps

    def uses_timestamps(self) -> bool:
        return self.timestamp_policy.enabled

    def touch(self) -> bool:
        """Bump the updated-at column (and created-at for new entities) and save."""
        if not self.uses_timestamps():
            return False
        self.timestamp_policy.update_timestamps()
        return self.save()

    def touch_owners(self) -> None:
        """Touch every relation in ``touches``, then the loaded owners' own owners."""
        for name in type(self).touches:
            self.relation(name).touch()

            owner = self.relations.get(name)
            if isinstance(owner, Entity):
                owner.touch_owners()
            elif isinstance(owner, Collection):
                for entity in owner:
                    entity.touch_owners()

    # Comparison and serialization

    def is_(self, other: Any) -> bool:
        """Check whether two entities represent the same row of the same database."""
        return (
            isinstance(other, Entity)
            and self.get_primary_key_value() is not None
            and loosely_equal(self.get_primary_key_value(), other.get_primary_key_value())
            and self.get_table() == other.get_table()
            and self.db is other.db
        )

    def get_relations_as_array(self) -> dict[str, Any]:
        return {
            name: value.to_array() if isinstance(value, (Entity, Collection)) else value
            for name, value in self.relations.items()
        }

    def to_array(self) -> dict[str, Any]:
        """Processed attributes plus loaded relations, without hidden names."""
        data = self.get_attributes()
        data.update(self.get_relations_as_array())
        return {key: value for key, value in data.items() if key not in self.hidden}

    def to_json(self, **options: Any) -> str:
        """Encode :meth:`to_array` as JSON.

        Raises:
            JsonEncodingError: If a value cannot be encoded
        """
        try:
            return json.dumps(self.to_array(), **options)
        except (TypeError, ValueError) as e:
            raise JsonEncodingError.for_entity(self, str(e)) from e

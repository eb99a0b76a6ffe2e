"""Relations between entity types and eager-load matching."""

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from activerow.core.collection import Collection, loose_key, ordering_key
from activerow.core.registry import constraints_enabled

if TYPE_CHECKING:
    from activerow.core.entity import Entity
    from activerow.core.query import Query


class Relation:
    """Base class for relations.

    A relation wraps a query on the related entity's table, bound to one
    parent entity. Unless constraints are disabled, construction scopes the
    query to that parent; eager loading builds relations without constraints
    and scopes them to a whole batch of parents with
    :meth:`add_eager_constraints` instead.

    Args:
        query: Fresh query on the related entity type
        parent: Entity the relation belongs to
        constrained: Apply the single-parent constraint. Defaults to the
            current :func:`~activerow.core.registry.no_constraints` setting.
    """

    def __init__(self, query: "Query", parent: "Entity", constrained: bool | None = None):
        self.query = query
        self.parent = parent
        self.related = query.entity
        self.constrained = constraints_enabled() if constrained is None else constrained

        if self.constrained:
            self.add_constraints()

    def add_constraints(self) -> None:
        raise NotImplementedError

    def add_eager_constraints(self, models: list["Entity"]) -> None:
        raise NotImplementedError

    def init_relation(self, models: list["Entity"], relation: str) -> list["Entity"]:
        """Give every parent the relation's empty value before matching."""
        raise NotImplementedError

    def match(self, models: list["Entity"], results: Collection, relation: str) -> list["Entity"]:
        """Attach eagerly loaded results to their parents."""
        raise NotImplementedError

    def get_results(self) -> Any:
        """Resolve the relation for its single parent."""
        raise NotImplementedError

    def get_eager(self) -> Collection:
        return self.get()

    def get(self, columns: list[str] | None = None) -> Collection:
        return self.query.get(columns)

    def get_query(self) -> "Query":
        return self.query

    def get_parent(self) -> "Entity":
        return self.parent

    def get_related(self) -> "Entity":
        return self.related

    def get_keys(self, models: Iterable["Entity"], key: str | None = None) -> list[Any]:
        """Collect the sorted, distinct, non-null key values of a batch of entities."""
        keys = {}
        for model in models:
            value = model.get_attribute_raw(key, None) if key else model.get_primary_key_value()
            if value is not None:
                keys.setdefault(loose_key(value), value)
        return [keys[k] for k in sorted(keys, key=ordering_key)]

    def touch(self) -> None:
        """Bump the updated-at column of every related row."""
        related = self.related
        if not related.uses_timestamps():
            return
        policy = related.timestamp_policy
        self.query.update_columns({policy.updated_at_column: policy.fresh_timestamp_string()})

    def __getattr__(self, name: str) -> Any:
        # Anything else is answered by the underlying query
        if name == "query":
            raise AttributeError(name)
        return getattr(self.query, name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({type(self.parent).__name__} -> {type(self.related).__name__})"


class HasOneOrMany(Relation):
    """Relation whose foreign key lives on the related table.

    Args:
        query: Fresh query on the related entity type
        parent: Entity the relation belongs to
        foreign_key: Column on the related table pointing at the parent
        local_key: Parent column the foreign key refers to
        constrained: See :class:`Relation`
    """

    def __init__(
        self,
        query: "Query",
        parent: "Entity",
        foreign_key: str,
        local_key: str,
        constrained: bool | None = None,
    ):
        self.foreign_key = foreign_key
        self.local_key = local_key
        super().__init__(query, parent, constrained)

    def add_constraints(self) -> None:
        self.query.where(self.foreign_key, self.get_parent_key())
        self.query.where_not_null(self.foreign_key)

    def add_eager_constraints(self, models: list["Entity"]) -> None:
        self.query.where_in(self.foreign_key, self.get_keys(models, self.local_key))

    def match_one(self, models: list["Entity"], results: Collection, relation: str) -> list["Entity"]:
        return self.match_one_or_many(models, results, relation, many=False)

    def match_many(self, models: list["Entity"], results: Collection, relation: str) -> list["Entity"]:
        return self.match_one_or_many(models, results, relation, many=True)

    def match_one_or_many(self, models: list["Entity"], results: Collection, relation: str, many: bool) -> list["Entity"]:
        dictionary = self.build_dictionary(results)

        for model in models:
            key = loose_key(model.get_attribute_raw(self.local_key, None))
            if key in dictionary:
                matches = dictionary[key]
                model.set_relation(relation, Collection(matches) if many else matches[0])

        return models

    def build_dictionary(self, results: Collection) -> dict[Any, list["Entity"]]:
        """Bucket related entities by their foreign key value."""
        foreign = self.get_foreign_key_name()
        dictionary: dict[Any, list[Entity]] = {}
        for result in results:
            dictionary.setdefault(loose_key(result.get_attribute_raw(foreign, None)), []).append(result)
        return dictionary

    def get_parent_key(self) -> Any:
        return self.parent.get_attribute(self.local_key)

    def get_foreign_key_name(self) -> str:
        """Foreign key without its table qualifier."""
        return self.foreign_key.split(".")[-1]

    def set_foreign_attributes_for_create(self, model: "Entity") -> None:
        model.set_attribute(self.get_foreign_key_name(), self.get_parent_key())

    def save(self, model: "Entity") -> "Entity | bool":
        """Attach an entity to the parent and save it.

        Returns:
            The saved entity, or False if saving failed
        """
        self.set_foreign_attributes_for_create(model)
        return model if model.save() else False

    def save_many(self, models: Iterable["Entity"]) -> Iterable["Entity"]:
        for model in models:
            self.save(model)
        return models

    def create(self, attributes: dict[str, Any] | None = None) -> "Entity":
        """Create and save a related entity attached to the parent."""
        instance = self.related.new_instance(attributes or {})
        self.set_foreign_attributes_for_create(instance)
        instance.save()
        return instance

    def create_many(self, records: Iterable[dict[str, Any]]) -> Collection:
        instances = Collection()
        for record in records:
            instances.add(self.create(record))
        return instances

    def find_or_new(self, key: Any, columns: list[str] | None = None) -> "Entity":
        """Find a related entity by primary key, or build an unsaved one attached to the parent."""
        instance = self.query.find(key, columns)
        if instance is False:
            instance = self.related.new_instance()
            self.set_foreign_attributes_for_create(instance)
        return instance

    def first_or_new(self, attributes: dict[str, Any], values: dict[str, Any] | None = None) -> "Entity":
        """Find the first related entity matching ``attributes``, or build an unsaved one."""
        for column, value in attributes.items():
            self.query.where(column, value)

        instance = self.query.first()
        if instance is False:
            instance = self.related.new_instance({**attributes, **(values or {})})
            self.set_foreign_attributes_for_create(instance)
        return instance

    def first_or_create(self, attributes: dict[str, Any], values: dict[str, Any] | None = None) -> "Entity":
        """Find the first related entity matching ``attributes``, or create it."""
        for column, value in attributes.items():
            self.query.where(column, value)

        instance = self.query.first()
        if instance is False:
            instance = self.create({**attributes, **(values or {})})
        return instance

    def update_or_create(self, attributes: dict[str, Any], values: dict[str, Any] | None = None) -> "Entity":
        """Update the first related entity matching ``attributes`` with ``values``, creating it if needed."""
        instance = self.first_or_new(attributes)
        instance.set_attributes(values or {})
        instance.save()
        return instance


class HasOne(HasOneOrMany):
    """One-to-one relation; the related row carries the foreign key."""

    def get_results(self) -> "Entity | None":
        result = self.query.first()
        return result if result is not False else None

    def init_relation(self, models: list["Entity"], relation: str) -> list["Entity"]:
        # Parents without a match stay unset
        return models

    def match(self, models: list["Entity"], results: Collection, relation: str) -> list["Entity"]:
        return self.match_one(models, results, relation)


class HasMany(HasOneOrMany):
    """One-to-many relation; every related row carries the foreign key."""

    def get_results(self) -> Collection:
        return self.query.get()

    def init_relation(self, models: list["Entity"], relation: str) -> list["Entity"]:
        for model in models:
            model.set_relation(relation, Collection())
        return models

    def match(self, models: list["Entity"], results: Collection, relation: str) -> list["Entity"]:
        return self.match_many(models, results, relation)


class BelongsTo(Relation):
    """Inverse relation; this entity carries the foreign key to its owner.

    Args:
        query: Fresh query on the owner entity type
        child: Entity holding the foreign key
        foreign_key: Column on the child pointing at the owner
        owner_key: Owner column the foreign key refers to
        relation_name: Name the relation is registered under on the child
        constrained: See :class:`Relation`
    """

    def __init__(
        self,
        query: "Query",
        child: "Entity",
        foreign_key: str,
        owner_key: str,
        relation_name: str,
        constrained: bool | None = None,
    ):
        self.foreign_key = foreign_key
        self.owner_key = owner_key
        self.relation_name = relation_name
        self.child = child
        super().__init__(query, child, constrained)

    def add_constraints(self) -> None:
        self.query.where(self.related.qualify_column(self.owner_key), self.child.get_attribute_raw(self.foreign_key, None))

    def add_eager_constraints(self, models: list["Entity"]) -> None:
        self.query.where_in(self.related.qualify_column(self.owner_key), self.get_keys(models, self.foreign_key))

    def get_results(self) -> "Entity | None":
        if self.child.get_attribute_raw(self.foreign_key, None) is None:
            return None
        result = self.query.first()
        return result if result is not False else None

    def init_relation(self, models: list["Entity"], relation: str) -> list["Entity"]:
        # Children without an owner stay unset
        return models

    def match(self, models: list["Entity"], results: Collection, relation: str) -> list["Entity"]:
        dictionary = {loose_key(result.get_attribute_raw(self.owner_key, None)): result for result in results}

        for model in models:
            key = loose_key(model.get_attribute_raw(self.foreign_key, None))
            if key in dictionary:
                model.set_relation(relation, dictionary[key])

        return models

    def associate(self, owner: "Entity") -> "Entity":
        """Point the child at ``owner`` and cache it as the loaded relation."""
        self.child.set_attribute(self.foreign_key, owner.get_attribute(self.owner_key))
        self.child.set_relation(self.relation_name, owner)
        return self.child

    def dissociate(self) -> "Entity":
        """Clear the child's foreign key and its loaded owner."""
        self.child.set_attribute(self.foreign_key, None)
        self.child.set_relation(self.relation_name, None)
        return self.child

    def get_foreign_key_name(self) -> str:
        return self.foreign_key

    def get_owner_key_name(self) -> str:
        return self.owner_key

"""Per-type registries for entity mutators and relations."""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from activerow.core.entity import Entity
    from activerow.core.relations import Relation

# Context-local switch for relation constraints (eager loading turns it off)
_constraints_enabled: ContextVar[bool] = ContextVar("constraints_enabled", default=True)

_entity_types: dict[str, type["Entity"]] = {}


def constraints_enabled() -> bool:
    """Check whether relations built in the current context add single-row constraints."""
    return _constraints_enabled.get()


@contextmanager
def no_constraints() -> Iterator[None]:
    """Build relations without their single-row constraints inside this block.

    The previous setting is restored on exit, also when the block raises.
    """
    token = _constraints_enabled.set(False)
    try:
        yield
    finally:
        _constraints_enabled.reset(token)


def register_entity_type(cls: type["Entity"]) -> None:
    _entity_types[cls.__name__] = cls


def resolve_entity_type(reference: "str | type[Entity]") -> type["Entity"]:
    """Resolve an entity class from a class or a registered class name."""
    if isinstance(reference, str):
        if reference not in _entity_types:
            raise LookupError(f"Entity type '{reference}' is not defined")
        return _entity_types[reference]
    return reference


class relation:
    """Declare a relation accessor on an entity type.

    The decorated method is the relation factory: it receives the parent
    entity and returns a fresh relation. Reading the attribute on an instance
    gives the loaded value (``None`` when not loaded); use
    ``entity.relation(name)`` to get the relation object itself.

    Example:
        >>> class User(Entity):
        ...     @relation
        ...     def profile(self):
        ...         return self.has_one(UserProfile)
    """

    def __init__(self, factory: Callable[["Entity"], "Relation"]):
        self.factory = factory
        self.name = factory.__name__
        self.__doc__ = factory.__doc__

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: "Entity | None", owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance.get_relation_value(self.name)

    def __set__(self, instance: "Entity", value: Any) -> None:
        instance.set_relation(self.name, value)


def get_mutator(attribute: str) -> Callable:
    """Register a method as the read transform for ``attribute``.

    The method receives the raw stored value and returns the value callers see.
    """

    def decorator(fn: Callable) -> Callable:
        fn.__get_mutator__ = attribute
        return fn

    return decorator


def set_mutator(attribute: str) -> Callable:
    """Register a method as the write handler for ``attribute``.

    The method receives the assigned value and owns the write completely; it
    may store other attributes instead of (or as well as) this one.
    """

    def decorator(fn: Callable) -> Callable:
        fn.__set_mutator__ = attribute
        return fn

    return decorator


@dataclass
class EntityDescriptor:
    """Mutator and relation tables built once per entity type."""

    get_mutators: dict[str, Callable] = field(default_factory=dict)
    set_mutators: dict[str, Callable] = field(default_factory=dict)
    relations: dict[str, Callable] = field(default_factory=dict)


def describe(cls: type) -> EntityDescriptor:
    """Collect decorated mutators and relations from a class and its bases.

    Subclass definitions override those of their bases.
    """
    descriptor = EntityDescriptor()
    for klass in reversed(cls.__mro__):
        for name, member in vars(klass).items():
            if isinstance(member, relation):
                descriptor.relations[member.name] = member.factory
            elif callable(member):
                if hasattr(member, "__get_mutator__"):
                    descriptor.get_mutators[member.__get_mutator__] = member
                if hasattr(member, "__set_mutator__"):
                    descriptor.set_mutators[member.__set_mutator__] = member
    return descriptor

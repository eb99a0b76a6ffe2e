"""Errors raised by activerow."""


class ActiveRowError(Exception):
    """Base class for activerow errors."""

    pass


class AttributeNotFoundError(ActiveRowError, AttributeError):
    """Raised when an attribute name is not known to an entity."""

    def __init__(self, entity_type: str, attribute: str):
        self.entity_type = entity_type
        self.attribute = attribute
        super().__init__(f"Attribute '{attribute}' not found on entity '{entity_type}'")


class RelationNotFoundError(ActiveRowError):
    """Raised when a relation is requested that the entity type does not declare."""

    def __init__(self, entity_type: str, relation: str):
        self.entity_type = entity_type
        self.relation = relation
        super().__init__(f"Call to undefined relation '{relation}' on entity '{entity_type}'")


class JsonEncodingError(ActiveRowError):
    """Raised when an entity, collection or attribute cannot be encoded as JSON."""

    def __init__(self, message: str, entity=None, attribute: str | None = None):
        self.entity = entity
        self.attribute = attribute
        super().__init__(message)

    @classmethod
    def for_entity(cls, entity, message: str) -> "JsonEncodingError":
        """Create an error for a whole entity (or collection) that failed to encode."""
        key = entity.get_primary_key_value() if hasattr(entity, "get_primary_key_value") else None
        return cls(
            f"Error encoding entity [{type(entity).__name__}] with ID [{key}] to JSON: {message}",
            entity=entity,
        )

    @classmethod
    def for_attribute(cls, entity, attribute: str, message: str) -> "JsonEncodingError":
        """Create an error for a single attribute that failed to encode."""
        return cls(
            f"Unable to encode attribute [{attribute}] for entity [{type(entity).__name__}] to JSON: {message}",
            entity=entity,
            attribute=attribute,
        )


class UnsupportedOperationError(ActiveRowError):
    """Raised when the underlying query builder cannot perform an operation."""

    pass


class MethodNotSupportedError(UnsupportedOperationError, AttributeError):
    """Raised when a query method outside the passthrough allow-list is called."""

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Method '{method}' is not supported by the query builder")


class MissingPrimaryKeyError(ActiveRowError):
    """Raised when a persistence operation needs a primary key and none is defined."""

    pass

"""ActiveRow: ActiveRecord-style entities over SQLGlot-built queries."""

import logging

__version__ = "0.1.0"

from activerow.core.collection import Collection
from activerow.core.entity import Entity
from activerow.core.query import Query
from activerow.core.registry import get_mutator, no_constraints, relation, set_mutator
from activerow.core.relations import BelongsTo, HasMany, HasOne, Relation
from activerow.db import connect
from activerow.exceptions import (
    ActiveRowError,
    AttributeNotFoundError,
    JsonEncodingError,
    MethodNotSupportedError,
    MissingPrimaryKeyError,
    RelationNotFoundError,
    UnsupportedOperationError,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ActiveRowError",
    "AttributeNotFoundError",
    "BelongsTo",
    "Collection",
    "DuckDBAdapter",
    "Entity",
    "HasMany",
    "HasOne",
    "JsonEncodingError",
    "MethodNotSupportedError",
    "MissingPrimaryKeyError",
    "Query",
    "Relation",
    "RelationNotFoundError",
    "SQLiteAdapter",
    "UnsupportedOperationError",
    "connect",
    "get_mutator",
    "no_constraints",
    "relation",
    "set_mutator",
]


def __getattr__(name):  # Lazy import to avoid importing duckdb on package import
    if name == "DuckDBAdapter":
        from activerow.db.duckdb import DuckDBAdapter

        return DuckDBAdapter
    if name == "SQLiteAdapter":
        from activerow.db.sqlite import SQLiteAdapter

        return SQLiteAdapter
    raise AttributeError(name)

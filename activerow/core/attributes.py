"""Attribute storage, casting, mutation and dirty tracking for entities."""

import copy
import json
from collections.abc import Callable, Iterable
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from activerow.core import dates
from activerow.core.collection import loosely_equal
from activerow.exceptions import JsonEncodingError

if TYPE_CHECKING:
    from activerow.core.entity import Entity

JSON_PATH_SEPARATOR = "->"

DATE_CASTS = ("date", "datetime", "custom_datetime")
JSON_CASTS = ("array", "json", "object")


class _Missing:
    """Sentinel for attributes that have no stored value."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def is_custom_datetime_cast(cast: str) -> bool:
    """Check for ``date:<format>`` and ``datetime:<format>`` casts."""
    return cast.startswith("date:") or cast.startswith("datetime:")


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip() not in ("", "0")
    return bool(value)


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except ValueError:
        return int(float(value))


class AttributeStore:
    """Raw column values of one entity plus the rules for reading and writing them.

    The store keeps two mappings: ``raw`` holds values exactly as they are (or
    will be) stored, ``original`` is the snapshot taken at the last load or
    save. Reads go through get-mutators, casts and date conversion; writes go
    through set-mutators, date formatting and JSON encoding.

    Mutators are plain functions taking the owning entity and a value, as
    collected by :func:`activerow.core.registry.describe`.
    """

    def __init__(
        self,
        owner: "Entity",
        casts: dict[str, str] | None = None,
        date_columns: Iterable[str] = (),
        date_format: str = "%Y-%m-%d %H:%M:%S",
        get_mutators: dict[str, Callable] | None = None,
        set_mutators: dict[str, Callable] | None = None,
    ):
        self.owner = owner
        self.casts = dict(casts or {})
        self.date_columns = list(dict.fromkeys(date_columns))
        self.date_format = date_format
        self.get_mutators = get_mutators or {}
        self.set_mutators = set_mutators or {}
        self.raw: dict[str, Any] = {}
        self.original: dict[str, Any] = {}

    # Writing

    def set_attribute(self, key: str, value: Any) -> None:
        """Store a value, applying set-mutators, date formatting and JSON encoding.

        A registered set-mutator owns the write. Any non-null value assigned
        to a JSON-cast attribute is encoded, strings included.
        """
        if key in self.set_mutators:
            self.set_mutators[key](self.owner, value)
            return

        if value and self.is_date_attribute(key):
            value = dates.from_datetime(value, self.date_format)

        if self.is_json_castable(key) and value is not None:
            value = self.cast_attribute_as_json(key, value)

        if JSON_PATH_SEPARATOR in key:
            self.set_json_attribute(key, value)
            return

        self.raw[key] = value

    def set_attribute_raw(self, key: str, value: Any) -> None:
        self.raw[key] = value

    def set_raw_attributes(self, attributes: dict[str, Any], sync: bool = False) -> None:
        """Replace all raw attributes without any checks or conversion."""
        self.raw = dict(attributes)
        if sync:
            self.sync_original()

    def set_json_attribute(self, key: str, value: Any) -> None:
        """Set a nested value inside a JSON attribute: ``set_json_attribute("info->city", "Oslo")``.

        Missing intermediate objects are created; the whole attribute is
        re-encoded and stored.
        """
        column, path = key.split(JSON_PATH_SEPARATOR, 1)
        document = self.get_json_attribute(column)
        if not isinstance(document, dict):
            document = {}

        node = document
        *parents, leaf = path.split(JSON_PATH_SEPARATOR)
        for segment in parents:
            if not isinstance(node.get(segment), dict):
                node[segment] = {}
            node = node[segment]
        node[leaf] = value

        self.raw[column] = self.cast_attribute_as_json(column, document)

    # Reading

    def has(self, key: str) -> bool:
        """Check whether a key has a raw value or a get-mutator."""
        return key in self.raw or key in self.get_mutators

    def get_attribute_raw(self, key: str, default: Any = MISSING) -> Any:
        return self.raw.get(key, default)

    def get_attribute_value(self, key: str) -> Any:
        """Read a value: get-mutator, else cast, else date conversion, else raw."""
        value = self.raw.get(key)

        if key in self.get_mutators:
            return self.get_mutators[key](self.owner, value)

        if self.has_cast(key):
            return self.cast_attribute(key, value)

        if key in self.date_columns and value is not None:
            return dates.as_datetime(value, self.date_format)

        return value

    def get_json_attribute(self, key: str) -> Any:
        """Decode a JSON attribute into native dicts/lists (empty dict when unset)."""
        value = self.raw.get(key)
        if value is None:
            return {}
        if isinstance(value, (dict, list)):
            return copy.deepcopy(value)
        return self.from_json(value)

    def get_attributes(self) -> dict[str, Any]:
        """Get every attribute processed for serialization.

        Dates are formatted as strings, get-mutators are applied to the keys
        that are present, and casts are applied to the remaining keys.
        """
        attributes = dict(self.raw)

        for key in self.date_columns:
            if attributes.get(key) is None:
                continue
            attributes[key] = dates.serialize_date(dates.as_datetime(attributes[key], self.date_format), self.date_format)

        mutated = list(self.get_mutators)
        for key in mutated:
            if key in attributes:
                attributes[key] = self.get_mutators[key](self.owner, attributes[key])

        for key, cast in self.casts.items():
            if key not in attributes or key in mutated:
                continue

            attributes[key] = self.cast_attribute(key, attributes[key])

            if attributes[key] and cast in ("date", "datetime"):
                attributes[key] = dates.serialize_date(attributes[key], self.date_format)

            if attributes[key] and is_custom_datetime_cast(cast):
                attributes[key] = attributes[key].strftime(cast.split(":", 1)[1])

        # Driver-native values of undeclared columns
        for key, value in attributes.items():
            if isinstance(value, date):
                attributes[key] = dates.serialize_date(dates.as_datetime(value, self.date_format), self.date_format)
            elif isinstance(value, Decimal):
                attributes[key] = float(value)

        return attributes

    def get_attributes_raw(self) -> dict[str, Any]:
        return self.raw

    # Dirty tracking

    def sync_original(self) -> None:
        self.original = dict(self.raw)

    def sync_original_attribute(self, key: str) -> None:
        self.original[key] = self.raw[key]

    def get_dirty(self) -> dict[str, Any]:
        """Get the raw attributes that changed since the last sync."""
        return {
            key: value
            for key, value in self.raw.items()
            if key not in self.original or not loosely_equal(self.original[key], value)
        }

    def is_dirty(self, *keys: str) -> bool:
        """Check whether any attribute (or any of ``keys``) changed since the last sync."""
        dirty = self.get_dirty()
        if not keys:
            return len(dirty) > 0
        return any(key in dirty for key in keys)

    # Casting

    def has_cast(self, key: str, types: Iterable[str] | None = None) -> bool:
        if key not in self.casts:
            return False
        return self.get_cast_type(key) in types if types else True

    def get_cast_type(self, key: str) -> str:
        cast = self.casts[key]
        if is_custom_datetime_cast(cast):
            return "custom_datetime"
        return cast.strip().lower()

    def is_date_attribute(self, key: str) -> bool:
        return key in self.date_columns or self.has_cast(key, DATE_CASTS)

    def is_json_castable(self, key: str) -> bool:
        return self.has_cast(key, JSON_CASTS)

    def cast_attribute(self, key: str, value: Any) -> Any:
        """Convert a raw value to the declared cast type. Unknown casts pass through."""
        if value is None:
            return value

        cast_type = self.get_cast_type(key)
        if cast_type in ("int", "integer"):
            return _to_int(value)
        if cast_type in ("real", "float", "double"):
            return float(value)
        if cast_type == "string":
            return str(value)
        if cast_type in ("bool", "boolean"):
            return _to_bool(value)
        if cast_type in JSON_CASTS:
            return value if isinstance(value, (dict, list)) else self.from_json(value)
        if cast_type == "date":
            return dates.as_date(value, self.date_format)
        if cast_type in ("datetime", "custom_datetime"):
            return dates.as_datetime(value, self.date_format)
        if cast_type == "timestamp":
            return dates.as_timestamp(value, self.date_format)
        return value

    def cast_attribute_as_json(self, key: str, value: Any) -> str:
        """Encode a value for storage in a JSON column.

        Raises:
            JsonEncodingError: If the value cannot be encoded
        """
        try:
            return json.dumps(value)
        except (TypeError, ValueError) as e:
            raise JsonEncodingError.for_attribute(self.owner, key, str(e)) from e

    @staticmethod
    def from_json(value: str) -> Any:
        return json.loads(value)

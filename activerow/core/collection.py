"""Ordered container of entities."""

import json
from collections.abc import Callable, Iterable, Iterator
from typing import TYPE_CHECKING, Any

from activerow.exceptions import JsonEncodingError

if TYPE_CHECKING:
    from activerow.core.entity import Entity


def loose_key(value: Any) -> Any:
    """Normalize a key so that ``42``, ``42.0``, ``"42"`` and ``True`` compare alike.

    Database drivers return keys as ints or strings depending on column type,
    so dictionary matching and lookups go through this normalization.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lstrip("-").isdigit():
            return int(stripped)
    return value


def loosely_equal(left: Any, right: Any) -> bool:
    """Compare two attribute values the way dirty checking needs to."""
    if left == right:
        return True
    if left is None or right is None:
        return False
    return loose_key(left) == loose_key(right)


class Collection:
    """Ordered sequence of entities.

    Insertion order is preserved and duplicates are allowed. A collection does
    not own its entities; the same entity may sit in several collections.
    """

    def __init__(self, items: Iterable[Any] | None = None):
        self.items: list[Any] = list(items) if items is not None else []

    def all(self) -> list[Any]:
        """Get the underlying list of items."""
        return self.items

    def add(self, item: Any) -> "Collection":
        self.items.append(item)
        return self

    def first(self) -> Any:
        """Get the first item, or False when the collection is empty."""
        return self.items[0] if self.items else False

    def find(self, key: Any) -> Any:
        """Find an entity by primary key value or by another entity's key.

        Returns:
            The matching entity, or False
        """
        from activerow.core.entity import Entity

        if isinstance(key, Entity):
            key = key.get_primary_key_value()

        for item in self.items:
            if loosely_equal(item.get_primary_key_value(), key):
                return item
        return False

    def get_dictionary(self) -> dict[Any, Any]:
        """Key the items by their primary key value."""
        return {loose_key(item.get_primary_key_value()): item for item in self.items}

    def keys(self) -> list[Any]:
        return [item.get_primary_key_value() for item in self.items]

    def each(self, callback: Callable[[Any], Any]) -> "Collection":
        """Run a callback over every item. Stops early if the callback returns False."""
        for item in self.items:
            if callback(item) is False:
                break
        return self

    def map(self, callback: Callable[[Any], Any]) -> "Collection":
        return Collection(callback(item) for item in self.items)

    def filter(self, callback: Callable[[Any], bool] | None = None) -> "Collection":
        if callback is None:
            return Collection(item for item in self.items if item)
        return Collection(item for item in self.items if callback(item))

    def sort(self, key: Callable[[Any], Any] | None = None, reverse: bool = False) -> "Collection":
        """Return a new collection sorted by ``key``."""
        return Collection(sorted(self.items, key=key, reverse=reverse))

    def sort_by_ordering(self, ordering: str) -> "Collection":
        """Sort using an SQL-like ordering string.

        Each comma-separated term is an attribute path, optionally followed by
        ASC or DESC. Paths may traverse loaded relations
        (``"user.name DESC, id"``).
        """
        items = list(self.items)
        terms = [term.split() for term in ordering.split(",") if term.strip()]

        # Stable sorts applied from the least significant term
        for term in reversed(terms):
            path = term[0]
            descending = len(term) > 1 and term[1].upper() == "DESC"
            items.sort(key=lambda item: ordering_key(item.get_attribute_nested(path)), reverse=descending)

        return Collection(items)

    def to_array(self) -> list[Any]:
        """Convert every item to its array form."""
        return [item.to_array() if hasattr(item, "to_array") else item for item in self.items]

    def to_json(self, **options: Any) -> str:
        """Encode the collection as JSON.

        Raises:
            JsonEncodingError: If any item cannot be encoded
        """
        try:
            return json.dumps(self.to_array(), **options)
        except (TypeError, ValueError) as e:
            raise JsonEncodingError.for_entity(self, str(e)) from e

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> Any:
        return self.items[index]

    def __setitem__(self, index: int, value: "Entity") -> None:
        self.items[index] = value

    def __delitem__(self, index: int) -> None:
        del self.items[index]

    def __contains__(self, item: Any) -> bool:
        return item in self.items

    def __repr__(self) -> str:
        return f"Collection({self.items!r})"


def ordering_key(value: Any) -> tuple:
    # None sorts first; mixed types fall back to string comparison
    if value is None:
        return (0, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, value)
    return (2, str(value))

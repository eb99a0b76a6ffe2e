"""Name derivation for tables, columns and foreign keys."""

import re

import inflect

_inflector = inflect.engine()

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_UNSAFE_COLUMN_CHARS = re.compile(r"[^A-Za-z0-9_.]")


def to_snake_case(name: str) -> str:
    """Convert ``UserProfile`` or ``sentMessages`` to ``user_profile`` / ``sent_messages``."""
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    name = _WORD_BOUNDARY.sub(r"\1_\2", name)
    return name.replace("-", "_").lower()


def pluralize(word: str) -> str:
    return _inflector.plural_noun(word) or word


def singularize(word: str) -> str:
    # singular_noun returns False when the word is already singular
    return _inflector.singular_noun(word) or word


def table_name_for(type_name: str, prefix: str = "") -> str:
    """Derive a table name from an entity type name.

    Camel-case words are split and joined with underscores; only the final
    word is pluralized.

    Example:
        >>> table_name_for("UserProfile")
        'user_profiles'
    """
    words = to_snake_case(type_name).split("_")
    words[-1] = pluralize(words[-1])
    return prefix + "_".join(words)


def foreign_key_for(table: str, prefix: str = "") -> str:
    """Default foreign key pointing at ``table``: ``users`` -> ``user_id``."""
    if prefix and table.startswith(prefix):
        table = table[len(prefix) :]
    words = table.split("_")
    words[-1] = singularize(words[-1])
    return "_".join(words) + "_id"


def sanitize_column(name: str) -> str:
    """Strip characters that cannot appear in a (qualified) column name."""
    return _UNSAFE_COLUMN_CHARS.sub("", name.strip())

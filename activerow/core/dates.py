"""Conversion between stored date strings and datetime values."""

import re
from datetime import date, datetime, timezone
from typing import Any

_STANDARD_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


def is_standard_date_format(value: str) -> bool:
    """Check whether a string is a plain ``YYYY-MM-DD`` date."""
    return bool(_STANDARD_DATE.match(value))


def as_datetime(value: Any, date_format: str) -> datetime:
    """Convert a stored value to a naive datetime.

    Accepts datetime and date instances, UNIX timestamps (numbers or numeric
    strings, interpreted as UTC), ``YYYY-MM-DD`` strings and strings in
    ``date_format``. ISO 8601 strings are accepted as a fallback.

    Raises:
        ValueError: If the value cannot be interpreted as a date
    """
    if isinstance(value, datetime):
        return value

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)

    if not isinstance(value, str):
        raise ValueError(f"Cannot convert {type(value).__name__} to a datetime")

    value = value.strip()
    if value.lstrip("-").isdigit():
        return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)

    if is_standard_date_format(value):
        return datetime.strptime(value, "%Y-%m-%d")

    try:
        return datetime.strptime(value, date_format)
    except ValueError:
        return datetime.fromisoformat(value)


def as_date(value: Any, date_format: str) -> datetime:
    """Convert a stored value to a datetime truncated to the start of the day."""
    return as_datetime(value, date_format).replace(hour=0, minute=0, second=0, microsecond=0)


def as_timestamp(value: Any, date_format: str) -> int:
    """Convert a stored value to integer seconds since the epoch (naive values are UTC)."""
    moment = as_datetime(value, date_format)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def from_datetime(value: Any, date_format: str) -> Any:
    """Convert a datetime (or anything :func:`as_datetime` accepts) to its storage string."""
    if not value:
        return value
    return as_datetime(value, date_format).strftime(date_format)


def serialize_date(value: datetime, date_format: str) -> str:
    """Format a datetime for array / JSON output."""
    return value.strftime(date_format)

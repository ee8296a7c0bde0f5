"""
Canonical JSON and timestamp helpers shared by the core and IO layers.

Provides a single canonical JSON policy, a JSON deep-copy helper used to detach
payloads from caller-owned objects, and the ISO-8601 conventions used for dates and
record timestamps. This module is zero-IO and uses only the Python standard library.

Notes:
    - Canonical JSON:
        - sort_keys=True
        - separators=(",", ":")
        - ensure_ascii=False
    - Canonical timestamps are UTC with millisecond precision and a trailing "Z"
      (e.g., "2024-01-01T00:00:00.000Z"). Naive datetimes are treated as UTC.
"""

from __future__ import annotations

import json
from datetime import UTC, date, datetime, time
from typing import Any


__all__ = [
    "json_dumps_canonical",
    "json_loads",
    "clone_json",
    "to_iso",
    "parse_iso",
    "utc_now",
    "as_utc",
]


def json_dumps_canonical(obj: Any) -> str:
    """
    Serialize an object to a canonical JSON string.

    Args:
        obj (Any): JSON-serializable object.

    Returns:
        str: Canonical JSON string with sort_keys=True, compact separators,
        and ensure_ascii=False.

    Notes:
        This function assumes the input is JSON-serializable and does not perform
        coercion of unsupported types.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def json_loads(s: str) -> Any:
    """Deserialize a JSON string to Python objects using the stdlib json module."""
    return json.loads(s)


def clone_json(value: Any) -> Any:
    """
    Deep-copy a JSON-like value through a JSON round trip.

    Args:
        value (Any): JSON-serializable value, or None.

    Returns:
        Any: An independent copy; None is returned unchanged.
    """
    if value is None:
        return None
    return json.loads(json.dumps(value))


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_iso(value: datetime | date) -> str:
    """
    Format a datetime (or date) as a canonical UTC ISO-8601 string.

    Args:
        value (datetime | date): Timestamp to format. Plain dates are taken as UTC midnight.

    Returns:
        str: e.g. "2024-03-01T10:00:00.000Z".

    Examples:
        >>> from datetime import datetime, UTC
        >>> to_iso(datetime(2024, 3, 1, 10, 0, tzinfo=UTC))
        '2024-03-01T10:00:00.000Z'
    """
    if not isinstance(value, datetime):
        value = datetime.combine(value, time(), tzinfo=UTC)
    utc = as_utc(value)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """
    Parse an ISO-8601 string into an aware UTC datetime.

    Args:
        value (str): ISO date or datetime string ("Z" suffix and offsets accepted).

    Returns:
        datetime: Aware datetime normalized to UTC.

    Raises:
        ValueError: If the string is not a valid ISO-8601 date/datetime.
    """
    parsed = datetime.fromisoformat(value.strip())
    return as_utc(parsed)

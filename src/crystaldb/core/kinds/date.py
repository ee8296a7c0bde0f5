"""
Codec for the 'date' kind.

Shapes:
- business: {"iso": str, "metadata"?: {...}}, datetime, date, or an ISO-8601 string
- stored: {"iso": canonical ISO string, "metadata"?: {...}}

Notes:
- Canonical ISO strings are UTC with millisecond precision and a "Z" suffix; see
  crystaldb.core.serde.to_iso.
- ``ensure_iso`` is shared with the 'dateRange' codec.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any, TypedDict

from ..errors import KindValueError
from ..serde import parse_iso, to_iso
from .base import BaseCodec, Variant, copy_present, has_key, normalize_variants


class DateValue(TypedDict, total=False):
    iso: str
    metadata: dict[str, Any]


def ensure_iso(value: Any) -> str:
    """
    Normalize a date-like value to its canonical ISO string.

    Raises:
        KindValueError: If the value is not a date/datetime or a parsable ISO string.
    """
    if isinstance(value, date):
        return to_iso(value)
    if not isinstance(value, str):
        raise KindValueError(f"Invalid date value {value!r}")
    try:
        return to_iso(parse_iso(value))
    except ValueError as exc:
        raise KindValueError(f'Invalid date value "{value}"') from exc


def _from_temporal(value: Any) -> DateValue:
    return {"iso": to_iso(value)}


def _from_string(value: Any) -> DateValue:
    return {"iso": ensure_iso(value)}


def _from_mapping(value: Mapping[str, Any]) -> DateValue:
    out: dict[str, Any] = {"iso": ensure_iso(value["iso"])}
    copy_present(value, out, ("metadata",))
    return out  # type: ignore[return-value]


_VARIANTS = (
    Variant("datetime", lambda v: isinstance(v, date), _from_temporal),
    Variant("string", lambda v: isinstance(v, str), _from_string),
    Variant("object", has_key("iso"), _from_mapping),
)

# Stored documents never carry native datetimes.
_STORED_VARIANTS = _VARIANTS[1:]


class DateCodec(BaseCodec):
    kind = "date"

    def _encode(self, value: Any) -> DateValue:
        return normalize_variants(
            value, _VARIANTS, "Date value must be a datetime, ISO string, or { iso } object"
        )

    def _decode(self, stored: Any) -> DateValue:
        return normalize_variants(
            stored, _STORED_VARIANTS, "Stored date must be an ISO string or { iso } object"
        )


DATE_CODEC = DateCodec()

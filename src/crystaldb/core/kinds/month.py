"""
Codec for the 'month' kind.

Shapes:
- business: {"month": "YYYY-MM", "metadata"?: {...}} or a bare "YYYY-MM" string
- stored: {"month": "YYYY-MM", "metadata"?: {...}}
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypedDict

from ..constants import MONTH_PATTERN
from ..errors import KindValueError
from .base import BaseCodec, Variant, copy_present, has_key, normalize_variants


class MonthValue(TypedDict, total=False):
    month: str
    metadata: dict[str, Any]


def _ensure_month(value: Any) -> str:
    if not isinstance(value, str) or not MONTH_PATTERN.match(value):
        raise KindValueError(f'Month value must match YYYY-MM, received "{value}"')
    return value


def _from_string(value: str) -> MonthValue:
    return {"month": _ensure_month(value)}


def _from_mapping(value: Mapping[str, Any]) -> MonthValue:
    out: dict[str, Any] = {"month": _ensure_month(value["month"])}
    copy_present(value, out, ("metadata",))
    return out  # type: ignore[return-value]


_VARIANTS = (
    Variant("string", lambda v: isinstance(v, str), _from_string),
    Variant("object", has_key("month"), _from_mapping),
)


class MonthCodec(BaseCodec):
    kind = "month"

    def _encode(self, value: Any) -> MonthValue:
        return normalize_variants(
            value, _VARIANTS, 'Month value must be a string or { month: "YYYY-MM" } object'
        )


MONTH_CODEC = MonthCodec()

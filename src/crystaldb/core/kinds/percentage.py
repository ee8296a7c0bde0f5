"""
Codec for the 'percentage' kind.

Purpose:
- Percentages in [0, 100] stored as integer basis points.

Shapes:
- business: {"value": number} or a bare number
- stored: int, ``round(value * 100)`` with halves rounded up

Notes:
- Out-of-range values raise KindRangeError.
- Decode always returns the ``{"value": ...}`` form; the round trip is exact within
  1/100 of a percent.
"""

from __future__ import annotations

import math
from typing import Any, TypedDict

from ..constants import PERCENTAGE_BASIS_POINTS, PERCENTAGE_MAX, PERCENTAGE_MIN
from ..errors import KindRangeError, KindValueError
from .base import BaseCodec, Variant, ensure_finite, has_key, is_number, normalize_variants


class PercentageValue(TypedDict):
    value: float


def _from_number(value: Any) -> float:
    return ensure_finite(value, "Percentage value")


def _from_mapping(value: Any) -> float:
    return ensure_finite(value["value"], "Percentage value")


_VARIANTS = (
    Variant("number", is_number, _from_number),
    Variant("object", has_key("value"), _from_mapping),
)


class PercentageCodec(BaseCodec):
    kind = "percentage"

    def _encode(self, value: Any) -> int:
        percent = normalize_variants(
            value,
            _VARIANTS,
            'Percentage value must be a number or an object with a numeric "value" property',
        )
        if percent < PERCENTAGE_MIN or percent > PERCENTAGE_MAX:
            raise KindRangeError(
                f"Percentage value must be between 0 and 100, received {percent}"
            )
        return math.floor(percent * PERCENTAGE_BASIS_POINTS + 0.5)

    def _decode(self, stored: Any) -> PercentageValue:
        if not is_number(stored):
            raise KindValueError(
                "Stored percentage must be a number of basis points, "
                f"received {type(stored).__name__}"
            )
        return {"value": stored / PERCENTAGE_BASIS_POINTS}


PERCENTAGE_CODEC = PercentageCodec()

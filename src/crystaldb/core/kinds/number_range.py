"""
Codec for the 'numberRange' kind.

Shapes:
- business: {"start": number, "end": number, "metadata"?: {...}}
- stored: same

Notes:
- Both bounds must be finite and ``start <= end``; an inverted range raises
  KindRangeError.
"""

from __future__ import annotations

from typing import Any, TypedDict

from ..errors import KindRangeError
from .base import BaseCodec, copy_present, ensure_finite, ensure_mapping


class NumberRangeValue(TypedDict, total=False):
    start: float
    end: float
    metadata: dict[str, Any]


class NumberRangeCodec(BaseCodec):
    kind = "numberRange"

    def _encode(self, value: Any) -> NumberRangeValue:
        source = ensure_mapping(value, "Number range value must be an object with start and end")
        start = ensure_finite(source.get("start"), "Number range start")
        end = ensure_finite(source.get("end"), "Number range end")
        if start > end:
            raise KindRangeError(
                f"Number range start ({start}) must be less than or equal to end ({end})"
            )
        out: dict[str, Any] = {"start": start, "end": end}
        copy_present(source, out, ("metadata",))
        return out  # type: ignore[return-value]


NUMBER_RANGE_CODEC = NumberRangeCodec()

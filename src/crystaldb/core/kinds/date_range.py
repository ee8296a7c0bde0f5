"""
Codec for the 'dateRange' kind.

Shapes:
- business: {"start": date-like, "end": date-like, "metadata"?: {...}}
- stored: {"start": {"iso": ...}, "end": {"iso": ...}, "metadata"?: {...}}

Notes:
- Each bound goes through the 'date' codec's encode, so any accepted date shape works.
- Canonical ISO strings share one fixed-width format, so string order is time order.
"""

from __future__ import annotations

from typing import Any, TypedDict

from ..errors import KindRangeError, KindValueError
from .base import BaseCodec, copy_present, ensure_mapping
from .date import DATE_CODEC, DateValue


class DateRangeValue(TypedDict, total=False):
    start: DateValue
    end: DateValue
    metadata: dict[str, Any]


class DateRangeCodec(BaseCodec):
    kind = "dateRange"

    def _encode(self, value: Any) -> DateRangeValue:
        source = ensure_mapping(value, "DateRange must be an object with start/end")
        start = DATE_CODEC.encode(source.get("start"))
        end = DATE_CODEC.encode(source.get("end"))
        if start is None or end is None:
            raise KindValueError("Date range requires both start and end dates")
        if start["iso"] > end["iso"]:
            raise KindRangeError(
                f"dateRange.start ({start['iso']}) must be <= dateRange.end ({end['iso']})"
            )
        out: dict[str, Any] = {"start": start, "end": end}
        copy_present(source, out, ("metadata",))
        return out  # type: ignore[return-value]


DATE_RANGE_CODEC = DateRangeCodec()

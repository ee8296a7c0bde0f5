"""
Codec for the 'distance' kind.

Shapes:
- business: {"value": number, "unit"?: str, "metadata"?: {...}}
- stored: same
"""

from __future__ import annotations

from typing import Any, TypedDict

from .base import BaseCodec, copy_present, ensure_finite, ensure_mapping


class DistanceValue(TypedDict, total=False):
    value: float
    unit: str
    metadata: dict[str, Any]


class DistanceCodec(BaseCodec):
    kind = "distance"

    def _encode(self, value: Any) -> DistanceValue:
        source = ensure_mapping(value, "Distance value must be an object with a numeric 'value'")
        out: dict[str, Any] = {"value": ensure_finite(source.get("value"), "distance.value")}
        copy_present(source, out, ("unit", "metadata"))
        return out  # type: ignore[return-value]


DISTANCE_CODEC = DistanceCodec()

"""
Codec for the 'reference' kind.

Purpose:
- Pointer to another unit by business id.

Shapes:
- business: {"unitId": str, "unitType": str, "metadata"?: {...}}
- stored: same; both ids stringified

Notes:
- References carry business ids only; they are not translated to technical ids.
"""

from __future__ import annotations

from typing import Any, TypedDict

from ..errors import KindValueError
from .base import BaseCodec, copy_present, ensure_mapping


class ReferenceValue(TypedDict, total=False):
    unitId: str
    unitType: str
    metadata: dict[str, Any]


class ReferenceCodec(BaseCodec):
    kind = "reference"

    def _encode(self, value: Any) -> ReferenceValue:
        source = ensure_mapping(value, "Reference value must be an object")
        for field in ("unitId", "unitType"):
            if source.get(field) in (None, ""):
                raise KindValueError(f'Reference value requires a "{field}" field')
        out: dict[str, Any] = {
            "unitId": str(source["unitId"]),
            "unitType": str(source["unitType"]),
        }
        copy_present(source, out, ("metadata",))
        return out  # type: ignore[return-value]


REFERENCE_CODEC = ReferenceCodec()

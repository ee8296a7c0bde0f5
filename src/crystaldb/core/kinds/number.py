"""
Codec for the 'number' kind.

Shapes:
- business: finite int | float (bool rejected)
- stored: same
"""

from __future__ import annotations

from typing import Any

from .base import BaseCodec, ensure_finite


class NumberCodec(BaseCodec):
    kind = "number"

    def _encode(self, value: Any) -> int | float:
        return ensure_finite(value, "Number value")


NUMBER_CODEC = NumberCodec()

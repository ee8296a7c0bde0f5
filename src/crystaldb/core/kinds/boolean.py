"""
Codec for the 'boolean' kind.

Shapes:
- business: bool
- stored: bool

Notes:
- The exact strings "true" and "false" are accepted on encode only; stored values
  must already be bool.
"""

from __future__ import annotations

from typing import Any

from ..errors import KindValueError
from .base import BaseCodec

_BOOLEAN_STRINGS = {"true": True, "false": False}


class BooleanCodec(BaseCodec):
    kind = "boolean"

    def _encode(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value in _BOOLEAN_STRINGS:
            return _BOOLEAN_STRINGS[value]
        raise KindValueError(
            f"Boolean value must be true/false, received {type(value).__name__}"
        )

    def _decode(self, stored: Any) -> bool:
        if not isinstance(stored, bool):
            raise KindValueError(
                f"Stored boolean must be a bool, received {type(stored).__name__}"
            )
        return stored


BOOLEAN_CODEC = BooleanCodec()

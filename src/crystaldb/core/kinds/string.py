"""
Codec for the 'string' kind.

Purpose:
- Free-form text. Non-string input is coerced with ``str()`` on encode and decode.

Shapes:
- business: str
- stored: str
"""

from __future__ import annotations

from typing import Any

from .base import BaseCodec


class StringCodec(BaseCodec):
    kind = "string"

    def _encode(self, value: Any) -> str:
        return value if isinstance(value, str) else str(value)


STRING_CODEC = StringCodec()

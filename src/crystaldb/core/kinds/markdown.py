"""
Codec for the 'markdown' kind.

Purpose:
- Markdown source text. Unlike 'string', no coercion is applied.

Shapes:
- business: str
- stored: str
"""

from __future__ import annotations

from typing import Any

from ..errors import KindValueError
from .base import BaseCodec


class MarkdownCodec(BaseCodec):
    kind = "markdown"

    def _encode(self, value: Any) -> str:
        if not isinstance(value, str):
            raise KindValueError(
                f"Markdown value must be a string, received {type(value).__name__}"
            )
        return value


MARKDOWN_CODEC = MarkdownCodec()

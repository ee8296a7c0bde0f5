"""
Codec for the 'enum' kind.

Shapes:
- business: {"key": str, "label"?: str, "metadata"?: {...}} or a bare key string
- stored: same as the object form
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypedDict

from .base import (
    BaseCodec,
    Variant,
    copy_present,
    ensure_non_empty_str,
    has_key,
    normalize_variants,
)


class EnumValue(TypedDict, total=False):
    key: str
    label: str
    metadata: dict[str, Any]


def _from_mapping(value: Mapping[str, Any]) -> EnumValue:
    out: dict[str, Any] = {
        "key": ensure_non_empty_str(value["key"], "Enum value requires a string 'key'")
    }
    copy_present(value, out, ("label", "metadata"))
    return out  # type: ignore[return-value]


_VARIANTS = (
    Variant("key", lambda v: isinstance(v, str), lambda v: _from_mapping({"key": v})),
    Variant("object", has_key("key"), _from_mapping),
)


class EnumCodec(BaseCodec):
    kind = "enum"

    def _encode(self, value: Any) -> EnumValue:
        return normalize_variants(value, _VARIANTS, "Enum value must be a string or { key } object")


ENUM_CODEC = EnumCodec()

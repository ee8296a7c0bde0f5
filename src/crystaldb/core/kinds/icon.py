"""
Codec for the 'icon' kind.

Shapes:
- business: {"name": str, "color"?: str, "library"?: str, "metadata"?: {...}} or a
  bare icon name
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


class IconValue(TypedDict, total=False):
    name: str
    color: str
    library: str
    metadata: dict[str, Any]


def _from_mapping(value: Mapping[str, Any]) -> IconValue:
    out: dict[str, Any] = {
        "name": ensure_non_empty_str(value["name"], "Icon value requires a string 'name'")
    }
    copy_present(value, out, ("color", "library", "metadata"))
    return out  # type: ignore[return-value]


_VARIANTS = (
    Variant("name", lambda v: isinstance(v, str), lambda v: _from_mapping({"name": v})),
    Variant("object", has_key("name"), _from_mapping),
)


class IconCodec(BaseCodec):
    kind = "icon"

    def _encode(self, value: Any) -> IconValue:
        return normalize_variants(value, _VARIANTS, "Icon value must be a string or { name } object")


ICON_CODEC = IconCodec()

"""
Codec for the 'formula' kind.

Shapes:
- business: {"expression": str, "result"?: Any, "metadata"?: {...}} or a bare expression
- stored: same as the object form

Notes:
- ``result`` is kept whenever its key is present, including an explicit None.
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


class FormulaValue(TypedDict, total=False):
    expression: str
    result: Any
    metadata: dict[str, Any]


def _from_mapping(value: Mapping[str, Any]) -> FormulaValue:
    out: dict[str, Any] = {
        "expression": ensure_non_empty_str(
            value["expression"], "Formula requires a string 'expression'"
        )
    }
    if "result" in value:
        out["result"] = value["result"]
    copy_present(value, out, ("metadata",))
    return out  # type: ignore[return-value]


_VARIANTS = (
    Variant(
        "expression",
        lambda v: isinstance(v, str),
        lambda v: _from_mapping({"expression": v}),
    ),
    Variant("object", has_key("expression"), _from_mapping),
)


class FormulaCodec(BaseCodec):
    kind = "formula"

    def _encode(self, value: Any) -> FormulaValue:
        return normalize_variants(
            value, _VARIANTS, "Formula value must be a string or { expression } object"
        )


FORMULA_CODEC = FormulaCodec()

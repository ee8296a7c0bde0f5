"""
Built-in kind codecs, one module per kind.

Notes:
    - Each module defines a codec class and a module-level instance (``*_CODEC``).
    - ``BUILT_IN_CODECS`` is keyed by kind name and ordered like
      crystaldb.core.constants.BUILT_IN_KINDS; a fresh KindRegistry is seeded from it.
    - Core is zero-IO (stdlib only).
"""

from __future__ import annotations

from ..constants import BUILT_IN_KINDS
from .base import BaseCodec, FunctionCodec, KindCodec, Variant
from .boolean import BOOLEAN_CODEC
from .date import DATE_CODEC
from .date_range import DATE_RANGE_CODEC
from .distance import DISTANCE_CODEC
from .enum import ENUM_CODEC
from .files import FILES_CODEC
from .formula import FORMULA_CODEC
from .geo_address import GEO_ADDRESS_CODEC
from .icon import ICON_CODEC
from .markdown import MARKDOWN_CODEC
from .month import MONTH_CODEC
from .number import NUMBER_CODEC
from .number_range import NUMBER_RANGE_CODEC
from .percentage import PERCENTAGE_CODEC
from .reference import REFERENCE_CODEC
from .string import STRING_CODEC

__all__ = [
    "KindCodec",
    "BaseCodec",
    "FunctionCodec",
    "Variant",
    "BUILT_IN_CODECS",
    "get_codec",
    "list_kinds",
]

_CODECS: tuple[BaseCodec, ...] = (
    STRING_CODEC,
    MARKDOWN_CODEC,
    NUMBER_CODEC,
    NUMBER_RANGE_CODEC,
    BOOLEAN_CODEC,
    DATE_CODEC,
    MONTH_CODEC,
    ENUM_CODEC,
    FILES_CODEC,
    FORMULA_CODEC,
    DATE_RANGE_CODEC,
    DISTANCE_CODEC,
    ICON_CODEC,
    PERCENTAGE_CODEC,
    GEO_ADDRESS_CODEC,
    REFERENCE_CODEC,
)


def _build_registry() -> dict[str, BaseCodec]:
    by_kind = {codec.kind: codec for codec in _CODECS}
    missing = [kind for kind in BUILT_IN_KINDS if kind not in by_kind]
    if missing:
        raise RuntimeError(f"Missing codec for built-in kind(s): {missing}")
    return {kind: by_kind[kind] for kind in BUILT_IN_KINDS}


# Registry
BUILT_IN_CODECS: dict[str, BaseCodec] = _build_registry()


def get_codec(kind: str) -> BaseCodec:
    """
    Look up a built-in codec by kind name.

    Args:
        kind (str): Built-in kind name (e.g., "percentage").

    Returns:
        BaseCodec: Codec for the requested kind.

    Raises:
        KeyError: If ``kind`` is not a built-in kind.
    """
    return BUILT_IN_CODECS[kind]


def list_kinds() -> list[str]:
    """Return built-in kind names in seeding order."""
    return list(BUILT_IN_CODECS)

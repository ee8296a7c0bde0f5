"""
Shared codec contract and normalization helpers for kind codecs.

A kind codec owns one kind's validation, normalization, and storage encoding:

- ``encode(value) -> stored | None`` normalizes a business value and returns its
  storage representation.
- ``decode(stored) -> value | None`` reverses the process.

Both are total on ``None`` (they return ``None``) and raise
crystaldb.core.errors.KindValueError on shape mismatches.

Union-shaped kinds (e.g., an enum accepting a bare key or a ``{key}`` mapping) declare
an ordered tuple of Variant entries. ``normalize_variants`` tries each acceptance
predicate in order and raises when none accepts, so every accepted shape is listed in
one place.

Notes:
    - Zero-IO; stdlib only.
    - Optional fields are copied only when present (not None and not "").
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol, runtime_checkable

from ..errors import KindValueError

__all__ = [
    "KindCodec",
    "BaseCodec",
    "FunctionCodec",
    "Variant",
    "normalize_variants",
    "is_number",
    "is_mapping",
    "has_key",
    "ensure_finite",
    "ensure_mapping",
    "ensure_non_empty_str",
    "copy_present",
]


@runtime_checkable
class KindCodec(Protocol):
    """Structural contract every registered codec satisfies."""

    def encode(self, value: Any) -> Any: ...

    def decode(self, stored: Any) -> Any: ...


class BaseCodec:
    """
    Base class for built-in codecs.

    Subclasses set ``kind`` and implement ``_encode``; ``_decode`` defaults to
    ``_encode`` because most kinds store their normalized business shape as-is.
    """

    kind: ClassVar[str]

    def encode(self, value: Any) -> Any:
        if value is None:
            return None
        return self._encode(value)

    def decode(self, stored: Any) -> Any:
        if stored is None:
            return None
        return self._decode(stored)

    def _encode(self, value: Any) -> Any:
        raise NotImplementedError

    def _decode(self, stored: Any) -> Any:
        return self._encode(stored)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r})"


class FunctionCodec:
    """
    Codec built from a plain ``(encode, decode)`` function pair.

    ``None`` handling is applied around the functions so callers registering custom
    kinds only deal with present values.

    Examples:
        >>> import json
        >>> codec = FunctionCodec(json.dumps, json.loads)
        >>> codec.encode({"a": 1})
        '{"a": 1}'
        >>> codec.decode(None) is None
        True
    """

    def __init__(
        self,
        encode: Callable[[Any], Any],
        decode: Callable[[Any], Any],
    ) -> None:
        self._encode = encode
        self._decode = decode

    def encode(self, value: Any) -> Any:
        if value is None:
            return None
        return self._encode(value)

    def decode(self, stored: Any) -> Any:
        if stored is None:
            return None
        return self._decode(stored)


@dataclass(frozen=True, slots=True)
class Variant:
    """One accepted input shape of a union-shaped kind."""

    name: str
    accepts: Callable[[Any], bool]
    build: Callable[[Any], Any]


def normalize_variants(value: Any, variants: Iterable[Variant], message: str) -> Any:
    """
    Normalize ``value`` through the first variant that accepts it.

    Args:
        value (Any): Candidate value (never None here).
        variants (Iterable[Variant]): Ordered accepted shapes.
        message (str): Error message when no variant accepts.

    Returns:
        Any: The normalized value built by the accepting variant.

    Raises:
        KindValueError: If no variant accepts the value.
    """
    for variant in variants:
        if variant.accepts(value):
            return variant.build(value)
    raise KindValueError(message)


def is_number(value: Any) -> bool:
    """True for int/float values, excluding bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def has_key(key: str) -> Callable[[Any], bool]:
    """Acceptance predicate: a mapping carrying ``key``."""

    def _accepts(value: Any) -> bool:
        return isinstance(value, Mapping) and key in value

    return _accepts


def ensure_finite(value: Any, label: str) -> int | float:
    """
    Require a finite int/float.

    Raises:
        KindValueError: If ``value`` is not a number, is a bool, is NaN/infinite, or
            is an int too large for a float.
    """
    if not is_number(value):
        raise KindValueError(f"{label} must be a finite number, received {value!r}")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise KindValueError(f"{label} must be a finite number, received {value!r}")
    return value


def ensure_mapping(value: Any, message: str) -> Mapping[str, Any]:
    """Require a mapping (lists and scalars rejected)."""
    if not isinstance(value, Mapping):
        raise KindValueError(message)
    return value


def ensure_non_empty_str(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value:
        raise KindValueError(message)
    return value


def copy_present(source: Mapping[str, Any], target: dict[str, Any], keys: Iterable[str]) -> None:
    """Copy optional ``keys`` from source to target when present (not None, not "")."""
    for key in keys:
        candidate = source.get(key)
        if candidate is None or candidate == "":
            continue
        target[key] = candidate

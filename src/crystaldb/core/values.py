"""
Record codec: encode sparse business values into a stored value map and decode a
stored map back into a dense business map, one kind codec per data item.

Encoding (``encode_values``):
    1. Start from a copy of ``baseline`` (the currently stored map, or empty).
    2. For every key in ``values``: look up the item (unknown ids raise
       UnknownItemError), encode through the item's kind codec, then set the key when
       the encoding is not None, or delete it when it is.
    3. Return the working map. Nothing is returned on failure, so a raised error
       means no stored map was produced.

Decoding (``decode_values``) walks every declared item, not just the stored keys, so
the result always has one entry per item (None when absent).

Notes:
    - Sparse-map semantics: an explicit None clears a stored key, an absent key
      leaves it untouched.
    - Codec errors (KindValueError, KindRangeError) propagate unchanged.
    - Zero-IO; values are not logged.

Examples:
    >>> from crystaldb.core.schema import DataItem, UnitType
    >>> from crystaldb.core.values import RecordCodec
    >>> codec = RecordCodec()
    >>> ut = UnitType(id="task", items=[DataItem(id="progress", type="percentage")])
    >>> codec.encode_values(ut, {"progress": {"value": 42.5}})
    {'progress': 4250}
    >>> codec.decode_values(ut, {"progress": 4250})
    {'progress': {'value': 42.5}}
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .errors import UnknownItemError
from .registry import KindRegistry
from .schema import DataItem, UnitType
from .typing import BusinessValues, StoredValues

__all__ = ["RecordCodec", "encode_values", "decode_values"]


def _items_by_id(unit_type: UnitType) -> dict[str, DataItem]:
    return {item.id: item for item in unit_type.items}


class RecordCodec:
    """
    Schema-driven (un)marshalling of value maps.

    Args:
        registry (KindRegistry | None): Kind registry; a fresh built-in registry
            when omitted.
    """

    def __init__(self, registry: KindRegistry | None = None) -> None:
        self.registry = registry if registry is not None else KindRegistry()

    def encode_value(self, kind: str, value: Any) -> Any:
        """
        Encode one value through the codec registered for ``kind``.

        Raises:
            UnknownKindError: If ``kind`` is not registered.
        """
        return self.registry.require(kind).encode(value)

    def decode_value(self, kind: str, stored: Any) -> Any:
        """
        Decode one stored value through the codec registered for ``kind``.

        Raises:
            UnknownKindError: If ``kind`` is not registered.
        """
        return self.registry.require(kind).decode(stored)

    def encode_values(
        self,
        unit_type: UnitType,
        values: Mapping[str, Any] | None,
        baseline: Mapping[str, Any] | None = None,
    ) -> StoredValues:
        """
        Encode a sparse business map into a stored map, merged onto ``baseline``.

        Args:
            unit_type (UnitType): Schema declaring the items.
            values (Mapping[str, Any] | None): Sparse business values keyed by item id.
            baseline (Mapping[str, Any] | None): Existing stored map (not mutated).

        Returns:
            StoredValues: New stored map.

        Raises:
            UnknownItemError: If a key is not declared by ``unit_type``.
            KindValueError: If a value does not match its kind.
        """
        working: StoredValues = dict(baseline or {})
        if not values:
            return working
        items = _items_by_id(unit_type)
        for key, value in values.items():
            item = items.get(key)
            if item is None:
                raise UnknownItemError(f'Unknown data item "{key}" for unit type "{unit_type.id}"')
            encoded = self.encode_value(item.type, value)
            if encoded is None:
                working.pop(key, None)
            else:
                working[key] = encoded
        return working

    def decode_values(
        self,
        unit_type: UnitType,
        stored: Mapping[str, Any] | None,
    ) -> BusinessValues:
        """
        Decode a stored map into a dense business map (one key per declared item).

        Keys present in ``stored`` but not declared by ``unit_type`` are ignored.
        """
        source = stored or {}
        return {item.id: self.decode_value(item.type, source.get(item.id)) for item in unit_type.items}


def encode_values(
    unit_type: UnitType,
    values: Mapping[str, Any] | None,
    baseline: Mapping[str, Any] | None = None,
    *,
    registry: KindRegistry | None = None,
) -> StoredValues:
    """Convenience wrapper over ``RecordCodec(registry).encode_values``."""
    return RecordCodec(registry).encode_values(unit_type, values, baseline)


def decode_values(
    unit_type: UnitType,
    stored: Mapping[str, Any] | None,
    *,
    registry: KindRegistry | None = None,
) -> BusinessValues:
    """Convenience wrapper over ``RecordCodec(registry).decode_values``."""
    return RecordCodec(registry).decode_values(unit_type, stored)

"""
Payload serialization and validation for unit types and units.

Purpose
- Turn trusted models (UnitType, Unit, create inputs) into JSON-ready payloads with
  encoded values and ISO timestamps.
- Validate untyped payloads (parsed JSON, transport bodies) field by field before
  they become trusted models, with messages naming the offending field or item.

Checks performed
- Documentation: ``name``/``description`` are a string or a flat mapping of strings;
  ``icon`` a string; ``tags`` a list of strings; ``links`` a list of ``{label, url}``;
  ``examples`` a list of localized strings.
- Data items: non-empty ``id`` and ``type``; documentation validated recursively;
  ``metadata``/``status`` are mappings when present.
- Units: non-empty ``id`` and ``unitTypeId``; ``unitTypeId`` equals the schema id;
  ``values`` is a mapping whose keys are declared items; required items are present
  and non-null; ``metadata.itemStatuses`` keys are declared items.
- Timestamps: ISO strings; ``updatedAt`` defaults to ``createdAt``, which defaults
  to now.

Round trip
- ``deserialize_unit(serialize_unit(unit, ut), ut)`` reproduces the unit's ids, values
  and metadata; timestamps compare equal at millisecond precision.

Notes
- Failures raise crystaldb.core.errors.SchemaError (or a subclass); codec failures
  propagate as KindValueError.
- Zero-IO.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .errors import (
    MissingRequiredValueError,
    SchemaError,
    SchemaMismatchError,
    UnknownItemError,
)
from .schema import (
    CreateInlineUnitInput,
    CreateUnitInput,
    DocumentationBlock,
    Unit,
    UnitType,
)
from .serde import clone_json, parse_iso, to_iso, utc_now
from .typing import BusinessValues, JsonDict
from .values import RecordCodec

__all__ = [
    "DeserializedUnitType",
    "Serializer",
    "serialize_unit_type",
    "deserialize_unit_type",
    "serialize_unit",
    "deserialize_unit",
    "serialize_create_unit_input",
    "deserialize_create_unit_input",
    "serialize_create_inline_unit_input",
    "deserialize_create_inline_unit_input",
]


@dataclass(frozen=True, slots=True)
class DeserializedUnitType:
    """Validated unit type plus the optional timestamps carried by its payload."""

    unit_type: UnitType
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ----------------------------------------------------------------------------
# Field validators
# ----------------------------------------------------------------------------


def _ensure_mapping(value: Any, message: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SchemaError(message)
    return value


def _ensure_list(value: Any, message: str) -> list[Any]:
    if not isinstance(value, (list, tuple)):
        raise SchemaError(message)
    return list(value)


def _ensure_non_empty_str(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value:
        raise SchemaError(message)
    return value


def _ensure_optional_mapping(value: Any, message: str) -> JsonDict | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise SchemaError(message)
    return clone_json(dict(value))


def _is_localized(value: Any) -> bool:
    if isinstance(value, str):
        return True
    return isinstance(value, Mapping) and all(isinstance(v, str) for v in value.values())


def _ensure_localized(value: Any, field: str) -> str | dict[str, str]:
    if not _is_localized(value):
        raise SchemaError(f"{field} must be a string or a record of strings")
    return value if isinstance(value, str) else dict(value)


def _validate_documentation(value: Any, context: str) -> JsonDict:
    doc = _ensure_mapping(value, f"{context} must be an object")
    out: JsonDict = {
        "name": _ensure_localized(doc.get("name"), f"{context}.name"),
        "description": _ensure_localized(doc.get("description"), f"{context}.description"),
    }
    if doc.get("icon") is not None:
        if not isinstance(doc["icon"], str):
            raise SchemaError(f"{context}.icon must be a string when provided")
        out["icon"] = doc["icon"]
    if doc.get("tags") is not None:
        tags = doc["tags"]
        if not isinstance(tags, (list, tuple)) or not all(isinstance(t, str) for t in tags):
            raise SchemaError(f"{context}.tags must be an array of strings")
        out["tags"] = list(tags)
    if doc.get("links") is not None:
        links = _ensure_list(doc["links"], f"{context}.links must be an array")
        normalized_links = []
        for index, link in enumerate(links):
            link_context = f"{context}.links[{index}]"
            record = _ensure_mapping(link, f"{link_context} must be an object")
            label = _ensure_localized(record.get("label"), f"{link_context}.label")
            if not isinstance(record.get("url"), str):
                raise SchemaError(f"{link_context}.url must be a string")
            normalized_links.append({"label": label, "url": record["url"]})
        out["links"] = normalized_links
    if doc.get("examples") is not None:
        examples = doc["examples"]
        if not isinstance(examples, (list, tuple)) or not all(_is_localized(e) for e in examples):
            raise SchemaError(f"{context}.examples must be an array of localized strings")
        out["examples"] = [e if isinstance(e, str) else dict(e) for e in examples]
    return out


def _validate_data_item(value: Any, index: int) -> JsonDict:
    context = f"items[{index}]"
    item = _ensure_mapping(value, f"{context} must be an object")
    return {
        "id": _ensure_non_empty_str(item.get("id"), f"{context}.id must be a non-empty string"),
        "type": _ensure_non_empty_str(
            item.get("type"), f"{context}.type must be a non-empty string"
        ),
        "documentation": _validate_documentation(
            item.get("documentation"), f"{context}.documentation"
        ),
        "metadata": _ensure_optional_mapping(
            item.get("metadata"), f"{context}.metadata must be an object when provided"
        ),
        "status": _ensure_optional_mapping(
            item.get("status"), f"{context}.status must be an object when provided"
        ),
    }


def _coerce_timestamp(value: Any, field: str) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return parse_iso(to_iso(value))
    if not isinstance(value, str):
        raise SchemaError(f"{field} must be an ISO string when provided")
    try:
        return parse_iso(value)
    except ValueError as exc:
        raise SchemaError(f"{field} must be a valid ISO date string") from exc


def _dump_documentation(doc: DocumentationBlock) -> JsonDict:
    return doc.model_dump(mode="json", exclude_none=True)


def _drop_none(payload: JsonDict) -> JsonDict:
    return {k: v for k, v in payload.items() if v is not None}


# ----------------------------------------------------------------------------
# Serializer
# ----------------------------------------------------------------------------


class Serializer:
    """
    Serialize and validate unit type and unit payloads.

    Args:
        codec (RecordCodec | None): Record codec used to encode/decode values; a
            codec over the built-in kinds when omitted.
    """

    def __init__(self, codec: RecordCodec | None = None) -> None:
        self.codec = codec if codec is not None else RecordCodec()

    # -- unit types ---------------------------------------------------------

    def serialize_unit_type(
        self,
        unit_type: UnitType,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> JsonDict:
        """
        Serialize a unit type into a JSON-ready payload.

        Timestamps default to the unit type's own ``created_at``/``updated_at`` when it
        is a StoredUnitType; absent timestamps are omitted.
        """
        created_at = created_at or getattr(unit_type, "created_at", None)
        updated_at = updated_at or getattr(unit_type, "updated_at", None)
        payload: JsonDict = {
            "id": unit_type.id,
            "documentation": _dump_documentation(unit_type.documentation),
            "items": [
                _drop_none(
                    {
                        "id": item.id,
                        "type": item.type,
                        "documentation": _dump_documentation(item.documentation),
                        "metadata": clone_json(item.metadata),
                        "status": clone_json(item.status),
                    }
                )
                for item in unit_type.items
            ],
            "metadata": clone_json(unit_type.metadata),
            "status": clone_json(unit_type.status),
            "createdAt": to_iso(created_at) if created_at else None,
            "updatedAt": to_iso(updated_at) if updated_at else None,
        }
        return _drop_none(payload)

    def deserialize_unit_type(self, payload: Any) -> DeserializedUnitType:
        """
        Validate an untyped unit type payload.

        Raises:
            SchemaError: If any field is malformed (message names the field).
        """
        record = _ensure_mapping(payload, "Unit type payload must be an object")
        type_id = _ensure_non_empty_str(
            record.get("id"), "Unit type id must be a non-empty string"
        )
        documentation = _validate_documentation(record.get("documentation"), "documentation")
        items_raw = _ensure_list(record.get("items"), "Unit type items must be an array")
        items = [_validate_data_item(item, index) for index, item in enumerate(items_raw)]
        metadata = _ensure_optional_mapping(
            record.get("metadata"), "Unit type metadata must be an object when provided"
        )
        status = _ensure_optional_mapping(
            record.get("status"), "Unit type status must be an object when provided"
        )
        seen: set[str] = set()
        for index, item in enumerate(items):
            if item["id"] in seen:
                raise SchemaError(f'items[{index}].id duplicates data item "{item["id"]}"')
            seen.add(item["id"])

        unit_type = UnitType(
            id=type_id,
            documentation=documentation,
            items=items,
            metadata=metadata,
            status=status,
        )
        return DeserializedUnitType(
            unit_type=unit_type,
            created_at=_coerce_timestamp(record.get("createdAt"), "createdAt"),
            updated_at=_coerce_timestamp(record.get("updatedAt"), "updatedAt"),
        )

    # -- units --------------------------------------------------------------

    def serialize_unit(self, unit: Unit, unit_type: UnitType) -> JsonDict:
        """
        Serialize a unit into a JSON-ready payload with encoded values.

        Raises:
            SchemaMismatchError: If the unit belongs to another unit type.
        """
        if unit.unit_type_id != unit_type.id:
            raise SchemaMismatchError(
                f"Unit {unit.id} does not belong to unit type {unit_type.id}"
            )
        return _drop_none(
            {
                "id": unit.id,
                "unitTypeId": unit.unit_type_id,
                "values": clone_json(self.codec.encode_values(unit_type, unit.values)),
                "metadata": clone_json(unit.metadata),
                "createdAt": to_iso(unit.created_at),
                "updatedAt": to_iso(unit.updated_at),
            }
        )

    def deserialize_unit(self, payload: Any, unit_type: UnitType) -> Unit:
        """
        Validate an untyped unit payload against ``unit_type``.

        Raises:
            SchemaError: If the payload is malformed.
            SchemaMismatchError: If ``unitTypeId`` is not ``unit_type.id``.
            UnknownItemError: If ``values`` holds an undeclared key.
            MissingRequiredValueError: If a required item has no value.
        """
        record = _ensure_mapping(payload, "Unit payload must be an object")
        unit_id = _ensure_non_empty_str(record.get("id"), "Unit id must be a non-empty string")
        type_id = _ensure_non_empty_str(
            record.get("unitTypeId"), "Unit unitTypeId must be a non-empty string"
        )
        if type_id != unit_type.id:
            raise SchemaMismatchError(
                f'Unit {unit_id} references mismatched unit type "{type_id}", '
                f'expected "{unit_type.id}"'
            )
        values = self._validate_values(unit_type, record.get("values"))
        metadata = self._validate_metadata(unit_type, record.get("metadata"))
        created_at = _coerce_timestamp(record.get("createdAt"), "createdAt") or utc_now()
        updated_at = _coerce_timestamp(record.get("updatedAt"), "updatedAt") or created_at
        return Unit(
            id=unit_id,
            unit_type_id=unit_type.id,
            values=values,
            metadata=metadata,
            created_at=created_at,
            updated_at=updated_at,
        )

    # -- create inputs ------------------------------------------------------

    def serialize_create_unit_input(self, data: CreateUnitInput, unit_type: UnitType) -> JsonDict:
        """Serialize a create payload; ``id`` is omitted when not supplied."""
        self._ensure_targets(data.unit_type_id, unit_type)
        return _drop_none(
            {
                "id": data.id,
                "unitTypeId": data.unit_type_id,
                "values": clone_json(self.codec.encode_values(unit_type, data.values)),
                "metadata": clone_json(data.metadata),
            }
        )

    def deserialize_create_unit_input(self, payload: Any, unit_type: UnitType) -> CreateUnitInput:
        """Validate a create payload (``id`` optional, ``unitTypeId`` required)."""
        record = _ensure_mapping(payload, "Create unit payload must be an object")
        type_id = _ensure_non_empty_str(
            record.get("unitTypeId"), "Create unit payload unitTypeId must be a non-empty string"
        )
        self._ensure_targets(type_id, unit_type)
        unit_id = self._optional_id(record.get("id"))
        return CreateUnitInput(
            id=unit_id,
            unit_type_id=type_id,
            values=self._validate_values(unit_type, record.get("values")),
            metadata=self._validate_metadata(unit_type, record.get("metadata")),
        )

    def serialize_create_inline_unit_input(
        self, data: CreateInlineUnitInput, unit_type: UnitType
    ) -> JsonDict:
        """Serialize an inline create payload (no ``unitTypeId``; ``id`` kept when set)."""
        return _drop_none(
            {
                "id": data.id,
                "values": clone_json(self.codec.encode_values(unit_type, data.values)),
                "metadata": clone_json(data.metadata),
            }
        )

    def deserialize_create_inline_unit_input(
        self, payload: Any, unit_type: UnitType
    ) -> CreateInlineUnitInput:
        """Validate an inline create payload; returned values are dense."""
        record = _ensure_mapping(payload, "Create unit payload must be an object")
        return CreateInlineUnitInput(
            id=self._optional_id(record.get("id")),
            values=self._validate_values(unit_type, record.get("values")),
            metadata=self._validate_metadata(unit_type, record.get("metadata")),
        )

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _ensure_targets(type_id: str, unit_type: UnitType) -> None:
        if type_id != unit_type.id:
            raise SchemaMismatchError(
                f'Create unit payload targets "{type_id}", expected "{unit_type.id}"'
            )

    @staticmethod
    def _optional_id(value: Any) -> str | None:
        if value is None:
            return None
        return _ensure_non_empty_str(value, "Unit id must be a non-empty string when provided")

    def _validate_values(self, unit_type: UnitType, raw: Any) -> BusinessValues:
        stored = _ensure_mapping(raw, "Unit values must be an object")
        declared = set(unit_type.item_ids)
        for key in stored:
            if key not in declared:
                raise UnknownItemError(f'Unknown value "{key}" for unit type "{unit_type.id}"')
        decoded = self.codec.decode_values(unit_type, stored)
        for item in unit_type.items:
            if item.is_required and (stored.get(item.id) is None or decoded[item.id] is None):
                raise MissingRequiredValueError(
                    f'Missing required value for data item "{item.id}"'
                )
        return decoded

    @staticmethod
    def _validate_metadata(unit_type: UnitType, raw: Any) -> JsonDict | None:
        metadata = _ensure_optional_mapping(raw, "Unit metadata must be an object")
        if metadata is None:
            return None
        statuses = metadata.get("itemStatuses")
        if isinstance(statuses, Mapping):
            declared = set(unit_type.item_ids)
            for key in statuses:
                if key not in declared:
                    raise UnknownItemError(f'Metadata references unknown data item "{key}"')
        return metadata


# Module-level API over the built-in kinds.
_DEFAULT = Serializer()

serialize_unit_type = _DEFAULT.serialize_unit_type
deserialize_unit_type = _DEFAULT.deserialize_unit_type
serialize_unit = _DEFAULT.serialize_unit
deserialize_unit = _DEFAULT.deserialize_unit
serialize_create_unit_input = _DEFAULT.serialize_create_unit_input
deserialize_create_unit_input = _DEFAULT.deserialize_create_unit_input
serialize_create_inline_unit_input = _DEFAULT.serialize_create_inline_unit_input
deserialize_create_inline_unit_input = _DEFAULT.deserialize_create_inline_unit_input

"""
Pydantic v2 models for unit types (schemas), units (records), write inputs, and
persisted storage documents.

Responsibilities
- Define the typed domain models: DocumentationBlock, DataItem, UnitType, Unit.
- Define the persisted document shapes, keyed by technical ids with camelCase aliases
  (``businessId``, ``typeId``, ``createdAt``, ...).
- Enforce structural invariants: unique item ids within a unit type, tz-aware UTC
  timestamps.

Style
- Zero-IO (stdlib + pydantic only).
- Python attributes are lower_snake; the wire/storage form uses camelCase aliases
  (``model_dump(by_alias=True)``). Both spellings are accepted on input.
- Unit types are immutable value objects (``frozen=True``); changing a schema means
  building a new definition.

Notes:
    Untyped payload validation with field-level messages lives in
    crystaldb.core.serialization; these models are the trusted result.

Examples:
    >>> from crystaldb.core.schema import DataItem, UnitType
    >>> ut = UnitType(id="task", items=[DataItem(id="progress", type="percentage")])
    >>> ut.item_ids
    ('progress',)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .errors import SchemaError
from .serde import as_utc
from .typing import BusinessValues, JsonDict, StoredValues

__all__ = [
    "LocalizedString",
    # Schema
    "DocumentationLink",
    "DocumentationBlock",
    "DataItem",
    "UnitType",
    "StoredUnitType",
    # Records
    "Unit",
    "CreateUnitInput",
    "CreateInlineUnitInput",
    "UpdateUnitPatch",
    "UnitWriteOperation",
    # Storage documents
    "StoredDataItemDocument",
    "StoredUnitTypeDocument",
    "StoredUnitDocument",
]

# Plain string, or a flat mapping of locale -> string.
LocalizedString = str | dict[str, str]

UnitWriteOperation = Literal["create", "update"]

_MODEL_CONFIG = ConfigDict(
    extra="forbid",
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


def _empty_documentation() -> DocumentationBlock:
    return DocumentationBlock(name={}, description={})


# ============================================================================
# Schema
# ============================================================================


class DocumentationLink(BaseModel):
    """External link attached to a documentation block."""

    model_config = _MODEL_CONFIG

    label: LocalizedString
    url: str


class DocumentationBlock(BaseModel):
    """
    Human-facing documentation for a unit type or data item.

    Attributes:
        name (LocalizedString): Display name.
        description (LocalizedString): Longer description.
        icon (str | None): Optional icon name.
        tags (tuple[str, ...] | None): Optional tags.
        links (tuple[DocumentationLink, ...] | None): Optional links.
        examples (tuple[LocalizedString, ...] | None): Optional example values.
    """

    model_config = _MODEL_CONFIG

    name: LocalizedString
    description: LocalizedString
    icon: str | None = None
    tags: tuple[str, ...] | None = None
    links: tuple[DocumentationLink, ...] | None = None
    examples: tuple[LocalizedString, ...] | None = None


class DataItem(BaseModel):
    """
    One typed field declared by a unit type.

    Attributes:
        id (str): Business identifier, unique within the unit type.
        type (str): Kind name resolved through the KindRegistry.
        documentation (DocumentationBlock): Defaults to an empty block.
        metadata (dict[str, Any] | None): Opaque item configuration; ``required``
            is read from it.
        status (dict[str, Any] | None): Opaque status configuration.
    """

    model_config = _MODEL_CONFIG

    id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    documentation: DocumentationBlock = Field(default_factory=_empty_documentation)
    metadata: dict[str, Any] | None = None
    status: dict[str, Any] | None = None

    @property
    def is_required(self) -> bool:
        return bool(self.metadata and self.metadata.get("required"))


class UnitType(BaseModel):
    """
    Unit type definition: an ordered list of typed data items plus documentation.

    Attributes:
        id (str): Business identifier.
        documentation (DocumentationBlock): Defaults to an empty block.
        items (tuple[DataItem, ...]): Ordered item declarations.
        metadata (dict[str, Any] | None): Opaque unit type configuration.
        status (dict[str, Any] | None): Opaque status configuration.

    Raises:
        pydantic.ValidationError: If two items share an id.
    """

    model_config = _MODEL_CONFIG

    id: str = Field(..., min_length=1)
    documentation: DocumentationBlock = Field(default_factory=_empty_documentation)
    items: tuple[DataItem, ...] = ()
    metadata: dict[str, Any] | None = None
    status: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _unique_item_ids(self) -> UnitType:
        seen: set[str] = set()
        for item in self.items:
            if item.id in seen:
                raise SchemaError(f'Duplicate data item id "{item.id}" in unit type "{self.id}"')
            seen.add(item.id)
        return self

    @property
    def item_ids(self) -> tuple[str, ...]:
        return tuple(item.id for item in self.items)

    def item(self, item_id: str) -> DataItem | None:
        """Return the item declared with ``item_id``, or None."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def definition(self) -> UnitType:
        """Return the plain definition (drops storage timestamps on subclasses)."""
        return UnitType(
            id=self.id,
            documentation=self.documentation,
            items=self.items,
            metadata=self.metadata,
            status=self.status,
        )


class _Timestamped(BaseModel):
    model_config = _MODEL_CONFIG

    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class StoredUnitType(UnitType, _Timestamped):
    """Unit type definition as read back from storage (business ids, timestamps)."""


# ============================================================================
# Records
# ============================================================================


class Unit(_Timestamped):
    """
    One record of a unit type.

    Attributes:
        id (str): Business identifier.
        unit_type_id (str): Business id of the unit type.
        values (BusinessValues): Dense map of item id -> decoded value (None when unset).
        metadata (JsonDict | None): Audit/status fields (``itemStatuses`` keyed by item id).
        created_at (datetime): Creation time (UTC).
        updated_at (datetime): Last update time (UTC).
    """

    id: str = Field(..., min_length=1)
    unit_type_id: str = Field(..., min_length=1)
    values: BusinessValues = Field(default_factory=dict)
    metadata: JsonDict | None = None


class CreateUnitInput(BaseModel):
    """Payload for creating a unit against a persisted unit type. ``id`` defaults to a generated id."""

    model_config = _MODEL_CONFIG

    unit_type_id: str = Field(..., min_length=1)
    id: str | None = None
    values: BusinessValues = Field(default_factory=dict)
    metadata: JsonDict | None = None


class CreateInlineUnitInput(BaseModel):
    """Payload for creating a unit against an inline (non-persisted) unit type."""

    model_config = _MODEL_CONFIG

    id: str | None = None
    values: BusinessValues = Field(default_factory=dict)
    metadata: JsonDict | None = None


class UpdateUnitPatch(BaseModel):
    """
    Partial update: values and metadata are shallow-merged onto the existing unit.

    Notes:
        An item set to None is cleared; an item left out is untouched.
    """

    model_config = _MODEL_CONFIG

    values: BusinessValues | None = None
    metadata: JsonDict | None = None


# ============================================================================
# Storage documents (technical ids)
# ============================================================================


class StoredDataItemDocument(BaseModel):
    """Persisted data item: technical id plus its current business id."""

    model_config = _MODEL_CONFIG

    id: str
    business_id: str
    type: str
    documentation: DocumentationBlock | None = None
    metadata: dict[str, Any] | None = None
    status: dict[str, Any] | None = None


class StoredUnitTypeDocument(_Timestamped):
    """Persisted unit type keyed by technical id."""

    id: str
    business_id: str
    documentation: DocumentationBlock
    items: tuple[StoredDataItemDocument, ...] = ()
    metadata: dict[str, Any] | None = None
    status: dict[str, Any] | None = None


class StoredUnitDocument(_Timestamped):
    """
    Persisted unit keyed by technical id.

    Attributes:
        id (str): Technical id.
        business_id (str): Caller-facing id.
        type_id (str): Technical id of the unit type.
        values (StoredValues): Technical item id -> encoded value.
        metadata (JsonDict | None): ``itemStatuses`` keyed by technical item id.
    """

    id: str
    business_id: str
    type_id: str
    values: StoredValues = Field(default_factory=dict)
    metadata: JsonDict | None = None

"""
Core package aggregator for crystaldb contracts (kinds, registry, schemas, record
codec, payload serialization, class binding).

## Contracts (single source of truth)
- Kinds: one codec per kind; validation, normalization, storage encoding.
- Registry: kind name -> codec, seeded with the built-in kinds per instance.
- Schemas: typed models for unit types, units, write inputs and storage documents.
- Record codec: schema-driven encode/decode of value maps with baseline merge.
- Serialization: untyped payload validation with field-level messages.
- Binding: explicit accessor mapping between application classes and unit types.

## Notes
- Zero-IO policy: stdlib + pydantic only; no file/network IO.
- Stored value maps only contain keys whose encoded value is not None.
- Unit values are keyed by business item ids here; crystaldb.io maps them to
  technical ids for storage.

## Examples
```python
from crystaldb.core import DataItem, RecordCodec, UnitType

ut = UnitType(id="task", items=[DataItem(id="progress", type="percentage")])
codec = RecordCodec()
codec.encode_values(ut, {"progress": 42.5})  # {'progress': 4250}
codec.decode_values(ut, {})  # {'progress': None}
```
"""

from __future__ import annotations

from .binding import UnitClassAccessors, UnitClassBinding, UnitClassExtraction, UnitClassRegistry
from .errors import (
    BindingError,
    DuplicateKindError,
    KindRangeError,
    KindValueError,
    MissingRequiredValueError,
    RegistryError,
    SchemaError,
    SchemaMismatchError,
    UnknownItemError,
    UnknownKindError,
)
from .kinds import BaseCodec, FunctionCodec, KindCodec
from .registry import KindRegistry
from .schema import (
    CreateInlineUnitInput,
    CreateUnitInput,
    DataItem,
    DocumentationBlock,
    DocumentationLink,
    StoredDataItemDocument,
    StoredUnitDocument,
    StoredUnitType,
    StoredUnitTypeDocument,
    Unit,
    UnitType,
    UpdateUnitPatch,
)
from .serialization import DeserializedUnitType, Serializer
from .values import RecordCodec

__all__ = [
    # Kinds / registry
    "KindCodec",
    "BaseCodec",
    "FunctionCodec",
    "KindRegistry",
    "RecordCodec",
    "Serializer",
    "DeserializedUnitType",
    # Schemas
    "DocumentationBlock",
    "DocumentationLink",
    "DataItem",
    "UnitType",
    "StoredUnitType",
    "Unit",
    "CreateUnitInput",
    "CreateInlineUnitInput",
    "UpdateUnitPatch",
    "StoredDataItemDocument",
    "StoredUnitTypeDocument",
    "StoredUnitDocument",
    # Binding
    "UnitClassAccessors",
    "UnitClassBinding",
    "UnitClassExtraction",
    "UnitClassRegistry",
    # Errors
    "KindValueError",
    "KindRangeError",
    "SchemaError",
    "UnknownItemError",
    "MissingRequiredValueError",
    "SchemaMismatchError",
    "RegistryError",
    "DuplicateKindError",
    "UnknownKindError",
    "BindingError",
]

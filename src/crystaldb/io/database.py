"""
CrystalDB: orchestration facade over a DatabaseAdapter.

Overview
- Persisted unit types: ``upsert_unit_type`` stores a definition under a technical id
  and gives each data item its own technical id. Units reference the technical type id
  and store values keyed by technical item ids, so business ids can be renamed without
  rewriting units.
- Inline unit types: the ``*_inline_*`` operations take a definition from code instead
  of the database; technical ids then equal business ids.
- Class bindings: ``create_instance``/``get_instance``/``list_instances`` read and write
  instances of classes registered in a UnitClassRegistry.

Write path (create/update)
1. Resolve the unit type (business -> technical item id maps).
2. Encode business values with the RecordCodec (update: merged onto the stored baseline).
3. Map item ids and ``metadata.itemStatuses`` keys to technical ids.
4. Build the resulting Unit and pass it to the validation handler, if any.
5. Issue exactly one adapter write.

Notes
- Lookups return None for missing units; writes against a missing unit type raise
  UnitTypeNotFoundError.
- Logged events carry ids only, never values.
"""

from __future__ import annotations

import copy
import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any, TypeVar

from crystaldb.core.binding import UnitClassAccessors, UnitClassBinding, UnitClassRegistry
from crystaldb.core.errors import BindingError, SchemaMismatchError, UnknownItemError
from crystaldb.core.registry import KindRegistry
from crystaldb.core.schema import (
    CreateInlineUnitInput,
    CreateUnitInput,
    DataItem,
    DocumentationBlock,
    StoredDataItemDocument,
    StoredUnitDocument,
    StoredUnitType,
    StoredUnitTypeDocument,
    Unit,
    UnitType,
    UnitWriteOperation,
    UpdateUnitPatch,
)
from crystaldb.core.serde import utc_now
from crystaldb.core.serialization import Serializer
from crystaldb.core.typing import BusinessValues, JsonDict, StoredValues
from crystaldb.core.values import RecordCodec
from crystaldb.observability.logging import get_logger

from .adapter import DatabaseAdapter
from .config import StoreSettings, build_adapter
from .errors import QueryError, UnitTypeNotFoundError
from .ids import IdFactory, new_technical_id
from .query import UnitListOptions, UnitListQuery

__all__ = ["CrystalDB", "ValidationContext", "ValidationHandler"]

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ValidationContext:
    """
    Passed to the validation handler before each write.

    Attributes:
        operation (UnitWriteOperation): "create" or "update".
        unit_type (StoredUnitType): Unit type the unit belongs to (business ids).
        unit (Unit): The unit as it will read back after the write.
    """

    operation: UnitWriteOperation
    unit_type: StoredUnitType
    unit: Unit


# Raising from the handler aborts the write.
ValidationHandler = Callable[[ValidationContext], Awaitable[None] | None]


@dataclass(frozen=True)
class _ResolvedUnitType:
    document: StoredUnitTypeDocument
    unit_type: StoredUnitType
    to_technical: dict[str, str]
    to_business: dict[str, str]


def _empty_documentation() -> DocumentationBlock:
    return DocumentationBlock(name={}, description={})


def _document_to_unit_type(document: StoredUnitTypeDocument) -> StoredUnitType:
    return StoredUnitType(
        id=document.business_id,
        documentation=document.documentation,
        items=tuple(
            DataItem(
                id=item.business_id,
                type=item.type,
                documentation=item.documentation or _empty_documentation(),
                metadata=item.metadata,
                status=item.status,
            )
            for item in document.items
        ),
        metadata=document.metadata,
        status=document.status,
        created_at=document.created_at,
        updated_at=document.updated_at,
    )


def _resolve(document: StoredUnitTypeDocument) -> _ResolvedUnitType:
    return _ResolvedUnitType(
        document=document,
        unit_type=_document_to_unit_type(document),
        to_technical={item.business_id: item.id for item in document.items},
        to_business={item.id: item.business_id for item in document.items},
    )


def _resolve_inline(definition: UnitType) -> _ResolvedUnitType:
    """Treat a definition from code as stored, with technical ids equal to business ids."""
    now = utc_now()
    document = StoredUnitTypeDocument(
        id=definition.id,
        business_id=definition.id,
        documentation=definition.documentation,
        items=tuple(
            StoredDataItemDocument(
                id=item.id,
                business_id=item.id,
                type=item.type,
                documentation=item.documentation,
                metadata=item.metadata,
                status=item.status,
            )
            for item in definition.items
        ),
        metadata=definition.metadata,
        status=definition.status,
        created_at=now,
        updated_at=now,
    )
    return _resolve(document)


def _coerce(model: type[T], data: Any) -> T:
    if isinstance(data, model):
        return data
    return model.model_validate(data)  # type: ignore[attr-defined]


class CrystalDB:
    """
    High-level entry point for unit types and units.

    Args:
        adapter (DatabaseAdapter): Storage adapter.
        registry (KindRegistry | None): Kind registry; built-in kinds when omitted.
        validation_handler (ValidationHandler | None): Called before every write.
        id_factory (IdFactory | None): Technical/business id generator.
        classes (UnitClassRegistry | None): Class bindings for the instance operations.
        default_limit (int | None): Limit applied to ``list_units`` when the options
            set none.

    Examples:
        >>> from crystaldb.io import CrystalDB, InMemoryDatabaseAdapter
        >>> db = CrystalDB(InMemoryDatabaseAdapter())
        >>> await db.initialize()  # doctest: +SKIP
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        *,
        registry: KindRegistry | None = None,
        validation_handler: ValidationHandler | None = None,
        id_factory: IdFactory | None = None,
        classes: UnitClassRegistry | None = None,
        default_limit: int | None = None,
    ) -> None:
        self.adapter = adapter
        self.registry = registry if registry is not None else KindRegistry()
        self.codec = RecordCodec(self.registry)
        self.serializer = Serializer(self.codec)
        self.classes = classes if classes is not None else UnitClassRegistry()
        self.default_limit = default_limit
        self._validation_handler = validation_handler
        self._new_id: IdFactory = id_factory or new_technical_id

    @classmethod
    def from_settings(cls, settings: StoreSettings | None = None, **kwargs: Any) -> CrystalDB:
        """Build a facade over the adapter selected by ``settings`` (loaded when omitted)."""
        settings = settings or StoreSettings.load()
        kwargs.setdefault("default_limit", settings.default_limit)
        return cls(build_adapter(settings), **kwargs)

    async def initialize(self) -> None:
        await self.adapter.initialize()

    def set_validation_handler(self, handler: ValidationHandler | None) -> None:
        """Install (or remove, with None) the handler called before every write."""
        self._validation_handler = handler

    # ------------------------------------------------------------------
    # Unit types
    # ------------------------------------------------------------------

    async def upsert_unit_type(self, definition: UnitType | Mapping[str, Any]) -> StoredUnitType:
        """
        Create or update a persisted unit type.

        The technical id of an existing document and of each existing item (matched by
        business id) is kept; new items get new technical ids. ``created_at`` is kept,
        ``updated_at`` is set to now.

        Args:
            definition (UnitType | Mapping[str, Any]): Definition, or an untyped payload
                validated through the Serializer.

        Raises:
            SchemaError: If an untyped payload is malformed.
            UnknownKindError: If an item's kind is not registered.
        """
        if not isinstance(definition, UnitType):
            definition = self.serializer.deserialize_unit_type(definition).unit_type
        for item in definition.items:
            self.registry.require(item.type)

        existing = await self.adapter.find_unit_type_by_business_id(definition.id)
        existing_items = {item.business_id: item for item in existing.items} if existing else {}
        now = utc_now()
        items = tuple(
            StoredDataItemDocument(
                id=existing_items[item.id].id if item.id in existing_items else self._new_id(),
                business_id=item.id,
                type=item.type,
                documentation=item.documentation,
                metadata=item.metadata,
                status=item.status,
            )
            for item in definition.items
        )
        document = StoredUnitTypeDocument(
            id=existing.id if existing else self._new_id(),
            business_id=definition.id,
            documentation=definition.documentation,
            items=items,
            metadata=definition.metadata,
            status=definition.status,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        await self.adapter.upsert_unit_type(document)
        logger.info(
            "unit_type_upserted",
            unit_type=definition.id,
            type_id=document.id,
            items=len(items),
            created=existing is None,
        )
        return _document_to_unit_type(document)

    async def get_unit_type_by_id(self, unit_type_id: str) -> StoredUnitType | None:
        """Persisted unit type by business id, or None."""
        document = await self.adapter.find_unit_type_by_business_id(unit_type_id)
        return _document_to_unit_type(document) if document else None

    # ------------------------------------------------------------------
    # Units (persisted unit types)
    # ------------------------------------------------------------------

    async def create_unit(self, data: CreateUnitInput | Mapping[str, Any]) -> Unit:
        """
        Create a unit of a persisted unit type.

        Raises:
            UnitTypeNotFoundError: If ``data.unit_type_id`` is not persisted.
            UnknownItemError: If a value targets an undeclared item.
            KindValueError: If a value does not match its kind.
            DuplicateDocumentError: If the business id is taken.
        """
        data = _coerce(CreateUnitInput, data)
        resolved = await self._resolve_business(data.unit_type_id)
        return await self._create(resolved, data.id, data.values, data.metadata)

    async def update_unit(
        self, unit_id: str, patch: UpdateUnitPatch | Mapping[str, Any]
    ) -> Unit | None:
        """
        Shallow-merge ``patch`` onto a stored unit; None when the unit does not exist.

        Values are merged onto the decoded current values and re-encoded against the
        stored map, so items set to None are cleared and items left out are untouched.
        """
        patch = _coerce(UpdateUnitPatch, patch)
        existing = await self.adapter.find_unit_by_business_id(unit_id)
        if existing is None:
            return None
        resolved = await self._resolve_technical(existing.type_id)
        return await self._update(resolved, existing, patch)

    async def get_unit_by_id(self, unit_id: str) -> Unit | None:
        stored = await self.adapter.find_unit_by_business_id(unit_id)
        if stored is None:
            return None
        resolved = await self._resolve_technical(stored.type_id)
        return self._build_unit(resolved, stored)

    async def list_units(
        self,
        unit_type_id: str,
        options: UnitListOptions | None = None,
        unit_type: UnitType | None = None,
    ) -> list[Unit]:
        """
        List units of one unit type.

        Args:
            unit_type_id (str): Business id of the unit type.
            options (UnitListOptions | None): Filters, order, pagination, search. Paths
                ``values.<itemId>`` and ``metadata.itemStatuses.<itemId>`` use business
                item ids.
            unit_type (UnitType | None): Inline definition used instead of the stored one.

        Raises:
            UnitTypeNotFoundError: If no inline definition is given and the type is not
                persisted.
            SchemaMismatchError: If ``unit_type.id`` differs from ``unit_type_id``.
            QueryError: If a path names an undeclared item or a filter is malformed.
        """
        if unit_type is not None:
            if unit_type.id != unit_type_id:
                raise SchemaMismatchError(
                    f'Provided unit type definition id "{unit_type.id}" does not match '
                    f'expected id "{unit_type_id}"'
                )
            resolved = _resolve_inline(unit_type)
        else:
            resolved = await self._resolve_business(unit_type_id)
        return await self._list(resolved, options)

    # ------------------------------------------------------------------
    # Units (inline unit types)
    # ------------------------------------------------------------------

    async def create_inline_unit(
        self, definition: UnitType, data: CreateInlineUnitInput | Mapping[str, Any]
    ) -> Unit:
        """Create a unit against a definition from code; the definition is not persisted."""
        data = _coerce(CreateInlineUnitInput, data)
        return await self._create(_resolve_inline(definition), data.id, data.values, data.metadata)

    async def update_inline_unit(
        self,
        definition: UnitType,
        unit_id: str,
        patch: UpdateUnitPatch | Mapping[str, Any],
    ) -> Unit | None:
        """
        Update a unit stored against an inline definition.

        Raises:
            SchemaMismatchError: If the stored unit references another unit type.
        """
        patch = _coerce(UpdateUnitPatch, patch)
        existing = await self.adapter.find_unit_by_business_id(unit_id)
        if existing is None:
            return None
        self._ensure_inline_match(existing, definition)
        return await self._update(_resolve_inline(definition), existing, patch)

    async def get_inline_unit_by_id(self, definition: UnitType, unit_id: str) -> Unit | None:
        """
        Read a unit stored against an inline definition.

        Raises:
            SchemaMismatchError: If the stored unit references another unit type.
        """
        stored = await self.adapter.find_unit_by_business_id(unit_id)
        if stored is None:
            return None
        self._ensure_inline_match(stored, definition)
        return self._build_unit(_resolve_inline(definition), stored)

    # ------------------------------------------------------------------
    # Class bindings
    # ------------------------------------------------------------------

    def register_class(
        self,
        unit_type: UnitType,
        cls: type,
        accessors: UnitClassAccessors | None = None,
        **kwargs: Any,
    ) -> UnitClassBinding:
        """Bind ``cls`` to ``unit_type`` in this facade's UnitClassRegistry."""
        return self.classes.register(unit_type, cls, accessors, **kwargs)

    async def create_instance(self, instance: T, *, inline: bool = False) -> T:
        """
        Create a unit from a bound instance and write the stored fields back onto it.

        Args:
            instance: Instance of a registered class.
            inline (bool): Use the bound definition instead of the persisted unit type.

        Raises:
            BindingError: If the instance's class is not registered.
            SchemaMismatchError: If the instance names another unit type.
        """
        binding = self.classes.require_instance(instance)
        extracted = binding.extract(instance)
        if extracted.unit_type_id != binding.unit_type.id:
            raise SchemaMismatchError(
                f'Instance unit type "{extracted.unit_type_id}" does not match registered '
                f'class "{binding.unit_type.id}"'
            )
        if inline:
            resolved = _resolve_inline(binding.unit_type)
        else:
            resolved = await self._resolve_business(binding.unit_type.id)
        unit = await self._create(resolved, extracted.id, extracted.values, extracted.metadata)
        binding.apply(unit, instance)
        return instance

    async def get_instance(self, cls: type[T], unit_id: str) -> T | None:
        """
        Read a unit as an instance of ``cls``; None when the unit does not exist.

        Raises:
            BindingError: If ``cls`` is not registered.
            SchemaMismatchError: If the stored unit belongs to another unit type.
        """
        binding = self._require_class(cls)
        stored = await self.adapter.find_unit_by_business_id(unit_id)
        if stored is None:
            return None
        document = await self.adapter.find_unit_type_by_id(stored.type_id)
        if document is not None:
            resolved = _resolve(document)
        elif stored.type_id == binding.unit_type.id:
            resolved = _resolve_inline(binding.unit_type)
        else:
            raise UnitTypeNotFoundError(f"Unit type with technical id {stored.type_id} not found")
        unit = self._build_unit(resolved, stored)
        if unit.unit_type_id != binding.unit_type.id:
            raise SchemaMismatchError(
                f'Stored unit type "{unit.unit_type_id}" does not match registered class '
                f'"{binding.unit_type.id}"'
            )
        return binding.instantiate(unit)

    async def list_instances(self, cls: type[T], options: UnitListOptions | None = None) -> list[T]:
        """List units of the class's unit type as instances (persisted type first, else inline)."""
        binding = self._require_class(cls)
        document = await self.adapter.find_unit_type_by_business_id(binding.unit_type.id)
        resolved = _resolve(document) if document else _resolve_inline(binding.unit_type)
        return [binding.instantiate(unit) for unit in await self._list(resolved, options)]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_class(self, cls: type) -> UnitClassBinding:
        binding = self.classes.for_class(cls)
        if binding is None:
            raise BindingError(f'Unit class "{cls.__name__}" is not registered for any unit type')
        return binding

    @staticmethod
    def _ensure_inline_match(stored: StoredUnitDocument, definition: UnitType) -> None:
        if stored.type_id != definition.id:
            raise SchemaMismatchError(
                f'Stored unit type "{stored.type_id}" does not match inline definition '
                f'"{definition.id}"'
            )

    async def _resolve_business(self, unit_type_id: str) -> _ResolvedUnitType:
        document = await self.adapter.find_unit_type_by_business_id(unit_type_id)
        if document is None:
            raise UnitTypeNotFoundError(f"Unit type {unit_type_id} not found")
        return _resolve(document)

    async def _resolve_technical(self, type_id: str) -> _ResolvedUnitType:
        document = await self.adapter.find_unit_type_by_id(type_id)
        if document is None:
            raise UnitTypeNotFoundError(f"Unit type with technical id {type_id} not found")
        return _resolve(document)

    async def _create(
        self,
        resolved: _ResolvedUnitType,
        unit_id: str | None,
        values: BusinessValues | None,
        metadata: JsonDict | None,
    ) -> Unit:
        now = utc_now()
        encoded = self.codec.encode_values(resolved.unit_type, values)
        document = StoredUnitDocument(
            id=self._new_id(),
            business_id=unit_id or self._new_id(),
            type_id=resolved.document.id,
            values=self._to_technical(resolved, encoded),
            metadata=self._store_metadata(resolved, metadata),
            created_at=now,
            updated_at=now,
        )
        unit = self._build_unit(resolved, document)
        await self._run_validation("create", resolved.unit_type, unit)
        await self.adapter.insert_unit(document)
        logger.info(
            "unit_created",
            unit_id=document.business_id,
            unit_type=resolved.unit_type.id,
            document_id=document.id,
        )
        return unit

    async def _update(
        self,
        resolved: _ResolvedUnitType,
        existing: StoredUnitDocument,
        patch: UpdateUnitPatch,
    ) -> Unit:
        current = self._build_unit(resolved, existing)
        merged_values = {**current.values, **patch.values} if patch.values else current.values
        baseline = self._to_business(resolved, existing.values)
        encoded = self.codec.encode_values(resolved.unit_type, merged_values, baseline)
        merged_metadata = (
            {**(current.metadata or {}), **patch.metadata} if patch.metadata else current.metadata
        )
        document = existing.model_copy(
            update={
                "values": self._to_technical(resolved, encoded),
                "metadata": self._store_metadata(resolved, merged_metadata),
                "updated_at": utc_now(),
            }
        )
        unit = self._build_unit(resolved, document)
        await self._run_validation("update", resolved.unit_type, unit)
        await self.adapter.replace_unit(document)
        logger.info("unit_updated", unit_id=document.business_id, unit_type=resolved.unit_type.id)
        return unit

    async def _list(
        self, resolved: _ResolvedUnitType, options: UnitListOptions | None
    ) -> list[Unit]:
        query = self._build_query(resolved, options)
        documents = await self.adapter.list_units(query)
        logger.debug("units_listed", unit_type=resolved.unit_type.id, count=len(documents))
        return [self._build_unit(resolved, document) for document in documents]

    def _build_query(
        self, resolved: _ResolvedUnitType, options: UnitListOptions | None
    ) -> UnitListQuery:
        opts = options or UnitListOptions()
        translated = replace(
            opts,
            filters={self._query_path(resolved, p): f for p, f in opts.filters.items()},
            order={self._query_path(resolved, p): d for p, d in opts.order.items()},
            limit=opts.limit if opts.limit and opts.limit > 0 else self.default_limit,
        )
        return UnitListQuery.from_options(resolved.document.id, translated)

    @staticmethod
    def _query_path(resolved: _ResolvedUnitType, path: str) -> str:
        """Rewrite business item ids in ``values.*``/``metadata.itemStatuses.*`` paths."""
        for prefix in ("values.", "metadata.itemStatuses."):
            if not path.startswith(prefix):
                continue
            item_id, dot, rest = path[len(prefix):].partition(".")
            technical = resolved.to_technical.get(item_id)
            if technical is None:
                raise QueryError(
                    f'Unknown data item "{item_id}" in query path "{path}" for unit type '
                    f'"{resolved.unit_type.id}"'
                )
            return f"{prefix}{technical}{dot}{rest}"
        return path

    def _build_unit(self, resolved: _ResolvedUnitType, document: StoredUnitDocument) -> Unit:
        return Unit(
            id=document.business_id,
            unit_type_id=resolved.unit_type.id,
            values=self.codec.decode_values(
                resolved.unit_type, self._to_business(resolved, document.values)
            ),
            metadata=self._load_metadata(resolved, document.metadata),
            created_at=document.created_at,
            updated_at=document.updated_at,
        )

    async def _run_validation(
        self, operation: UnitWriteOperation, unit_type: StoredUnitType, unit: Unit
    ) -> None:
        if self._validation_handler is None:
            return
        result = self._validation_handler(
            ValidationContext(operation=operation, unit_type=unit_type, unit=unit)
        )
        if inspect.isawaitable(result):
            await result

    # -- id mapping ---------------------------------------------------------

    @staticmethod
    def _to_technical(resolved: _ResolvedUnitType, values: StoredValues) -> StoredValues:
        out: StoredValues = {}
        for business_id, value in values.items():
            technical = resolved.to_technical.get(business_id)
            if technical is None:
                raise UnknownItemError(
                    f'Unknown data item "{business_id}" for unit type "{resolved.unit_type.id}"'
                )
            out[technical] = value
        return out

    @staticmethod
    def _to_business(resolved: _ResolvedUnitType, values: StoredValues | None) -> StoredValues:
        # Values of items removed from the unit type are dropped.
        return {
            resolved.to_business[technical]: value
            for technical, value in (values or {}).items()
            if technical in resolved.to_business
        }

    @staticmethod
    def _store_metadata(resolved: _ResolvedUnitType, metadata: JsonDict | None) -> JsonDict | None:
        return CrystalDB._map_statuses(metadata, resolved.to_technical)

    @staticmethod
    def _load_metadata(resolved: _ResolvedUnitType, metadata: JsonDict | None) -> JsonDict | None:
        return CrystalDB._map_statuses(metadata, resolved.to_business)

    @staticmethod
    def _map_statuses(metadata: JsonDict | None, mapping: dict[str, str]) -> JsonDict | None:
        """Copy ``metadata`` with ``itemStatuses`` keys mapped (unknown keys skipped)."""
        if metadata is None:
            return None
        out = copy.deepcopy(metadata)
        statuses = out.get("itemStatuses")
        if isinstance(statuses, Mapping):
            out["itemStatuses"] = {
                mapping[key]: status for key, status in statuses.items() if key in mapping
            }
        return out

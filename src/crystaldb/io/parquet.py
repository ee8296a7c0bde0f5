"""
Parquet-backed DatabaseAdapter.

Overview
- Two collections under ``root_dir``: ``unit_types.parquet`` and ``units.parquet``.
- Each write rewrites the whole collection: the Arrow table is written to a temporary
  file with pyarrow, fsynced, then atomically renamed over the previous file.
- Reads go through polars; documents are cached in memory after ``initialize`` and
  every lookup/list runs against the cache.

Layout
- Scalar identifiers are plain string columns (``id``, ``businessId``, ``typeId``).
- Nested fields (``documentation``, ``items``, ``values``, ``metadata``, ``status``)
  are canonical JSON string columns; null when absent.
- ``createdAt``/``updatedAt`` are ``timestamp[us, UTC]`` columns.
- Parquet key-value metadata records the collection name and layout version.

Notes
- Single-writer semantics (no inter-process locking).
- Values are never logged; events carry collection names, ids and row counts.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Iterable
from typing import Any

import polars as pl
import pyarrow as pa
import pyarrow.parquet as pq
from pydantic import BaseModel, ValidationError

from crystaldb.core.constants import COMPRESSION
from crystaldb.core.schema import StoredUnitDocument, StoredUnitTypeDocument
from crystaldb.core.serde import json_dumps_canonical, json_loads
from crystaldb.observability.logging import get_logger

from . import fs
from .adapter import DatabaseAdapter
from .errors import DuplicateDocumentError, StoreConfigError, StoreReadError
from .query import UnitListQuery, run_query

__all__ = ["ParquetDatabaseAdapter", "UNIT_TYPES_FILE", "UNITS_FILE", "LAYOUT_VERSION"]

logger = get_logger(__name__)

UNIT_TYPES_FILE = "unit_types.parquet"
UNITS_FILE = "units.parquet"
LAYOUT_VERSION = "1"

_TIMESTAMP = pa.timestamp("us", tz="UTC")

_UNIT_TYPE_SCHEMA = pa.schema(
    [
        ("id", pa.string()),
        ("businessId", pa.string()),
        ("documentation", pa.string()),
        ("items", pa.string()),
        ("metadata", pa.string()),
        ("status", pa.string()),
        ("createdAt", _TIMESTAMP),
        ("updatedAt", _TIMESTAMP),
    ]
)

_UNIT_SCHEMA = pa.schema(
    [
        ("id", pa.string()),
        ("businessId", pa.string()),
        ("typeId", pa.string()),
        ("values", pa.string()),
        ("metadata", pa.string()),
        ("createdAt", _TIMESTAMP),
        ("updatedAt", _TIMESTAMP),
    ]
)

_JSON_COLUMNS = {
    "unit_types": ("documentation", "items", "metadata", "status"),
    "units": ("values", "metadata"),
}


def _to_row(document: BaseModel, schema: pa.Schema, json_columns: tuple[str, ...]) -> dict[str, Any]:
    """Flatten a stored document into one Arrow row (nested fields as canonical JSON)."""
    dumped = document.model_dump(by_alias=True, mode="json")
    row: dict[str, Any] = {}
    for name in schema.names:
        if name in ("createdAt", "updatedAt"):
            row[name] = getattr(document, "created_at" if name == "createdAt" else "updated_at")
        elif name in json_columns:
            value = dumped.get(name)
            row[name] = None if value is None else json_dumps_canonical(value)
        else:
            row[name] = dumped[name]
    return row


def _from_row(row: dict[str, Any], json_columns: tuple[str, ...], path: str) -> dict[str, Any]:
    """Inverse of ``_to_row``: parse JSON columns back into nested values."""
    out = dict(row)
    for name in json_columns:
        raw = out.get(name)
        if raw is None:
            out.pop(name, None)
            continue
        try:
            out[name] = json_loads(raw)
        except ValueError as exc:
            raise StoreReadError(f"malformed JSON in column {name!r} of {path}: {exc}") from exc
    return out


class ParquetDatabaseAdapter(DatabaseAdapter):
    """
    DatabaseAdapter persisting each collection as a single Parquet file.

    Args:
        root_dir (str | os.PathLike[str]): Directory holding the collection files.
        compression (str): Parquet compression codec passed to pyarrow.

    Raises:
        StoreConfigError: If ``root_dir`` is empty.

    Examples:
        >>> adapter = ParquetDatabaseAdapter("data")  # doctest: +SKIP
        >>> await adapter.initialize()  # doctest: +SKIP
    """

    def __init__(self, root_dir: str | os.PathLike[str], *, compression: str = COMPRESSION) -> None:
        root = os.fspath(root_dir)
        if not root:
            raise StoreConfigError("parquet backend requires a root directory")
        self.root_dir = root
        self.compression = compression
        self._unit_types: dict[str, StoredUnitTypeDocument] = {}
        self._units: dict[str, StoredUnitDocument] = {}
        self._loaded = False

    @property
    def unit_types_path(self) -> str:
        return os.path.join(self.root_dir, UNIT_TYPES_FILE)

    @property
    def units_path(self) -> str:
        return os.path.join(self.root_dir, UNITS_FILE)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create ``root_dir`` and load both collections into memory."""
        fs.makedirs(self.root_dir)
        unit_types = self._read_collection(
            self.unit_types_path, _UNIT_TYPE_SCHEMA, "unit_types", StoredUnitTypeDocument
        )
        units = self._read_collection(self.units_path, _UNIT_SCHEMA, "units", StoredUnitDocument)
        self._unit_types = {doc.business_id: doc for doc in unit_types}
        self._units = {doc.business_id: doc for doc in units}
        self._loaded = True
        logger.info(
            "parquet_store_loaded",
            root_dir=self.root_dir,
            unit_types=len(self._unit_types),
            units=len(self._units),
        )

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self.initialize()

    def _read_collection(
        self,
        path: str,
        schema: pa.Schema,
        collection: str,
        model: type[BaseModel],
    ) -> list[Any]:
        if not fs.exists(path):
            return []
        try:
            frame = pl.read_parquet(path)
        except (OSError, pl.exceptions.PolarsError) as exc:
            raise StoreReadError(f"failed to read {path}: {exc}") from exc
        missing = [name for name in schema.names if name not in frame.columns]
        if missing:
            raise StoreReadError(f"{path} is missing columns {missing}")
        documents = []
        json_columns = _JSON_COLUMNS[collection]
        for row in frame.select(schema.names).iter_rows(named=True):
            payload = _from_row(row, json_columns, path)
            try:
                documents.append(model.model_validate(payload))
            except ValidationError as exc:
                raise StoreReadError(f"invalid {collection} document in {path}: {exc}") from exc
        logger.debug("parquet_collection_read", collection=collection, path=path, rows=len(documents))
        return documents

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def _build_table(
        self, documents: Iterable[BaseModel], schema: pa.Schema, collection: str
    ) -> pa.Table:
        rows = [_to_row(doc, schema, _JSON_COLUMNS[collection]) for doc in documents]
        table = pa.Table.from_pylist(rows, schema=schema)
        meta = dict(table.schema.metadata or {})
        meta.update(
            {
                b"crystaldb_collection": collection.encode("utf-8"),
                b"crystaldb_layout_version": LAYOUT_VERSION.encode("utf-8"),
            }
        )
        return table.replace_schema_metadata(meta)

    def _write_table(self, table: pa.Table, path: str) -> None:
        fs.write_atomic(
            path,
            lambda tmp: pq.write_table(table, tmp, compression=self.compression),
        )

    async def _flush(self, collection: str) -> None:
        if collection == "unit_types":
            table = self._build_table(self._unit_types.values(), _UNIT_TYPE_SCHEMA, collection)
            path = self.unit_types_path
        else:
            table = self._build_table(self._units.values(), _UNIT_SCHEMA, collection)
            path = self.units_path
        await asyncio.to_thread(self._write_table, table, path)
        logger.info("parquet_collection_written", collection=collection, path=path, rows=table.num_rows)

    # ------------------------------------------------------------------
    # DatabaseAdapter
    # ------------------------------------------------------------------

    async def upsert_unit_type(self, document: StoredUnitTypeDocument) -> StoredUnitTypeDocument:
        """Insert or replace a unit type document, keyed by business id."""
        await self._ensure_loaded()
        previous = self._unit_types.get(document.business_id)
        self._unit_types[document.business_id] = document
        try:
            await self._flush("unit_types")
        except Exception:
            if previous is None:
                self._unit_types.pop(document.business_id, None)
            else:
                self._unit_types[document.business_id] = previous
            raise
        return document

    async def find_unit_type_by_business_id(
        self, business_id: str
    ) -> StoredUnitTypeDocument | None:
        await self._ensure_loaded()
        return self._unit_types.get(business_id)

    async def find_unit_type_by_id(self, type_id: str) -> StoredUnitTypeDocument | None:
        await self._ensure_loaded()
        for document in self._unit_types.values():
            if document.id == type_id:
                return document
        return None

    async def insert_unit(self, document: StoredUnitDocument) -> StoredUnitDocument:
        """Insert a new unit document and rewrite the units collection."""
        await self._ensure_loaded()
        if document.business_id in self._units:
            raise DuplicateDocumentError(f'Unit "{document.business_id}" already exists')
        if any(existing.id == document.id for existing in self._units.values()):
            raise DuplicateDocumentError(f'Unit document id "{document.id}" already exists')
        self._units[document.business_id] = document
        try:
            await self._flush("units")
        except Exception:
            self._units.pop(document.business_id, None)
            raise
        return document

    async def replace_unit(self, document: StoredUnitDocument) -> StoredUnitDocument:
        """Replace the unit document with the same business id and rewrite the collection."""
        await self._ensure_loaded()
        previous = self._units.get(document.business_id)
        self._units[document.business_id] = document
        try:
            await self._flush("units")
        except Exception:
            if previous is None:
                self._units.pop(document.business_id, None)
            else:
                self._units[document.business_id] = previous
            raise
        return document

    async def find_unit_by_business_id(self, business_id: str) -> StoredUnitDocument | None:
        await self._ensure_loaded()
        return self._units.get(business_id)

    async def find_unit_by_id(self, unit_id: str) -> StoredUnitDocument | None:
        await self._ensure_loaded()
        for document in self._units.values():
            if document.id == unit_id:
                return document
        return None

    async def list_units(self, query: UnitListQuery) -> list[StoredUnitDocument]:
        await self._ensure_loaded()
        return run_query(list(self._units.values()), query)

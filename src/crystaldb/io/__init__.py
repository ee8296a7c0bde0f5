"""
crystaldb.io - Storage layer: adapters, list queries and the CrystalDB facade.

## Responsibilities
- Define the async DatabaseAdapter boundary and two implementations: an in-memory
  adapter for tests/development and a Parquet adapter (pyarrow writes, polars reads).
- Evaluate list queries (filters, order, search, pagination) with polars expressions.
- Orchestrate unit type/unit writes in CrystalDB: encode values, map business ids to
  technical ids, run the validation handler, issue one adapter write.

## Public API
- StoreSettings, build_adapter - configuration (env > TOML > defaults).
- DatabaseAdapter, InMemoryDatabaseAdapter, ParquetDatabaseAdapter - storage.
- UnitListOptions, UnitListQuery, QueryFilter - list queries.
- CrystalDB, ValidationContext - facade.

## Import DAG discipline
- Depends on stdlib, polars/pyarrow, structlog (via crystaldb.observability) and
  crystaldb.core.*; crystaldb.core never imports this package.

## Examples
```python
from crystaldb.core import DataItem, UnitType
from crystaldb.io import CrystalDB, InMemoryDatabaseAdapter

db = CrystalDB(InMemoryDatabaseAdapter())
await db.initialize()  # doctest: +SKIP
await db.upsert_unit_type(  # doctest: +SKIP
    UnitType(id="task", items=[DataItem(id="progress", type="percentage")])
)
unit = await db.create_unit({"unit_type_id": "task", "values": {"progress": 50}})  # doctest: +SKIP
```

## Notes
- Parquet write path: tmp parquet → fsync → os.replace(tmp, final), whole collection
  per write, single writer.
- Lookups return None; writes against a missing unit type raise UnitTypeNotFoundError.
"""

from __future__ import annotations

from .adapter import DatabaseAdapter
from .config import StoreSettings, build_adapter
from .database import CrystalDB, ValidationContext, ValidationHandler
from .errors import (
    DuplicateDocumentError,
    QueryError,
    StoreConfigError,
    StoreError,
    StoreReadError,
    StoreWriteError,
    UnitTypeNotFoundError,
)
from .memory import InMemoryDatabaseAdapter
from .parquet import ParquetDatabaseAdapter
from .query import QueryFilter, UnitListOptions, UnitListQuery

__all__ = [
    "StoreSettings",
    "build_adapter",
    "DatabaseAdapter",
    "InMemoryDatabaseAdapter",
    "ParquetDatabaseAdapter",
    "QueryFilter",
    "UnitListOptions",
    "UnitListQuery",
    "CrystalDB",
    "ValidationContext",
    "ValidationHandler",
    "StoreError",
    "StoreConfigError",
    "StoreWriteError",
    "StoreReadError",
    "DuplicateDocumentError",
    "UnitTypeNotFoundError",
    "QueryError",
]

"""Tests for ParquetDatabaseAdapter."""

import os
from datetime import UTC, datetime

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from crystaldb.core.schema import (
    DocumentationBlock,
    StoredDataItemDocument,
    StoredUnitDocument,
    StoredUnitTypeDocument,
)
from crystaldb.io.errors import DuplicateDocumentError, StoreConfigError, StoreReadError
from crystaldb.io.parquet import UNIT_TYPES_FILE, UNITS_FILE, ParquetDatabaseAdapter
from crystaldb.io.query import QueryFilter, UnitListQuery

T0 = datetime(2024, 5, 1, 8, 30, tzinfo=UTC)


@pytest.fixture
def root(tmp_path):
    """Directory for the parquet collections (created by initialize)."""
    return str(tmp_path / "store")


@pytest.fixture
def type_document():
    """Create a stored unit type document with documentation and metadata."""
    return StoredUnitTypeDocument(
        id="t-1",
        business_id="task",
        documentation=DocumentationBlock(
            name={"en": "Task", "fr": "Tâche"}, description="Work item", tags=["ops"]
        ),
        items=[
            StoredDataItemDocument(id="i-1", business_id="title", type="string"),
            StoredDataItemDocument(
                id="i-2", business_id="progress", type="percentage", metadata={"min": 0}
            ),
        ],
        metadata={"owner": "ops"},
        created_at=T0,
        updated_at=T0,
    )


def _unit(n: int, values: dict, metadata: dict | None = None) -> StoredUnitDocument:
    return StoredUnitDocument(
        id=f"u-{n}",
        business_id=f"unit-{n}",
        type_id="t-1",
        values=values,
        metadata=metadata,
        created_at=T0,
        updated_at=T0,
    )


class TestParquetRoundTrip:
    """Tests for persistence across adapter instances."""

    @pytest.mark.asyncio
    async def test_documents_survive_reload(self, root, type_document):
        """Should read back the same documents from a fresh adapter."""
        adapter = ParquetDatabaseAdapter(root)
        await adapter.initialize()
        unit = _unit(
            1,
            {"i-1": "write docs", "i-2": 4250},
            metadata={"itemStatuses": {"i-1": {"state": "ok"}}},
        )
        await adapter.upsert_unit_type(type_document)
        await adapter.insert_unit(unit)
        await adapter.insert_unit(_unit(2, {"i-1": "review"}))

        assert os.path.exists(os.path.join(root, UNIT_TYPES_FILE))
        assert os.path.exists(os.path.join(root, UNITS_FILE))

        reloaded = ParquetDatabaseAdapter(root)
        await reloaded.initialize()

        assert await reloaded.find_unit_type_by_id("t-1") == type_document
        found = await reloaded.find_unit_by_business_id("unit-1")
        assert found == unit
        assert found.created_at == T0
        assert (await reloaded.find_unit_by_id("u-2")).values == {"i-1": "review"}

    @pytest.mark.asyncio
    async def test_replace_is_persisted(self, root):
        """Should persist replaced documents."""
        adapter = ParquetDatabaseAdapter(root, compression="snappy")
        await adapter.initialize()
        await adapter.insert_unit(_unit(1, {"i-1": "a"}))
        await adapter.replace_unit(_unit(1, {"i-1": "b"}))

        reloaded = ParquetDatabaseAdapter(root)
        await reloaded.initialize()
        assert (await reloaded.find_unit_by_business_id("unit-1")).values == {"i-1": "b"}

    @pytest.mark.asyncio
    async def test_lookups_load_lazily(self, root, type_document):
        """Should load the collections on first use without an explicit initialize."""
        writer = ParquetDatabaseAdapter(root)
        await writer.upsert_unit_type(type_document)

        reader = ParquetDatabaseAdapter(root)
        assert await reader.find_unit_type_by_business_id("task") == type_document

    @pytest.mark.asyncio
    async def test_file_carries_collection_metadata(self, root):
        """Should tag each file with its collection name and layout version."""
        adapter = ParquetDatabaseAdapter(root)
        await adapter.insert_unit(_unit(1, {"i-1": "a"}))

        meta = pq.read_schema(os.path.join(root, UNITS_FILE)).metadata
        assert meta[b"crystaldb_collection"] == b"units"
        assert meta[b"crystaldb_layout_version"] == b"1"


class TestParquetBehaviour:
    """Tests for adapter semantics shared with the in-memory adapter."""

    @pytest.mark.asyncio
    async def test_duplicate_insert_leaves_store_unchanged(self, root):
        """Should reject duplicates and keep the original document."""
        adapter = ParquetDatabaseAdapter(root)
        await adapter.initialize()
        await adapter.insert_unit(_unit(1, {"i-1": "a"}))

        with pytest.raises(DuplicateDocumentError):
            await adapter.insert_unit(_unit(1, {"i-1": "b"}))

        reloaded = ParquetDatabaseAdapter(root)
        await reloaded.initialize()
        assert (await reloaded.find_unit_by_business_id("unit-1")).values == {"i-1": "a"}

    @pytest.mark.asyncio
    async def test_list_units(self, root):
        """Should evaluate queries over the cached documents."""
        adapter = ParquetDatabaseAdapter(root)
        await adapter.initialize()
        await adapter.insert_unit(_unit(1, {"i-2": 1000}))
        await adapter.insert_unit(_unit(2, {"i-2": 9000}))

        query = UnitListQuery(type_id="t-1", filters={"values.i-2": QueryFilter(5000, "gt")})
        assert [doc.business_id for doc in await adapter.list_units(query)] == ["unit-2"]

    def test_empty_root_is_rejected(self):
        """Should require a root directory."""
        with pytest.raises(StoreConfigError):
            ParquetDatabaseAdapter("")


class TestParquetReadErrors:
    """Tests for unreadable collections."""

    @pytest.mark.asyncio
    async def test_missing_columns(self, root):
        """Should reject a file without the expected columns."""
        os.makedirs(root)
        pq.write_table(pa.table({"id": ["u-1"]}), os.path.join(root, UNITS_FILE))

        with pytest.raises(StoreReadError, match="missing columns"):
            await ParquetDatabaseAdapter(root).initialize()

    @pytest.mark.asyncio
    async def test_malformed_json(self, root):
        """Should reject a JSON column that does not parse."""
        os.makedirs(root)
        ts = pa.array([T0], type=pa.timestamp("us", tz="UTC"))
        table = pa.table(
            {
                "id": ["u-1"],
                "businessId": ["unit-1"],
                "typeId": ["t-1"],
                "values": ["{not json"],
                "metadata": pa.array([None], type=pa.string()),
                "createdAt": ts,
                "updatedAt": ts,
            }
        )
        pq.write_table(table, os.path.join(root, UNITS_FILE))

        with pytest.raises(StoreReadError, match="malformed JSON"):
            await ParquetDatabaseAdapter(root).initialize()

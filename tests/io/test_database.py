"""Tests for the CrystalDB facade over both adapters."""

from datetime import UTC, datetime

import pytest
import pytest_asyncio
from structlog.testing import capture_logs

from crystaldb.core.errors import (
    BindingError,
    KindValueError,
    SchemaMismatchError,
    UnknownItemError,
    UnknownKindError,
)
from crystaldb.core.schema import DataItem, UnitType
from crystaldb.io.config import StoreSettings
from crystaldb.io.database import CrystalDB, ValidationContext
from crystaldb.io.errors import QueryError, UnitTypeNotFoundError
from crystaldb.io.memory import InMemoryDatabaseAdapter
from crystaldb.io.parquet import ParquetDatabaseAdapter
from crystaldb.io.query import QueryFilter, UnitListOptions


class Person:
    """Plain class bound to the person unit type."""


class Robot:
    """Never registered."""


@pytest.fixture(params=["memory", "parquet"])
def adapter(request, tmp_path):
    """Each facade test runs against both adapters."""
    if request.param == "memory":
        return InMemoryDatabaseAdapter()
    return ParquetDatabaseAdapter(tmp_path / "store")


@pytest_asyncio.fixture
async def db(adapter, sequential_ids):
    """Initialized facade with deterministic ids."""
    facade = CrystalDB(adapter, id_factory=sequential_ids)
    await facade.initialize()
    return facade


@pytest_asyncio.fixture
async def task_db(db, task_type):
    """Facade with the task unit type persisted."""
    await db.upsert_unit_type(task_type)
    return db


async def _create_tasks(db: CrystalDB) -> None:
    rows = [
        ("t-1", {"title": "Write docs", "estimate": 3, "status": "open"}),
        ("t-2", {"title": "Fix bug", "estimate": 8, "status": "closed"}),
        ("t-3", {"title": "Review", "status": "open"}),
        ("ALPHA-9", {"title": "Plan", "estimate": 5}),
    ]
    for unit_id, values in rows:
        await db.create_unit({"unitTypeId": "task", "id": unit_id, "values": values})


class TestUnitTypes:
    """Tests for persisted unit types."""

    @pytest.mark.asyncio
    async def test_upsert_returns_business_view(self, db, task_type):
        """Should return the stored definition keyed by business ids."""
        stored = await db.upsert_unit_type(task_type)

        assert stored.id == "task"
        assert [item.id for item in stored.items] == [item.id for item in task_type.items]
        assert stored.created_at == stored.updated_at
        assert await db.get_unit_type_by_id("task") == stored
        assert await db.get_unit_type_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_reupsert_keeps_technical_ids(self, db, person_type):
        """Should keep the document id, existing item ids and created_at."""
        first = await db.upsert_unit_type(person_type)
        before = await db.adapter.find_unit_type_by_business_id("person")

        extended = UnitType(
            id="person",
            items=[
                DataItem(id="age", type="number"),
                DataItem(id="name", type="string"),
                DataItem(id="email", type="string"),
            ],
        )
        second = await db.upsert_unit_type(extended)
        after = await db.adapter.find_unit_type_by_business_id("person")

        assert after.id == before.id
        old_ids = {item.business_id: item.id for item in before.items}
        new_ids = {item.business_id: item.id for item in after.items}
        assert new_ids["name"] == old_ids["name"]
        assert new_ids["age"] == old_ids["age"]
        assert new_ids["email"] not in old_ids.values()
        assert second.created_at == first.created_at
        assert second.updated_at >= first.updated_at

    @pytest.mark.asyncio
    async def test_upsert_accepts_untyped_payload(self, db):
        """Should validate a mapping through the serializer."""
        stored = await db.upsert_unit_type(
            {
                "id": "note",
                "documentation": {"name": "Note", "description": "Short text"},
                "items": [
                    {
                        "id": "body",
                        "type": "markdown",
                        "documentation": {"name": "Body", "description": ""},
                    }
                ],
            }
        )
        assert stored.items[0].type == "markdown"

    @pytest.mark.asyncio
    async def test_upsert_rejects_unknown_kinds(self, db):
        """Should refuse items whose kind is not registered."""
        bad = UnitType(id="bad", items=[DataItem(id="x", type="hologram")])
        with pytest.raises(UnknownKindError):
            await db.upsert_unit_type(bad)
        assert await db.get_unit_type_by_id("bad") is None


class TestUnits:
    """Tests for units of persisted unit types."""

    @pytest.mark.asyncio
    async def test_create_encodes_and_maps_ids(self, task_db):
        """Should store values under technical item ids in their stored form."""
        unit = await task_db.create_unit(
            {
                "unitTypeId": "task",
                "id": "t-1",
                "values": {"title": "Write docs", "progress": {"value": 42.5}, "done": "true"},
            }
        )

        assert unit.id == "t-1"
        assert unit.unit_type_id == "task"
        assert unit.values == {
            "title": "Write docs",
            "progress": {"value": 42.5},
            "estimate": None,
            "done": True,
            "due": None,
            "status": None,
        }

        type_doc = await task_db.adapter.find_unit_type_by_business_id("task")
        ids = {item.business_id: item.id for item in type_doc.items}
        stored = await task_db.adapter.find_unit_by_business_id("t-1")
        assert stored.type_id == type_doc.id
        assert stored.id != "t-1"
        assert stored.values == {ids["title"]: "Write docs", ids["progress"]: 4250, ids["done"]: True}
        assert await task_db.get_unit_by_id("t-1") == unit

    @pytest.mark.asyncio
    async def test_create_generates_business_id(self, task_db):
        """Should generate a business id when none is given."""
        unit = await task_db.create_unit({"unitTypeId": "task", "values": {"title": "x"}})
        assert unit.id.startswith("id-")
        assert await task_db.get_unit_by_id(unit.id) == unit

    @pytest.mark.asyncio
    async def test_create_errors(self, task_db):
        """Should reject unknown unit types, unknown items and invalid values."""
        with pytest.raises(UnitTypeNotFoundError, match="Unit type ghost not found"):
            await task_db.create_unit({"unitTypeId": "ghost", "values": {}})
        with pytest.raises(UnknownItemError, match='Unknown data item "color"'):
            await task_db.create_unit({"unitTypeId": "task", "values": {"color": "red"}})
        with pytest.raises(KindValueError):
            await task_db.create_unit({"unitTypeId": "task", "values": {"estimate": "lots"}})
        assert await task_db.list_units("task") == []

    @pytest.mark.asyncio
    async def test_item_statuses_use_business_ids(self, task_db):
        """Should map itemStatuses keys and skip undeclared ones."""
        unit = await task_db.create_unit(
            {
                "unitTypeId": "task",
                "id": "t-1",
                "values": {"title": "x"},
                "metadata": {
                    "createdBy": "ops",
                    "itemStatuses": {"title": {"state": "draft"}, "ghost": {"state": "?"}},
                },
            }
        )
        assert unit.metadata == {"createdBy": "ops", "itemStatuses": {"title": {"state": "draft"}}}

        type_doc = await task_db.adapter.find_unit_type_by_business_id("task")
        title_id = next(item.id for item in type_doc.items if item.business_id == "title")
        stored = await task_db.adapter.find_unit_by_business_id("t-1")
        assert stored.metadata["itemStatuses"] == {title_id: {"state": "draft"}}

    @pytest.mark.asyncio
    async def test_update_merges_values_and_metadata(self, task_db):
        """Should merge the patch onto stored values; None clears an item."""
        created = await task_db.create_unit(
            {
                "unitTypeId": "task",
                "id": "t-1",
                "values": {"title": "Write", "progress": {"value": 10}, "estimate": 2},
                "metadata": {"createdBy": "ops"},
            }
        )

        updated = await task_db.update_unit(
            "t-1",
            {"values": {"progress": None, "estimate": 5}, "metadata": {"reviewed": True}},
        )

        assert updated.values["title"] == "Write"
        assert updated.values["progress"] is None
        assert updated.values["estimate"] == 5
        assert updated.metadata == {"createdBy": "ops", "reviewed": True}
        assert updated.created_at == created.created_at
        assert updated.updated_at >= created.updated_at
        assert await task_db.get_unit_by_id("t-1") == updated

    @pytest.mark.asyncio
    async def test_update_missing_unit_returns_none(self, task_db):
        """Should return None when the unit does not exist."""
        assert await task_db.update_unit("nope", {"values": {"title": "x"}}) is None
        assert await task_db.get_unit_by_id("nope") is None

    @pytest.mark.asyncio
    async def test_values_of_removed_items_are_dropped(self, task_db, task_type):
        """Should drop values of items removed from the unit type."""
        await task_db.create_unit(
            {"unitTypeId": "task", "id": "t-1", "values": {"title": "x", "estimate": 4}}
        )
        trimmed = task_type.model_copy(
            update={"items": tuple(i for i in task_type.items if i.id != "estimate")}
        )
        await task_db.upsert_unit_type(trimmed)

        unit = await task_db.get_unit_by_id("t-1")
        assert unit.values["title"] == "x"
        assert "estimate" not in unit.values

    @pytest.mark.asyncio
    async def test_write_events_are_logged_without_values(self, task_db):
        """Should log ids only."""
        with capture_logs() as logs:
            await task_db.create_unit(
                {"unitTypeId": "task", "id": "t-1", "values": {"title": "secret"}}
            )
        created = [entry for entry in logs if entry["event"] == "unit_created"]
        assert len(created) == 1
        assert created[0]["unit_id"] == "t-1"
        assert created[0]["unit_type"] == "task"
        assert "secret" not in repr(logs)


class TestValidationHandler:
    """Tests for the validation hook."""

    @pytest.mark.asyncio
    async def test_handler_sees_create_and_update(self, task_db):
        """Should call the handler with the unit as it will read back."""
        seen: list[ValidationContext] = []
        task_db.set_validation_handler(seen.append)

        await task_db.create_unit({"unitTypeId": "task", "id": "t-1", "values": {"title": "a"}})
        await task_db.update_unit("t-1", {"values": {"title": "b"}})

        assert [ctx.operation for ctx in seen] == ["create", "update"]
        assert seen[0].unit_type.id == "task"
        assert seen[0].unit.values["title"] == "a"
        assert seen[1].unit.values["title"] == "b"

    @pytest.mark.asyncio
    async def test_raising_handler_aborts_write(self, task_db):
        """Should not write when the handler raises."""

        async def reject_empty_titles(ctx: ValidationContext) -> None:
            if not ctx.unit.values["title"]:
                raise ValueError("title is required")

        task_db.set_validation_handler(reject_empty_titles)
        with pytest.raises(ValueError, match="title is required"):
            await task_db.create_unit({"unitTypeId": "task", "id": "t-1", "values": {}})
        assert await task_db.get_unit_by_id("t-1") is None

        await task_db.create_unit({"unitTypeId": "task", "id": "t-2", "values": {"title": "ok"}})
        with pytest.raises(ValueError):
            await task_db.update_unit("t-2", {"values": {"title": None}})
        assert (await task_db.get_unit_by_id("t-2")).values["title"] == "ok"

        task_db.set_validation_handler(None)
        await task_db.update_unit("t-2", {"values": {"title": None}})
        assert (await task_db.get_unit_by_id("t-2")).values["title"] is None


class TestListUnits:
    """Tests for list_units."""

    @pytest.mark.asyncio
    async def test_filters_use_business_item_ids(self, task_db):
        """Should translate values.<itemId> paths."""
        await _create_tasks(task_db)

        options = UnitListOptions(
            filters={"values.estimate": QueryFilter(4, "gte")},
            order={"values.estimate": "desc"},
        )
        result = await task_db.list_units("task", options)
        assert [unit.id for unit in result] == ["t-2", "ALPHA-9"]

        options = UnitListOptions(filters={"values.status.key": "open"})
        assert [unit.id for unit in await task_db.list_units("task", options)] == ["t-1", "t-3"]

    @pytest.mark.asyncio
    async def test_search_and_pagination(self, task_db):
        """Should search ids and paginate after sorting."""
        await _create_tasks(task_db)

        found = await task_db.list_units("task", UnitListOptions(search="alpha"))
        assert [unit.id for unit in found] == ["ALPHA-9"]

        page = await task_db.list_units(
            "task", UnitListOptions(order={"values.title": "asc"}, offset=1, limit=2)
        )
        assert [unit.values["title"] for unit in page] == ["Plan", "Review"]

    @pytest.mark.asyncio
    async def test_default_limit(self, adapter, task_type, sequential_ids):
        """Should cap results with default_limit unless the options set a limit."""
        db = CrystalDB(adapter, id_factory=sequential_ids, default_limit=2)
        await db.initialize()
        await db.upsert_unit_type(task_type)
        await _create_tasks(db)

        assert len(await db.list_units("task")) == 2
        assert len(await db.list_units("task", UnitListOptions(limit=3))) == 3
        assert len(await db.list_units("task", UnitListOptions(limit=0))) == 2

    @pytest.mark.asyncio
    async def test_unknown_item_in_path(self, task_db):
        """Should reject paths naming undeclared items."""
        with pytest.raises(QueryError, match='Unknown data item "color"'):
            await task_db.list_units("task", UnitListOptions(filters={"values.color": "red"}))

    @pytest.mark.asyncio
    async def test_unknown_unit_type(self, db):
        """Should raise for an unknown unit type without inline definition."""
        with pytest.raises(UnitTypeNotFoundError):
            await db.list_units("ghost")

    @pytest.mark.asyncio
    async def test_inline_definition_must_match(self, db, person_type):
        """Should reject an inline definition with another id."""
        with pytest.raises(SchemaMismatchError, match='does not match expected id "task"'):
            await db.list_units("task", unit_type=person_type)


class TestInlineUnits:
    """Tests for units of inline unit types."""

    @pytest.mark.asyncio
    async def test_create_get_update_list(self, db, person_type):
        """Should store values keyed by business ids without persisting the type."""
        unit = await db.create_inline_unit(person_type, {"id": "p-1", "values": {"name": "Ada"}})
        assert unit.values == {"name": "Ada", "age": None}

        stored = await db.adapter.find_unit_by_business_id("p-1")
        assert stored.type_id == "person"
        assert stored.values == {"name": "Ada"}
        assert await db.get_unit_type_by_id("person") is None

        assert await db.get_inline_unit_by_id(person_type, "p-1") == unit
        updated = await db.update_inline_unit(person_type, "p-1", {"values": {"age": 36}})
        assert updated.values == {"name": "Ada", "age": 36}

        listed = await db.list_units("person", unit_type=person_type)
        assert [u.id for u in listed] == ["p-1"]

    @pytest.mark.asyncio
    async def test_missing_inline_unit(self, db, person_type):
        """Should return None for missing units."""
        assert await db.get_inline_unit_by_id(person_type, "nope") is None
        assert await db.update_inline_unit(person_type, "nope", {"values": {}}) is None

    @pytest.mark.asyncio
    async def test_definition_mismatch(self, db, person_type, task_type):
        """Should refuse to read a unit through another unit type's definition."""
        await db.create_inline_unit(person_type, {"id": "p-1", "values": {"name": "Ada"}})

        with pytest.raises(SchemaMismatchError, match='does not match inline definition "task"'):
            await db.get_inline_unit_by_id(task_type, "p-1")
        with pytest.raises(SchemaMismatchError):
            await db.update_inline_unit(task_type, "p-1", {"values": {"title": "x"}})


class TestInstances:
    """Tests for class-bound operations."""

    @pytest.mark.asyncio
    async def test_inline_instance_roundtrip(self, db, person_type):
        """Should write stored fields back onto the created instance."""
        db.register_class(person_type, Person)
        person = Person()
        person.values = {"name": "Ada", "age": 36}

        created = await db.create_instance(person, inline=True)

        assert created is person
        assert person.id.startswith("id-")
        assert person.unit_type_id == "person"
        assert isinstance(person.created_at, datetime)

        loaded = await db.get_instance(Person, person.id)
        assert isinstance(loaded, Person)
        assert loaded.values == {"name": "Ada", "age": 36}
        assert [p.id for p in await db.list_instances(Person)] == [person.id]
        assert await db.get_instance(Person, "nope") is None

    @pytest.mark.asyncio
    async def test_persisted_instance(self, db, person_type):
        """Should use the persisted unit type when not inline."""
        await db.upsert_unit_type(person_type)
        db.register_class(person_type, Person)
        person = Person()
        person.id = "p-1"
        person.values = {"name": "Grace"}

        await db.create_instance(person)

        stored = await db.adapter.find_unit_by_business_id("p-1")
        assert stored.type_id != "person"
        loaded = await db.get_instance(Person, "p-1")
        assert loaded.values == {"name": "Grace", "age": None}
        assert loaded.created_at.tzinfo is not None

        options = UnitListOptions(filters={"values.name": "Grace"})
        assert [p.id for p in await db.list_instances(Person, options)] == ["p-1"]

    @pytest.mark.asyncio
    async def test_binding_errors(self, db, person_type, task_type):
        """Should reject unregistered classes and mismatched unit types."""
        db.register_class(person_type, Person)
        with pytest.raises(BindingError):
            await db.create_instance(Robot())
        with pytest.raises(BindingError, match='Unit class "Robot" is not registered'):
            await db.get_instance(Robot, "x")

        person = Person()
        person.unit_type_id = "task"
        person.values = {}
        with pytest.raises(SchemaMismatchError, match="does not match registered class"):
            await db.create_instance(person, inline=True)

        await db.create_inline_unit(task_type, {"id": "t-1", "values": {"title": "x"}})
        with pytest.raises(UnitTypeNotFoundError):
            await db.get_instance(Person, "t-1")


class TestFromSettings:
    """Tests for building the facade from settings."""

    def test_memory_backend(self):
        """Should pick the adapter and default limit from settings."""
        db = CrystalDB.from_settings(StoreSettings(default_limit=7))
        assert isinstance(db.adapter, InMemoryDatabaseAdapter)
        assert db.default_limit == 7

    @pytest.mark.asyncio
    async def test_parquet_backend_persists(self, tmp_path, person_type):
        """Should persist across facades built from the same settings."""
        settings = StoreSettings(backend="parquet", root_dir=str(tmp_path))
        db = CrystalDB.from_settings(settings)
        await db.initialize()
        await db.upsert_unit_type(person_type)
        await db.create_unit({"unitTypeId": "person", "id": "p-1", "values": {"age": 3}})

        again = CrystalDB.from_settings(settings)
        await again.initialize()
        unit = await again.get_unit_by_id("p-1")
        assert unit.values == {"name": None, "age": 3}
        assert unit.created_at.tzinfo is not None
        assert unit.created_at == unit.updated_at
        assert unit.created_at <= datetime.now(UTC)

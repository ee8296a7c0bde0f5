from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from crystaldb.core.schema import StoredUnitDocument
from crystaldb.io.errors import QueryError
from crystaldb.io.query import QueryFilter, UnitListOptions, UnitListQuery, resolve_path, run_query

T0 = datetime(2024, 1, 1, tzinfo=UTC)


def _doc(n: int, values: dict, *, type_id: str = "type-1", business_id: str | None = None, **extra):
    return StoredUnitDocument(
        id=f"doc-{n}",
        business_id=business_id or f"unit-{n}",
        type_id=type_id,
        values=values,
        created_at=T0 + timedelta(days=n),
        updated_at=T0 + timedelta(days=n),
        **extra,
    )


@pytest.fixture
def docs() -> list[StoredUnitDocument]:
    return [
        _doc(1, {"name": "Alice", "age": 30, "status": {"key": "open"}}),
        _doc(2, {"name": "bob", "age": 25, "status": {"key": "closed"}}),
        _doc(3, {"name": "Carol", "status": {"key": "open"}}, metadata={"createdBy": "ops"}),
        _doc(4, {"name": "Dave", "age": 41}, business_id="ALPHA-42"),
        _doc(5, {"name": "Eve", "age": 99}, type_id="type-2"),
    ]


def _ids(result: list[StoredUnitDocument]) -> list[str]:
    return [doc.business_id for doc in result]


def _query(**kwargs) -> UnitListQuery:
    return UnitListQuery(type_id="type-1", **kwargs)


def test_lists_only_the_requested_type(docs) -> None:
    assert _ids(run_query(docs, _query())) == ["unit-1", "unit-2", "unit-3", "ALPHA-42"]
    assert _ids(run_query(docs, UnitListQuery(type_id="missing"))) == []


def test_eq_shorthand_and_nested_paths(docs) -> None:
    result = run_query(docs, _query(filters={"values.status.key": "open"}))
    assert _ids(result) == ["unit-1", "unit-3"]


def test_comparison_operators(docs) -> None:
    assert _ids(run_query(docs, _query(filters={"values.age": QueryFilter(30, "gte")}))) == [
        "unit-1",
        "ALPHA-42",
    ]
    assert _ids(run_query(docs, _query(filters={"values.age": QueryFilter(30, "$lt")}))) == [
        "unit-2"
    ]


def test_ne_and_nin_match_missing_paths(docs) -> None:
    assert _ids(run_query(docs, _query(filters={"values.age": QueryFilter(30, "ne")}))) == [
        "unit-2",
        "unit-3",
        "ALPHA-42",
    ]
    result = run_query(docs, _query(filters={"values.age": QueryFilter([25, 41], "nin")}))
    assert _ids(result) == ["unit-1", "unit-3"]


def test_in_wraps_scalars(docs) -> None:
    assert _ids(run_query(docs, _query(filters={"values.age": QueryFilter(25, "in")}))) == [
        "unit-2"
    ]
    result = run_query(
        docs, _query(filters={"values.status.key": {"value": ["closed", "open"], "operator": "in"}})
    )
    assert _ids(result) == ["unit-1", "unit-2", "unit-3"]


def test_regex_is_case_insensitive(docs) -> None:
    result = run_query(docs, _query(filters={"values.name": QueryFilter("^(a|b)", "regex")}))
    assert _ids(result) == ["unit-1", "unit-2"]


def test_exists(docs) -> None:
    assert _ids(run_query(docs, _query(filters={"metadata.createdBy": QueryFilter(True, "exists")}))) == [
        "unit-3"
    ]
    assert _ids(run_query(docs, _query(filters={"values.age": QueryFilter(False, "exists")}))) == [
        "unit-3"
    ]


def test_type_mismatched_literal_matches_nothing(docs) -> None:
    assert run_query(docs, _query(filters={"values.age": "30"})) == []


def test_timestamps_compare_with_iso_strings(docs) -> None:
    result = run_query(
        docs, _query(filters={"createdAt": QueryFilter("2024-01-03T12:00:00Z", "gte")})
    )
    assert _ids(result) == ["unit-3", "ALPHA-42"]


def test_search_matches_business_and_technical_ids(docs) -> None:
    assert _ids(run_query(docs, _query(search="  alpha "))) == ["ALPHA-42"]
    assert _ids(run_query(docs, _query(search="DOC-2"))) == ["unit-2"]
    assert _ids(run_query(docs, _query(search="a.b"))) == []


def test_order_with_missing_values_last(docs) -> None:
    result = run_query(docs, _query(order={"values.age": "desc"}))
    assert _ids(result) == ["ALPHA-42", "unit-1", "unit-2", "unit-3"]
    result = run_query(docs, _query(order={"values.status.key": "asc", "createdAt": "desc"}))
    assert _ids(result) == ["unit-2", "unit-3", "unit-1", "ALPHA-42"]


def test_offset_and_limit_apply_last(docs) -> None:
    result = run_query(docs, _query(order={"createdAt": "desc"}, offset=1, limit=2))
    assert _ids(result) == ["unit-3", "unit-2"]
    assert len(run_query(docs, _query(limit=0))) == 4
    assert len(run_query(docs, _query(offset=-3))) == 4
    assert len(run_query(docs, _query(), default_limit=1)) == 1


def test_invalid_operator_and_direction() -> None:
    with pytest.raises(QueryError, match="unknown filter operator"):
        QueryFilter(1, "between")
    with pytest.raises(QueryError, match="must be 'asc' or 'desc'"):
        UnitListOptions(order={"values.age": "up"})  # type: ignore[dict-item]


def test_regex_requires_string_pattern(docs) -> None:
    with pytest.raises(QueryError, match="string pattern"):
        run_query(docs, _query(filters={"values.name": QueryFilter(3, "regex")}))


def test_from_options_copies_fields() -> None:
    options = UnitListOptions(filters={"values.a": 1}, limit=5, search="x")
    query = UnitListQuery.from_options("type-9", options)
    assert query.type_id == "type-9"
    assert query.filters == {"values.a": QueryFilter(1)}
    assert (query.limit, query.search) == (5, "x")


def test_resolve_path_indexes_lists() -> None:
    doc = {"values": {"files": [{"id": "a"}, {"id": "b"}]}}
    assert resolve_path(doc, "values.files.1.id") == "b"
    assert resolve_path(doc, "values.files.5.id") is None

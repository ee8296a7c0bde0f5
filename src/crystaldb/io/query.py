"""
List queries over stored unit documents, evaluated with polars expressions.

Overview
- UnitListOptions carries caller-facing filters, ordering, pagination and free-text
  search; UnitListQuery adds the technical unit type id the facade resolved.
- ``run_query`` projects the referenced dot paths of each document into a polars
  DataFrame, applies filters/search/sort/offset/limit, and maps the surviving rows
  back to their documents.

Paths
- Dot paths address the camelCase document: ``businessId``, ``createdAt``,
  ``values.<itemId>.iso``, ``metadata.createdBy``. Numeric segments index lists.
- Nested mappings/lists at the end of a path compare as canonical JSON strings.

Operators
- eq, ne, gt, gte, lt, lte, in, nin, regex (case-insensitive), exists.
- ne/nin also match documents where the path is missing.
- A literal whose type does not match the column (e.g., a string against numbers)
  matches nothing for eq/in/ordering and everything for ne/nin.

Notes
- ``search`` is a case-insensitive literal substring match on ``businessId`` and ``id``.
- Sorting keeps insertion order for ties and puts missing values last.
- ``offset``/``limit`` apply after filtering and sorting.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

import polars as pl

from crystaldb.core.schema import StoredUnitDocument
from crystaldb.core.serde import as_utc, json_dumps_canonical, parse_iso

from .errors import QueryError

__all__ = [
    "OPERATORS",
    "OrderDirection",
    "QueryFilter",
    "UnitListOptions",
    "UnitListQuery",
    "resolve_path",
    "run_query",
]

OrderDirection = Literal["asc", "desc"]

OPERATORS: frozenset[str] = frozenset(
    {"eq", "ne", "gt", "gte", "lt", "lte", "in", "nin", "regex", "exists"}
)

_POS = "__pos"

# Column kinds used to type projected paths.
_NUMBER, _BOOL, _STR, _DATETIME = "number", "bool", "str", "datetime"

_DTYPES: dict[str, Any] = {
    _NUMBER: pl.Float64,
    _BOOL: pl.Boolean,
    _STR: pl.Utf8,
    _DATETIME: pl.Datetime("us", "UTC"),
}


@dataclass(frozen=True)
class QueryFilter:
    """
    One filter condition on a dot path.

    Attributes:
        value (Any): Comparison value (a list for ``in``/``nin``; a bool for ``exists``).
        operator (str): One of OPERATORS; a leading "$" is accepted.

    Raises:
        QueryError: If the operator is unknown.
    """

    value: Any
    operator: str = "eq"

    def __post_init__(self) -> None:
        op = self.operator.lstrip("$") if isinstance(self.operator, str) else self.operator
        if op not in OPERATORS:
            raise QueryError(f"unknown filter operator {self.operator!r}; expected one of {sorted(OPERATORS)}")
        object.__setattr__(self, "operator", op)

    @classmethod
    def coerce(cls, raw: Any) -> QueryFilter:
        """Accept a QueryFilter, a ``{"value", "operator"?}`` mapping, or a bare value (eq)."""
        if isinstance(raw, QueryFilter):
            return raw
        if isinstance(raw, Mapping) and "value" in raw and set(raw) <= {"value", "operator"}:
            return cls(value=raw["value"], operator=raw.get("operator") or "eq")
        return cls(value=raw)


@dataclass(frozen=True, kw_only=True)
class UnitListOptions:
    """
    Filtering, ordering and pagination for ``list_units``.

    Attributes:
        filters (Mapping[str, QueryFilter]): Dot path -> condition. Bare values and
            ``{"value", "operator"}`` mappings are accepted and normalized.
        order (Mapping[str, OrderDirection]): Dot path -> "asc" | "desc", applied in order.
        limit (int | None): Maximum number of results (ignored when None or <= 0).
        offset (int): Number of results to skip (ignored when <= 0).
        search (str | None): Case-insensitive substring matched on ``businessId``/``id``.
    """

    filters: Mapping[str, QueryFilter] = field(default_factory=dict)
    order: Mapping[str, OrderDirection] = field(default_factory=dict)
    limit: int | None = None
    offset: int = 0
    search: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "filters", {path: QueryFilter.coerce(f) for path, f in self.filters.items()}
        )
        for path, direction in self.order.items():
            if direction not in ("asc", "desc"):
                raise QueryError(f"order direction for {path!r} must be 'asc' or 'desc', got {direction!r}")


@dataclass(frozen=True, kw_only=True)
class UnitListQuery(UnitListOptions):
    """UnitListOptions bound to the technical id of the unit type being listed."""

    type_id: str

    @classmethod
    def from_options(cls, type_id: str, options: UnitListOptions | None = None) -> UnitListQuery:
        opts = options or UnitListOptions()
        return cls(
            type_id=type_id,
            filters=opts.filters,
            order=opts.order,
            limit=opts.limit,
            offset=opts.offset,
            search=opts.search,
        )


# ----------------------------------------------------------------------------
# Projection
# ----------------------------------------------------------------------------

_MISSING = object()


def resolve_path(document: Mapping[str, Any], path: str) -> Any:
    """
    Resolve a dot path inside a document; None when any segment is missing.

    Examples:
        >>> resolve_path({"values": {"a": {"iso": "x"}}}, "values.a.iso")
        'x'
        >>> resolve_path({"values": {}}, "values.a.iso") is None
        True
    """
    current: Any = document
    for segment in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(segment, _MISSING)
        elif isinstance(current, (list, tuple)) and segment.isdigit():
            index = int(segment)
            current = current[index] if index < len(current) else _MISSING
        else:
            current = _MISSING
        if current is _MISSING:
            return None
    return current


def _kind_of(value: Any) -> str:
    if isinstance(value, bool):
        return _BOOL
    if isinstance(value, (int, float)):
        return _NUMBER
    if isinstance(value, datetime):
        return _DATETIME
    return _STR


def _to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    return json_dumps_canonical(value)


def _column_kind(values: Sequence[Any], hint: str) -> str:
    kinds = {_kind_of(v) for v in values if v is not None}
    if not kinds:
        return hint
    if len(kinds) == 1:
        return kinds.pop()
    return _STR


def _column(name: str, values: list[Any], kind: str) -> pl.Series:
    if kind == _STR:
        values = [None if v is None else _to_str(v) for v in values]
    elif kind == _NUMBER:
        values = [None if v is None or (isinstance(v, float) and math.isnan(v)) else float(v) for v in values]
    elif kind == _DATETIME:
        values = [None if v is None else as_utc(v) for v in values]
    return pl.Series(name, values, dtype=_DTYPES[kind])


def _coerce_literal(kind: str, value: Any) -> tuple[bool, Any]:
    """Coerce a filter literal to the column kind; (False, None) when incompatible."""
    if kind == _NUMBER:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return True, float(value)
        return False, None
    if kind == _BOOL:
        return (True, value) if isinstance(value, bool) else (False, None)
    if kind == _DATETIME:
        if isinstance(value, datetime):
            return True, as_utc(value)
        if isinstance(value, str):
            try:
                return True, parse_iso(value)
            except ValueError:
                return False, None
        return False, None
    if isinstance(value, (bool, int, float)):
        return False, None
    return True, _to_str(value)


def _literal_hint(condition: QueryFilter) -> str:
    value = condition.value
    if condition.operator in ("in", "nin"):
        seq = value if isinstance(value, (list, tuple, set)) else [value]
        value = next((v for v in seq if v is not None), None)
    if condition.operator in ("regex", "exists") or value is None:
        return _STR
    return _kind_of(value)


# ----------------------------------------------------------------------------
# Expressions
# ----------------------------------------------------------------------------


def _filter_expr(column: str, kind: str, condition: QueryFilter) -> pl.Expr:
    col = pl.col(column)
    op = condition.operator
    value = condition.value

    if op == "exists":
        return col.is_not_null() if value else col.is_null()

    if op == "regex":
        if not isinstance(value, str):
            raise QueryError(f"regex filter on {column!r} requires a string pattern")
        return col.cast(pl.Utf8).str.contains(f"(?i){value}").fill_null(False)

    if op in ("in", "nin"):
        seq = list(value) if isinstance(value, (list, tuple, set)) else [value]
        wants_null = any(v is None for v in seq)
        literals = []
        for v in seq:
            ok, lit = _coerce_literal(kind, v) if v is not None else (False, None)
            if ok:
                literals.append(lit)
        matched = col.is_in(literals).fill_null(False) if literals else pl.lit(False)
        if wants_null:
            matched = matched | col.is_null()
        return matched if op == "in" else ~matched

    if value is None:
        if op == "eq":
            return col.is_null()
        if op == "ne":
            return col.is_not_null()
        return pl.lit(False)

    ok, lit = _coerce_literal(kind, value)
    if op == "eq":
        return (col == lit).fill_null(False) if ok else pl.lit(False)
    if op == "ne":
        return ((col != lit).fill_null(True)) if ok else pl.lit(True)
    if not ok:
        return pl.lit(False)
    comparisons = {
        "gt": col > lit,
        "gte": col >= lit,
        "lt": col < lit,
        "lte": col <= lit,
    }
    return comparisons[op].fill_null(False)


def _search_expr(term: str) -> pl.Expr:
    needle = term.lower()
    return pl.any_horizontal(
        [
            pl.col(name).str.to_lowercase().str.contains(needle, literal=True).fill_null(False)
            for name in ("businessId", "id")
        ]
    )


def run_query(
    documents: Sequence[StoredUnitDocument],
    query: UnitListQuery,
    *,
    default_limit: int | None = None,
) -> list[StoredUnitDocument]:
    """
    Evaluate ``query`` over ``documents``.

    Args:
        documents (Sequence[StoredUnitDocument]): Candidate documents (any unit type).
        query (UnitListQuery): Query with the technical unit type id.
        default_limit (int | None): Limit used when the query sets none.

    Returns:
        list[StoredUnitDocument]: Matching documents, ordered and paginated.

    Raises:
        QueryError: If a filter is malformed or polars rejects the comparison.
    """
    candidates = [doc for doc in documents if doc.type_id == query.type_id]
    if not candidates:
        return []
    dumped = [doc.model_dump(by_alias=True) for doc in candidates]

    paths: list[str] = ["businessId", "id"]
    for path in list(query.filters) + list(query.order):
        if path not in paths:
            paths.append(path)

    hints = {path: _literal_hint(cond) for path, cond in query.filters.items()}
    columns: dict[str, str] = {}
    series = [pl.Series(_POS, range(len(candidates)), dtype=pl.Int64)]
    for index, path in enumerate(paths):
        name = f"c{index}"
        raw = [resolve_path(doc, path) for doc in dumped]
        kind = _column_kind(raw, hints.get(path, _STR))
        columns[path] = kind
        series.append(_column(name, raw, kind))
    frame = pl.DataFrame(series)
    names = {path: f"c{index}" for index, path in enumerate(paths)}
    frame = frame.rename({names["businessId"]: "businessId", names["id"]: "id"})
    names["businessId"], names["id"] = "businessId", "id"

    try:
        for path, condition in query.filters.items():
            frame = frame.filter(_filter_expr(names[path], columns[path], condition))
        if query.search and query.search.strip():
            frame = frame.filter(_search_expr(query.search.strip()))
        if query.order:
            frame = frame.sort(
                by=[names[path] for path in query.order],
                descending=[direction == "desc" for direction in query.order.values()],
                nulls_last=True,
                maintain_order=True,
            )
    except pl.exceptions.PolarsError as exc:
        raise QueryError(f"query evaluation failed: {exc}") from exc

    offset = query.offset if query.offset and query.offset > 0 else 0
    limit = query.limit if query.limit and query.limit > 0 else default_limit
    frame = frame.slice(offset, limit)
    return [candidates[pos] for pos in frame[_POS].to_list()]

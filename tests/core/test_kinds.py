from __future__ import annotations

import math
from datetime import UTC, date, datetime

import pytest

from crystaldb.core.constants import BUILT_IN_KINDS
from crystaldb.core.errors import KindRangeError, KindValueError
from crystaldb.core.kinds import BUILT_IN_CODECS, get_codec, list_kinds


def _roundtrip(kind: str, value):
    codec = get_codec(kind)
    return codec.decode(codec.encode(value))


def test_every_built_in_kind_has_a_codec() -> None:
    assert list_kinds() == list(BUILT_IN_KINDS)
    for kind, codec in BUILT_IN_CODECS.items():
        assert codec.kind == kind


@pytest.mark.parametrize("kind", BUILT_IN_KINDS)
def test_none_is_total(kind: str) -> None:
    codec = get_codec(kind)
    assert codec.encode(None) is None
    assert codec.decode(None) is None


@pytest.mark.parametrize(
    ("kind", "value"),
    [
        ("string", "hello"),
        ("markdown", "# Title\n\nBody"),
        ("number", 3.25),
        ("number", 0),
        ("numberRange", {"start": 1, "end": 5, "metadata": {"unit": "h"}}),
        ("boolean", False),
        ("date", {"iso": "2024-03-01T10:00:00.000Z"}),
        ("month", {"month": "2024-02"}),
        ("enum", {"key": "open", "label": "Open"}),
        ("files", [{"id": "f1", "name": "a.pdf", "size": 0, "mimeType": "application/pdf"}]),
        ("formula", {"expression": "a + b", "result": 3}),
        (
            "dateRange",
            {
                "start": {"iso": "2024-01-01T00:00:00.000Z"},
                "end": {"iso": "2024-01-31T00:00:00.000Z"},
            },
        ),
        ("distance", {"value": 12.5, "unit": "km"}),
        ("icon", {"name": "star", "color": "gold"}),
        ("percentage", {"value": 42.5}),
        ("geoAddress", {"city": "Lyon", "coordinates": {"lat": 45.76, "lng": 4.83}}),
        ("reference", {"unitId": "u-1", "unitType": "person"}),
    ],
)
def test_canonical_values_roundtrip_unchanged(kind: str, value) -> None:
    assert _roundtrip(kind, value) == value


def test_string_coerces_scalars() -> None:
    assert get_codec("string").encode(12) == "12"


def test_markdown_rejects_non_strings() -> None:
    with pytest.raises(KindValueError, match="Markdown value must be a string"):
        get_codec("markdown").encode(5)


@pytest.mark.parametrize("bad", [math.nan, math.inf, "3", True])
def test_number_requires_finite_number(bad) -> None:
    with pytest.raises(KindValueError, match="Number value must be a finite number"):
        get_codec("number").encode(bad)


def test_number_range_rejects_inverted_bounds() -> None:
    with pytest.raises(KindRangeError, match="start"):
        get_codec("numberRange").encode({"start": 10, "end": 5})


def test_number_range_error_is_also_a_value_error() -> None:
    with pytest.raises(ValueError):
        get_codec("numberRange").encode({"start": 10, "end": 5})


def test_boolean_accepts_exact_strings_on_encode_only() -> None:
    codec = get_codec("boolean")
    assert codec.encode("true") is True
    assert codec.encode("false") is False
    with pytest.raises(KindValueError):
        codec.encode("TRUE")
    with pytest.raises(KindValueError):
        codec.encode(1)
    with pytest.raises(KindValueError, match="Stored boolean"):
        codec.decode("true")


def test_percentage_bare_number_and_rounding() -> None:
    codec = get_codec("percentage")
    assert codec.encode(42.5) == 4250
    assert codec.encode({"value": 12.125}) == 1213
    assert codec.decode(4250) == {"value": 42.5}
    assert codec.encode(0) == 0
    assert codec.encode(100) == 10000


@pytest.mark.parametrize("bad", [-0.01, 100.5])
def test_percentage_out_of_range(bad: float) -> None:
    with pytest.raises(KindRangeError, match="between 0 and 100"):
        get_codec("percentage").encode(bad)


def test_percentage_rejects_other_shapes() -> None:
    codec = get_codec("percentage")
    with pytest.raises(KindValueError, match="numeric \"value\" property"):
        codec.encode("50")
    with pytest.raises(KindValueError, match="basis points"):
        codec.decode({"value": 50})


def test_date_accepts_datetime_date_and_strings() -> None:
    codec = get_codec("date")
    assert codec.encode(datetime(2024, 3, 1, 10, 0, tzinfo=UTC)) == {
        "iso": "2024-03-01T10:00:00.000Z"
    }
    assert codec.encode(date(2024, 3, 1)) == {"iso": "2024-03-01T00:00:00.000Z"}
    assert codec.encode("2024-03-01T12:00:00+02:00") == {"iso": "2024-03-01T10:00:00.000Z"}
    assert codec.encode({"iso": "2024-03-01", "metadata": {"tz": "Europe/Paris"}}) == {
        "iso": "2024-03-01T00:00:00.000Z",
        "metadata": {"tz": "Europe/Paris"},
    }


def test_date_rejects_unparsable_strings() -> None:
    with pytest.raises(KindValueError, match='Invalid date value "not a date"'):
        get_codec("date").encode("not a date")


def test_date_decode_rejects_native_datetimes() -> None:
    with pytest.raises(KindValueError, match="Stored date"):
        get_codec("date").decode(datetime(2024, 1, 1, tzinfo=UTC))


def test_date_range_requires_both_bounds_in_order() -> None:
    codec = get_codec("dateRange")
    with pytest.raises(KindValueError, match="requires both start and end"):
        codec.encode({"start": "2024-01-01"})
    with pytest.raises(KindRangeError):
        codec.encode({"start": "2024-02-01", "end": "2024-01-01"})
    assert codec.encode({"start": "2024-01-01", "end": date(2024, 1, 2)}) == {
        "start": {"iso": "2024-01-01T00:00:00.000Z"},
        "end": {"iso": "2024-01-02T00:00:00.000Z"},
    }


def test_month_validates_pattern() -> None:
    codec = get_codec("month")
    assert codec.encode("2024-12") == {"month": "2024-12"}
    with pytest.raises(KindValueError, match="YYYY-MM"):
        codec.encode("2024-13")


def test_enum_string_shorthand() -> None:
    assert get_codec("enum").encode("open") == {"key": "open"}
    with pytest.raises(KindValueError):
        get_codec("enum").encode(3)


def test_files_require_ids() -> None:
    codec = get_codec("files")
    with pytest.raises(KindValueError, match="array"):
        codec.encode({"id": "f1"})
    with pytest.raises(KindValueError, match="'id'"):
        codec.encode([{"name": "missing-id.txt"}])


def test_formula_string_shorthand_keeps_result_key() -> None:
    codec = get_codec("formula")
    assert codec.encode("a * 2") == {"expression": "a * 2"}
    assert codec.encode({"expression": "x", "result": None}) == {"expression": "x", "result": None}


def test_distance_requires_numeric_value() -> None:
    with pytest.raises(KindValueError, match="distance.value"):
        get_codec("distance").encode({"value": "far"})


def test_icon_string_shorthand() -> None:
    assert get_codec("icon").encode("home") == {"name": "home"}


def test_geo_address_accepts_long_coordinate_names() -> None:
    out = get_codec("geoAddress").encode(
        {"label": "", "coordinates": {"latitude": 1.5, "longitude": -2}}
    )
    assert out == {"coordinates": {"lat": 1.5, "lng": -2}}


def test_reference_requires_unit_id_and_type() -> None:
    codec = get_codec("reference")
    with pytest.raises(KindValueError, match='"unitType"'):
        codec.encode({"unitId": "u-1"})
    assert codec.encode({"unitId": 7, "unitType": "person"}) == {
        "unitId": "7",
        "unitType": "person",
    }


def test_dates_before_year_1000_are_zero_padded() -> None:
    codec = get_codec("date")
    stored = codec.encode("0999-06-01")
    assert stored == {"iso": "0999-06-01T00:00:00.000Z"}
    assert codec.decode(stored) == stored
    assert codec.encode(date(999, 6, 1)) == stored

    assert get_codec("dateRange").encode({"start": "0999-01-01", "end": "1000-01-01"}) == {
        "start": {"iso": "0999-01-01T00:00:00.000Z"},
        "end": {"iso": "1000-01-01T00:00:00.000Z"},
    }
    with pytest.raises(KindRangeError):
        get_codec("dateRange").encode({"start": "1000-01-01", "end": "0999-12-31"})


@pytest.mark.parametrize("kind", ["number", "percentage"])
def test_int_too_large_for_float_is_a_value_error(kind: str) -> None:
    with pytest.raises(KindValueError, match="finite number"):
        get_codec(kind).encode(10**400)


def test_number_range_rejects_int_too_large_for_float() -> None:
    with pytest.raises(KindValueError, match="Number range end must be a finite number"):
        get_codec("numberRange").encode({"start": 0, "end": 10**400})


@pytest.mark.parametrize(
    ("kind", "value"),
    [
        ("percentage", 42.5),
        ("date", datetime(2024, 3, 1, 12, 30, tzinfo=UTC)),
        ("date", datetime(2024, 3, 1, 12, 30)),
        ("date", date(2024, 3, 1)),
        ("date", "2024-03-01T12:00:00+02:00"),
        ("date", "0999-06-01"),
        ("date", date(999, 6, 1)),
        ("date", "9999-12-31T23:59:59.999Z"),
        ("dateRange", {"start": date(2024, 1, 1), "end": date(2024, 12, 31)}),
        ("enum", "open"),
        ("icon", "home"),
        ("formula", "a * 2"),
        ("geoAddress", {"coordinates": {"latitude": 1.5, "longitude": -2}}),
        ("month", "2024-02"),
        ("reference", {"unitId": 7, "unitType": "person"}),
        ("distance", {"value": 3}),
    ],
)
def test_accepted_variants_reach_a_stable_stored_form(kind: str, value: object) -> None:
    codec = get_codec(kind)
    stored = codec.encode(value)
    decoded = codec.decode(stored)
    assert codec.encode(decoded) == stored

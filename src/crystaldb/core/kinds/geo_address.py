"""
Codec for the 'geoAddress' kind.

Shapes:
- business: {"label"?, "coordinates"?: {"lat", "lng"}, "street"?, "city"?,
  "postalCode"?, "region"?, "country"?, "metadata"?}
- stored: same; absent fields are dropped

Notes:
- Coordinates given as {"latitude", "longitude"} are accepted and normalized to
  {"lat", "lng"}.
- Coordinates, when present, must both be finite numbers.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypedDict

from ..errors import KindValueError
from .base import BaseCodec, copy_present, ensure_finite, ensure_mapping

_ADDRESS_FIELDS = ("label", "street", "city", "postalCode", "region", "country", "metadata")


class GeoCoordinates(TypedDict):
    lat: float
    lng: float


class GeoAddressValue(TypedDict, total=False):
    label: str
    coordinates: GeoCoordinates
    street: str
    city: str
    postalCode: str
    region: str
    country: str
    metadata: dict[str, Any]


def _coordinates(value: Any) -> GeoCoordinates:
    if not isinstance(value, Mapping):
        raise KindValueError("GeoAddress coordinates must be an object with lat/lng")
    lat = value.get("lat", value.get("latitude"))
    lng = value.get("lng", value.get("longitude"))
    return {
        "lat": ensure_finite(lat, "GeoAddress latitude"),
        "lng": ensure_finite(lng, "GeoAddress longitude"),
    }


class GeoAddressCodec(BaseCodec):
    kind = "geoAddress"

    def _encode(self, value: Any) -> GeoAddressValue:
        source = ensure_mapping(value, "GeoAddress value must be an object")
        out: dict[str, Any] = {}
        copy_present(source, out, _ADDRESS_FIELDS)
        if source.get("coordinates") is not None:
            out["coordinates"] = _coordinates(source["coordinates"])
        return out  # type: ignore[return-value]


GEO_ADDRESS_CODEC = GeoAddressCodec()

"""Ordered first-match lookup of a point/address against service zones."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from ...models.domain import (
    Address,
    CityArea,
    Coordinate,
    PolygonArea,
    PostalCodeArea,
    RadiusArea,
    Zone,
)
from ..geospatial import distance_km, point_in_polygon

_WHITESPACE = re.compile(r"\s+")


def normalize_postal_code(value: str) -> str:
    return _WHITESPACE.sub("", value).casefold()


def normalize_city(value: str) -> str:
    return value.strip().lower()


def zone_contains(zone: Zone, point: Coordinate, address: Optional[Address]) -> bool:
    """Evaluate a single zone's predicate, ignoring its active flag.

    Incomplete geometry (radius without centre or radius, polygon with fewer
    than three points) never matches.
    """

    match zone.area:
        case PostalCodeArea(codes=codes):
            if address is None or not address.postal_code:
                return False
            target = normalize_postal_code(address.postal_code)
            return any(normalize_postal_code(code) == target for code in codes)
        case CityArea(cities=cities):
            if address is None or not address.city:
                return False
            target = normalize_city(address.city)
            return any(normalize_city(city) == target for city in cities)
        case RadiusArea(center=center, radius_km=radius_km):
            if center is None or radius_km is None:
                return False
            return distance_km(center, point) <= radius_km
        case PolygonArea(ring=ring):
            if len(ring) < 3:
                return False
            return point_in_polygon(point, ring)
        case _:
            return False


def match_zone(point: Coordinate, address: Optional[Address], zones: Sequence[Zone]) -> Optional[Zone]:
    """Return the first active zone containing the point, in list order.

    Overlapping zones are not ranked: list order is the only tie-break.
    Returning None leaves the coverage decision to the caller.
    """

    for zone in zones:
        if not zone.is_active:
            continue
        if zone_contains(zone, point, address):
            return zone
    return None

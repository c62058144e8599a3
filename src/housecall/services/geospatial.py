"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from shapely.geometry import Point, Polygon

from ..models.domain import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push a just past 1 for near-antipodal points.
    c = 2 * math.asin(math.sqrt(min(1.0, a)))
    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in kilometres."""

    if a == b:
        return 0.0
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def point_in_polygon(point: Coordinate, ring: Sequence[Coordinate]) -> bool:
    """Return True if the point lies strictly inside the ring.

    The ring does not need to be closed. Points on the boundary are outside.
    """

    if len(ring) < 3:
        return False
    polygon = Polygon([(vertex.longitude, vertex.latitude) for vertex in ring])
    return polygon.contains(Point(point.longitude, point.latitude))

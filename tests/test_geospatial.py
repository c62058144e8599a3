import math

import pytest

from src.housecall.models.domain import Coordinate
from src.housecall.services.geospatial import EARTH_RADIUS_KM, distance_km, haversine_km, point_in_polygon

from .support import CAPE_TOWN, north_of


def test_distance_identity_is_zero() -> None:
    assert distance_km(CAPE_TOWN, CAPE_TOWN) == 0.0


def test_distance_is_symmetric() -> None:
    johannesburg = Coordinate(latitude=-26.2041, longitude=28.0473)
    assert distance_km(CAPE_TOWN, johannesburg) == pytest.approx(distance_km(johannesburg, CAPE_TOWN))


def test_distance_cape_town_to_johannesburg() -> None:
    johannesburg = Coordinate(latitude=-26.2041, longitude=28.0473)
    assert distance_km(CAPE_TOWN, johannesburg) == pytest.approx(1263, abs=5)


def test_distance_along_meridian() -> None:
    assert distance_km(CAPE_TOWN, north_of(CAPE_TOWN, 8)) == pytest.approx(8.0)
    assert haversine_km(0.0, 0.0, 0.0, 0.0) == 0.0


def test_near_antipodal_points_do_not_raise() -> None:
    here = Coordinate(latitude=-43.5577, longitude=150.6723)
    antipode = Coordinate(latitude=43.5577, longitude=-29.3277)

    assert distance_km(here, antipode) == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-6)


def test_coordinate_rejects_out_of_range_values() -> None:
    with pytest.raises(ValueError):
        Coordinate(latitude=91.0, longitude=0.0)
    with pytest.raises(ValueError):
        Coordinate(latitude=0.0, longitude=-181.0)


SQUARE = (
    Coordinate(latitude=0.0, longitude=0.0),
    Coordinate(latitude=0.0, longitude=1.0),
    Coordinate(latitude=1.0, longitude=1.0),
    Coordinate(latitude=1.0, longitude=0.0),
)


def test_point_in_polygon_inside_and_outside() -> None:
    assert point_in_polygon(Coordinate(latitude=0.5, longitude=0.5), SQUARE)
    assert not point_in_polygon(Coordinate(latitude=1.5, longitude=0.5), SQUARE)


def test_point_on_boundary_is_outside() -> None:
    assert not point_in_polygon(Coordinate(latitude=0.0, longitude=0.5), SQUARE)


def test_closed_and_open_rings_agree() -> None:
    closed = SQUARE + (SQUARE[0],)
    point = Coordinate(latitude=0.25, longitude=0.75)
    assert point_in_polygon(point, closed) == point_in_polygon(point, SQUARE)


def test_degenerate_ring_never_contains() -> None:
    assert not point_in_polygon(Coordinate(latitude=0.0, longitude=0.0), SQUARE[:2])

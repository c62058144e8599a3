from datetime import date, time

import pytest

from src.housecall.data import bookings_repository, providers_repository, zones_repository
from src.housecall.data.parsing import coordinate_from_point, coordinate_from_row, parse_time
from src.housecall.models.domain import (
    CityArea,
    FeeStrategy,
    PolygonArea,
    PostalCodeArea,
    RadiusArea,
)

from .support import FakeSupabase


def test_coordinate_prefers_canonical_columns() -> None:
    row = {"latitude": -33.9, "longitude": 18.4, "address_lat": 1.0, "address_lng": 1.0}
    coordinate = coordinate_from_row(row)
    assert (coordinate.latitude, coordinate.longitude) == (-33.9, 18.4)


def test_coordinate_falls_back_to_legacy_columns() -> None:
    coordinate = coordinate_from_row({"address_lat": "-33.9", "address_lng": "18.4"})
    assert (coordinate.latitude, coordinate.longitude) == (-33.9, 18.4)
    assert coordinate_from_row({"latitude": -33.9}) is None
    assert coordinate_from_row({"latitude": 120, "longitude": 18.4}) is None


def test_coordinate_from_point_shapes() -> None:
    assert coordinate_from_point([18.4, -33.9]).latitude == -33.9
    assert coordinate_from_point({"lat": -33.9, "lng": 18.4}).longitude == 18.4
    assert coordinate_from_point("nope") is None


def test_parse_time() -> None:
    assert parse_time("14:30:00") == time(14, 30)
    assert parse_time("09:05") == time(9, 5)


def test_provider_defaults() -> None:
    provider = providers_repository.provider_from_row({"id": "p1", "slug": "glow"})
    assert provider.is_active
    assert provider.offers_mobile_services
    assert not provider.is_distance_filter_enabled
    assert provider.max_service_distance_km is None


def test_travel_fee_settings_row() -> None:
    settings_row = {
        "strategy": "distance",
        "rate_per_km": "7.5",
        "minimum_fee": 20,
        "tiers": [{"upto_km": 10, "fee": 20}, {"max_distance_km": 5, "fee": 10}, {"fee": 99}],
    }
    parsed = providers_repository.travel_fee_settings_from_row(settings_row)
    assert parsed.strategy is FeeStrategy.DISTANCE_BASED
    assert parsed.rate_per_km == 7.5
    assert [tier.upto_km for tier in parsed.tiers] == [5, 10]


def test_unknown_strategy_is_ignored() -> None:
    assert providers_repository.parse_strategy("by_mood") is None
    assert providers_repository.parse_strategy("tiered") is FeeStrategy.TIERED


def test_zone_rows_become_typed_areas() -> None:
    postal = zones_repository.zone_from_row({"id": "1", "name": "P", "zone_type": "postal_code", "postal_codes": ["8001"]})
    city = zones_repository.zone_from_row({"id": "2", "name": "C", "zone_type": "city", "cities": ["Cape Town"]})
    radius = zones_repository.zone_from_row(
        {
            "id": "3",
            "name": "R",
            "zone_type": "radius",
            "center_latitude": -33.9,
            "center_longitude": 18.4,
            "radius_km": "15",
            "travel_fee": "45",
        }
    )
    assert isinstance(postal.area, PostalCodeArea)
    assert isinstance(city.area, CityArea)
    assert isinstance(radius.area, RadiusArea)
    assert radius.area.radius_km == 15.0
    assert radius.travel_fee == 45.0


def test_closed_geojson_ring_is_opened() -> None:
    row = {
        "id": "4",
        "name": "Poly",
        "zone_type": "polygon",
        "polygon_coordinates": [[[18.3, -34.0], [18.5, -34.0], [18.5, -33.8], [18.3, -33.8], [18.3, -34.0]]],
    }
    zone = zones_repository.zone_from_row(row)
    assert isinstance(zone.area, PolygonArea)
    assert len(zone.area.ring) == 4


def test_unknown_zone_type_rows_are_skipped(monkeypatch) -> None:
    fake = FakeSupabase(
        {
            "platform_zones": [
                {"id": "bad", "name": "Bad", "zone_type": "hexagon"},
                {"id": "ok", "name": "Ok", "zone_type": "city", "cities": ["Cape Town"]},
            ]
        }
    )
    monkeypatch.setattr(zones_repository, "require_supabase_client", lambda: fake)
    zones = zones_repository.get_platform_zones()
    assert [zone.id for zone in zones] == ["ok"]


def test_primary_location_wins(monkeypatch) -> None:
    fake = FakeSupabase(
        {
            "provider_locations": [
                {"id": "l1", "latitude": -33.9, "longitude": 18.4, "is_primary": False},
                {"id": "l2", "latitude": None, "longitude": None, "is_primary": True},
                {"id": "l3", "latitude": -33.8, "longitude": 18.5, "is_primary": True},
            ]
        }
    )
    monkeypatch.setattr(providers_repository, "require_supabase_client", lambda: fake)

    assert [loc.id for loc in providers_repository.get_provider_locations("p1")] == ["l1", "l3"]
    assert providers_repository.get_primary_location("p1").id == "l3"


def test_get_provider_requires_a_reference() -> None:
    with pytest.raises(ValueError):
        providers_repository.get_provider()


def test_chained_schedule_defaults_without_config(monkeypatch) -> None:
    monkeypatch.setattr(providers_repository, "require_supabase_client", lambda: FakeSupabase())
    schedule = providers_repository.get_chained_fee_schedule()
    assert (schedule.base_fee, schedule.per_km_rate, schedule.free_radius_km) == (20.0, 5.0, 5.0)
    assert schedule.max_fee is None


def test_chained_schedule_from_config_row(monkeypatch) -> None:
    fake = FakeSupabase(
        {"travel_fee_config": [{"base_fee": 30, "per_km_rate": 4, "free_radius_km": 3, "max_fee": 150}]}
    )
    monkeypatch.setattr(providers_repository, "require_supabase_client", lambda: fake)
    schedule = providers_repository.get_chained_fee_schedule()
    assert schedule.base_fee == 30.0
    assert schedule.max_fee == 150.0
    assert schedule.route_chaining_enabled


def test_platform_defaults_from_settings_json(monkeypatch) -> None:
    fake = FakeSupabase(
        {"platform_settings": [{"settings": {"travel_fees": {"default_rate_per_km": 6, "default_maximum_fee": 400}}}]}
    )
    monkeypatch.setattr(providers_repository, "require_supabase_client", lambda: fake)
    defaults = providers_repository.get_platform_travel_defaults()
    assert defaults.rate_per_km == 6.0
    assert defaults.maximum_fee == 400.0
    assert defaults.minimum_fee is None


def test_bookings_are_filtered_and_parsed(monkeypatch) -> None:
    fake = FakeSupabase(
        {
            "bookings": [
                {
                    "id": "b1",
                    "provider_id": "p1",
                    "scheduled_date": "2026-03-02",
                    "scheduled_time": "09:00:00",
                    "status": "Confirmed",
                    "location_type": "at_home",
                    "address_lat": -33.9,
                    "address_lng": 18.4,
                    "team_member_id": "s1",
                },
                {"id": "broken", "provider_id": "p1"},
            ]
        }
    )
    monkeypatch.setattr(bookings_repository, "require_supabase_client", lambda: fake)

    bookings = bookings_repository.get_at_home_bookings("p1", date(2026, 3, 2), staff_id="s1")

    assert [booking.id for booking in bookings] == ["b1"]
    assert bookings[0].status == "confirmed"
    assert bookings[0].staff_id == "s1"
    assert bookings[0].coordinate.latitude == -33.9

    query = fake.calls("bookings", "select")[0]
    assert ("in", "status", ("cancelled", "no_show")) in query.filters
    assert ("eq", "staff_id", "s1") in query.filters

from datetime import date

from src.housecall.models.domain import RouteSegment
from src.housecall.persistence import routes as route_store

from .support import CAPE_TOWN, FakeSupabase, north_of

ROUTE_DATE = date(2026, 3, 2)


def _segment(order: int, from_id, to_id: str, km: float) -> RouteSegment:
    return RouteSegment(
        order=order,
        from_booking_id=from_id,
        to_booking_id=to_id,
        distance_km=km,
        duration_minutes=12,
        travel_fee_calculated=15.0,
        travel_fee_charged=15.0,
        from_location=CAPE_TOWN,
        to_location=north_of(CAPE_TOWN, km),
    )


def test_get_or_create_route_inserts_new_route(monkeypatch) -> None:
    fake = FakeSupabase()
    monkeypatch.setattr(route_store, "require_supabase_client", lambda: fake)

    route_id = route_store.get_or_create_route("prov-1", ROUTE_DATE, None, CAPE_TOWN)

    inserted = fake.rows["travel_routes"][0]
    assert route_id == inserted["id"]
    assert inserted["optimization_status"] == "pending"
    assert inserted["route_date"] == "2026-03-02"
    assert ("is", "staff_id", "null") in fake.calls("travel_routes", "select")[0].filters


def test_get_or_create_route_resets_existing_route(monkeypatch) -> None:
    fake = FakeSupabase({"travel_routes": [{"id": "route-1", "optimization_status": "optimized"}]})
    monkeypatch.setattr(route_store, "require_supabase_client", lambda: fake)

    route_id = route_store.get_or_create_route("prov-1", ROUTE_DATE, "staff-1", CAPE_TOWN)

    assert route_id == "route-1"
    update = fake.calls("travel_routes", "update")[0]
    assert update.payload["optimization_status"] == "pending"
    assert fake.calls("travel_routes", "insert") == []


def test_replace_route_segments_deletes_before_insert(monkeypatch) -> None:
    fake = FakeSupabase()
    monkeypatch.setattr(route_store, "require_supabase_client", lambda: fake)

    stored = route_store.replace_route_segments(
        "route-1",
        [_segment(2, "b1", "b2", 16), _segment(1, None, "b1", 8)],
    )

    operations = [query.operation for query in fake.executed]
    assert operations == ["select", "delete", "insert"]
    assert [segment.order for segment in stored] == [1, 2]
    assert all(segment.id and segment.route_id == "route-1" for segment in stored)
    assert stored[0].to_location == north_of(CAPE_TOWN, 8)


def test_replace_with_no_segments_inserts_nothing(monkeypatch) -> None:
    fake = FakeSupabase()
    monkeypatch.setattr(route_store, "require_supabase_client", lambda: fake)

    assert route_store.replace_route_segments("route-1", []) == []
    assert [query.operation for query in fake.executed] == ["select", "delete"]


def test_reoptimizing_unlinks_bookings_from_old_segments(monkeypatch) -> None:
    fake = FakeSupabase(
        {
            "route_segments": [
                {"id": "seg-old-1", "route_id": "route-1"},
                {"id": "seg-old-2", "route_id": "route-1"},
            ]
        }
    )
    monkeypatch.setattr(route_store, "require_supabase_client", lambda: fake)

    route_store.replace_route_segments("route-1", [_segment(1, None, "b1", 8)])

    operations = [(query.table, query.operation) for query in fake.executed]
    assert operations == [
        ("route_segments", "select"),
        ("bookings", "update"),
        ("route_segments", "delete"),
        ("route_segments", "insert"),
    ]
    reset = fake.calls("bookings", "update")[0]
    assert ("in", "route_segment_id", ("seg-old-1", "seg-old-2")) in reset.filters
    assert set(reset.payload) == set(route_store.BOOKING_LINK_COLUMNS)
    assert all(value is None for value in reset.payload.values())


def test_bookings_are_linked_to_neighbours(monkeypatch) -> None:
    fake = FakeSupabase()
    monkeypatch.setattr(route_store, "require_supabase_client", lambda: fake)
    segments = [_segment(1, None, "b1", 8), _segment(2, "b1", "b2", 16)]

    route_store.link_bookings_to_segments(segments)

    updates = fake.calls("bookings", "update")
    assert updates[0].payload["previous_booking_id"] is None
    assert updates[0].payload["next_booking_id"] == "b2"
    assert updates[1].payload["next_booking_id"] is None
    assert updates[1].payload["travel_fee_method"] == "route_chained"
    assert ("eq", "id", "b2") in updates[1].filters


def test_load_route_reads_segments_in_order(monkeypatch) -> None:
    fake = FakeSupabase(
        {
            "travel_routes": [
                {
                    "id": "route-1",
                    "provider_id": "prov-1",
                    "staff_id": None,
                    "route_date": "2026-03-02",
                    "optimization_status": "optimized",
                    "starting_address": {"lat": CAPE_TOWN.latitude, "lng": CAPE_TOWN.longitude},
                    "total_distance_km": "8",
                    "total_duration_minutes": 12,
                    "optimized_at": "2026-03-02T06:00:00+00:00",
                }
            ],
            "route_segments": [
                {"id": "seg-1", **route_store.segment_to_row("route-1", _segment(1, None, "b1", 8))},
            ],
        }
    )
    monkeypatch.setattr(route_store, "require_supabase_client", lambda: fake)

    route = route_store.load_route("prov-1", ROUTE_DATE)

    assert route.id == "route-1"
    assert route.status.value == "optimized"
    assert route.starting_location == CAPE_TOWN
    assert route.total_distance_km == 8.0
    assert [segment.to_booking_id for segment in route.segments] == ["b1"]


def test_load_route_missing(monkeypatch) -> None:
    monkeypatch.setattr(route_store, "require_supabase_client", lambda: FakeSupabase())
    assert route_store.load_route("prov-1", ROUTE_DATE) is None

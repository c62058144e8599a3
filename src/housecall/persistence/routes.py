"""Database persistence for daily travel routes and their segments."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..data.parsing import coerce_float, coordinate_from_point, parse_date
from ..db.supabase import require_supabase_client
from ..models.domain import Coordinate, Route, RouteSegment, RouteStatus

logger = logging.getLogger(__name__)

ROUTES_TABLE = "travel_routes"
SEGMENTS_TABLE = "route_segments"


def _route_query(supabase, provider_id: str, route_date: date, staff_id: Optional[str]):
    query = (
        supabase.table(ROUTES_TABLE)
        .select("*")
        .eq("provider_id", provider_id)
        .eq("route_date", route_date.isoformat())
    )
    if staff_id:
        return query.eq("staff_id", staff_id)
    return query.is_("staff_id", "null")


def get_or_create_route(
    provider_id: str,
    route_date: date,
    staff_id: Optional[str],
    starting_location: Coordinate,
) -> str:
    """Return the route id for the key, resetting it to pending."""
    supabase = require_supabase_client()
    response = _route_query(supabase, provider_id, route_date, staff_id).limit(1).execute()
    rows = response.data or []
    pending = {
        "optimization_status": RouteStatus.PENDING.value,
        "starting_location_type": "salon",
        "starting_address": starting_location.as_dict(),
    }
    if rows:
        route_id = str(rows[0]["id"])
        supabase.table(ROUTES_TABLE).update(pending).eq("id", route_id).execute()
        return route_id

    created = (
        supabase.table(ROUTES_TABLE)
        .insert(
            {
                "provider_id": provider_id,
                "staff_id": staff_id,
                "route_date": route_date.isoformat(),
                **pending,
            }
        )
        .execute()
    )
    route_id = str(created.data[0]["id"])
    logger.info(f"Created route {route_id} for provider {provider_id} on {route_date}")
    return route_id


def segment_to_row(route_id: str, segment: RouteSegment) -> dict:
    return {
        "route_id": route_id,
        "from_booking_id": segment.from_booking_id,
        "to_booking_id": segment.to_booking_id,
        "segment_order": segment.order,
        "distance_km": segment.distance_km,
        "duration_minutes": segment.duration_minutes,
        "travel_fee_calculated": segment.travel_fee_calculated,
        "travel_fee_charged": segment.travel_fee_charged,
        "from_location": segment.from_location.as_dict(),
        "to_location": segment.to_location.as_dict(),
    }


def segment_from_row(row: dict) -> RouteSegment:
    calculated = coerce_float(row.get("travel_fee_calculated")) or 0.0
    charged = coerce_float(row.get("travel_fee_charged"))
    return RouteSegment(
        id=str(row["id"]),
        route_id=str(row["route_id"]),
        order=int(row["segment_order"]),
        from_booking_id=row.get("from_booking_id"),
        to_booking_id=str(row["to_booking_id"]),
        distance_km=coerce_float(row.get("distance_km")) or 0.0,
        duration_minutes=int(row.get("duration_minutes") or 0),
        travel_fee_calculated=calculated,
        travel_fee_charged=charged if charged is not None else calculated,
        from_location=coordinate_from_point(row["from_location"]),
        to_location=coordinate_from_point(row["to_location"]),
    )


BOOKING_LINK_COLUMNS = (
    "route_segment_id",
    "travel_distance_km",
    "travel_duration_minutes",
    "previous_booking_id",
    "next_booking_id",
    "travel_fee",
    "travel_fee_method",
)


def _clear_booking_links(supabase, route_id: str) -> None:
    """Detach bookings from the route's current segments before they are replaced."""
    response = supabase.table(SEGMENTS_TABLE).select("id").eq("route_id", route_id).execute()
    segment_ids = [str(row["id"]) for row in response.data or []]
    if not segment_ids:
        return
    supabase.table("bookings").update({column: None for column in BOOKING_LINK_COLUMNS}).in_(
        "route_segment_id", segment_ids
    ).execute()


def replace_route_segments(route_id: str, segments: Sequence[RouteSegment]) -> list[RouteSegment]:
    """Delete the route's segments and insert the new set. Returns the stored segments.

    Bookings linked to the old segments are unlinked first; the caller relinks
    the ones still on the route.
    """
    supabase = require_supabase_client()
    _clear_booking_links(supabase, route_id)
    supabase.table(SEGMENTS_TABLE).delete().eq("route_id", route_id).execute()
    if not segments:
        return []
    response = (
        supabase.table(SEGMENTS_TABLE)
        .insert([segment_to_row(route_id, segment) for segment in segments])
        .execute()
    )
    stored = [segment_from_row(row) for row in response.data or []]
    return sorted(stored, key=lambda segment: segment.order)


def save_route_summary(route: Route) -> None:
    supabase = require_supabase_client()
    supabase.table(ROUTES_TABLE).update(
        {
            "total_distance_km": route.total_distance_km,
            "total_duration_minutes": route.total_duration_minutes,
            "optimization_status": route.status.value,
            "optimized_at": route.optimized_at.isoformat() if route.optimized_at else None,
            "ending_location_type": "home" if route.segments else "salon",
            "ending_address": route.ending_location.as_dict() if route.ending_location else None,
        }
    ).eq("id", route.id).execute()


def link_bookings_to_segments(segments: Sequence[RouteSegment]) -> None:
    """Write each booking's position in the route back onto the booking row."""
    supabase = require_supabase_client()
    for index, segment in enumerate(segments):
        next_booking_id = segments[index + 1].to_booking_id if index + 1 < len(segments) else None
        supabase.table("bookings").update(
            {
                "route_segment_id": segment.id,
                "travel_distance_km": segment.distance_km,
                "travel_duration_minutes": segment.duration_minutes,
                "previous_booking_id": segment.from_booking_id,
                "next_booking_id": next_booking_id,
                "travel_fee": segment.travel_fee_charged,
                "travel_fee_method": "route_chained",
            }
        ).eq("id", segment.to_booking_id).execute()


def load_route(provider_id: str, route_date: date, staff_id: Optional[str] = None) -> Optional[Route]:
    """Load the stored route for the key with its segments in order."""
    supabase = require_supabase_client()
    response = _route_query(supabase, provider_id, route_date, staff_id).limit(1).execute()
    rows = response.data or []
    if not rows:
        return None
    row = rows[0]
    segments_response = (
        supabase.table(SEGMENTS_TABLE)
        .select("*")
        .eq("route_id", row["id"])
        .order("segment_order")
        .execute()
    )
    optimized_at = row.get("optimized_at")
    starting = coordinate_from_point(row.get("starting_address") or {})
    if starting is None:
        raise ValueError(f"Route {row['id']} has no starting location.")
    return Route(
        id=str(row["id"]),
        provider_id=str(row["provider_id"]),
        staff_id=row.get("staff_id"),
        route_date=parse_date(row["route_date"]),
        status=RouteStatus(row.get("optimization_status") or RouteStatus.PENDING.value),
        starting_location=starting,
        ending_location=coordinate_from_point(row.get("ending_address") or {}),
        total_distance_km=coerce_float(row.get("total_distance_km")) or 0.0,
        total_duration_minutes=int(row.get("total_duration_minutes") or 0),
        optimized_at=datetime.fromisoformat(optimized_at) if optimized_at else None,
        segments=[segment_from_row(segment) for segment in segments_response.data or []],
    )

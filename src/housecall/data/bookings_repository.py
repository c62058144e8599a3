"""Read access to a provider's at-home bookings."""

from __future__ import annotations

import logging
from datetime import date

from ..db.supabase import require_supabase_client
from ..models.domain import Booking
from .parsing import coerce_float, coordinate_from_row, parse_date, parse_time

logger = logging.getLogger(__name__)

AT_HOME = "at_home"
EXCLUDED_STATUSES = ("cancelled", "no_show")


def booking_from_row(row: dict) -> Booking:
    return Booking(
        id=str(row["id"]),
        provider_id=str(row["provider_id"]),
        scheduled_date=parse_date(row["scheduled_date"]),
        scheduled_time=parse_time(row["scheduled_time"]),
        status=str(row.get("status") or "").lower(),
        location_type=str(row.get("location_type") or "").lower(),
        coordinate=coordinate_from_row(
            row,
            ("address_latitude", "address_lat"),
            ("address_longitude", "address_lng"),
        ),
        staff_id=row.get("staff_id") or row.get("team_member_id"),
        travel_fee=coerce_float(row.get("travel_fee")),
    )


def get_at_home_bookings(provider_id: str, route_date: date, staff_id: str | None = None) -> list[Booking]:
    """At-home bookings for the provider's day, ordered by scheduled time.

    Cancelled and no-show bookings are excluded.
    """
    supabase = require_supabase_client()
    query = (
        supabase.table("bookings")
        .select("*")
        .eq("provider_id", provider_id)
        .eq("scheduled_date", route_date.isoformat())
        .eq("location_type", AT_HOME)
        .not_.in_("status", list(EXCLUDED_STATUSES))
    )
    if staff_id:
        query = query.eq("staff_id", staff_id)
    response = query.order("scheduled_time").execute()

    bookings: list[Booking] = []
    for row in response.data or []:
        try:
            bookings.append(booking_from_row(row))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping invalid booking row {row.get('id')}: {e}")
    return bookings

"""Read access to platform zones, provider zone selections and legacy provider zones."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..db.supabase import require_supabase_client
from ..models.domain import (
    CityArea,
    PolygonArea,
    PostalCodeArea,
    RadiusArea,
    Zone,
    ZoneArea,
    ZoneSelection,
)
from .parsing import coerce_bool, coerce_float, coordinate_from_point, coordinate_from_row

logger = logging.getLogger(__name__)


def _polygon_ring(raw: Any) -> tuple:
    """Accept ``[[[lng, lat], ...]]`` (GeoJSON), ``[[lng, lat], ...]`` or ``[{lat, lng}, ...]``."""

    if not isinstance(raw, list) or not raw:
        return ()
    ring = raw[0] if isinstance(raw[0], list) and raw[0] and isinstance(raw[0][0], (list, dict)) else raw
    points = []
    for point in ring:
        coordinate = coordinate_from_point(point)
        if coordinate is None:
            continue
        points.append(coordinate)
    if len(points) > 1 and points[0] == points[-1]:
        points.pop()
    return tuple(points)


def area_from_row(row: dict) -> ZoneArea:
    zone_type = str(row.get("zone_type") or "").strip().lower()
    match zone_type:
        case "postal_code":
            return PostalCodeArea(codes=tuple(str(code) for code in row.get("postal_codes") or ()))
        case "city":
            return CityArea(cities=tuple(str(city) for city in row.get("cities") or ()))
        case "radius":
            return RadiusArea(
                center=coordinate_from_row(row, ("center_latitude",), ("center_longitude",)),
                radius_km=coerce_float(row.get("radius_km")),
            )
        case "polygon":
            return PolygonArea(ring=_polygon_ring(row.get("polygon_coordinates")))
        case _:
            raise ValueError(f"Unknown zone type '{zone_type}'.")


def zone_from_row(row: dict) -> Zone:
    """Validate a platform_zones or service_zones row into a Zone."""

    travel_time = row.get("travel_time_minutes")
    return Zone(
        id=str(row["id"]),
        name=str(row.get("name") or row["id"]),
        area=area_from_row(row),
        is_active=coerce_bool(row.get("is_active"), default=True),
        travel_fee=coerce_float(row.get("travel_fee")),
        travel_time_minutes=int(travel_time) if travel_time is not None else None,
    )


def selection_from_row(row: dict) -> ZoneSelection:
    travel_time = row.get("travel_time_minutes")
    return ZoneSelection(
        id=str(row["id"]),
        provider_id=str(row["provider_id"]),
        platform_zone_id=str(row["platform_zone_id"]),
        travel_fee=coerce_float(row.get("travel_fee")) or 0.0,
        travel_time_minutes=int(travel_time) if travel_time is not None else None,
        is_active=coerce_bool(row.get("is_active"), default=True),
    )


def _zones_from_rows(rows: list[dict], table: str) -> list[Zone]:
    zones: list[Zone] = []
    for row in rows:
        try:
            zones.append(zone_from_row(row))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping invalid {table} row {row.get('id')}: {e}")
    return zones


def get_platform_zones() -> list[Zone]:
    """Active platform zones in stored order."""
    supabase = require_supabase_client()
    response = (
        supabase.table("platform_zones")
        .select("*")
        .eq("is_active", True)
        .order("created_at")
        .execute()
    )
    return _zones_from_rows(response.data or [], "platform_zones")


def get_provider_zones(provider_id: str) -> list[Zone]:
    """Active legacy per-provider service zones."""
    supabase = require_supabase_client()
    response = (
        supabase.table("service_zones")
        .select("*")
        .eq("provider_id", provider_id)
        .eq("is_active", True)
        .order("created_at")
        .execute()
    )
    return _zones_from_rows(response.data or [], "service_zones")


def get_zone_selection(provider_id: str, platform_zone_id: str) -> Optional[ZoneSelection]:
    """The provider's active opt-in to a platform zone, if any."""
    supabase = require_supabase_client()
    response = (
        supabase.table("provider_zone_selections")
        .select("*")
        .eq("provider_id", provider_id)
        .eq("platform_zone_id", platform_zone_id)
        .eq("is_active", True)
        .limit(1)
        .execute()
    )
    rows = response.data or []
    return selection_from_row(rows[0]) if rows else None

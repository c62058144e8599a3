"""Helpers for turning loosely typed database rows into domain values."""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Any, Optional, Sequence

from ..models.domain import Coordinate

logger = logging.getLogger(__name__)

LATITUDE_FIELDS = ("latitude", "address_lat")
LONGITUDE_FIELDS = ("longitude", "address_lng")


def coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def coerce_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "t", "yes", "y"}
    return bool(value)


def first_present(row: dict, keys: Sequence[str]) -> Any:
    for key in keys:
        value = row.get(key)
        if value is not None and value != "":
            return value
    return None


def coordinate_from_row(
    row: dict,
    lat_fields: Sequence[str] = LATITUDE_FIELDS,
    lng_fields: Sequence[str] = LONGITUDE_FIELDS,
) -> Optional[Coordinate]:
    """Read a coordinate from the first populated latitude/longitude columns.

    Returns None when either half is missing or the pair is out of range.
    """

    lat = coerce_float(first_present(row, lat_fields))
    lng = coerce_float(first_present(row, lng_fields))
    if lat is None or lng is None:
        return None
    try:
        return Coordinate(latitude=lat, longitude=lng)
    except ValueError as exc:
        logger.warning(f"Ignoring out-of-range coordinate in row {row.get('id')}: {exc}")
        return None


def coordinate_from_point(point: Any) -> Optional[Coordinate]:
    """Parse ``[lng, lat]`` pairs or ``{lat, lng}`` / ``{latitude, longitude}`` objects."""

    if isinstance(point, (list, tuple)) and len(point) >= 2:
        lng, lat = coerce_float(point[0]), coerce_float(point[1])
    elif isinstance(point, dict):
        lat = coerce_float(first_present(point, ("lat", "latitude")))
        lng = coerce_float(first_present(point, ("lng", "lon", "longitude")))
    else:
        return None
    if lat is None or lng is None:
        return None
    return Coordinate(latitude=lat, longitude=lng)


def parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def parse_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    text = str(value).strip()
    parts = text.split(":")
    hour = int(parts[0])
    minute = int(parts[1]) if len(parts) > 1 else 0
    second = int(float(parts[2])) if len(parts) > 2 else 0
    return time(hour, minute, second)

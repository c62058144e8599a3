"""Daily route chaining for a provider's at-home bookings.

Visits are taken in scheduled-time order; the optimiser never re-orders them.
Each leg runs from the previous visit (or the provider's primary location for
the first leg) to the next booking and is charged with the chained fee
schedule, so only the first leg of the day carries the base fee.
"""

from __future__ import annotations

import logging
import math
import threading
import weakref
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from ...config import settings
from ...data.bookings_repository import AT_HOME, EXCLUDED_STATUSES, get_at_home_bookings
from ...data.providers_repository import get_chained_fee_schedule, get_primary_location
from ...models.domain import Booking, ChainedFeeSchedule, Coordinate, Route, RouteSegment, RouteStatus
from ...persistence.routes import (
    get_or_create_route,
    link_bookings_to_segments,
    load_route,
    replace_route_segments,
    save_route_summary,
)
from ...schemas.routes import (
    LegFailureModel,
    RouteDetailResponse,
    RouteOptimizationResponse,
    RouteSavingsModel,
    RouteSegmentModel,
)
from ..geospatial import distance_km
from ..travel.fees import chained_travel_fee
from .savings import RouteSavings, calculate_savings

logger = logging.getLogger(__name__)


class RouteOptimizationError(ValueError):
    """The route cannot be built at all (as opposed to a single bad leg)."""


@dataclass(frozen=True, slots=True)
class LegFailure:
    booking_id: str
    reason: str


@dataclass(slots=True)
class ChainResult:
    segments: list[RouteSegment] = field(default_factory=list)
    skipped_booking_ids: list[str] = field(default_factory=list)
    failures: list[LegFailure] = field(default_factory=list)


# Entries drop out once no caller holds the lock.
_route_locks: weakref.WeakValueDictionary[tuple[str, date, Optional[str]], threading.Lock] = (
    weakref.WeakValueDictionary()
)
_route_locks_guard = threading.Lock()


def _lock_for(key: tuple[str, date, Optional[str]]) -> threading.Lock:
    with _route_locks_guard:
        lock = _route_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _route_locks[key] = lock
        return lock


def estimate_duration_minutes(distance: float, speed_kmh: float) -> int:
    return math.ceil(distance / speed_kmh * 60)


def _visit_order(bookings: Sequence[Booking]) -> list[Booking]:
    eligible = [
        booking
        for booking in bookings
        if booking.location_type == AT_HOME and booking.status not in EXCLUDED_STATUSES
    ]
    return sorted(eligible, key=lambda booking: booking.scheduled_time)


def build_route_segments(
    start: Coordinate,
    bookings: Sequence[Booking],
    schedule: ChainedFeeSchedule,
    *,
    speed_kmh: float,
) -> ChainResult:
    """Chain the day's bookings into ordered segments. Pure; no I/O."""

    result = ChainResult()
    previous_id: Optional[str] = None
    previous_location = start

    for booking in _visit_order(bookings):
        if booking.coordinate is None:
            logger.info(f"Booking {booking.id} has no coordinates; left out of the route")
            result.skipped_booking_ids.append(booking.id)
            continue

        try:
            leg_distance = round(distance_km(previous_location, booking.coordinate), 2)
            if not math.isfinite(leg_distance):
                raise ValueError(f"non-finite distance {leg_distance}")
        except (ValueError, ArithmeticError) as exc:
            logger.warning(f"Could not compute distance to booking {booking.id}: {exc}")
            result.failures.append(LegFailure(booking.id, f"distance: {exc}"))
            continue

        is_first = not result.segments
        try:
            fee = chained_travel_fee(leg_distance, is_first, schedule)
        except (ValueError, ArithmeticError) as exc:
            logger.warning(f"Travel fee for booking {booking.id} could not be computed, charging 0: {exc}")
            result.failures.append(LegFailure(booking.id, f"fee: {exc}"))
            fee = 0.0

        result.segments.append(
            RouteSegment(
                order=len(result.segments) + 1,
                from_booking_id=previous_id,
                to_booking_id=booking.id,
                distance_km=leg_distance,
                duration_minutes=estimate_duration_minutes(leg_distance, speed_kmh),
                travel_fee_calculated=fee,
                travel_fee_charged=fee,
                from_location=previous_location,
                to_location=booking.coordinate,
            )
        )
        previous_id = booking.id
        previous_location = booking.coordinate

    return result


def segment_to_model(segment: RouteSegment) -> RouteSegmentModel:
    return RouteSegmentModel(
        id=segment.id,
        order=segment.order,
        from_booking_id=segment.from_booking_id,
        to_booking_id=segment.to_booking_id,
        distance_km=segment.distance_km,
        duration_minutes=segment.duration_minutes,
        travel_fee_calculated=segment.travel_fee_calculated,
        travel_fee_charged=segment.travel_fee_charged,
        from_location=segment.from_location.as_dict(),
        to_location=segment.to_location.as_dict(),
    )


def savings_to_model(savings: RouteSavings) -> RouteSavingsModel:
    return RouteSavingsModel(
        standard_total=savings.standard_total,
        chained_total=savings.chained_total,
        amount_saved=savings.savings,
        percentage_saved=savings.savings_percentage,
        misconfigured=savings.misconfigured,
    )


def optimize_route(provider_id: str, route_date: date, staff_id: str | None = None) -> RouteOptimizationResponse:
    """Rebuild the provider's route for the day and persist it.

    Re-running replaces the stored segments. Calls for the same
    (provider, date, staff) key are serialised.
    """
    with _lock_for((provider_id, route_date, staff_id)):
        start = get_primary_location(provider_id)
        if start is None:
            raise RouteOptimizationError(
                f"Provider '{provider_id}' has no primary location with coordinates; "
                "cannot determine where the route starts."
            )

        schedule = get_chained_fee_schedule()
        bookings = get_at_home_bookings(provider_id, route_date, staff_id)
        route_id = get_or_create_route(provider_id, route_date, staff_id, start.coordinate)

        chain = build_route_segments(
            start.coordinate,
            bookings,
            schedule,
            speed_kmh=settings.average_speed_kmh,
        )
        stored = replace_route_segments(route_id, chain.segments)
        link_bookings_to_segments(stored)

        route = Route(
            id=route_id,
            provider_id=provider_id,
            staff_id=staff_id,
            route_date=route_date,
            status=RouteStatus.OPTIMIZED,
            starting_location=start.coordinate,
            ending_location=stored[-1].to_location if stored else start.coordinate,
            total_distance_km=round(sum(segment.distance_km for segment in stored), 2),
            total_duration_minutes=sum(segment.duration_minutes for segment in stored),
            optimized_at=datetime.now(timezone.utc),
            segments=stored,
        )
        save_route_summary(route)

    savings = calculate_savings(route, schedule)
    if chain.failures:
        logger.warning(
            f"Route {route_id} optimised with {len(chain.failures)} failed leg(s): "
            + ", ".join(failure.booking_id for failure in chain.failures)
        )
    logger.info(
        f"Optimised route {route_id}: {len(stored)} segments, {route.total_distance_km}km, "
        f"saved {savings.savings}"
    )
    return RouteOptimizationResponse(
        route_id=route_id,
        bookings_count=len(bookings),
        segments_created=len(stored),
        total_distance_km=route.total_distance_km,
        total_duration_minutes=route.total_duration_minutes,
        segments=[segment_to_model(segment) for segment in stored],
        savings=savings_to_model(savings),
        partial_failure=bool(chain.failures),
        failures=[LegFailureModel(booking_id=f.booking_id, reason=f.reason) for f in chain.failures],
        skipped_booking_ids=chain.skipped_booking_ids,
    )


def get_route(provider_id: str, route_date: date, staff_id: str | None = None) -> Optional[RouteDetailResponse]:
    """The stored route for the key with its savings, or None if never optimised."""
    route = load_route(provider_id, route_date, staff_id)
    if route is None:
        return None
    savings = calculate_savings(route, get_chained_fee_schedule())
    return RouteDetailResponse(
        route_id=route.id,
        provider_id=route.provider_id,
        staff_id=route.staff_id,
        route_date=route.route_date,
        optimization_status=route.status.value,
        optimized_at=route.optimized_at,
        total_distance_km=route.total_distance_km,
        total_duration_minutes=route.total_duration_minutes,
        segments=[segment_to_model(segment) for segment in route.segments],
        savings=savings_to_model(savings),
    )

"""Savings of a chained route compared with charging every visit independently."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ...models.domain import ChainedFeeSchedule, Route
from ..geospatial import distance_km
from ..travel.fees import standard_travel_fee

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RouteSavings:
    standard_total: float
    chained_total: float
    savings: float
    savings_percentage: float
    misconfigured: bool = False


def calculate_savings(route: Route, schedule: ChainedFeeSchedule) -> RouteSavings:
    """Compare standard fees (each visit from the route's start) with charged segment fees.

    Negative savings mean the chained schedule charges more than independent
    bookings would; they are reported as-is and flagged.
    """

    standard_total = 0.0
    chained_total = 0.0
    for segment in route.segments:
        direct = round(distance_km(route.starting_location, segment.to_location), 2)
        standard_total += standard_travel_fee(direct, schedule)
        chained_total += segment.travel_fee_charged

    savings = standard_total - chained_total
    percentage = (savings / standard_total * 100) if standard_total > 0 else 0.0
    misconfigured = savings < -0.005
    if misconfigured:
        logger.warning(
            f"Route {route.id} chained fees exceed standard fees by {-savings:.2f}; "
            "check the travel fee configuration"
        )
    return RouteSavings(
        standard_total=round(standard_total, 2),
        chained_total=round(chained_total, 2),
        savings=round(savings, 2),
        savings_percentage=round(percentage, 2),
        misconfigured=misconfigured,
    )

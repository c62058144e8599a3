"""Travel fee calculation for at-home appointments.

Fees are computed from the great-circle distance between the provider's base
and the customer's address under one of four strategies:

* ``flat`` - a fixed fee regardless of distance.
* ``distance_based`` - distance (beyond any free radius) times a per-km rate.
* ``tiered`` - the fee of the first tier whose ``upto_km`` covers the distance.
* ``zone_based`` - the fixed price of the zone the address matched.

A zone carrying a fixed price always takes precedence over the distance
formulas. The final fee is clamped to ``[minimum_fee, maximum_fee]`` when
those are set. Amounts are rounded to cents only when the result is built.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from ...models.domain import (
    Address,
    ChainedFeeSchedule,
    Coordinate,
    FeeLine,
    FeeStrategy,
    FeeTier,
    TravelFeeResult,
    TravelFeeRules,
    Zone,
)
from ..geospatial import distance_km

logger = logging.getLogger(__name__)


def _money(value: float) -> float:
    return round(value, 2)


def format_limit_km(value: float) -> str:
    """Render a configured limit without trailing zeros (10.0 -> '10')."""
    return f"{value:g}"


def find_tier(distance: float, tiers: Sequence[FeeTier]) -> Optional[tuple[FeeTier, int]]:
    ordered = sorted(tiers, key=lambda tier: tier.upto_km)
    for index, tier in enumerate(ordered):
        if distance <= tier.upto_km:
            return tier, index
    return None


def clamp_fee(fee: float, minimum_fee: Optional[float], maximum_fee: Optional[float]) -> float:
    if minimum_fee is not None:
        fee = max(fee, minimum_fee)
    if maximum_fee is not None:
        fee = min(fee, maximum_fee)
    return fee


def estimate_travel_minutes(distance: float, rules: TravelFeeRules) -> int:
    return rules.base_travel_time_minutes + math.ceil(distance * rules.default_minutes_per_km)


def _result(
    *,
    raw_fee: float,
    lines: list[FeeLine],
    distance: float,
    minutes: int,
    rules: TravelFeeRules,
    zone_name: Optional[str] = None,
    tier_index: Optional[int] = None,
    clamp: bool = True,
) -> TravelFeeResult:
    fee = clamp_fee(raw_fee, rules.minimum_fee, rules.maximum_fee) if clamp else raw_fee
    adjustment = fee - raw_fee
    if adjustment > 0:
        lines.append(FeeLine(f"Minimum travel fee ({rules.minimum_fee:g})", adjustment))
    elif adjustment < 0:
        lines.append(FeeLine(f"Maximum travel fee cap ({rules.maximum_fee:g})", adjustment))
    return TravelFeeResult(
        fee=_money(max(fee, 0.0)),
        distance_km=_money(distance),
        travel_time_minutes=minutes,
        total_travel_time_minutes=minutes * 2,
        within_service_area=True,
        zone_name=zone_name,
        tier_index=tier_index,
        breakdown=tuple(FeeLine(line.label, _money(line.amount)) for line in lines),
    )


def _fallback(distance: float, minutes: int, rules: TravelFeeRules, reason: str) -> TravelFeeResult:
    logger.warning("Travel fee rules incomplete (%s); using minimum fee", reason)
    fee = rules.minimum_fee or 0.0
    return _result(
        raw_fee=fee,
        lines=[FeeLine("Default travel fee", fee)],
        distance=distance,
        minutes=minutes,
        rules=rules,
    )


def fee_for_distance(distance: float, rules: TravelFeeRules, zone: Optional[Zone] = None) -> TravelFeeResult:
    """Compute the travel fee for an already known distance."""

    if rules.max_radius_km is not None and distance > rules.max_radius_km:
        return TravelFeeResult(
            fee=0.0,
            distance_km=_money(distance),
            travel_time_minutes=0,
            total_travel_time_minutes=0,
            within_service_area=False,
            outside_reason=(
                f"Address is {distance:.1f}km away, "
                f"max service radius is {format_limit_km(rules.max_radius_km)}km"
            ),
        )

    minutes = estimate_travel_minutes(distance, rules)

    if zone is not None and zone.travel_fee is not None:
        if zone.travel_time_minutes is not None:
            minutes = zone.travel_time_minutes
        return _result(
            raw_fee=zone.travel_fee,
            lines=[FeeLine(f"{zone.name} zone fee", zone.travel_fee)],
            distance=distance,
            minutes=minutes,
            rules=rules,
            zone_name=zone.name,
        )

    free_radius = rules.free_radius_km
    in_free_radius = free_radius is not None and distance <= free_radius

    match rules.strategy:
        case FeeStrategy.FLAT:
            return _result(
                raw_fee=rules.flat_fee,
                lines=[FeeLine("Flat travel fee", rules.flat_fee)],
                distance=distance,
                minutes=minutes,
                rules=rules,
            )
        case FeeStrategy.DISTANCE_BASED:
            if in_free_radius:
                return _result(
                    raw_fee=0.0,
                    lines=[FeeLine(f"Within free {format_limit_km(free_radius)}km radius", 0.0)],
                    distance=distance,
                    minutes=minutes,
                    rules=rules,
                    clamp=False,
                )
            chargeable = distance - (free_radius or 0.0)
            distance_fee = chargeable * rules.per_km_rate
            return _result(
                raw_fee=distance_fee,
                lines=[FeeLine(f"Distance fee ({chargeable:.1f}km)", distance_fee)],
                distance=distance,
                minutes=minutes,
                rules=rules,
            )
        case FeeStrategy.TIERED:
            if not rules.tiers:
                return _fallback(distance, minutes, rules, "tiered strategy without tiers")
            if in_free_radius:
                return _result(
                    raw_fee=0.0,
                    lines=[FeeLine(f"Within free {format_limit_km(free_radius)}km radius", 0.0)],
                    distance=distance,
                    minutes=minutes,
                    rules=rules,
                    clamp=False,
                )
            found = find_tier(distance, rules.tiers)
            if found is None:
                last = rules.tiers[-1]
                fee = rules.maximum_fee if rules.maximum_fee is not None else last.fee
                return _result(
                    raw_fee=fee,
                    lines=[FeeLine(f"Distance fee (beyond {format_limit_km(last.upto_km)}km)", fee)],
                    distance=distance,
                    minutes=minutes,
                    rules=rules,
                    tier_index=len(rules.tiers) - 1,
                )
            tier, index = found
            return _result(
                raw_fee=tier.fee,
                lines=[FeeLine(f"Tier {index + 1} distance fee (up to {format_limit_km(tier.upto_km)}km)", tier.fee)],
                distance=distance,
                minutes=minutes,
                rules=rules,
                tier_index=index,
            )
        case FeeStrategy.ZONE_BASED:
            return _fallback(distance, minutes, rules, "zone-based strategy without a priced zone")
        case _:
            return _fallback(distance, minutes, rules, f"unknown strategy {rules.strategy!r}")


def compute_fee(
    base: Coordinate,
    destination: Address,
    rules: TravelFeeRules,
    zone: Optional[Zone] = None,
) -> TravelFeeResult:
    """Compute the travel fee from the provider's base to the destination."""

    return fee_for_distance(distance_km(base, destination.coordinate), rules, zone)


def is_address_serviceable(
    base: Coordinate,
    destination: Address,
    rules: TravelFeeRules,
) -> tuple[bool, Optional[str]]:
    result = compute_fee(base, destination, rules)
    return result.within_service_area, result.outside_reason


def _schedule_fee(distance: float, schedule: ChainedFeeSchedule, *, include_base: bool) -> float:
    if distance <= schedule.free_radius_km:
        return 0.0
    chargeable = distance - schedule.free_radius_km
    fee = chargeable * schedule.per_km_rate
    if include_base:
        fee += schedule.base_fee
    return _money(clamp_fee(fee, schedule.min_fee, schedule.max_fee))


def standard_travel_fee(distance: float, schedule: ChainedFeeSchedule) -> float:
    """Fee for a visit travelled to directly from the provider's base."""

    return _schedule_fee(distance, schedule, include_base=True)


def chained_travel_fee(distance: float, is_first_in_route: bool, schedule: ChainedFeeSchedule) -> float:
    """Fee for one leg of a chained route.

    Only the first leg of the day carries the base fee; later legs pay for the
    distance beyond the free radius. With chaining disabled every leg is
    charged the standard fee.
    """

    if not schedule.route_chaining_enabled:
        return standard_travel_fee(distance, schedule)
    include_base = is_first_in_route and schedule.apply_to_first_appointment
    return _schedule_fee(distance, schedule, include_base=include_base)

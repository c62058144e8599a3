"""Address validation and travel fee quoting for house-call bookings."""

from __future__ import annotations

import dataclasses
import logging
from typing import Optional, Sequence

from ...config import settings
from ...data.providers_repository import (
    get_platform_travel_defaults,
    get_provider,
    get_provider_locations,
    get_travel_fee_settings,
)
from ...data.zones_repository import get_platform_zones, get_provider_zones, get_zone_selection
from ...models.domain import Address, Coordinate, Provider, ProviderLocation, Zone
from ...schemas.location import (
    AddressModel,
    CoordinatesModel,
    FeeLineModel,
    LocationValidationResponse,
    TravelFeeRulesResponse,
    ValidationFailure,
)
from ..geocoding.mapbox_client import AddressNotFoundError, GeocodingUnavailableError, MapboxGeocoder
from ..geospatial import distance_km
from ..travel.fees import compute_fee, format_limit_km
from ..travel.formatting import describe_tiers, format_distance, format_travel_fee, format_travel_time
from ..travel.rules import provider_overrides_apply, resolve_rules
from ..zoning.matcher import match_zone

logger = logging.getLogger(__name__)

SALON_ALTERNATIVE = "Would you like to book at their salon instead?"


def _failure(
    failure: ValidationFailure,
    reason: str,
    distance: Optional[float] = None,
) -> LocationValidationResponse:
    return LocationValidationResponse(
        valid=False,
        travel_fee=0.0,
        zone_id=None,
        distance_km=round(distance, 2) if distance is not None else None,
        reason=reason,
        failure=failure,
    )


def nearest_location(point: Coordinate, locations: Sequence[ProviderLocation]) -> Optional[ProviderLocation]:
    """Closest location to the point; on equal distance the earlier one wins."""

    nearest: Optional[ProviderLocation] = None
    best = float("inf")
    for location in locations:
        distance = distance_km(location.coordinate, point)
        if distance < best:
            best = distance
            nearest = location
    return nearest


def _resolve_pricing_zone(
    provider: Provider,
    address: Address,
    distance: float,
) -> tuple[Optional[Zone], Optional[LocationValidationResponse]]:
    """Apply zone coverage rules. Returns (pricing zone, failure)."""

    point = address.coordinate
    platform_zones = get_platform_zones()
    if platform_zones:
        # Platform coverage is a hard boundary; legacy provider zones are not consulted.
        matched = match_zone(point, address, platform_zones)
        if matched is None:
            return None, _failure(
                ValidationFailure.OUTSIDE_COVERAGE,
                f"This address is {distance:.1f}km away and is outside our service coverage area. "
                "Would you like to book at the salon instead?",
                distance,
            )
        selection = get_zone_selection(provider.id, matched.id)
        if selection is None or not selection.is_active:
            area = address.city or "this area"
            return None, _failure(
                ValidationFailure.PROVIDER_NOT_IN_ZONE,
                f"This provider doesn't service {area} ({distance:.1f}km away). "
                "Would you like to book at their salon location instead?",
                distance,
            )
        return (
            dataclasses.replace(
                matched,
                id=selection.id,
                travel_fee=selection.travel_fee,
                travel_time_minutes=selection.travel_time_minutes,
            ),
            None,
        )

    legacy_zones = get_provider_zones(provider.id)
    if not legacy_zones:
        return None, None
    matched = match_zone(point, address, legacy_zones)
    if matched is None:
        return None, _failure(
            ValidationFailure.OUTSIDE_COVERAGE,
            f"This address is {distance:.1f}km away and outside the provider's service zones. {SALON_ALTERNATIVE}",
            distance,
        )
    return matched, None


def validate_address(
    address: str,
    provider_id: str | None = None,
    provider_slug: str | None = None,
) -> LocationValidationResponse:
    """Decide whether the provider serves the address and quote the travel fee.

    Coverage outcomes come back as ``valid=False`` responses carrying a
    failure code and a reason; only infrastructure errors raise.
    """
    provider = get_provider(provider_id=provider_id, slug=provider_slug)
    if provider is None:
        return _failure(ValidationFailure.PROVIDER_NOT_FOUND, "Provider not found")
    if not provider.is_active or not provider.offers_mobile_services:
        return _failure(
            ValidationFailure.SERVICE_NOT_OFFERED,
            "This provider does not offer house call services. "
            "Please book at their salon location instead.",
            0.0,
        )

    try:
        geocoded = MapboxGeocoder().geocode(address, settings.default_country_code)
    except AddressNotFoundError as exc:
        logger.info(f"Address not found: {exc}")
        return _failure(
            ValidationFailure.ADDRESS_NOT_FOUND,
            "Could not find this address. Please enter a valid address.",
        )
    except GeocodingUnavailableError as exc:
        logger.warning(f"Geocoding unavailable: {exc}")
        return _failure(
            ValidationFailure.GEOCODING_UNAVAILABLE,
            "Address validation is temporarily unavailable. Please contact support.",
        )

    service_address = geocoded.address
    point = geocoded.coordinate

    base = nearest_location(point, get_provider_locations(provider.id))
    if base is None:
        return _failure(
            ValidationFailure.PROVIDER_LOCATION_MISSING,
            "Provider location not configured. Please contact the provider.",
        )

    distance = distance_km(base.coordinate, point)
    max_distance = provider.max_service_distance_km or settings.default_max_service_distance_km

    pricing_zone, failure = _resolve_pricing_zone(provider, service_address, distance)
    if failure is not None:
        return failure

    if provider.is_distance_filter_enabled and distance > max_distance:
        return _failure(
            ValidationFailure.DISTANCE_EXCEEDED,
            f"This address is {distance:.1f}km away, but this provider only serves areas within "
            f"{format_limit_km(max_distance)}km. {SALON_ALTERNATIVE}",
            distance,
        )

    platform = get_platform_travel_defaults()
    currency = platform.currency or settings.default_currency
    rules = resolve_rules(get_travel_fee_settings(provider.id), platform, max_radius_km=max_distance)
    result = compute_fee(base.coordinate, service_address, rules, zone=pricing_zone)
    if not result.within_service_area:
        return _failure(
            ValidationFailure.DISTANCE_EXCEEDED,
            result.outside_reason or "Address is outside service area",
            distance,
        )

    logger.info(
        f"Validated address for provider {provider.id}: {result.distance_km}km, fee {result.fee}"
    )
    return LocationValidationResponse(
        valid=True,
        travel_fee=result.fee,
        zone_id=pricing_zone.id if pricing_zone else None,
        zone_name=pricing_zone.name if pricing_zone else None,
        distance_km=result.distance_km,
        travel_time_minutes=result.travel_time_minutes,
        coordinates=CoordinatesModel(latitude=point.latitude, longitude=point.longitude),
        address=AddressModel(
            line1=service_address.line1,
            city=service_address.city,
            country=service_address.country,
            postal_code=service_address.postal_code,
            full_address=service_address.full_address,
        ),
        breakdown=[FeeLineModel(label=line.label, amount=line.amount) for line in result.breakdown],
        display={
            "travel_fee": format_travel_fee(result.fee, currency),
            "travel_time": format_travel_time(result.travel_time_minutes),
            "distance": format_distance(result.distance_km),
        },
    )


def describe_travel_fees(provider_id: str) -> TravelFeeRulesResponse:
    """Effective travel fee rules for a provider, for display before booking."""
    provider = get_provider(provider_id=provider_id)
    if provider is None:
        raise ValueError(f"Provider '{provider_id}' not found.")
    provider_settings = get_travel_fee_settings(provider.id)
    max_distance = provider.max_service_distance_km or settings.default_max_service_distance_km
    platform = get_platform_travel_defaults()
    currency = platform.currency or settings.default_currency
    rules = resolve_rules(provider_settings, platform, max_radius_km=max_distance)
    return TravelFeeRulesResponse(
        provider_id=provider.id,
        strategy=rules.strategy.value,
        per_km_rate=rules.per_km_rate,
        minimum_fee=rules.minimum_fee,
        maximum_fee=rules.maximum_fee,
        flat_fee=rules.flat_fee,
        free_radius_km=rules.free_radius_km,
        max_radius_km=rules.max_radius_km,
        uses_platform_default=not provider_overrides_apply(provider_settings),
        currency=currency,
        tiers=describe_tiers(rules, currency),
    )

"""Read access to providers, their locations and travel fee settings."""

from __future__ import annotations

import logging
from typing import Optional

from ..db.supabase import require_supabase_client
from ..models.domain import (
    ChainedFeeSchedule,
    FeeStrategy,
    FeeTier,
    PlatformTravelDefaults,
    Provider,
    ProviderLocation,
    ProviderTravelFeeSettings,
)
from ..config import settings
from .parsing import coerce_bool, coerce_float, coordinate_from_row

logger = logging.getLogger(__name__)

# Stored strategy names from older settings rows.
_STRATEGY_ALIASES = {
    "distance": FeeStrategy.DISTANCE_BASED,
    "zone": FeeStrategy.ZONE_BASED,
}


def provider_from_row(row: dict) -> Provider:
    return Provider(
        id=str(row["id"]),
        slug=row.get("slug"),
        is_active=coerce_bool(row.get("is_active"), default=True),
        # Column defaults to true; only an explicit false disables house calls.
        offers_mobile_services=coerce_bool(row.get("offers_mobile_services"), default=True),
        is_distance_filter_enabled=coerce_bool(row.get("is_distance_filter_enabled")),
        max_service_distance_km=coerce_float(row.get("max_service_distance_km")),
    )


def location_from_row(row: dict) -> Optional[ProviderLocation]:
    coordinate = coordinate_from_row(row)
    if coordinate is None:
        return None
    return ProviderLocation(
        id=str(row["id"]),
        coordinate=coordinate,
        is_primary=coerce_bool(row.get("is_primary")),
        name=row.get("name") or row.get("address_line1"),
    )


def parse_strategy(value) -> Optional[FeeStrategy]:
    if not value:
        return None
    text = str(value).strip().lower()
    if text in _STRATEGY_ALIASES:
        return _STRATEGY_ALIASES[text]
    try:
        return FeeStrategy(text)
    except ValueError:
        logger.warning(f"Unknown travel fee strategy '{value}'")
        return None


def travel_fee_settings_from_row(row: dict) -> ProviderTravelFeeSettings:
    tiers = []
    for tier in row.get("tiers") or []:
        upto = coerce_float(tier.get("upto_km", tier.get("max_distance_km")))
        fee = coerce_float(tier.get("fee"))
        if upto is None or fee is None:
            continue
        tiers.append(FeeTier(upto_km=upto, fee=fee))
    return ProviderTravelFeeSettings(
        enabled=coerce_bool(row.get("enabled"), default=True),
        use_platform_default=coerce_bool(row.get("use_platform_default")),
        strategy=parse_strategy(row.get("strategy")),
        rate_per_km=coerce_float(row.get("rate_per_km")),
        minimum_fee=coerce_float(row.get("minimum_fee")),
        maximum_fee=coerce_float(row.get("maximum_fee")),
        flat_fee=coerce_float(row.get("flat_fee")),
        free_radius_km=coerce_float(row.get("free_radius_km")),
        tiers=tuple(sorted(tiers, key=lambda tier: tier.upto_km)),
    )


def get_provider(provider_id: str | None = None, slug: str | None = None) -> Optional[Provider]:
    """Look up a provider by id, or by slug among active providers."""
    if not provider_id and not slug:
        raise ValueError("provider_id or provider_slug is required")
    supabase = require_supabase_client()
    query = supabase.table("providers").select("*")
    if provider_id:
        query = query.eq("id", provider_id)
    else:
        query = query.eq("slug", slug).eq("is_active", True)
    response = query.limit(1).execute()
    rows = response.data or []
    return provider_from_row(rows[0]) if rows else None


def get_provider_locations(provider_id: str) -> list[ProviderLocation]:
    """Active provider locations, primary first. Rows without coordinates are dropped."""
    supabase = require_supabase_client()
    response = (
        supabase.table("provider_locations")
        .select("*")
        .eq("provider_id", provider_id)
        .eq("is_active", True)
        .order("is_primary", desc=True)
        .execute()
    )
    locations: list[ProviderLocation] = []
    for row in response.data or []:
        location = location_from_row(row)
        if location is None:
            logger.warning(f"Provider location {row.get('id')} has no coordinates; skipping")
            continue
        locations.append(location)
    return locations


def get_primary_location(provider_id: str) -> Optional[ProviderLocation]:
    locations = get_provider_locations(provider_id)
    for location in locations:
        if location.is_primary:
            return location
    return locations[0] if locations else None


def get_travel_fee_settings(provider_id: str) -> Optional[ProviderTravelFeeSettings]:
    supabase = require_supabase_client()
    response = (
        supabase.table("provider_travel_fee_settings")
        .select("*")
        .eq("provider_id", provider_id)
        .eq("enabled", True)
        .limit(1)
        .execute()
    )
    rows = response.data or []
    return travel_fee_settings_from_row(rows[0]) if rows else None


def get_platform_travel_defaults() -> PlatformTravelDefaults:
    """Travel fee defaults from the active platform_settings row."""
    supabase = require_supabase_client()
    response = (
        supabase.table("platform_settings")
        .select("settings")
        .eq("is_active", True)
        .limit(1)
        .execute()
    )
    rows = response.data or []
    travel_fees = ((rows[0].get("settings") or {}).get("travel_fees") or {}) if rows else {}
    return PlatformTravelDefaults(
        rate_per_km=coerce_float(travel_fees.get("default_rate_per_km")),
        minimum_fee=coerce_float(travel_fees.get("default_minimum_fee")),
        maximum_fee=coerce_float(travel_fees.get("default_maximum_fee")),
        currency=travel_fees.get("default_currency"),
    )


def schedule_from_row(row: dict) -> ChainedFeeSchedule:
    return ChainedFeeSchedule(
        base_fee=coerce_float(row.get("base_fee")) or 0.0,
        per_km_rate=coerce_float(row.get("per_km_rate")) or 0.0,
        free_radius_km=coerce_float(row.get("free_radius_km")) or 0.0,
        min_fee=coerce_float(row.get("min_fee")),
        max_fee=coerce_float(row.get("max_fee")),
        apply_to_first_appointment=coerce_bool(row.get("apply_to_first_appointment"), default=True),
        route_chaining_enabled=coerce_bool(row.get("route_chaining_enabled"), default=True),
    )


def default_schedule() -> ChainedFeeSchedule:
    return ChainedFeeSchedule(
        base_fee=settings.chained_base_fee,
        per_km_rate=settings.chained_per_km_rate,
        free_radius_km=settings.chained_free_radius_km,
        min_fee=settings.chained_min_fee,
        max_fee=settings.chained_max_fee,
    )


def get_chained_fee_schedule() -> ChainedFeeSchedule:
    """The newest active travel_fee_config row, or the configured defaults."""
    supabase = require_supabase_client()
    response = (
        supabase.table("travel_fee_config")
        .select("*")
        .eq("is_active", True)
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    rows = response.data or []
    if not rows:
        logger.info("No active travel_fee_config row; using configured chained fee defaults")
        return default_schedule()
    return schedule_from_row(rows[0])

"""Resolution of effective travel fee rules from provider and platform settings."""

from __future__ import annotations

from typing import Optional, TypeVar

from ...config import settings
from ...models.domain import (
    FeeStrategy,
    PlatformTravelDefaults,
    ProviderTravelFeeSettings,
    TravelFeeRules,
)

T = TypeVar("T")


def _first_set(*values: Optional[T]) -> Optional[T]:
    for value in values:
        if value is not None:
            return value
    return None


def provider_overrides_apply(provider_settings: Optional[ProviderTravelFeeSettings]) -> bool:
    return (
        provider_settings is not None
        and provider_settings.enabled
        and not provider_settings.use_platform_default
    )


def resolve_rules(
    provider_settings: Optional[ProviderTravelFeeSettings],
    platform_defaults: Optional[PlatformTravelDefaults],
    *,
    max_radius_km: Optional[float] = None,
) -> TravelFeeRules:
    """Merge provider overrides, platform defaults and configured fallbacks.

    Precedence, field by field:

    1. the provider's value, when its settings are enabled, it has not opted
       back into the platform defaults, and the field is set;
    2. the platform default from ``platform_settings``;
    3. the fallback from :data:`settings`.

    Strategy, flat fee, free radius and tiers exist only at provider level;
    without a provider override the platform charges ``distance_based``.
    Travel-time parameters always come from configuration.
    """

    platform = platform_defaults or PlatformTravelDefaults()
    provider = provider_settings if provider_overrides_apply(provider_settings) else None

    def pick(provider_value, platform_value, fallback):
        return _first_set(provider_value, platform_value, fallback)

    minimum_fee = pick(
        provider.minimum_fee if provider else None,
        platform.minimum_fee,
        settings.default_minimum_fee,
    )
    maximum_fee = pick(
        provider.maximum_fee if provider else None,
        platform.maximum_fee,
        settings.default_maximum_fee,
    )
    if minimum_fee is not None and maximum_fee is not None and minimum_fee > maximum_fee:
        # A provider minimum above the platform cap: the cap wins.
        minimum_fee = maximum_fee

    return TravelFeeRules(
        strategy=(provider.strategy if provider and provider.strategy else FeeStrategy.DISTANCE_BASED),
        per_km_rate=pick(
            provider.rate_per_km if provider else None,
            platform.rate_per_km,
            settings.default_rate_per_km,
        ),
        minimum_fee=minimum_fee,
        maximum_fee=maximum_fee,
        flat_fee=(provider.flat_fee if provider and provider.flat_fee is not None else 0.0),
        tiers=provider.tiers if provider else (),
        max_radius_km=max_radius_km,
        free_radius_km=provider.free_radius_km if provider else None,
        base_travel_time_minutes=settings.base_travel_time_minutes,
        default_minutes_per_km=settings.default_minutes_per_km,
    )

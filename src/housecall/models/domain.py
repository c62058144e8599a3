"""Domain models for providers, zones, travel fees and daily routes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Optional, Union


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude {self.latitude} is outside [-90, 90].")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude {self.longitude} is outside [-180, 180].")

    def as_dict(self) -> dict:
        return {"lat": self.latitude, "lng": self.longitude}


@dataclass(frozen=True, slots=True)
class Address:
    """A geocoded customer address."""

    line1: str
    city: str
    country: str
    postal_code: str
    coordinate: Coordinate
    full_address: Optional[str] = None


# Zone geometry variants. A Zone wraps exactly one of these.


@dataclass(frozen=True, slots=True)
class PostalCodeArea:
    codes: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class CityArea:
    cities: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class RadiusArea:
    center: Optional[Coordinate]
    radius_km: Optional[float]


@dataclass(frozen=True, slots=True)
class PolygonArea:
    ring: tuple[Coordinate, ...]


ZoneArea = Union[PostalCodeArea, CityArea, RadiusArea, PolygonArea]


@dataclass(frozen=True, slots=True)
class Zone:
    """A platform or provider service zone.

    ``travel_fee`` and ``travel_time_minutes`` are fixed overrides that only
    provider-scoped zones (legacy service zones, or a platform zone combined
    with the provider's opt-in) carry.
    """

    id: str
    name: str
    area: ZoneArea
    is_active: bool = True
    travel_fee: Optional[float] = None
    travel_time_minutes: Optional[int] = None


@dataclass(frozen=True, slots=True)
class ZoneSelection:
    """A provider's opt-in to a platform zone, with its own pricing."""

    id: str
    provider_id: str
    platform_zone_id: str
    travel_fee: float
    travel_time_minutes: Optional[int] = None
    is_active: bool = True


class FeeStrategy(str, Enum):
    FLAT = "flat"
    DISTANCE_BASED = "distance_based"
    TIERED = "tiered"
    ZONE_BASED = "zone_based"


@dataclass(frozen=True, slots=True)
class FeeTier:
    upto_km: float
    fee: float


@dataclass(frozen=True, slots=True)
class TravelFeeRules:
    strategy: FeeStrategy = FeeStrategy.DISTANCE_BASED
    per_km_rate: float = 0.0
    minimum_fee: Optional[float] = None
    maximum_fee: Optional[float] = None
    flat_fee: float = 0.0
    tiers: tuple[FeeTier, ...] = ()
    max_radius_km: Optional[float] = None
    free_radius_km: Optional[float] = None
    base_travel_time_minutes: int = 0
    default_minutes_per_km: float = 0.0

    def __post_init__(self) -> None:
        if (
            self.minimum_fee is not None
            and self.maximum_fee is not None
            and self.minimum_fee > self.maximum_fee
        ):
            raise ValueError(
                f"minimum_fee ({self.minimum_fee}) must not exceed maximum_fee ({self.maximum_fee})."
            )
        ordered = tuple(sorted(self.tiers, key=lambda tier: tier.upto_km))
        if ordered != self.tiers:
            object.__setattr__(self, "tiers", ordered)


@dataclass(frozen=True, slots=True)
class FeeLine:
    label: str
    amount: float


@dataclass(frozen=True, slots=True)
class TravelFeeResult:
    fee: float
    distance_km: float
    travel_time_minutes: int
    total_travel_time_minutes: int
    within_service_area: bool
    outside_reason: Optional[str] = None
    zone_name: Optional[str] = None
    tier_index: Optional[int] = None
    breakdown: tuple[FeeLine, ...] = ()


@dataclass(slots=True)
class Provider:
    id: str
    slug: Optional[str]
    is_active: bool
    offers_mobile_services: bool
    is_distance_filter_enabled: bool = False
    max_service_distance_km: Optional[float] = None


@dataclass(frozen=True, slots=True)
class ProviderLocation:
    id: str
    coordinate: Coordinate
    is_primary: bool = False
    name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ProviderTravelFeeSettings:
    """Provider-level overrides of the platform travel fee defaults."""

    enabled: bool = True
    use_platform_default: bool = False
    strategy: Optional[FeeStrategy] = None
    rate_per_km: Optional[float] = None
    minimum_fee: Optional[float] = None
    maximum_fee: Optional[float] = None
    flat_fee: Optional[float] = None
    free_radius_km: Optional[float] = None
    tiers: tuple[FeeTier, ...] = ()


@dataclass(frozen=True, slots=True)
class PlatformTravelDefaults:
    rate_per_km: Optional[float] = None
    minimum_fee: Optional[float] = None
    maximum_fee: Optional[float] = None
    currency: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ChainedFeeSchedule:
    """Fee schedule for legs of a chained daily route.

    The first leg of the day pays ``base_fee`` on top of the per-km charge when
    ``apply_to_first_appointment`` is set; later legs pay the per-km charge only.
    """

    base_fee: float = 20.0
    per_km_rate: float = 5.0
    free_radius_km: float = 5.0
    min_fee: Optional[float] = 0.0
    max_fee: Optional[float] = None
    apply_to_first_appointment: bool = True
    route_chaining_enabled: bool = True


@dataclass(slots=True)
class Booking:
    id: str
    provider_id: str
    scheduled_date: date
    scheduled_time: time
    status: str
    location_type: str
    coordinate: Optional[Coordinate]
    staff_id: Optional[str] = None
    travel_fee: Optional[float] = None


class RouteStatus(str, Enum):
    PENDING = "pending"
    OPTIMIZED = "optimized"


@dataclass(slots=True)
class RouteSegment:
    order: int
    from_booking_id: Optional[str]
    to_booking_id: str
    distance_km: float
    duration_minutes: int
    travel_fee_calculated: float
    travel_fee_charged: float
    from_location: Coordinate
    to_location: Coordinate
    id: Optional[str] = None
    route_id: Optional[str] = None


@dataclass(slots=True)
class Route:
    id: str
    provider_id: str
    route_date: date
    starting_location: Coordinate
    staff_id: Optional[str] = None
    status: RouteStatus = RouteStatus.PENDING
    ending_location: Optional[Coordinate] = None
    total_distance_km: float = 0.0
    total_duration_minutes: int = 0
    optimized_at: Optional[datetime] = None
    segments: list[RouteSegment] = field(default_factory=list)

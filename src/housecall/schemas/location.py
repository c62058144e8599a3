"""Pydantic request/response models for address validation."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class ValidationFailure(str, Enum):
    ADDRESS_NOT_FOUND = "ADDRESS_NOT_FOUND"
    GEOCODING_UNAVAILABLE = "GEOCODING_UNAVAILABLE"
    PROVIDER_NOT_FOUND = "PROVIDER_NOT_FOUND"
    SERVICE_NOT_OFFERED = "SERVICE_NOT_OFFERED"
    PROVIDER_LOCATION_MISSING = "PROVIDER_LOCATION_MISSING"
    OUTSIDE_COVERAGE = "OUTSIDE_COVERAGE"
    PROVIDER_NOT_IN_ZONE = "PROVIDER_NOT_IN_ZONE"
    DISTANCE_EXCEEDED = "DISTANCE_EXCEEDED"


class LocationValidationRequest(BaseModel):
    address: str = Field(..., min_length=1, description="Free-form customer address.")
    provider_id: Optional[str] = None
    provider_slug: Optional[str] = None

    @model_validator(mode="after")
    def require_provider_reference(self) -> "LocationValidationRequest":
        if not self.address.strip():
            raise ValueError("Address is required")
        if not self.provider_id and not self.provider_slug:
            raise ValueError("provider_id or provider_slug is required")
        return self


class CoordinatesModel(BaseModel):
    latitude: float
    longitude: float


class AddressModel(BaseModel):
    line1: str
    city: str
    country: str
    postal_code: str
    full_address: Optional[str] = None


class FeeLineModel(BaseModel):
    label: str
    amount: float


class LocationValidationResponse(BaseModel):
    valid: bool
    travel_fee: float = 0.0
    zone_id: Optional[str] = None
    zone_name: Optional[str] = None
    distance_km: Optional[float] = None
    travel_time_minutes: Optional[int] = None
    coordinates: Optional[CoordinatesModel] = None
    address: Optional[AddressModel] = None
    breakdown: List[FeeLineModel] = Field(default_factory=list)
    reason: Optional[str] = None
    failure: Optional[ValidationFailure] = None
    display: dict[str, str] = Field(default_factory=dict)


class TravelFeeRulesResponse(BaseModel):
    provider_id: str
    strategy: str
    per_km_rate: float
    minimum_fee: Optional[float]
    maximum_fee: Optional[float]
    flat_fee: float
    free_radius_km: Optional[float]
    max_radius_km: Optional[float]
    uses_platform_default: bool
    currency: str
    tiers: List[str]

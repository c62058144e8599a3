"""Route optimisation request/response schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class RouteOptimizeRequest(BaseModel):
    provider_id: str = Field(..., min_length=1)
    route_date: date
    staff_id: Optional[str] = Field(default=None, description="Optimise a single staff member's day.")


class RouteSegmentModel(BaseModel):
    id: Optional[str] = None
    order: int
    from_booking_id: Optional[str]
    to_booking_id: str
    distance_km: float
    duration_minutes: int
    travel_fee_calculated: float
    travel_fee_charged: float
    from_location: dict
    to_location: dict


class RouteSavingsModel(BaseModel):
    standard_total: float
    chained_total: float
    amount_saved: float
    percentage_saved: float
    misconfigured: bool = False


class LegFailureModel(BaseModel):
    booking_id: str
    reason: str


class RouteOptimizationResponse(BaseModel):
    route_id: str
    bookings_count: int
    segments_created: int
    total_distance_km: float
    total_duration_minutes: int
    segments: List[RouteSegmentModel]
    savings: RouteSavingsModel
    partial_failure: bool = False
    failures: List[LegFailureModel] = Field(default_factory=list)
    skipped_booking_ids: List[str] = Field(default_factory=list)


class RouteDetailResponse(BaseModel):
    route_id: str
    provider_id: str
    staff_id: Optional[str]
    route_date: date
    optimization_status: str
    optimized_at: Optional[datetime]
    total_distance_km: float
    total_duration_minutes: int
    segments: List[RouteSegmentModel]
    savings: RouteSavingsModel

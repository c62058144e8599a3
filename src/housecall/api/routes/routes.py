"""Route chaining endpoints."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from ...schemas.routes import RouteDetailResponse, RouteOptimizationResponse, RouteOptimizeRequest
from ...services.routing.optimizer import get_route, optimize_route

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/optimize", response_model=RouteOptimizationResponse, status_code=status.HTTP_200_OK)
def optimize(payload: RouteOptimizeRequest) -> RouteOptimizationResponse:
    try:
        return optimize_route(payload.provider_id, payload.route_date, payload.staff_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error optimizing route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize route: {str(exc)}",
        ) from exc


@router.get("/{provider_id}/{route_date}", response_model=RouteDetailResponse)
def get_stored_route(
    provider_id: str,
    route_date: date,
    staff_id: Optional[str] = Query(default=None),
) -> RouteDetailResponse:
    try:
        route = get_route(provider_id, route_date, staff_id)
    except Exception as exc:
        logging.exception(f"Error loading route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load route: {str(exc)}",
        ) from exc
    if route is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No route for provider {provider_id} on {route_date.isoformat()}",
        )
    return route

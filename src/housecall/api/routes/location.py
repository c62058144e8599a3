"""House-call address validation endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.location import (
    LocationValidationRequest,
    LocationValidationResponse,
    TravelFeeRulesResponse,
    ValidationFailure,
)
from ...services.validation.service import describe_travel_fees, validate_address

router = APIRouter(prefix="/location", tags=["location"])

# Failures that are request errors rather than coverage outcomes.
FAILURE_STATUS = {
    ValidationFailure.ADDRESS_NOT_FOUND: status.HTTP_400_BAD_REQUEST,
    ValidationFailure.GEOCODING_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ValidationFailure.PROVIDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ValidationFailure.PROVIDER_LOCATION_MISSING: status.HTTP_404_NOT_FOUND,
}


@router.post("/validate", response_model=LocationValidationResponse, status_code=status.HTTP_200_OK)
def validate(payload: LocationValidationRequest) -> LocationValidationResponse:
    try:
        result = validate_address(
            payload.address,
            provider_id=payload.provider_id,
            provider_slug=payload.provider_slug,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error validating address: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to validate address: {str(exc)}",
        ) from exc

    if result.failure in FAILURE_STATUS:
        raise HTTPException(
            status_code=FAILURE_STATUS[result.failure],
            detail={"valid": False, "failure": result.failure.value, "reason": result.reason},
        )
    return result


@router.get("/travel-fees/{provider_id}", response_model=TravelFeeRulesResponse)
def travel_fees(provider_id: str) -> TravelFeeRulesResponse:
    try:
        return describe_travel_fees(provider_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error loading travel fee rules: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load travel fee rules: {str(exc)}",
        ) from exc

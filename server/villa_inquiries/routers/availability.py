"""Availability router for the booking widget's soft date check."""

from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from ..core.dependencies import AvailabilityServiceDep
from ..schemas.availability import AvailabilityResponse
from ..schemas.common import Problem
from ..services.availability import AvailabilityService

router = APIRouter(prefix="/api", tags=["availability"])

# Define query parameters to avoid B008 linting errors
SLUG_QUERY = Query(None, description="Listing slug")
CHECK_IN_QUERY = Query(None, alias="checkIn", description="Check-in date, YYYY-MM-DD")
CHECK_OUT_QUERY = Query(None, alias="checkOut", description="Check-out date, YYYY-MM-DD")


@router.get(
    "/check-availability",
    response_model=AvailabilityResponse,
    responses={400: {"model": Problem}},
    summary="Check listing availability",
    description="Reports whether the requested stay overlaps a known calendar block; advisory only",
)
async def check_availability(
    slug: Optional[str] = SLUG_QUERY,
    check_in: Optional[str] = CHECK_IN_QUERY,
    check_out: Optional[str] = CHECK_OUT_QUERY,
    service: AvailabilityService = AvailabilityServiceDep,
) -> JSONResponse:
    result = await service.check(slug.lower() if slug else slug, check_in, check_out)
    return JSONResponse(result.model_dump(mode="json", by_alias=True, exclude_none=True))

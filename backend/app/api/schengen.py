from dataclasses import asdict
from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_user
from app.cache import get_response_cache
from app.config import get_settings
from app.models.user import User
from app.schemas.schengen import FutureTripResponse, SafeDatesResponse, SchengenReport
from app.schemas.trip import PlannedTrip
from app.services.schengen import (
    MAX_DAYS,
    calculate_comprehensive_status,
    get_safe_travel_dates,
    validate_future_trip,
)
from app.utils.template_helpers import format_stay_usage, usage_percent

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter()


def build_report(visits, reference_date: date) -> dict:
    result = calculate_comprehensive_status(visits, reference_date)
    status = result.status
    return {
        "reference_date": reference_date,
        "status": asdict(status),
        "usage": format_stay_usage(status.used_days, MAX_DAYS),
        "usage_percent": usage_percent(status.used_days, MAX_DAYS),
        "warnings": result.warnings,
        "recommendations": result.recommendations,
        "next_allowed_entry": result.next_allowed_entry,
        "max_stay_days": result.max_stay_days,
    }


@router.get("/status", response_model=SchengenReport)
async def schengen_status(
    reference_date: Optional[date] = None,
    user: User = Depends(get_current_user),
):
    """90/180-day status for the caller, cached per user and reference date."""
    ref = reference_date or date.today()
    key = f"schengen:{user.id}:{ref.isoformat()}"
    return get_response_cache().get_or_compute(key, lambda: build_report(user.visits, ref))


@router.post("/validate-trip", response_model=FutureTripResponse)
async def validate_trip(payload: PlannedTrip, user: User = Depends(get_current_user)):
    return validate_future_trip(user.visits, payload.entry_date, payload.exit_date, payload.country)


@router.get("/safe-dates", response_model=SafeDatesResponse)
async def safe_dates(
    duration: int = Query(..., description="Desired stay length in days (1-90)"),
    earliest: Optional[date] = None,
    user: User = Depends(get_current_user),
):
    earliest = earliest or date.today()
    window = get_safe_travel_dates(
        user.visits,
        duration,
        earliest_date=earliest,
        max_search_days=settings.safe_date_search_days,
    )
    if window is None:
        return SafeDatesResponse(found=False, duration=duration, earliest=earliest)
    return SafeDatesResponse(
        found=True,
        duration=duration,
        earliest=earliest,
        start_date=window.start_date,
        end_date=window.end_date,
    )

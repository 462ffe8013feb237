from pydantic import BaseModel
from datetime import date as date_type
from typing import Optional


class SchengenViolationResponse(BaseModel):
    date: date_type
    days_over_limit: int
    description: str


class SchengenStatusResponse(BaseModel):
    used_days: int
    remaining_days: int
    next_reset_date: date_type
    is_compliant: bool
    violations: list[SchengenViolationResponse] = []


class SchengenReport(BaseModel):
    reference_date: date_type
    status: SchengenStatusResponse
    usage: str  # "45/90일"
    usage_percent: float
    warnings: list[str] = []
    recommendations: list[str] = []
    next_allowed_entry: Optional[date_type] = None
    max_stay_days: int


class FutureTripResponse(BaseModel):
    can_travel: bool
    violates_rule: bool
    warnings: list[str]
    suggestions: list[str]
    max_stay_days: int
    days_used_after_trip: int
    remaining_days_after_trip: int
    peak_usage: int = 0
    peak_date: Optional[date_type] = None


class SafeDatesResponse(BaseModel):
    found: bool
    duration: int
    earliest: date_type
    start_date: Optional[date_type] = None
    end_date: Optional[date_type] = None

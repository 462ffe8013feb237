from pydantic import BaseModel, field_validator, model_validator
from datetime import date, datetime
from typing import Literal, Optional

from app.services.countries import get_country_by_code


class VisaBase(BaseModel):
    country_code: str
    visa_type: str
    issue_date: date
    expiry_date: date
    max_stay_days: Optional[int] = None
    entry_type: Literal["single", "multiple"] = "multiple"
    notes: Optional[str] = None


class VisaCreate(VisaBase):
    @field_validator("country_code")
    @classmethod
    def known_country_code(cls, v):
        country = get_country_by_code(v)
        if country is None:
            raise ValueError(f"Unknown country code: {v}")
        return country.code

    @field_validator("max_stay_days")
    @classmethod
    def positive_stay(cls, v):
        if v is not None and v < 1:
            raise ValueError("max_stay_days must be at least 1")
        return v

    @model_validator(mode="after")
    def expiry_after_issue(self):
        if self.expiry_date < self.issue_date:
            raise ValueError("expiry_date must not be before issue_date")
        return self


class VisaUpdate(BaseModel):
    visa_type: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    max_stay_days: Optional[int] = None
    entry_type: Optional[Literal["single", "multiple"]] = None
    notes: Optional[str] = None

    @field_validator("visa_type", "issue_date", "expiry_date", "entry_type", mode="before")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("must not be null")
        return v

    @field_validator("max_stay_days")
    @classmethod
    def positive_stay(cls, v):
        if v is not None and v < 1:
            raise ValueError("max_stay_days must be at least 1")
        return v


class VisaResponse(VisaBase):
    id: int
    country_name: str
    status: str
    last_alert_sent: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VisaEntryCreate(BaseModel):
    user_visa_id: int
    entry_date: date
    exit_date: Optional[date] = None
    entry_point: Optional[str] = None
    exit_point: Optional[str] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None
    # Also record the stay as a trip for the Schengen calculator
    create_trip: bool = True

    @model_validator(mode="after")
    def exit_after_entry(self):
        if self.exit_date is not None and self.exit_date < self.entry_date:
            raise ValueError("exit_date must not be before entry_date")
        return self


class VisaEntryUpdate(BaseModel):
    entry_date: Optional[date] = None
    exit_date: Optional[date] = None
    entry_point: Optional[str] = None
    exit_point: Optional[str] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("entry_date", mode="before")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("entry_date must not be null")
        return v


class VisaEntryResponse(BaseModel):
    id: int
    user_visa_id: int
    country_visit_id: Optional[int] = None
    entry_date: date
    exit_date: Optional[date] = None
    entry_point: Optional[str] = None
    exit_point: Optional[str] = None
    purpose: Optional[str] = None
    stay_days: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class VisaCheckResponse(BaseModel):
    checked: int
    alerts_sent: int
    skipped_cooldown: int
    failed: int
    marked_expired: int
    marked_expiring: int


class CurrentStayResponse(BaseModel):
    entry_id: int
    visa_id: int
    country_name: str
    country_code: str
    visa_type: str
    entry_date: date
    days_in_country: int
    max_stay_days: Optional[int] = None
    remaining_days: Optional[int] = None
    visa_expiry_date: date
    visa_expires_in_days: int
    status: str
    alerts: list[str] = []
    recommendations: list[str] = []


class StayTrackingResponse(BaseModel):
    current_stays: list[CurrentStayResponse]
    stats: dict
    summary: dict


class OverstayWarningResponse(BaseModel):
    id: str
    visa_id: int
    entry_id: int
    country_name: str
    country_code: str
    warning_type: str
    severity: str
    current_stay_days: int
    max_stay_days: int
    days_remaining: int
    entry_date: date
    expected_exit_date: date
    visa_expiry_date: Optional[date] = None
    message: str
    recommendations: list[str] = []
    schengen_days_used: Optional[int] = None
    schengen_days_remaining: Optional[int] = None
    rolling_period_end: Optional[date] = None


class OverstayReportResponse(BaseModel):
    warnings: list[OverstayWarningResponse]
    schengen_warnings: list[OverstayWarningResponse]
    summary: dict

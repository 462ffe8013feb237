from pydantic import BaseModel, field_validator, model_validator
from datetime import date, datetime
from typing import Optional

from app.services.countries import find_country


def _country_name(v: str) -> str:
    country = find_country(v)
    if country is None:
        raise ValueError(f"Unknown country: {v}")
    return country.name


def _not_negative(v: Optional[int]) -> Optional[int]:
    # 0 is a valid allowance; the stay usage still renders for it
    if v is not None and v < 0:
        raise ValueError("max_days must not be negative")
    return v


class TripBase(BaseModel):
    country: str
    entry_date: date
    exit_date: Optional[date] = None
    visa_type: str = "Tourist"
    max_days: int = 90
    passport_country: Optional[str] = None
    notes: Optional[str] = None


class TripCreate(TripBase):
    @field_validator("country")
    @classmethod
    def known_country(cls, v):
        return _country_name(v)

    @field_validator("max_days")
    @classmethod
    def valid_max_days(cls, v):
        return _not_negative(v)

    @model_validator(mode="after")
    def exit_after_entry(self):
        if self.exit_date is not None and self.exit_date < self.entry_date:
            raise ValueError("exit_date must not be before entry_date")
        return self


class TripUpdate(BaseModel):
    """Partial update; the date order is re-checked against the stored row."""
    country: Optional[str] = None
    entry_date: Optional[date] = None
    exit_date: Optional[date] = None
    visa_type: Optional[str] = None
    max_days: Optional[int] = None
    passport_country: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("country", "entry_date", "visa_type", "max_days", mode="before")
    @classmethod
    def not_null(cls, v):
        # Only reached for fields present in the payload
        if v is None:
            raise ValueError("must not be null")
        return v

    @field_validator("country")
    @classmethod
    def known_country(cls, v):
        return _country_name(v)

    @field_validator("max_days")
    @classmethod
    def valid_max_days(cls, v):
        return _not_negative(v)

    @model_validator(mode="after")
    def exit_after_entry(self):
        if self.entry_date and self.exit_date and self.exit_date < self.entry_date:
            raise ValueError("exit_date must not be before entry_date")
        return self


class TripResponse(TripBase):
    id: int
    user_id: int
    is_schengen: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PlannedTrip(BaseModel):
    country: str
    entry_date: date
    exit_date: date

    @field_validator("country")
    @classmethod
    def known_country(cls, v):
        return _country_name(v)

    @model_validator(mode="after")
    def exit_after_entry(self):
        if self.exit_date < self.entry_date:
            raise ValueError("exit_date must not be before entry_date")
        return self

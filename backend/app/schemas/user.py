from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Optional

from app.services.countries import get_country_by_code


class UserBase(BaseModel):
    name: Optional[str] = None
    passport_country: Optional[str] = None
    timezone: str = "Asia/Seoul"
    notifications_enabled: bool = True

    @field_validator("passport_country")
    @classmethod
    def known_passport_country(cls, v):
        if v is None:
            return v
        country = get_country_by_code(v)
        if country is None:
            raise ValueError(f"Unknown country code: {v}")
        return country.code


class UserCreate(UserBase):
    email: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        v = v.strip().lower()
        local, _, domain = v.partition("@")
        if not local or "." not in domain:
            raise ValueError("Invalid email address")
        return v


class UserUpdate(UserBase):
    timezone: Optional[str] = None
    notifications_enabled: Optional[bool] = None


class UserResponse(UserBase):
    id: int
    email: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

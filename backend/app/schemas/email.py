from pydantic import BaseModel, field_validator
from datetime import date as date_type
from typing import Optional

MAX_BATCH_SIZE = 50


class EmailParseRequest(BaseModel):
    subject: str
    body: str
    sender: Optional[str] = None


class EmailBatchRequest(BaseModel):
    emails: list[EmailParseRequest]

    @field_validator("emails")
    @classmethod
    def batch_size(cls, v):
        if not v:
            raise ValueError("At least one email is required")
        if len(v) > MAX_BATCH_SIZE:
            raise ValueError(f"At most {MAX_BATCH_SIZE} emails per batch")
        return v


class FlightLegResponse(BaseModel):
    location: str
    date: Optional[date_type] = None
    time: Optional[str] = None


class HotelBookingResponse(BaseModel):
    name: str
    location: str
    check_in: date_type
    check_out: date_type


class ParsedEmailResponse(BaseModel):
    type: str
    provider: str
    confidence: float
    confirmation_number: Optional[str] = None
    flight_number: Optional[str] = None
    departure: Optional[FlightLegResponse] = None
    arrival: Optional[FlightLegResponse] = None
    hotel: Optional[HotelBookingResponse] = None
    raw_subject: str = ""
    raw_body: str = ""


class EmailParseResponse(BaseModel):
    success: bool
    data: Optional[ParsedEmailResponse] = None
    error: Optional[str] = None
    warnings: list[str] = []


class EmailBatchResponse(BaseModel):
    total: int
    parsed: int
    results: list[EmailParseResponse]

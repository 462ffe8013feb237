from app.schemas.user import UserCreate, UserResponse, UserUpdate
from app.schemas.trip import PlannedTrip, TripCreate, TripResponse, TripUpdate
from app.schemas.schengen import FutureTripResponse, SafeDatesResponse, SchengenReport, SchengenStatusResponse
from app.schemas.visa import (
    OverstayReportResponse,
    StayTrackingResponse,
    VisaCheckResponse,
    VisaCreate,
    VisaEntryCreate,
    VisaEntryResponse,
    VisaEntryUpdate,
    VisaResponse,
    VisaUpdate,
)
from app.schemas.email import EmailBatchRequest, EmailBatchResponse, EmailParseRequest, EmailParseResponse

__all__ = [
    "UserCreate", "UserResponse", "UserUpdate",
    "PlannedTrip", "TripCreate", "TripResponse", "TripUpdate",
    "FutureTripResponse", "SafeDatesResponse", "SchengenReport", "SchengenStatusResponse",
    "OverstayReportResponse", "StayTrackingResponse", "VisaCheckResponse",
    "VisaCreate", "VisaEntryCreate", "VisaEntryResponse", "VisaEntryUpdate", "VisaResponse", "VisaUpdate",
    "EmailBatchRequest", "EmailBatchResponse", "EmailParseRequest", "EmailParseResponse",
]

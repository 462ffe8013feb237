from app.services.email.base import (
    ConfidenceScorer,
    EmailParseResult,
    FlightLeg,
    HotelBooking,
    MAJOR_AIRPORTS,
    ParsedEmailData,
    parse_travel_date,
)
from app.services.email.patterns import EMAIL_PROVIDERS, EmailPattern, EmailProvider
from app.services.email.parser import EmailParser, get_default_parser, parse_email, parse_emails

__all__ = [
    "ConfidenceScorer",
    "EmailParseResult",
    "FlightLeg",
    "HotelBooking",
    "MAJOR_AIRPORTS",
    "ParsedEmailData",
    "parse_travel_date",
    "EMAIL_PROVIDERS",
    "EmailPattern",
    "EmailProvider",
    "EmailParser",
    "get_default_parser",
    "parse_email",
    "parse_emails",
]

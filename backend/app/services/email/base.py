import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional
import logging

import dateparser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Airport:
    code: str
    name: str
    city: str
    country: str
    korean: str


MAJOR_AIRPORTS: dict[str, Airport] = {
    a.code: a for a in [
        Airport("ICN", "Incheon International", "Seoul", "KR", "인천국제공항"),
        Airport("GMP", "Gimpo International", "Seoul", "KR", "김포국제공항"),
        Airport("PUS", "Busan Gimhae International", "Busan", "KR", "부산김해국제공항"),
        Airport("CJU", "Jeju International", "Jeju", "KR", "제주국제공항"),
        Airport("NRT", "Narita International", "Tokyo", "JP", "나리타국제공항"),
        Airport("HND", "Haneda", "Tokyo", "JP", "하네다공항"),
        Airport("KIX", "Kansai International", "Osaka", "JP", "간사이국제공항"),
        Airport("TPE", "Taoyuan International", "Taipei", "TW", "타오위안국제공항"),
        Airport("HKG", "Hong Kong International", "Hong Kong", "HK", "홍콩국제공항"),
        Airport("PVG", "Shanghai Pudong International", "Shanghai", "CN", "상하이푸둥국제공항"),
        Airport("PEK", "Beijing Capital International", "Beijing", "CN", "베이징수도국제공항"),
        Airport("SIN", "Changi", "Singapore", "SG", "싱가포르창이공항"),
        Airport("BKK", "Suvarnabhumi", "Bangkok", "TH", "수완나품공항"),
        Airport("KUL", "Kuala Lumpur International", "Kuala Lumpur", "MY", "쿠알라룸푸르국제공항"),
        Airport("LAX", "Los Angeles International", "Los Angeles", "US", "로스앤젤레스국제공항"),
        Airport("CDG", "Charles de Gaulle", "Paris", "FR", "파리샤를드골공항"),
        Airport("FRA", "Frankfurt", "Frankfurt", "DE", "프랑크푸르트공항"),
        Airport("LHR", "Heathrow", "London", "GB", "런던히드로공항"),
    ]
}

AIRPORT_CODE_PATTERN = re.compile(r"\(([A-Z]{3})\)")

TIME_PATTERNS = [
    re.compile(r"\b\d{1,2}:\d{2}(?:\s*[AP]M)?\b", re.IGNORECASE),
    re.compile(r"\d{1,2}시\s*\d{2}분?"),
]

# (pattern, group order) for numeric date layouts; order maps groups to y/m/d
NUMERIC_DATE_PATTERNS = [
    (re.compile(r"(\d{4})\s*년\s*(\d{1,2})\s*월\s*(\d{1,2})\s*일"), "ymd"),
    (re.compile(r"(\d{4})年(\d{1,2})月(\d{1,2})日"), "ymd"),
    (re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"), "ymd"),
    (re.compile(r"(\d{4})\.\s*(\d{1,2})\.\s*(\d{1,2})"), "ymd"),
    (re.compile(r"(\d{4})/(\d{1,2})/(\d{1,2})"), "ymd"),
    (re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"), "mdy"),
]


@dataclass
class FlightLeg:
    location: str
    date: Optional[date] = None
    time: Optional[str] = None


@dataclass
class HotelBooking:
    name: str
    location: str
    check_in: date
    check_out: date

    @property
    def nights(self) -> int:
        return max(0, (self.check_out - self.check_in).days)


@dataclass
class ParsedEmailData:
    type: str
    provider: str
    confidence: float = 0.0
    confirmation_number: Optional[str] = None
    flight_number: Optional[str] = None
    departure: Optional[FlightLeg] = None
    arrival: Optional[FlightLeg] = None
    hotel: Optional[HotelBooking] = None
    raw_subject: str = ""
    raw_body: str = ""


@dataclass
class EmailParseResult:
    success: bool
    data: Optional[ParsedEmailData] = None
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


class ConfidenceScorer:
    """Weighted presence score for an extraction, normalised to 0..1."""

    BASE_WEIGHT = 0.2
    FLIGHT_FIELD_WEIGHT = 0.15
    HOTEL_WEIGHT = 0.3
    DATE_WEIGHT = 0.2

    @classmethod
    def score(cls, data: ParsedEmailData) -> float:
        score = 0.0
        max_score = 0.0

        max_score += cls.BASE_WEIGHT * 2
        if data.type:
            score += cls.BASE_WEIGHT
        if data.confirmation_number:
            score += cls.BASE_WEIGHT

        if data.type == "flight":
            for value in (data.flight_number, data.departure, data.arrival):
                max_score += cls.FLIGHT_FIELD_WEIGHT
                if value:
                    score += cls.FLIGHT_FIELD_WEIGHT

        if data.type == "hotel":
            max_score += cls.HOTEL_WEIGHT
            if data.hotel:
                score += cls.HOTEL_WEIGHT

        max_score += cls.DATE_WEIGHT
        has_date = (
            (data.departure and data.departure.date)
            or (data.arrival and data.arrival.date)
            or (data.hotel and data.hotel.check_in)
        )
        if has_date:
            score += cls.DATE_WEIGHT

        confidence = score / max_score if max_score > 0 else 0.0
        return round(min(confidence, 1.0), 2)


def parse_travel_date(text: Optional[str]) -> Optional[date]:
    """Parse a date from a confirmation email fragment.

    Numeric layouts (Korean, Japanese, dashed, dotted, slashed) are matched
    directly; anything carrying a month name goes through dateparser.
    Returns None when nothing sensible can be read.
    """
    if not text:
        return None

    for pattern, order in NUMERIC_DATE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        a, b, c = (int(g) for g in match.groups())
        year, month, day = (a, b, c) if order == "ymd" else (c, a, b)
        try:
            return date(year, month, day)
        except ValueError:
            logger.debug(f"Invalid calendar date in {text!r}")
            return None

    if re.search(r"[A-Za-z]{3,}", text) and re.search(r"\d{4}", text):
        parsed = dateparser.parse(
            text,
            languages=["en"],
            settings={"REQUIRE_PARTS": ["day", "month", "year"], "RETURN_AS_TIMEZONE_AWARE": False},
        )
        if parsed:
            return parsed.date()

    return None


def extract_time(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    for pattern in TIME_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0).strip()
    return None


def normalize_location(location: str) -> str:
    """'인천국제공항(ICN)' or 'Incheon Airport (ICN)' -> '인천국제공항 (ICN)'."""
    match = AIRPORT_CODE_PATTERN.search(location)
    if match:
        airport = MAJOR_AIRPORTS.get(match.group(1))
        if airport:
            return f"{airport.korean} ({airport.code})"
    return location.strip()

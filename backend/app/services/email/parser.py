import html
import re
from typing import Iterable, Optional
import logging

from app.services.email.base import (
    ConfidenceScorer,
    EmailParseResult,
    FlightLeg,
    HotelBooking,
    ParsedEmailData,
    extract_time,
    normalize_location,
    parse_travel_date,
)
from app.services.email.patterns import EMAIL_PROVIDERS, REQUIRED_FIELDS, EmailPattern, EmailProvider

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.6

_TAG_BREAK = re.compile(r"<\s*(?:br|/p|/div|/tr|/li)\s*/?>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")


def _clean_body(body: str) -> str:
    """Plain text with one logical field per line, also for HTML bodies."""
    text = body.replace("\r\n", "\n").replace("\r", "\n")
    if "<" in text and ">" in text:
        text = _TAG_BREAK.sub("\n", text)
        text = _TAG.sub(" ", text)
        text = html.unescape(text).replace("\xa0", " ")
    return text


class EmailParser:
    """Extracts flight and hotel bookings from confirmation emails.

    The provider is found from the sender domain, falling back to subject
    patterns. Each provider pattern set is tried against the body and the
    one with the most matched fields wins. Results below the confidence
    threshold are reported as failures rather than returned as data.
    """

    def __init__(
        self,
        strict_mode: bool = False,
        include_raw_data: bool = False,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        providers: Optional[list[EmailProvider]] = None,
    ):
        self.strict_mode = strict_mode
        self.include_raw_data = include_raw_data
        self.confidence_threshold = confidence_threshold
        self.providers = providers if providers is not None else EMAIL_PROVIDERS

    def parse_email(self, subject: str, body: str, sender: Optional[str] = None) -> EmailParseResult:
        subject = subject or ""
        body = body or ""

        provider = self.identify_provider(sender, subject)
        if not provider:
            return EmailParseResult(
                success=False,
                error="Unknown email provider",
                warnings=["Could not identify email provider"],
            )

        data = self._extract_data(_clean_body(body), provider)
        if not data:
            return EmailParseResult(
                success=False,
                error="Failed to extract travel data",
                warnings=["No matching patterns found"],
            )

        if self.strict_mode:
            missing = [f for f in REQUIRED_FIELDS.get(data.type, []) if not getattr(data, f)]
            if missing:
                return EmailParseResult(
                    success=False,
                    error="Missing required fields",
                    warnings=[f"Missing: {', '.join(missing)}"],
                )

        data.confidence = ConfidenceScorer.score(data)
        if data.confidence < self.confidence_threshold:
            logger.debug(f"{provider.name} email below threshold ({data.confidence})")
            return EmailParseResult(
                success=False,
                error="Confidence too low",
                warnings=[f"Confidence score: {data.confidence}"],
            )

        if self.include_raw_data:
            data.raw_subject = subject
            data.raw_body = body

        return EmailParseResult(success=True, data=data, warnings=self._date_warnings(data))

    def parse_emails(self, emails: Iterable[dict]) -> list[EmailParseResult]:
        """Parse many emails; results keep the input order."""
        results = []
        for email in emails:
            try:
                results.append(
                    self.parse_email(email.get("subject", ""), email.get("body", ""), email.get("sender"))
                )
            except Exception as e:
                logger.error(f"Failed to parse email {email.get('subject')!r}: {e}")
                results.append(EmailParseResult(success=False, error=str(e)))
        return results

    def identify_provider(self, sender: Optional[str], subject: Optional[str] = None) -> Optional[EmailProvider]:
        if sender and "@" in sender:
            domain = sender.rsplit("@", 1)[1].strip().strip(">").lower()
            for provider in self.providers:
                if provider.matches_domain(domain):
                    return provider

        if subject:
            for provider in self.providers:
                for pattern in provider.patterns:
                    if any(regex.search(subject) for regex in pattern.subject_patterns):
                        return provider

        return None

    def _extract_data(self, content: str, provider: EmailProvider) -> Optional[ParsedEmailData]:
        best: Optional[ParsedEmailData] = None
        best_matches = 0

        for pattern in provider.patterns:
            data = ParsedEmailData(type=pattern.type, provider=provider.name)
            matches = 0

            confirmation = self._first_match(content, pattern.body_patterns.get("confirmation", []))
            if confirmation:
                data.confirmation_number = confirmation
                matches += 1

            if pattern.type == "flight":
                data.flight_number = self._first_match(content, pattern.body_patterns.get("flight_number", []))
                data.departure = self._extract_leg(content, pattern, "departure")
                data.arrival = self._extract_leg(content, pattern, "arrival")
                matches += sum(1 for v in (data.flight_number, data.departure, data.arrival) if v)

            if pattern.type == "hotel":
                data.hotel = self._extract_hotel(content, pattern)
                if data.hotel:
                    matches += 2

            if matches > best_matches:
                best, best_matches = data, matches

        return best

    def _extract_leg(self, content: str, pattern: EmailPattern, leg: str) -> Optional[FlightLeg]:
        location = self._first_match(content, pattern.body_patterns.get(leg, []))
        if not location:
            return None
        date_text = self._first_match(content, pattern.body_patterns.get(f"{leg}_date", []))
        return FlightLeg(
            location=normalize_location(location),
            date=parse_travel_date(date_text),
            time=extract_time(date_text),
        )

    def _extract_hotel(self, content: str, pattern: EmailPattern) -> Optional[HotelBooking]:
        check_in = parse_travel_date(self._first_match(content, pattern.body_patterns.get("check_in", [])))
        check_out = parse_travel_date(self._first_match(content, pattern.body_patterns.get("check_out", [])))
        if not check_in or not check_out:
            return None

        location = self._first_match(content, pattern.body_patterns.get("location", []))
        name = self._first_match(content, pattern.body_patterns.get("hotel_name", []))
        return HotelBooking(
            name=name or location or "Unknown Hotel",
            location=location or "Unknown Location",
            check_in=check_in,
            check_out=check_out,
        )

    @staticmethod
    def _first_match(content: str, patterns: list[re.Pattern]) -> Optional[str]:
        for pattern in patterns:
            match = pattern.search(content)
            if match:
                value = "".join(g for g in match.groups() if g).strip()
                if value:
                    return value
        return None

    @staticmethod
    def _date_warnings(data: ParsedEmailData) -> list[str]:
        warnings = []
        for label, leg in (("departure", data.departure), ("arrival", data.arrival)):
            if leg and not leg.date:
                warnings.append(f"Could not parse {label} date")
        if data.hotel and data.hotel.check_out < data.hotel.check_in:
            warnings.append("Check-out is before check-in")
        return warnings


_default_parser: Optional[EmailParser] = None


def get_default_parser() -> EmailParser:
    global _default_parser
    if _default_parser is None:
        from app.config import get_settings
        settings = get_settings()
        _default_parser = EmailParser(
            strict_mode=settings.email_strict_mode,
            confidence_threshold=settings.email_confidence_threshold,
        )
    return _default_parser


def parse_email(subject: str, body: str, sender: Optional[str] = None) -> EmailParseResult:
    return get_default_parser().parse_email(subject, body, sender)


def parse_emails(emails: Iterable[dict]) -> list[EmailParseResult]:
    return get_default_parser().parse_emails(emails)

import re
from dataclasses import dataclass, field

I = re.IGNORECASE
M = re.MULTILINE


def _line(label: str) -> re.Pattern:
    """``<label>: value`` on its own line; captures the value."""
    return re.compile(rf"^[ \t]*(?:{label})[ \t]*[:：][ \t]*(.+?)[ \t]*$", I | M)


# Booking codes are upper-case even when the label is not
_PNR = r"((?-i:[A-Z0-9]{6,}))\b"


@dataclass
class EmailPattern:
    type: str
    subject_patterns: list[re.Pattern]
    body_patterns: dict[str, list[re.Pattern]] = field(default_factory=dict)


@dataclass
class EmailProvider:
    name: str
    domains: list[str]
    patterns: list[EmailPattern]

    def matches_domain(self, domain: str) -> bool:
        domain = domain.lower()
        return any(domain == d or domain.endswith("." + d) for d in self.domains)


KOREAN_AIR = EmailProvider(
    name="대한항공",
    domains=["koreanair.com", "ke.com"],
    patterns=[
        EmailPattern(
            type="flight",
            subject_patterns=[
                re.compile(r"대한항공.*예약.*확인", I),
                re.compile(r"Korean Air.*Confirmation", I),
                re.compile(r"KE\d+.*confirmation", I),
                re.compile(r"항공권.*발권.*완료", I),
            ],
            body_patterns={
                "flight_number": [re.compile(r"\b(KE)\s*(\d{1,4})\b")],
                "departure": [_line(r"출발(?:지|공항)?|From")],
                "arrival": [_line(r"도착(?:지|공항)?|To")],
                "departure_date": [_line(r"출발\s*(?:일시|날짜|일자)|Departure(?:\s*Date)?")],
                "arrival_date": [_line(r"도착\s*(?:일시|날짜|일자)|Arrival(?:\s*Date)?")],
                "confirmation": [
                    re.compile(r"예약\s*(?:번호|코드)?\s*[:：]?\s*" + _PNR, I),
                    re.compile(r"Confirmation\s*(?:Number|Code)?\s*[:：]\s*" + _PNR, I),
                ],
            },
        )
    ],
)

ASIANA = EmailProvider(
    name="아시아나항공",
    domains=["flyasiana.com", "asiana.co.kr"],
    patterns=[
        EmailPattern(
            type="flight",
            subject_patterns=[
                re.compile(r"아시아나항공.*예약.*확인", I),
                re.compile(r"Asiana.*Confirmation", I),
                re.compile(r"OZ\d+.*confirmation", I),
                re.compile(r"전자\s*항공권.*발권", I),
            ],
            body_patterns={
                "flight_number": [re.compile(r"\b(OZ)\s*(\d{1,4})\b")],
                "departure": [_line(r"출발\s*공항|출발지?|From")],
                "arrival": [_line(r"도착\s*공항|도착지?|To")],
                "departure_date": [_line(r"출발\s*(?:일자|날짜|일시)|Departure\s*Date")],
                "arrival_date": [_line(r"도착\s*(?:일자|날짜|일시)|Arrival\s*Date")],
                "confirmation": [
                    re.compile(r"예약\s*번호\s*[:：]?\s*" + _PNR, I),
                    re.compile(r"Booking\s*Reference\s*[:：]\s*" + _PNR, I),
                ],
            },
        )
    ],
)

JAL = EmailProvider(
    name="JAL",
    domains=["jal.com", "jal.co.jp"],
    patterns=[
        EmailPattern(
            type="flight",
            subject_patterns=[
                re.compile(r"JAL.*予約.*確認", I),
                re.compile(r"Japan Airlines.*Confirmation", I),
                re.compile(r"JL\d+.*confirmation", I),
            ],
            body_patterns={
                "flight_number": [re.compile(r"\b(JL)\s*(\d{1,4})\b")],
                "departure": [_line(r"出発地|From")],
                "arrival": [_line(r"到着地|To")],
                "departure_date": [_line(r"出発日|Departure(?:\s*Date)?")],
                "arrival_date": [_line(r"到着日|Arrival(?:\s*Date)?")],
                "confirmation": [
                    re.compile(r"Confirmation\s*Number\s*[:：]\s*" + _PNR, I),
                    re.compile(r"予約番号\s*[:：]?\s*" + _PNR, I),
                ],
            },
        )
    ],
)

BOOKING_COM = EmailProvider(
    name="Booking.com",
    domains=["booking.com", "bstatic.com"],
    patterns=[
        EmailPattern(
            type="hotel",
            subject_patterns=[
                re.compile(r"Booking\.com.*예약.*확인", I),
                re.compile(r"Your booking confirmation", I),
                re.compile(r"숙소.*예약.*완료", I),
            ],
            body_patterns={
                "check_in": [_line(r"체크인(?:\s*날짜)?|Check-?in(?:\s*date)?")],
                "check_out": [_line(r"체크아웃(?:\s*날짜)?|Check-?out(?:\s*date)?")],
                "hotel_name": [_line(r"호텔|숙소|Property|Hotel")],
                "location": [_line(r"주소|호텔\s*위치|Address")],
                "confirmation": [
                    re.compile(r"예약\s*번호\s*[:：]?\s*(\d{6,})", I),
                    re.compile(r"Booking\s*number\s*[:：]?\s*(\d{6,})", I),
                    re.compile(r"Confirmation\s*number\s*[:：]?\s*(\d{6,})", I),
                ],
            },
        )
    ],
)

AGODA = EmailProvider(
    name="Agoda",
    domains=["agoda.com", "agoda.net"],
    patterns=[
        EmailPattern(
            type="hotel",
            subject_patterns=[
                re.compile(r"Agoda.*예약.*확인", I),
                re.compile(r"Your Agoda booking", I),
                re.compile(r"아고다.*예약.*완료", I),
            ],
            body_patterns={
                "check_in": [_line(r"체크인|Check-?in")],
                "check_out": [_line(r"체크아웃|Check-?out")],
                "hotel_name": [_line(r"호텔|숙소|Property")],
                "location": [_line(r"주소|Address|Location")],
                "confirmation": [
                    re.compile(r"예약\s*ID\s*[:：]?\s*(\d{6,})", I),
                    re.compile(r"Booking\s*ID\s*[:：]?\s*(\d{6,})", I),
                ],
            },
        )
    ],
)

CHINESE_AIRLINES = EmailProvider(
    name="Chinese Airlines",
    domains=["airchina.com", "csair.com", "ceair.com"],
    patterns=[
        EmailPattern(
            type="flight",
            subject_patterns=[
                re.compile(r"Air China.*Confirmation", I),
                re.compile(r"China Southern.*booking", I),
                re.compile(r"China Eastern.*booking", I),
                re.compile(r"\b(?:CA|CZ|MU)\d+.*confirmation", I),
            ],
            body_patterns={
                "flight_number": [re.compile(r"\b(CA|CZ|MU)\s*(\d{1,4})\b")],
                "departure": [_line(r"From|Origin")],
                "arrival": [_line(r"To|Destination")],
                "departure_date": [_line(r"Departure(?:\s*Date)?")],
                "arrival_date": [_line(r"Arrival(?:\s*Date)?")],
                "confirmation": [
                    re.compile(r"Confirmation\s*Code\s*[:：]\s*" + _PNR, I),
                    re.compile(r"PNR\s*[:：]?\s*" + _PNR, I),
                ],
            },
        )
    ],
)

EMAIL_PROVIDERS: list[EmailProvider] = [
    KOREAN_AIR,
    ASIANA,
    JAL,
    BOOKING_COM,
    AGODA,
    CHINESE_AIRLINES,
]

# Fields that strict mode insists on, per booking type
REQUIRED_FIELDS: dict[str, list[str]] = {
    "flight": ["confirmation_number", "flight_number"],
    "hotel": ["confirmation_number", "hotel"],
}

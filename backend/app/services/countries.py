from typing import Optional
from dataclasses import dataclass
import logging

from app.errors import UnknownCountryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Country:
    code: str
    name: str
    name_ko: str
    region: str
    is_schengen: bool = False


_COUNTRY_ROWS = [
    # Schengen area (29 members)
    ("AT", "Austria", "오스트리아", "Europe", True),
    ("BE", "Belgium", "벨기에", "Europe", True),
    ("BG", "Bulgaria", "불가리아", "Europe", True),
    ("HR", "Croatia", "크로아티아", "Europe", True),
    ("CZ", "Czech Republic", "체코", "Europe", True),
    ("DK", "Denmark", "덴마크", "Europe", True),
    ("EE", "Estonia", "에스토니아", "Europe", True),
    ("FI", "Finland", "핀란드", "Europe", True),
    ("FR", "France", "프랑스", "Europe", True),
    ("DE", "Germany", "독일", "Europe", True),
    ("GR", "Greece", "그리스", "Europe", True),
    ("HU", "Hungary", "헝가리", "Europe", True),
    ("IS", "Iceland", "아이슬란드", "Europe", True),
    ("IT", "Italy", "이탈리아", "Europe", True),
    ("LV", "Latvia", "라트비아", "Europe", True),
    ("LI", "Liechtenstein", "리히텐슈타인", "Europe", True),
    ("LT", "Lithuania", "리투아니아", "Europe", True),
    ("LU", "Luxembourg", "룩셈부르크", "Europe", True),
    ("MT", "Malta", "몰타", "Europe", True),
    ("NL", "Netherlands", "네덜란드", "Europe", True),
    ("NO", "Norway", "노르웨이", "Europe", True),
    ("PL", "Poland", "폴란드", "Europe", True),
    ("PT", "Portugal", "포르투갈", "Europe", True),
    ("RO", "Romania", "루마니아", "Europe", True),
    ("SK", "Slovakia", "슬로바키아", "Europe", True),
    ("SI", "Slovenia", "슬로베니아", "Europe", True),
    ("ES", "Spain", "스페인", "Europe", True),
    ("SE", "Sweden", "스웨덴", "Europe", True),
    ("CH", "Switzerland", "스위스", "Europe", True),
    # Europe (non-Schengen)
    ("GB", "United Kingdom", "영국", "Europe", False),
    ("IE", "Ireland", "아일랜드", "Europe", False),
    ("CY", "Cyprus", "키프로스", "Europe", False),
    ("AL", "Albania", "알바니아", "Europe", False),
    ("RS", "Serbia", "세르비아", "Europe", False),
    ("ME", "Montenegro", "몬테네그로", "Europe", False),
    ("BA", "Bosnia and Herzegovina", "보스니아 헤르체고비나", "Europe", False),
    ("MK", "North Macedonia", "북마케도니아", "Europe", False),
    ("GE", "Georgia", "조지아", "Europe", False),
    ("TR", "Turkey", "튀르키예", "Europe", False),
    ("UA", "Ukraine", "우크라이나", "Europe", False),
    # Asia Pacific
    ("KR", "South Korea", "대한민국", "Asia Pacific", False),
    ("JP", "Japan", "일본", "Asia Pacific", False),
    ("CN", "China", "중국", "Asia Pacific", False),
    ("TW", "Taiwan", "대만", "Asia Pacific", False),
    ("HK", "Hong Kong", "홍콩", "Asia Pacific", False),
    ("SG", "Singapore", "싱가포르", "Asia Pacific", False),
    ("TH", "Thailand", "태국", "Asia Pacific", False),
    ("VN", "Vietnam", "베트남", "Asia Pacific", False),
    ("MY", "Malaysia", "말레이시아", "Asia Pacific", False),
    ("PH", "Philippines", "필리핀", "Asia Pacific", False),
    ("ID", "Indonesia", "인도네시아", "Asia Pacific", False),
    ("IN", "India", "인도", "Asia Pacific", False),
    ("AU", "Australia", "호주", "Oceania", False),
    ("NZ", "New Zealand", "뉴질랜드", "Oceania", False),
    # Middle East
    ("AE", "United Arab Emirates", "아랍에미리트", "Middle East", False),
    # Americas
    ("US", "United States", "미국", "Americas", False),
    ("CA", "Canada", "캐나다", "Americas", False),
    ("MX", "Mexico", "멕시코", "Americas", False),
    ("BR", "Brazil", "브라질", "Americas", False),
    ("AR", "Argentina", "아르헨티나", "Americas", False),
    ("CO", "Colombia", "콜롬비아", "Americas", False),
]

COUNTRIES: dict[str, Country] = {
    code: Country(code=code, name=name, name_ko=name_ko, region=region, is_schengen=schengen)
    for code, name, name_ko, region, schengen in _COUNTRY_ROWS
}

COUNTRIES_BY_NAME: dict[str, Country] = {c.name: c for c in COUNTRIES.values()}

SCHENGEN_COUNTRIES: frozenset[str] = frozenset(
    c.name for c in COUNTRIES.values() if c.is_schengen
)


def is_schengen_country(country: str) -> bool:
    """Exact, case-sensitive match against the Schengen member names."""
    return country in SCHENGEN_COUNTRIES


def get_country_by_code(code: str) -> Optional[Country]:
    if not code:
        return None
    return COUNTRIES.get(code.strip().upper())


def find_country(value: str) -> Optional[Country]:
    """Resolve an ISO code (any case) or an exact English name."""
    if not value:
        return None
    value = value.strip()
    if len(value) == 2:
        return get_country_by_code(value)
    return COUNTRIES_BY_NAME.get(value)


def get_schengen_countries() -> list[Country]:
    return sorted((c for c in COUNTRIES.values() if c.is_schengen), key=lambda c: c.name)


def get_regions() -> list[str]:
    return sorted({c.region for c in COUNTRIES.values()})


def search_countries(query: str, limit: int = 20) -> list[Country]:
    if not query:
        return sorted(COUNTRIES.values(), key=lambda c: c.name)[:limit]

    query_lower = query.lower().strip()
    scored = []
    for country in COUNTRIES.values():
        score = 0
        if country.code.lower() == query_lower:
            score = 100
        elif country.name.lower().startswith(query_lower):
            score = 80
        elif query_lower in country.name.lower():
            score = 60
        elif query in country.name_ko:
            score = 60
        elif query_lower in country.region.lower():
            score = 30
        if score:
            scored.append((score, country))

    scored.sort(key=lambda x: (-x[0], x[1].name))
    return [c for _, c in scored[:limit]]


def require_country(value: str) -> Country:
    country = find_country(value)
    if country is None:
        raise UnknownCountryError(f"Unknown country: {value}", value=value)
    return country

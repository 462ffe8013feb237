"""
Schengen 90/180-day rule calculator.

A traveller may spend at most 90 days in the Schengen area within any
rolling 180-day window. The window anchored at reference date R covers
R-179 .. R inclusive. A calendar day counts once no matter how many
visits cover it, so a border-crossing day between two member states is a
single day.

Everything here is pure: inputs are visit-like objects with ``country``,
``entry_date`` and ``exit_date`` attributes (ORM rows or ``Visit``), and
results are dataclasses. Nothing raises for "not allowed"; only malformed
input (exit before entry on a planned trip) raises.
"""
import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from app.errors import InvalidDateRangeError
from app.services.countries import is_schengen_country

logger = logging.getLogger(__name__)

MAX_DAYS = 90
PERIOD_DAYS = 180
LOW_REMAINING_DAYS = 10
DEFAULT_SEARCH_DAYS = 365


@dataclass
class Visit:
    country: str
    entry_date: date
    exit_date: Optional[date] = None


@dataclass
class SchengenViolation:
    date: date
    days_over_limit: int
    description: str


@dataclass
class SchengenStatus:
    used_days: int
    remaining_days: int
    next_reset_date: date
    is_compliant: bool
    violations: list[SchengenViolation] = field(default_factory=list)


@dataclass
class FutureTripValidation:
    can_travel: bool
    violates_rule: bool
    warnings: list[str]
    suggestions: list[str]
    max_stay_days: int
    days_used_after_trip: int
    remaining_days_after_trip: int
    peak_usage: int = 0
    peak_date: Optional[date] = None


@dataclass
class SafeTravelDates:
    start_date: date
    end_date: date

    @property
    def duration(self) -> int:
        return (self.end_date - self.start_date).days + 1


@dataclass
class SchengenCalculationResult:
    status: SchengenStatus
    warnings: list[str]
    recommendations: list[str]
    next_allowed_entry: Optional[date]
    max_stay_days: int


def window_start(reference_date: date) -> date:
    return reference_date - timedelta(days=PERIOD_DAYS - 1)


def days_between_inclusive(start: date, end: date) -> int:
    return (end - start).days + 1


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    return value


def _schengen_ranges(visits: Iterable, ongoing_until: date) -> list[tuple[date, date]]:
    """(start, end) of every Schengen visit; open visits end at ``ongoing_until``."""
    ranges = []
    for visit in visits:
        if not is_schengen_country(visit.country):
            continue
        start = _as_date(visit.entry_date)
        end = _as_date(visit.exit_date) if visit.exit_date else ongoing_until
        if start <= end:
            ranges.append((start, end))
    return ranges


def _day_set(ranges: Iterable[tuple[date, date]], since: date, until: date) -> set[date]:
    days = set()
    for start, end in ranges:
        start = max(start, since)
        end = min(end, until)
        for offset in range((end - start).days + 1):
            days.add(start + timedelta(days=offset))
    return days


def _usage_on(ordered_days: list[date], day: date) -> int:
    """Days of ``ordered_days`` inside the window ending on ``day``."""
    return bisect_right(ordered_days, day) - bisect_left(ordered_days, window_start(day))


def _peak_usage(days: set[date], check_from: date, check_until: date) -> tuple[int, Optional[date]]:
    """Highest rolling usage on any presence day within [check_from, check_until].

    Usage only grows on days spent in the area, so presence days are the
    only candidates for a peak.
    """
    ordered = sorted(d for d in days if window_start(check_from) <= d <= check_until)
    peak, peak_day = 0, None
    for day in ordered:
        if day < check_from:
            continue
        usage = _usage_on(ordered, day)
        if usage > peak:
            peak, peak_day = usage, day
    return peak, peak_day


def _trip_days(entry: date, exit_: date) -> set[date]:
    return {entry + timedelta(days=i) for i in range(days_between_inclusive(entry, exit_))}


def _trip_peak(existing_days: set[date], entry: date, exit_: date) -> tuple[int, Optional[date]]:
    horizon = exit_ + timedelta(days=PERIOD_DAYS - 1)
    return _peak_usage(existing_days | _trip_days(entry, exit_), entry, horizon)


def _max_stay_from(existing_days: set[date], entry: date) -> int:
    """Longest stay starting at ``entry`` that never pushes usage above the limit."""
    # Peak usage is monotonic in trip length, so bisect over 0..MAX_DAYS
    low, high = 0, MAX_DAYS
    while low < high:
        mid = (low + high + 1) // 2
        peak, _ = _trip_peak(existing_days, entry, entry + timedelta(days=mid - 1))
        if peak <= MAX_DAYS:
            low = mid
        else:
            high = mid - 1
    return low


def _close_ongoing(visits: Iterable, at: date) -> list[Visit]:
    return [
        Visit(
            country=v.country,
            entry_date=_as_date(v.entry_date),
            exit_date=_as_date(v.exit_date) if v.exit_date else at,
        )
        for v in visits
    ]


def _detect_violations(used_days: int, reference_date: date) -> list[SchengenViolation]:
    if used_days <= MAX_DAYS:
        return []
    return [
        SchengenViolation(
            date=reference_date,
            days_over_limit=used_days - MAX_DAYS,
            description=f"{used_days} days used in current {PERIOD_DAYS}-day period (limit: {MAX_DAYS} days)",
        )
    ]


def _status_from_days(days: set[date], reference_date: date) -> SchengenStatus:
    used_days = len(days)
    if days:
        next_reset = min(days) + timedelta(days=PERIOD_DAYS)
    else:
        next_reset = reference_date + timedelta(days=PERIOD_DAYS)
    violations = _detect_violations(used_days, reference_date)
    return SchengenStatus(
        used_days=used_days,
        remaining_days=max(0, MAX_DAYS - used_days),
        next_reset_date=next_reset,
        is_compliant=not violations,
        violations=violations,
    )


def calculate_schengen_status(visits: Iterable, reference_date: Optional[date] = None) -> SchengenStatus:
    """Compliance status for the 180-day window ending on ``reference_date`` (default today)."""
    ref = _as_date(reference_date) if reference_date else date.today()
    ranges = _schengen_ranges(visits, ongoing_until=ref)
    days = _day_set(ranges, since=window_start(ref), until=ref)
    return _status_from_days(days, ref)


def calculate_schengen_days(trips: Iterable, reference_date: Optional[date] = None) -> int:
    """Used days from trip records that carry an ``is_schengen`` flag instead of a country name."""
    ref = _as_date(reference_date) if reference_date else date.today()
    ranges = []
    for trip in trips:
        if not trip.is_schengen:
            continue
        start = _as_date(trip.entry_date)
        end = _as_date(trip.exit_date) if trip.exit_date else ref
        if start <= end:
            ranges.append((start, end))
    return len(_day_set(ranges, since=window_start(ref), until=ref))


def get_schengen_warnings(status: SchengenStatus) -> list[str]:
    warnings = []

    if not status.is_compliant:
        warnings.append("⚠️ 셰겐 규정 위반: 90/180일 규칙을 초과했습니다.")

    if 0 < status.remaining_days <= LOW_REMAINING_DAYS:
        warnings.append(f"⚠️ 주의: 셰겐 지역 체류 가능일이 {status.remaining_days}일 남았습니다.")

    if status.remaining_days == 0 and status.is_compliant:
        warnings.append("⚠️ 셰겐 지역 체류 한도에 도달했습니다. 추가 체류는 불가능합니다.")

    return warnings


def calculate_max_stay_days(status: SchengenStatus) -> int:
    if not status.is_compliant:
        return 0
    return status.remaining_days


def get_next_entry_date(visits: Iterable, reference_date: Optional[date] = None) -> date:
    ref = _as_date(reference_date) if reference_date else date.today()
    status = calculate_schengen_status(visits, ref)
    if status.is_compliant and status.remaining_days > 0:
        return ref
    return status.next_reset_date


def validate_future_trip(
    visits: Iterable,
    planned_entry: date,
    planned_exit: date,
    planned_country: str,
) -> FutureTripValidation:
    """Check a planned stay against the rule as if it had already happened.

    Open visits are assumed to end on the planned entry date. The rolling
    total is checked on every presence day from the planned entry until
    the trip has left the window, so already-booked later visits are
    taken into account too.
    """
    planned_entry = _as_date(planned_entry)
    planned_exit = _as_date(planned_exit)
    if planned_exit < planned_entry:
        raise InvalidDateRangeError(
            "Planned exit date is before planned entry date",
            start=planned_entry,
            end=planned_exit,
        )

    existing = _close_ongoing(visits, planned_entry)
    planned_trip = Visit(country=planned_country, entry_date=planned_entry, exit_date=planned_exit)
    status_after = calculate_schengen_status(existing + [planned_trip], planned_exit)

    if not is_schengen_country(planned_country):
        return FutureTripValidation(
            can_travel=True,
            violates_rule=False,
            warnings=[],
            suggestions=[f"{planned_country}는 셰겐 지역이 아니므로 90/180일 규칙이 적용되지 않습니다."],
            max_stay_days=MAX_DAYS,
            days_used_after_trip=status_after.used_days,
            remaining_days_after_trip=status_after.remaining_days,
        )

    planned_days = days_between_inclusive(planned_entry, planned_exit)
    status_on_entry = calculate_schengen_status(existing, planned_entry)

    horizon = planned_exit + timedelta(days=PERIOD_DAYS - 1)
    existing_days = _day_set(
        _schengen_ranges(existing, ongoing_until=planned_entry),
        since=window_start(planned_entry),
        until=horizon,
    )
    peak, peak_day = _trip_peak(existing_days, planned_entry, planned_exit)
    violates = peak > MAX_DAYS
    max_stay = _max_stay_from(existing_days, planned_entry)

    warnings = []
    suggestions = []

    if status_on_entry.remaining_days == 0:
        warnings.append("⚠️ 계획된 입국일에 이미 90일 한도에 도달합니다.")
        suggestions.append(f"다음 날짜 이후 입국 가능: {status_on_entry.next_reset_date.isoformat()}")

    if planned_days > max_stay:
        warnings.append(f"⚠️ 계획된 {planned_days}일 체류는 가능한 {max_stay}일을 초과합니다.")
        suggestions.append(f"최대 {max_stay}일까지만 체류 가능합니다.")

    if violates:
        warnings.append("🚫 이 여행은 셰겐 90/180일 규칙을 위반하게 됩니다.")
        if max_stay > 0:
            safe_exit = planned_entry + timedelta(days=max_stay - 1)
            suggestions.append(
                f"안전한 체류 기간: {planned_entry.isoformat()}부터 {safe_exit.isoformat()}까지 ({max_stay}일)"
            )
        logger.debug(f"Planned trip peaks at {peak} days on {peak_day}")

    if not warnings:
        suggestions.append("✅ 계획된 여행은 셰겐 규정을 준수합니다.")
        suggestions.append(f"여행 후 남은 일수: {status_after.remaining_days}일")

    return FutureTripValidation(
        can_travel=not warnings,
        violates_rule=violates,
        warnings=warnings,
        suggestions=suggestions,
        max_stay_days=max_stay,
        days_used_after_trip=status_after.used_days,
        remaining_days_after_trip=status_after.remaining_days,
        peak_usage=peak,
        peak_date=peak_day,
    )


def get_safe_travel_dates(
    visits: Iterable,
    desired_duration: int,
    earliest_date: Optional[date] = None,
    max_search_days: int = DEFAULT_SEARCH_DAYS,
) -> Optional[SafeTravelDates]:
    """First Schengen stay of ``desired_duration`` days that never exceeds the limit.

    Scans start dates one day at a time from ``earliest_date`` for at most
    ``max_search_days`` days. Open visits are assumed to end on
    ``earliest_date``.
    """
    if desired_duration < 1 or desired_duration > MAX_DAYS:
        return None

    earliest = _as_date(earliest_date) if earliest_date else date.today()
    last_start = earliest + timedelta(days=max_search_days)
    existing_days = _day_set(
        _schengen_ranges(visits, ongoing_until=earliest),
        since=window_start(earliest),
        until=last_start + timedelta(days=desired_duration + PERIOD_DAYS),
    )

    for offset in range(max_search_days):
        start = earliest + timedelta(days=offset)
        end = start + timedelta(days=desired_duration - 1)
        peak, _ = _trip_peak(existing_days, start, end)
        if peak <= MAX_DAYS:
            return SafeTravelDates(start_date=start, end_date=end)

    logger.info(f"No safe {desired_duration}-day window within {max_search_days} days of {earliest}")
    return None


def calculate_comprehensive_status(
    visits: Iterable,
    reference_date: Optional[date] = None,
) -> SchengenCalculationResult:
    status = calculate_schengen_status(visits, reference_date)
    warnings = get_schengen_warnings(status)

    recommendations = []
    if 0 < status.remaining_days <= 30:
        recommendations.append("출국 계획을 세우거나 체류 연장을 검토하세요.")
    if status.remaining_days > 60:
        recommendations.append("현재 안전한 체류 상태입니다.")
    if not status.is_compliant:
        recommendations.append("즉시 출국하거나 관련 당국에 문의하세요.")

    return SchengenCalculationResult(
        status=status,
        warnings=warnings,
        recommendations=recommendations,
        next_allowed_entry=status.next_reset_date if not status.is_compliant else None,
        max_stay_days=calculate_max_stay_days(status),
    )

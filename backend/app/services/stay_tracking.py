"""
Current-stay tracking against visa limits.

Works on ``UserVisa`` / ``VisaEntry`` rows (or anything with the same
attributes). An entry without an exit date is a stay in progress; its day
count is inclusive of both the entry day and ``today``.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from app.services.countries import get_country_by_code
from app.services.schengen import calculate_schengen_status

logger = logging.getLogger(__name__)

# Remaining-day thresholds for a stay in progress
CRITICAL_DAYS = 3
WARNING_DAYS = 7
NOTICE_DAYS = 14
VISA_EXPIRY_CRITICAL_DAYS = 7
LONG_STAY_DAYS = 90


@dataclass
class CurrentStay:
    entry_id: int
    visa_id: int
    country_name: str
    country_code: str
    visa_type: str
    entry_date: date
    days_in_country: int
    max_stay_days: Optional[int]
    remaining_days: Optional[int]
    visa_expiry_date: date
    visa_expires_in_days: int
    status: str = "active"  # active, warning, critical, exceeded
    alerts: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class OverstayWarning:
    id: str
    visa_id: int
    entry_id: int
    country_name: str
    country_code: str
    warning_type: str  # approaching, critical, exceeded
    severity: str  # low, medium, high, critical
    current_stay_days: int
    max_stay_days: int
    days_remaining: int
    entry_date: date
    expected_exit_date: date
    visa_expiry_date: Optional[date]
    message: str
    recommendations: list[str] = field(default_factory=list)
    schengen_days_used: Optional[int] = None
    schengen_days_remaining: Optional[int] = None
    rolling_period_end: Optional[date] = None


@dataclass
class OverstayReport:
    warnings: list[OverstayWarning] = field(default_factory=list)
    schengen_warnings: list[OverstayWarning] = field(default_factory=list)

    @property
    def summary(self) -> dict:
        counts = {"total": 0, "critical": 0, "high": 0, "medium": 0, "low": 0}
        for warning in self.warnings + self.schengen_warnings:
            counts["total"] += 1
            counts[warning.severity] += 1
        return counts


def _days_inclusive(start: date, end: date) -> int:
    return (end - start).days + 1


def evaluate_stay(entry, visa, today: date) -> CurrentStay:
    days_in_country = _days_inclusive(entry.entry_date, today)
    remaining = visa.max_stay_days - days_in_country if visa.max_stay_days else None
    expires_in = (visa.expiry_date - today).days

    stay = CurrentStay(
        entry_id=entry.id,
        visa_id=visa.id,
        country_name=visa.country_name,
        country_code=visa.country_code,
        visa_type=visa.visa_type,
        entry_date=entry.entry_date,
        days_in_country=days_in_country,
        max_stay_days=visa.max_stay_days,
        remaining_days=remaining,
        visa_expiry_date=visa.expiry_date,
        visa_expires_in_days=expires_in,
    )

    if remaining is not None:
        if remaining < 0:
            stay.status = "exceeded"
            stay.alerts.append(f"🚨 체류 기간 {abs(remaining)}일 초과!")
            stay.recommendations.append("즉시 출국하거나 체류 연장 신청이 필요합니다")
        elif remaining <= CRITICAL_DAYS:
            stay.status = "critical"
            stay.alerts.append(f"⚠️ {remaining}일 후 체류 기간 만료")
            stay.recommendations.append("출국 계획을 확정하거나 체류 연장을 신청하세요")
        elif remaining <= WARNING_DAYS:
            stay.status = "warning"
            stay.alerts.append(f"📅 {remaining}일 후 체류 기간 만료")
            stay.recommendations.append("출국 또는 연장 준비를 시작하세요")

    if 0 <= expires_in <= VISA_EXPIRY_CRITICAL_DAYS:
        if stay.status in ("active", "warning"):
            stay.status = "critical"
        stay.alerts.append(f"🛂 비자가 {expires_in}일 후 만료")
        stay.recommendations.append("비자 갱신 또는 출국이 필요합니다")
    elif expires_in < 0:
        stay.status = "exceeded"
        stay.alerts.append(f"🚨 비자가 {abs(expires_in)}일 전 만료됨")
        stay.recommendations.append("긴급: 즉시 출국하거나 당국에 문의하세요")

    if days_in_country >= LONG_STAY_DAYS:
        stay.alerts.append(f"📊 {days_in_country}일간 장기 체류 중")
        stay.recommendations.append("세무 및 거주 규정을 확인하세요")

    return stay


def build_current_stays(entries: Iterable, today: Optional[date] = None) -> list[CurrentStay]:
    """Evaluate every open entry that has already started, newest first."""
    today = today or date.today()
    open_entries = [e for e in entries if e.exit_date is None and e.entry_date <= today]
    open_entries.sort(key=lambda e: e.entry_date, reverse=True)
    return [evaluate_stay(e, e.user_visa, today) for e in open_entries]


def summarize_stays(stays: list[CurrentStay], entries: Iterable, today: Optional[date] = None) -> dict:
    today = today or date.today()
    year_start = date(today.year, 1, 1)

    this_year = [e for e in entries if year_start <= e.entry_date <= today]
    total_days = sum(_days_inclusive(e.entry_date, min(e.exit_date or today, today)) for e in this_year)
    critical = sum(1 for s in stays if s.status in ("critical", "exceeded"))
    warning = sum(1 for s in stays if s.status == "warning")

    return {
        "stats": {
            "total_current_stays": len(stays),
            "countries_staying": sorted({s.country_name for s in stays}),
            "total_days_this_year": total_days,
            "average_stay_duration": round(total_days / len(this_year)) if this_year else 0,
            "longest_current_stay": max((s.days_in_country for s in stays), default=0),
            "critical_stays": critical,
            "warning_stays": warning,
        },
        "summary": {
            "has_active_stays": bool(stays),
            "has_critical_stays": critical > 0,
            "has_warning_stays": warning > 0,
            "needs_immediate_action": any(
                s.status == "exceeded" or (s.remaining_days is not None and s.remaining_days <= CRITICAL_DAYS)
                for s in stays
            ),
        },
    }


_TIERS = [
    # (upper bound on days remaining, warning_type, severity, recommendations)
    (-1, "exceeded", "critical", [
        "즉시 출국 계획을 세우세요",
        "현지 이민국에 연락하여 상황을 설명하세요",
        "벌금이나 추가 조치가 필요할 수 있습니다",
    ]),
    (CRITICAL_DAYS, "critical", "high", [
        "즉시 출국 준비를 시작하세요",
        "항공권을 예약하세요",
        "체류 연장이 가능한지 확인하세요",
    ]),
    (WARNING_DAYS, "approaching", "medium", [
        "출국 계획을 세우세요",
        "체류 연장이 필요한 경우 신청하세요",
    ]),
    (NOTICE_DAYS, "approaching", "low", [
        "출국 일정을 계획하세요",
    ]),
]


def _tier(days_remaining: int):
    for bound, warning_type, severity, recommendations in _TIERS:
        if days_remaining <= bound:
            return warning_type, severity, list(recommendations)
    return None


def _open_entry(visa, today: date):
    for entry in sorted(visa.entries, key=lambda e: e.entry_date, reverse=True):
        if entry.entry_date <= today and (entry.exit_date is None or entry.exit_date >= today):
            return entry
    return None


def check_overstay_warnings(visas: Iterable, today: Optional[date] = None, visits: Iterable = ()) -> OverstayReport:
    """Warnings for stays near or past their limit.

    Visas for Schengen members are judged by the 90/180-day rule over
    ``visits``; other visas by their own ``max_stay_days``.
    """
    today = today or date.today()
    visits = list(visits)
    report = OverstayReport()

    for visa in visas:
        if visa.status == "expired" or visa.expiry_date < today:
            continue
        entry = _open_entry(visa, today)
        if entry is None:
            continue

        stay_days = _days_inclusive(entry.entry_date, today)
        country = get_country_by_code(visa.country_code)

        if country and country.is_schengen:
            status = calculate_schengen_status(visits, today)
            days_remaining = status.remaining_days if status.is_compliant else -(status.used_days - 90)
            tier = _tier(days_remaining)
            if tier is None:
                continue
            warning_type, severity, recommendations = tier
            message = (
                f"셰겐 지역 체류 한도를 {abs(days_remaining)}일 초과했습니다!"
                if days_remaining < 0
                else f"셰겐 지역 체류 가능일이 {days_remaining}일 남았습니다."
            )
            report.schengen_warnings.append(
                OverstayWarning(
                    id=f"{visa.id}-{entry.id}-schengen",
                    visa_id=visa.id,
                    entry_id=entry.id,
                    country_name=visa.country_name,
                    country_code=visa.country_code,
                    warning_type=warning_type,
                    severity=severity,
                    current_stay_days=stay_days,
                    max_stay_days=90,
                    days_remaining=days_remaining,
                    entry_date=entry.entry_date,
                    expected_exit_date=today + timedelta(days=max(days_remaining, 0)),
                    visa_expiry_date=visa.expiry_date,
                    message=message,
                    recommendations=recommendations,
                    schengen_days_used=status.used_days,
                    schengen_days_remaining=status.remaining_days,
                    rolling_period_end=status.next_reset_date,
                )
            )
            continue

        if not visa.max_stay_days:
            continue
        days_remaining = visa.max_stay_days - stay_days
        tier = _tier(days_remaining)
        if tier is None:
            continue
        warning_type, severity, recommendations = tier
        if days_remaining < 0:
            message = f"{visa.country_name} 체류 기간을 {abs(days_remaining)}일 초과했습니다!"
        else:
            message = f"{visa.country_name} 체류 기간이 {days_remaining}일 남았습니다."

        report.warnings.append(
            OverstayWarning(
                id=f"{visa.id}-{entry.id}",
                visa_id=visa.id,
                entry_id=entry.id,
                country_name=visa.country_name,
                country_code=visa.country_code,
                warning_type=warning_type,
                severity=severity,
                current_stay_days=stay_days,
                max_stay_days=visa.max_stay_days,
                days_remaining=days_remaining,
                entry_date=entry.entry_date,
                expected_exit_date=entry.entry_date + timedelta(days=visa.max_stay_days - 1),
                visa_expiry_date=visa.expiry_date,
                message=message,
                recommendations=recommendations,
            )
        )

    if report.warnings or report.schengen_warnings:
        logger.info(f"Overstay check found {report.summary['total']} warning(s)")
    return report

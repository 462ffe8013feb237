"""
Scheduled visa checks.

Keeps ``UserVisa.status`` in step with the calendar and pushes expiry and
Schengen-allowance alerts through the ntfy notifier.
"""
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta, timezone
from typing import Optional
import logging

from sqlalchemy.orm import Session

from app.models.user import User
from app.models.visa import UserVisa, VisaStatus
from app.services.notification import NtfyNotifier, get_global_notifier
from app.services.schengen import calculate_schengen_status, get_schengen_warnings, LOW_REMAINING_DAYS

logger = logging.getLogger(__name__)

ALERT_WINDOW_DAYS = 60
URGENT_DAYS = 7
WARNING_DAYS = 30
ALERT_COOLDOWN = timedelta(hours=24)


def alert_level(days_left: int) -> Optional[str]:
    if days_left < 0 or days_left > ALERT_WINDOW_DAYS:
        return None
    if days_left <= URGENT_DAYS:
        return "urgent"
    if days_left <= WARNING_DAYS:
        return "warning"
    return "reminder"


def _utcnow() -> datetime:
    # Stored DateTime columns are naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class VisaCheckResult:
    checked: int = 0
    alerts_sent: int = 0
    skipped_cooldown: int = 0
    failed: int = 0
    marked_expired: int = 0
    marked_expiring: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class VisaAlertService:
    def __init__(self, notifier: Optional[NtfyNotifier] = None):
        self.notifier = notifier or get_global_notifier()

    def refresh_statuses(self, db: Session, today: date, result: VisaCheckResult, user_id: Optional[int] = None):
        query = db.query(UserVisa).filter(UserVisa.status != VisaStatus.EXPIRED.value)
        if user_id is not None:
            query = query.filter(UserVisa.user_id == user_id)

        for visa in query.all():
            new_status = visa.status_on(today)
            if new_status == visa.status:
                continue
            visa.status = new_status
            if new_status == VisaStatus.EXPIRED.value:
                result.marked_expired += 1
            elif new_status == VisaStatus.EXPIRING_SOON.value:
                result.marked_expiring += 1

    async def check_expiring_visas(
        self,
        db: Session,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
        user_id: Optional[int] = None,
    ) -> VisaCheckResult:
        """Send expiry alerts for visas expiring within 60 days.

        urgent <= 7 days, warning <= 30 days, reminder otherwise. A visa is
        alerted at most once per 24 hours (``last_alert_sent``).
        """
        today = today or date.today()
        now = now or _utcnow()
        result = VisaCheckResult()

        self.refresh_statuses(db, today, result, user_id=user_id)

        query = (
            db.query(UserVisa)
            .join(User, UserVisa.user_id == User.id)
            .filter(
                UserVisa.expiry_date >= today,
                UserVisa.expiry_date <= today + timedelta(days=ALERT_WINDOW_DAYS),
                User.notifications_enabled.is_(True),
            )
        )
        if user_id is not None:
            query = query.filter(UserVisa.user_id == user_id)

        for visa in query.order_by(UserVisa.expiry_date).all():
            result.checked += 1
            if visa.last_alert_sent and now - visa.last_alert_sent < ALERT_COOLDOWN:
                result.skipped_cooldown += 1
                continue
            # The notifier keeps its own cooldown, which outlives a reset last_alert_sent
            if self.notifier.visa_alert_in_cooldown(visa.id):
                result.skipped_cooldown += 1
                continue

            days_left = visa.days_until_expiry(today)
            level = alert_level(days_left)
            try:
                sent = await self.notifier.send_visa_expiry_alert(visa, days_left, level)
            except Exception as e:
                logger.error(f"Visa alert for visa {visa.id} failed: {e}")
                sent = False

            if sent:
                visa.last_alert_sent = now
                result.alerts_sent += 1
            else:
                result.failed += 1

        db.commit()
        logger.info(
            f"Visa check: {result.checked} expiring, {result.alerts_sent} alerted, "
            f"{result.marked_expired} expired"
        )
        return result

    async def check_schengen_limits(self, db: Session, today: Optional[date] = None) -> int:
        """Alert users who are out of, or nearly out of, Schengen days. Returns alerts sent."""
        today = today or date.today()
        sent_count = 0

        users = db.query(User).filter(User.notifications_enabled.is_(True)).all()
        for user in users:
            if not user.visits:
                continue
            status = calculate_schengen_status(user.visits, today)
            if status.used_days == 0:
                continue
            if status.is_compliant and status.remaining_days > LOW_REMAINING_DAYS:
                continue

            warnings = get_schengen_warnings(status)
            try:
                if await self.notifier.send_schengen_alert(user.id, status, warnings):
                    sent_count += 1
            except Exception as e:
                logger.error(f"Schengen alert for user {user.id} failed: {e}")

        logger.info(f"Schengen check: {sent_count} alert(s) sent")
        return sent_count

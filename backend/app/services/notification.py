from dataclasses import dataclass, asdict
from datetime import datetime, timezone, timedelta
from pathlib import Path
from typing import Optional, List, Dict
import uuid
import logging
import httpx
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from app.config import get_settings
from app.utils.template_helpers import register_filters

settings = get_settings()
logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "notifications"
VISA_COOLDOWN_MINUTES = 24 * 60

_template_env: Optional[Environment] = None


def get_template_env() -> Environment:
    global _template_env
    if _template_env is None:
        _template_env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            undefined=StrictUndefined,
            trim_blocks=True,
            keep_trailing_newline=False,
        )
        register_filters(_template_env)
    return _template_env


def render_notification(template_name: str, **context) -> str:
    return get_template_env().get_template(template_name).render(**context).strip()


@dataclass
class Notification:
    """Notification record."""
    id: str
    title: str
    message: str
    priority: str
    timestamp: datetime
    type: str  # "visa", "schengen" or "system"
    tags: List[str]
    sent_to_ntfy: bool = False


class NotificationHistory:
    """In-memory notification history for the API."""

    def __init__(self, max_notifications: int = 100):
        self._notifications: List[Notification] = []
        self._max_notifications = max_notifications

    def add(self, notification: Notification):
        self._notifications.append(notification)
        if len(self._notifications) > self._max_notifications:
            self._notifications.pop(0)

    def get_recent(self, limit: int = 50) -> List[Dict]:
        recent = self._notifications[-limit:] if limit else self._notifications
        return [asdict(n) for n in reversed(recent)]

    def clear(self):
        self._notifications.clear()

    def __len__(self):
        return len(self._notifications)


class NtfyNotifier:
    """
    Notification service that sends push notifications via ntfy.

    Features:
    - Real HTTP POST to ntfy server
    - Cooldown per alert key to prevent repeated pushes
    - Priority-based ntfy priorities
    - Message bodies rendered from Jinja2 templates
    - In-memory history for the notifications API
    """

    # Priority mapping to ntfy priorities (1=min, 5=max)
    PRIORITY_MAP = {
        "min": "1",
        "low": "2",
        "default": "3",
        "high": "4",
        "urgent": "5",
    }

    # Visa alert level -> (ntfy priority, tags)
    VISA_LEVELS = {
        "urgent": ("urgent", ["rotating_light", "passport_control"]),
        "warning": ("high", ["warning", "passport_control"]),
        "reminder": ("default", ["calendar", "passport_control"]),
    }

    def __init__(
        self,
        ntfy_url: Optional[str] = None,
        ntfy_topic: Optional[str] = None,
    ):
        self.ntfy_url = ntfy_url or settings.ntfy_url
        self.ntfy_topic = ntfy_topic or settings.ntfy_topic
        self.history = NotificationHistory()
        self._last_notification_time: Dict[str, datetime] = {}  # alert key -> last sent
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=10.0)
        return self._http_client

    async def close(self):
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _is_in_cooldown(self, key: str, cooldown_minutes: int = 60) -> bool:
        if key not in self._last_notification_time:
            return False

        last_time = self._last_notification_time[key]
        return datetime.now(timezone.utc) - last_time < timedelta(minutes=cooldown_minutes)

    def _record_notification(self, key: str):
        self._last_notification_time[key] = datetime.now(timezone.utc)

    def visa_alert_in_cooldown(self, visa_id: int) -> bool:
        return self._is_in_cooldown(f"visa-{visa_id}", cooldown_minutes=VISA_COOLDOWN_MINUTES)

    async def _send_to_ntfy(
        self,
        title: str,
        message: str,
        priority: str = "default",
        tags: Optional[List[str]] = None,
        click_url: Optional[str] = None,
    ) -> bool:
        """Send notification to ntfy server."""
        try:
            client = await self._get_client()
            url = f"{self.ntfy_url}/{self.ntfy_topic}"

            # HTTP headers must be latin-1; ntfy decodes RFC 2047 style titles
            headers = {
                "Title": _encode_header(title),
                "Priority": self.PRIORITY_MAP.get(priority, "3"),
            }

            if tags:
                headers["Tags"] = ",".join(tags)

            if click_url:
                headers["Click"] = click_url

            response = await client.post(
                url,
                content=message.encode("utf-8"),
                headers=headers,
            )

            if response.status_code == 200:
                logger.info(f"Notification sent: {title}")
                return True
            else:
                logger.error(f"ntfy returned {response.status_code}: {response.text}")
                return False

        except httpx.ConnectError as e:
            logger.warning(f"Could not connect to ntfy server at {self.ntfy_url}: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to send notification: {e}")
            return False

    def _remember(self, title: str, message: str, priority: str, kind: str, tags: List[str], sent: bool):
        self.history.add(
            Notification(
                id=str(uuid.uuid4()),
                title=title,
                message=message,
                priority=priority,
                timestamp=datetime.now(timezone.utc),
                type=kind,
                tags=tags,
                sent_to_ntfy=sent,
            )
        )

    async def send_visa_expiry_alert(self, visa, days_left: int, level: str = "reminder") -> bool:
        """
        Send a visa expiry alert.

        ``level`` is one of urgent (<= 7 days), warning (<= 30) or reminder.
        Skipped while the same visa is in its 24-hour cooldown.
        """
        key = f"visa-{visa.id}"
        if self._is_in_cooldown(key, cooldown_minutes=VISA_COOLDOWN_MINUTES):
            logger.debug(f"Skipping visa alert for {key} - in cooldown")
            return False

        priority, tags = self.VISA_LEVELS.get(level, self.VISA_LEVELS["reminder"])
        if days_left < 0:
            title = f"🛂 {visa.country_name} 비자 만료됨"
        else:
            title = f"🛂 {visa.country_name} 비자 만료 {days_left}일 전"
        message = render_notification("visa_expiry.txt.j2", visa=visa, days_left=days_left, level=level)

        sent = await self._send_to_ntfy(
            title=title,
            message=message,
            priority=priority,
            tags=tags,
            click_url=f"{settings.base_url}/visas",
        )
        self._remember(title, message, priority, "visa", tags, sent)

        if sent:
            self._record_notification(key)
        return sent

    async def send_schengen_alert(self, user_id: int, status, warnings: List[str]) -> bool:
        """Send a Schengen allowance alert; one per user per day."""
        key = f"schengen-{user_id}"
        if self._is_in_cooldown(key, cooldown_minutes=24 * 60):
            logger.debug(f"Skipping Schengen alert for {key} - in cooldown")
            return False

        if status.is_compliant:
            priority, tags = "high", ["warning", "eu"]
            title = f"🇪🇺 셰겐 체류 {status.remaining_days}일 남음"
        else:
            priority, tags = "urgent", ["rotating_light", "eu"]
            title = "🇪🇺 셰겐 90/180일 규정 위반"
        message = render_notification("schengen_alert.txt.j2", status=status, warnings=warnings)

        sent = await self._send_to_ntfy(
            title=title,
            message=message,
            priority=priority,
            tags=tags,
            click_url=f"{settings.base_url}/schengen",
        )
        self._remember(title, message, priority, "schengen", tags, sent)

        if sent:
            self._record_notification(key)
        return sent

    async def send_system_alert(
        self,
        title: str,
        message: str,
        priority: str = "default",
        alert_type: str = "info",  # info, warning, error
    ) -> bool:
        """Send system alert (job failures etc.)."""
        tag_map = {
            "info": ["information_source"],
            "warning": ["warning"],
            "error": ["rotating_light", "x"],
        }
        tags = tag_map.get(alert_type, ["bell"])

        sent = await self._send_to_ntfy(
            title=f"🔧 {title}",
            message=message,
            priority=priority,
            tags=tags,
            click_url=f"{settings.base_url}/health",
        )
        self._remember(title, message, priority, "system", tags, sent)
        return sent

    async def send_startup_notification(self) -> bool:
        return await self.send_system_alert(
            title="DINO Started",
            message="Visa compliance monitoring is online.",
            priority="low",
            alert_type="info",
        )

    async def send_test_notification(self) -> bool:
        """Send test notification to verify ntfy connection."""
        return await self._send_to_ntfy(
            title="🧪 Test Notification",
            message="If you see this, notifications are working correctly!",
            priority="default",
            tags=["white_check_mark", "test_tube"],
        )

    def get_notifications(self, limit: int = 50) -> List[Dict]:
        return self.history.get_recent(limit)

    def clear_notifications(self):
        self.history.clear()

    def get_notification_url(self) -> str:
        """Get ntfy subscription URL."""
        return f"{self.ntfy_url}/{self.ntfy_topic}"


def _encode_header(value: str) -> str:
    try:
        value.encode("latin-1")
        return value
    except UnicodeEncodeError:
        import base64
        encoded = base64.b64encode(value.encode("utf-8")).decode("ascii")
        return f"=?UTF-8?B?{encoded}?="


_global_notifier: Optional[NtfyNotifier] = None


def get_global_notifier() -> NtfyNotifier:
    global _global_notifier
    if _global_notifier is None:
        _global_notifier = NtfyNotifier()
    return _global_notifier


async def shutdown_notifier():
    """Close the global notifier's HTTP client."""
    global _global_notifier
    if _global_notifier is not None:
        await _global_notifier.close()

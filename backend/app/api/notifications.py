from fastapi import APIRouter
from typing import List, Dict

from app.services.notification import get_global_notifier

router = APIRouter()


@router.get("/notifications")
async def get_notifications(limit: int = 50) -> List[Dict]:
    """Get recent notifications from history."""
    notifier = get_global_notifier()
    return notifier.get_notifications(limit=limit)


@router.post("/notifications/test")
async def test_notification() -> Dict:
    """Send a test notification through ntfy."""
    notifier = get_global_notifier()
    success = await notifier.send_test_notification()

    return {
        "success": success,
        "topic_url": notifier.get_notification_url(),
    }


@router.delete("/notifications")
async def clear_notifications() -> Dict[str, str]:
    """Clear notification history."""
    notifier = get_global_notifier()
    notifier.clear_notifications()
    return {"status": "cleared"}

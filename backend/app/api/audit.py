from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.database import get_db
from app.models.user import User
from app.services.audit import list_audit_logs

router = APIRouter()


@router.get("/audit-logs")
async def get_audit_logs(
    resource_type: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logs = list_audit_logs(db, user.id, resource_type=resource_type, limit=limit)
    return [
        {
            "id": log.id,
            "action": log.action,
            "resource_type": log.resource_type,
            "resource_id": log.resource_id,
            "details": log.details or {},
            "ip_address": log.ip_address,
            "created_at": log.created_at,
        }
        for log in logs
    ]

from typing import Optional
import logging

from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def record_audit(
    db: Session,
    action: str,
    resource_type: str,
    resource_id: Optional[int] = None,
    user_id: Optional[int] = None,
    details: Optional[dict] = None,
    ip_address: Optional[str] = None,
    commit: bool = True,
) -> AuditLog:
    """Append an audit entry. Pass ``commit=False`` to join the caller's transaction."""
    entry = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details or {},
        ip_address=ip_address,
    )
    db.add(entry)
    if commit:
        db.commit()
        db.refresh(entry)
    logger.debug(f"Audit: user={user_id} {action} {resource_type}#{resource_id}")
    return entry


def list_audit_logs(
    db: Session,
    user_id: int,
    resource_type: Optional[str] = None,
    limit: int = 50,
) -> list[AuditLog]:
    query = db.query(AuditLog).filter(AuditLog.user_id == user_id)
    if resource_type:
        query = query.filter(AuditLog.resource_type == resource_type)
    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()

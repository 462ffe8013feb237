from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey
from sqlalchemy.sql import func
from app.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    action = Column(String(32), nullable=False)  # create, update, delete, ...
    resource_type = Column(String(32), nullable=False)
    resource_id = Column(Integer, nullable=True)

    details = Column(JSON, default=dict)
    ip_address = Column(String(64), nullable=True)

    created_at = Column(DateTime, server_default=func.now(), index=True)

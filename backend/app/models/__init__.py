# SQLAlchemy models
from app.models.user import User
from app.models.country_visit import CountryVisit
from app.models.visa import UserVisa, VisaEntry, VisaStatus, EntryType
from app.models.audit_log import AuditLog

__all__ = [
    "User",
    "CountryVisit",
    "UserVisa",
    "VisaEntry",
    "AuditLog",
    # Enums
    "VisaStatus",
    "EntryType",
]

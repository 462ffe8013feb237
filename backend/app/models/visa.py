"""User visa records and the entries/exits made on them."""
import enum
from datetime import date
from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class VisaStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


class EntryType(str, enum.Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


class UserVisa(Base):
    __tablename__ = "user_visas"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    country_code = Column(String(2), nullable=False, index=True)
    country_name = Column(String(64), nullable=False)
    visa_type = Column(String(50), nullable=False)

    issue_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=False, index=True)

    # Per-entry (or per-period) stay allowance; null = bounded only by expiry
    max_stay_days = Column(Integer, nullable=True)
    entry_type = Column(String(20), default=EntryType.MULTIPLE.value)

    status = Column(String(20), default=VisaStatus.ACTIVE.value, index=True)
    last_alert_sent = Column(DateTime, nullable=True)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="visas")
    entries = relationship(
        "VisaEntry",
        back_populates="user_visa",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="VisaEntry.entry_date.desc()",
    )

    def days_until_expiry(self, today: date | None = None) -> int:
        return (self.expiry_date - (today or date.today())).days

    def status_on(self, today: date | None = None) -> str:
        days_left = self.days_until_expiry(today)
        if days_left < 0:
            return VisaStatus.EXPIRED.value
        if days_left <= 30:
            return VisaStatus.EXPIRING_SOON.value
        return VisaStatus.ACTIVE.value


class VisaEntry(Base):
    __tablename__ = "visa_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_visa_id = Column(Integer, ForeignKey("user_visas.id", ondelete="CASCADE"), nullable=False, index=True)
    country_visit_id = Column(Integer, ForeignKey("country_visits.id", ondelete="SET NULL"), nullable=True)

    entry_date = Column(Date, nullable=False)
    exit_date = Column(Date, nullable=True)

    entry_point = Column(String(128), nullable=True)
    exit_point = Column(String(128), nullable=True)
    purpose = Column(String(64), nullable=True)

    stay_days = Column(Integer, nullable=True)  # set once exit_date is known

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user_visa = relationship("UserVisa", back_populates="entries")
    country_visit = relationship("CountryVisit")

    def days_in_country(self, today: date | None = None) -> int:
        end = self.exit_date or today or date.today()
        if end < self.entry_date:
            return 0
        return (end - self.entry_date).days + 1

from datetime import date
from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base
from app.services.countries import is_schengen_country


class CountryVisit(Base):
    """A stay in one country: entry date and, once it has ended, exit date."""
    __tablename__ = "country_visits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # English country name, matched exactly by the Schengen calculator
    country = Column(String(64), nullable=False)

    entry_date = Column(Date, nullable=False)
    exit_date = Column(Date, nullable=True)  # null = still in the country

    visa_type = Column(String(50), default="Tourist")
    max_days = Column(Integer, default=90)
    passport_country = Column(String(2), nullable=True)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="visits")

    __table_args__ = (
        Index("ix_country_visits_user_entry", "user_id", "entry_date"),
    )

    @property
    def is_schengen(self) -> bool:
        return is_schengen_country(self.country)

    @property
    def is_ongoing(self) -> bool:
        return self.exit_date is None

    def stay_days(self, today: date | None = None) -> int:
        """Inclusive day count; an ongoing stay counts through today."""
        end = self.exit_date or today or date.today()
        if end < self.entry_date:
            return 0
        return (end - self.entry_date).days + 1

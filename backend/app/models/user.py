from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(128), nullable=True)

    # ISO code of the passport used for visa-free rules
    passport_country = Column(String(2), nullable=True)
    timezone = Column(String(50), default="Asia/Seoul")

    notifications_enabled = Column(Boolean, default=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    visits = relationship(
        "CountryVisit",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    visas = relationship(
        "UserVisa",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @classmethod
    def get_by_email(cls, db, email: str):
        return db.query(cls).filter(cls.email == email.strip().lower()).first()

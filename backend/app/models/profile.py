from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.db.base import Base

AVAILABILITY_OPTIONS = ("full-time", "part-time", "contract")
COMPANY_SIZES = ("1-10", "11-50", "51-200", "201-500", "500+")


class TalentProfile(Base):
    """Talent extension of a user: rate, availability and portfolio."""

    __tablename__ = "talent_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    title = Column(String, default="", nullable=False)
    bio = Column(Text, default="", nullable=False)
    hourly_rate = Column(Float, nullable=True)
    availability = Column(String, default="contract", nullable=False)
    location = Column(String, default="", nullable=False)
    portfolio_description = Column(Text, default="", nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="talent_profile")
    skills = relationship(
        "TalentSkill", back_populates="talent", cascade="all, delete-orphan", passive_deletes=True
    )
    proposals = relationship(
        "Proposal", back_populates="talent", cascade="all, delete-orphan", passive_deletes=True
    )


class ManagerProfile(Base):
    """Manager extension of a user: company metadata."""

    __tablename__ = "manager_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    company_name = Column(String, default="", nullable=False)
    company_description = Column(Text, default="", nullable=False)
    company_size = Column(String, nullable=True)  # one of COMPANY_SIZES
    industry = Column(String, default="", nullable=False)
    location = Column(String, default="", nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="manager_profile")
    jobs = relationship(
        "Job", back_populates="manager", cascade="all, delete-orphan", passive_deletes=True
    )

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.db.base import Base

JOB_STATUSES = ("open", "in_progress", "completed", "cancelled")
BUDGET_TYPES = ("fixed", "hourly")
EXPERIENCE_LEVELS = ("entry", "intermediate", "expert")


class Job(Base):
    """Job posting owned by a manager profile."""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    manager_id = Column(
        Integer, ForeignKey("manager_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    budget_type = Column(String, nullable=False)  # 'fixed' | 'hourly'
    budget_min = Column(Float, nullable=True)
    budget_max = Column(Float, nullable=True)
    currency = Column(String, default="USD")
    status = Column(String, default="open", index=True)
    category = Column(String, nullable=True, index=True)
    deadline = Column(DateTime, nullable=True)
    experience_level = Column(String, default="intermediate")
    featured = Column(Boolean, default=False)
    location = Column(String, default="Remote")

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    manager = relationship("ManagerProfile", back_populates="jobs")
    skills = relationship(
        "JobSkill", back_populates="job", cascade="all, delete-orphan", passive_deletes=True
    )
    proposals = relationship(
        "Proposal", back_populates="job", cascade="all, delete-orphan", passive_deletes=True
    )

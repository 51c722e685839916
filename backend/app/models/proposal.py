from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.base import Base

PROPOSAL_STATUSES = (
    "pending",
    "accepted",
    "rejected",
    "withdrawn",
    "interview",
    "approved",
    "no_longer_accepting",
    "inappropriate",
)


class Proposal(Base):
    """A talent's bid on a job. One per (job, talent) pair."""

    __tablename__ = "proposals"
    __table_args__ = (UniqueConstraint("job_id", "talent_id", name="uq_proposal_job_talent"),)

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    talent_id = Column(
        Integer, ForeignKey("talent_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    cover_letter = Column(Text, nullable=False)
    bid_amount = Column(Float, nullable=False)
    timeline_days = Column(Integer, nullable=True)
    draft_offering = Column(Text, nullable=True)
    pricing_details = Column(Text, nullable=True)
    availability = Column(String, nullable=True)

    status = Column(String, default="pending", nullable=False, index=True)
    is_viewed = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    job = relationship("Job", back_populates="proposals")
    talent = relationship("TalentProfile", back_populates="proposals")

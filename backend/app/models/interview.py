from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.db.base import Base

INTERVIEW_STATUSES = (
    "created",
    "sent",
    "in_progress",
    "completed",
    "reviewed",
    "next_steps",
    "rejected",
    "inappropriate",
    "hold",
    "cancelled",
)
INTERVIEW_PRIORITIES = ("low", "medium", "high", "urgent")
QUESTION_TYPES = ("text", "multiple_choice", "coding", "practical")
TEMPLATE_CATEGORIES = ("technical", "behavioral", "cultural_fit", "general", "specialized")
DIFFICULTY_LEVELS = ("beginner", "intermediate", "advanced", "expert")


class Interview(Base):
    """Interview a manager runs with a talent, optionally tied to a job/proposal."""

    __tablename__ = "interviews"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    manager_id = Column(
        Integer, ForeignKey("manager_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    talent_id = Column(
        Integer, ForeignKey("talent_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    proposal_id = Column(Integer, ForeignKey("proposals.id", ondelete="SET NULL"), nullable=True)
    template_id = Column(Integer, ForeignKey("interview_templates.id", ondelete="SET NULL"), nullable=True)

    status = Column(String, default="created", index=True)
    priority = Column(String, default="medium")
    estimated_duration = Column(Integer, nullable=True)  # minutes

    scheduled_at = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Ratings (1-5) and feedback from both sides
    manager_rating = Column(Integer, nullable=True)
    manager_feedback = Column(Text, nullable=True)
    talent_rating = Column(Integer, nullable=True)
    talent_feedback = Column(Text, nullable=True)

    # Admin oversight
    is_flagged = Column(Boolean, default=False)
    flagged_reason = Column(Text, nullable=True)
    flagged_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    flagged_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    manager = relationship("ManagerProfile")
    talent = relationship("TalentProfile")
    questions = relationship(
        "InterviewQuestion",
        back_populates="interview",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="InterviewQuestion.question_order",
    )


class InterviewQuestion(Base):
    """Ordered question inside an interview, answered by the talent."""

    __tablename__ = "interview_questions"

    id = Column(Integer, primary_key=True)
    interview_id = Column(
        Integer, ForeignKey("interviews.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_text = Column(Text, nullable=False)
    question_type = Column(String, default="text")
    question_order = Column(Integer, nullable=False)
    is_required = Column(Boolean, default=True)
    answer_text = Column(Text, nullable=True)
    answered_at = Column(DateTime, nullable=True)

    interview = relationship("Interview", back_populates="questions")


class InterviewTemplate(Base):
    """Reusable question set a manager keeps for recurring interviews."""

    __tablename__ = "interview_templates"

    id = Column(Integer, primary_key=True, index=True)
    manager_id = Column(
        Integer, ForeignKey("manager_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, default="general", index=True)
    difficulty_level = Column(String, default="intermediate")
    estimated_duration = Column(Integer, default=60)  # minutes

    # [{"text": ..., "type": ..., "order": ...}, ...]
    questions = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, default=list)

    is_public = Column(Boolean, default=False, index=True)
    is_active = Column(Boolean, default=True, index=True)
    usage_count = Column(Integer, default=0)
    last_used_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    manager = relationship("ManagerProfile")

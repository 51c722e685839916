from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base

PROFICIENCY_LEVELS = ("beginner", "intermediate", "advanced", "expert")


class Skill(Base):
    """Skill catalogue entry shared by talents and jobs."""

    __tablename__ = "skills"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    category = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class TalentSkill(Base):
    """Many-to-many link between talent profiles and skills."""

    __tablename__ = "talent_skills"
    __table_args__ = (UniqueConstraint("talent_id", "skill_id", name="uq_talent_skill"),)

    id = Column(Integer, primary_key=True)
    talent_id = Column(
        Integer, ForeignKey("talent_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    skill_id = Column(Integer, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False)
    proficiency = Column(String, default="intermediate")

    talent = relationship("TalentProfile", back_populates="skills")
    skill = relationship("Skill")


class JobSkill(Base):
    """Skills attached to a job posting."""

    __tablename__ = "job_skills"
    __table_args__ = (UniqueConstraint("job_id", "skill_id", name="uq_job_skill"),)

    id = Column(Integer, primary_key=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    skill_id = Column(Integer, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False)
    is_required = Column(Boolean, default=True)

    job = relationship("Job", back_populates="skills")
    skill = relationship("Skill")

"""Stores for job postings and proposals."""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query

from app.models import Job, JobSkill, Proposal, Skill
from app.stores.base import BaseStore, Page


class JobStore(BaseStore[Job]):
    model = Job
    entity_name = "Job"

    def search(
        self,
        status: Optional[str] = None,
        category: Optional[str] = None,
        budget_type: Optional[str] = None,
        experience_level: Optional[str] = None,
        text: Optional[str] = None,
        skill: Optional[str] = None,
        manager_id: Optional[int] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Page:
        query = self.query()
        if status:
            query = query.filter(Job.status == status)
        if category:
            query = query.filter(Job.category == category)
        if budget_type:
            query = query.filter(Job.budget_type == budget_type)
        if experience_level:
            query = query.filter(Job.experience_level == experience_level)
        if manager_id is not None:
            query = query.filter(Job.manager_id == manager_id)
        if text:
            pattern = f"%{text.lower()}%"
            query = query.filter(
                or_(func.lower(Job.title).like(pattern), func.lower(Job.description).like(pattern))
            )
        if skill:
            query = query.filter(
                Job.id.in_(
                    self.db.query(JobSkill.job_id)
                    .join(Skill, Skill.id == JobSkill.skill_id)
                    .filter(func.lower(Skill.name) == skill.strip().lower())
                )
            )
        return self.paginate(query, page, page_size)

    def featured(self, limit: int = 10) -> list:
        return (
            self.query()
            .filter(Job.featured.is_(True), Job.status == "open")
            .order_by(Job.created_at.desc())
            .limit(limit)
            .all()
        )

    def set_skills(self, job: Job, skills: list[Skill], is_required: bool = True) -> None:
        self.db.query(JobSkill).filter(JobSkill.job_id == job.id).delete(synchronize_session="fetch")
        for skill in skills:
            self.db.add(JobSkill(job_id=job.id, skill_id=skill.id, is_required=is_required))
        self.db.flush()

    def proposal_count(self, job_id: int) -> int:
        return self.db.query(Proposal).filter(Proposal.job_id == job_id).count()


class ProposalStore(BaseStore[Proposal]):
    model = Proposal
    entity_name = "Proposal"

    def find_for(self, job_id: int, talent_id: int) -> Optional[Proposal]:
        return (
            self.query()
            .filter(Proposal.job_id == job_id, Proposal.talent_id == talent_id)
            .first()
        )

    def filtered(
        self,
        job_id: Optional[int] = None,
        talent_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> Query:
        query = self.query()
        if job_id is not None:
            query = query.filter(Proposal.job_id == job_id)
        if talent_id is not None:
            query = query.filter(Proposal.talent_id == talent_id)
        if status:
            query = query.filter(Proposal.status == status)
        return query

    def mark_viewed(self, job_id: int) -> int:
        updated = (
            self.query()
            .filter(Proposal.job_id == job_id, Proposal.is_viewed.is_(False))
            .update({Proposal.is_viewed: True}, synchronize_session="fetch")
        )
        self.db.flush()
        return updated

    def count_new(self, job_id: int) -> int:
        return self.query().filter(Proposal.job_id == job_id, Proposal.is_viewed.is_(False)).count()

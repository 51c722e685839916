"""
Proposal Workflow Service.

Talents bid on open jobs, one proposal per (job, talent). A proposal starts
``pending``; the talent may edit, delete or withdraw it only while it is
pending. Every other transition is driven by the manager owning the job.
Ownership compares manager-profile ids, never user ids.
"""

import logging
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.exceptions import Conflict, Forbidden, NotFound, ValidationError
from app.models import Job, ManagerProfile, Proposal, TalentProfile, User
from app.models.proposal import PROPOSAL_STATUSES
from app.services.notifier import notifier
from app.stores.base import commit_or_raise
from app.stores.jobs import ProposalStore

logger = logging.getLogger("proposals")

# Statuses a manager may move a pending proposal into
MANAGER_STATUSES = tuple(s for s in PROPOSAL_STATUSES if s not in ("pending", "withdrawn"))

DUPLICATE_MESSAGE = "You have already submitted a proposal for this job"


def _require_pending(proposal: Proposal, action: str) -> None:
    if proposal.status != "pending":
        raise ValidationError(f"Cannot {action} a proposal with status '{proposal.status}'")


def _require_talent_owner(proposal: Proposal, talent: Optional[TalentProfile]) -> None:
    if talent is None or proposal.talent_id != talent.id:
        raise Forbidden("Not authorized to modify this proposal")


def ensure_job_owner(job: Job, manager: Optional[ManagerProfile]) -> None:
    """The acting manager's profile id must match the job's manager id."""
    if manager is None or job.manager_id != manager.id:
        raise Forbidden("Not authorized to manage proposals for this job")


def can_view(proposal: Proposal, user: User) -> bool:
    if user.role == "admin":
        return True
    if user.role == "talent":
        return user.talent_profile is not None and proposal.talent_id == user.talent_profile.id
    if user.role == "manager":
        return user.manager_profile is not None and proposal.job.manager_id == user.manager_profile.id
    return False


def create_proposal(db: Session, talent: TalentProfile, job_id: int, fields: dict) -> Proposal:
    """Submit a proposal on an open job. A second one for the same job is a Conflict."""
    job = db.get(Job, job_id)
    if job is None:
        raise NotFound("Job not found")
    if job.status != "open":
        raise ValidationError("This job is not accepting proposals")

    store = ProposalStore(db)
    if store.find_for(job_id, talent.id) is not None:
        raise Conflict(DUPLICATE_MESSAGE)

    proposal = store.create({**fields, "job_id": job_id, "talent_id": talent.id, "status": "pending"})
    commit_or_raise(db, "create_proposal", DUPLICATE_MESSAGE)
    db.refresh(proposal)

    logger.info(f"Proposal {proposal.id} submitted by talent {talent.id} on job {job_id}")
    notifier.emit(
        job.manager.user_id if job.manager else None,
        "new_proposal",
        {"proposal_id": proposal.id, "job_id": job.id, "job_title": job.title},
    )
    return proposal


def update_by_talent(db: Session, proposal: Proposal, talent: TalentProfile, patch: BaseModel) -> Proposal:
    _require_talent_owner(proposal, talent)
    _require_pending(proposal, "update")
    ProposalStore(db).apply(proposal, patch)
    commit_or_raise(db, "update_proposal")
    db.refresh(proposal)
    return proposal


def delete_by_talent(db: Session, proposal: Proposal, talent: TalentProfile) -> None:
    _require_talent_owner(proposal, talent)
    _require_pending(proposal, "delete")
    db.delete(proposal)
    commit_or_raise(db, "delete_proposal")


def withdraw(db: Session, proposal: Proposal, talent: TalentProfile) -> Proposal:
    """Talent-initiated withdrawal, allowed only while pending."""
    _require_talent_owner(proposal, talent)
    _require_pending(proposal, "withdraw")
    proposal.status = "withdrawn"
    commit_or_raise(db, "withdraw_proposal")
    db.refresh(proposal)

    logger.info(f"Proposal {proposal.id} withdrawn by talent {talent.id}")
    job = proposal.job
    notifier.emit(
        job.manager.user_id if job and job.manager else None,
        "proposal_withdrawn",
        {"proposal_id": proposal.id, "job_id": proposal.job_id},
    )
    return proposal


def set_status_by_manager(
    db: Session, proposal: Proposal, manager: Optional[ManagerProfile], status: str
) -> Proposal:
    """Manager-driven transition (accept, reject, interview, ...) on an owned job."""
    ensure_job_owner(proposal.job, manager)
    if status not in MANAGER_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(MANAGER_STATUSES)}")
    if proposal.status == "withdrawn":
        raise ValidationError("Cannot update a withdrawn proposal")

    previous = proposal.status
    proposal.status = status
    proposal.is_viewed = True
    commit_or_raise(db, "update_proposal_status")
    db.refresh(proposal)

    logger.info(f"Proposal {proposal.id} moved {previous} -> {status} by manager {manager.id}")
    notifier.emit(
        proposal.talent.user_id if proposal.talent else None,
        "proposal_status_changed",
        {"proposal_id": proposal.id, "job_id": proposal.job_id, "status": status},
    )
    return proposal


def set_status_by_admin(db: Session, proposal: Proposal, status: str) -> Proposal:
    if status not in PROPOSAL_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(PROPOSAL_STATUSES)}")
    proposal.status = status
    db.flush()
    return proposal

"""
Proposals API endpoints.

Talents submit and manage their bids; the manager owning the job reviews them.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, get_manager_profile, get_talent_profile
from app.core.exceptions import Forbidden, NotFound
from app.db.session import get_db
from app.models import ManagerProfile, Proposal, TalentProfile, User
from app.services import proposals as workflow
from app.stores import JobStore, ProposalStore

router = APIRouter()


# ============== Pydantic Schemas ==============


class ProposalCreate(BaseModel):
    job_id: int
    cover_letter: str = Field(min_length=50)
    bid_amount: float = Field(ge=0)
    timeline_days: int = Field(ge=1)
    draft_offering: Optional[str] = None
    pricing_details: Optional[str] = None
    availability: Optional[str] = None


class ProposalPatch(BaseModel):
    """Fields a talent may change while the proposal is pending."""

    cover_letter: Optional[str] = Field(default=None, min_length=50)
    bid_amount: Optional[float] = Field(default=None, ge=0)
    timeline_days: Optional[int] = Field(default=None, ge=1)
    draft_offering: Optional[str] = None
    pricing_details: Optional[str] = None
    availability: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str


class ProposalResponse(BaseModel):
    id: int
    job_id: int
    job_title: Optional[str] = None
    talent_id: int
    talent_name: Optional[str] = None
    cover_letter: str
    bid_amount: float
    timeline_days: Optional[int] = None
    draft_offering: Optional[str] = None
    pricing_details: Optional[str] = None
    availability: Optional[str] = None
    status: str
    is_viewed: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============== Helper Functions ==============


def proposal_response(proposal: Proposal) -> ProposalResponse:
    talent_user = proposal.talent.user if proposal.talent else None
    return ProposalResponse(
        id=proposal.id,
        job_id=proposal.job_id,
        job_title=proposal.job.title if proposal.job else None,
        talent_id=proposal.talent_id,
        talent_name=talent_user.full_name if talent_user else None,
        cover_letter=proposal.cover_letter,
        bid_amount=proposal.bid_amount,
        timeline_days=proposal.timeline_days,
        draft_offering=proposal.draft_offering,
        pricing_details=proposal.pricing_details,
        availability=proposal.availability,
        status=proposal.status,
        is_viewed=bool(proposal.is_viewed),
        created_at=proposal.created_at,
        updated_at=proposal.updated_at,
    )


def paged(result) -> dict:
    return {"proposals": [proposal_response(p) for p in result.items], "pagination": result.meta()}


# ============== Talent Endpoints ==============


@router.post("", response_model=ProposalResponse, status_code=status.HTTP_201_CREATED)
async def create_proposal(
    payload: ProposalCreate,
    talent: TalentProfile = Depends(get_talent_profile),
    db: Session = Depends(get_db),
):
    proposal = workflow.create_proposal(db, talent, payload.job_id, payload.model_dump(exclude={"job_id"}))
    return proposal_response(proposal)


@router.get("/mine")
async def my_proposals(
    status: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    talent: TalentProfile = Depends(get_talent_profile),
    db: Session = Depends(get_db),
):
    store = ProposalStore(db)
    return paged(store.paginate(store.filtered(talent_id=talent.id, status=status), page, limit))


@router.get("/job/{job_id}/mine", response_model=ProposalResponse)
async def my_proposal_for_job(
    job_id: int,
    talent: TalentProfile = Depends(get_talent_profile),
    db: Session = Depends(get_db),
):
    proposal = ProposalStore(db).find_for(job_id, talent.id)
    if proposal is None:
        raise NotFound("Proposal not found")
    return proposal_response(proposal)


@router.put("/{proposal_id}", response_model=ProposalResponse)
async def update_proposal(
    proposal_id: int,
    patch: ProposalPatch,
    talent: TalentProfile = Depends(get_talent_profile),
    db: Session = Depends(get_db),
):
    proposal = ProposalStore(db).find_by_id(proposal_id)
    return proposal_response(workflow.update_by_talent(db, proposal, talent, patch))


@router.delete("/{proposal_id}")
async def delete_proposal(
    proposal_id: int,
    talent: TalentProfile = Depends(get_talent_profile),
    db: Session = Depends(get_db),
):
    proposal = ProposalStore(db).find_by_id(proposal_id)
    workflow.delete_by_talent(db, proposal, talent)
    return {"message": "Proposal deleted", "proposal_id": proposal_id}


@router.post("/{proposal_id}/withdraw", response_model=ProposalResponse)
async def withdraw_proposal(
    proposal_id: int,
    talent: TalentProfile = Depends(get_talent_profile),
    db: Session = Depends(get_db),
):
    proposal = ProposalStore(db).find_by_id(proposal_id)
    return proposal_response(workflow.withdraw(db, proposal, talent))


# ============== Manager Endpoints ==============


@router.get("/job/{job_id}")
async def proposals_for_job(
    job_id: int,
    status: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    workflow.ensure_job_owner(JobStore(db).find_by_id(job_id), manager)
    store = ProposalStore(db)
    return paged(store.paginate(store.filtered(job_id=job_id, status=status), page, limit))


@router.post("/{proposal_id}/accept", response_model=ProposalResponse)
async def accept_proposal(
    proposal_id: int,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    proposal = ProposalStore(db).find_by_id(proposal_id)
    return proposal_response(workflow.set_status_by_manager(db, proposal, manager, "accepted"))


@router.post("/{proposal_id}/reject", response_model=ProposalResponse)
async def reject_proposal(
    proposal_id: int,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    proposal = ProposalStore(db).find_by_id(proposal_id)
    return proposal_response(workflow.set_status_by_manager(db, proposal, manager, "rejected"))


@router.put("/{proposal_id}/status", response_model=ProposalResponse)
async def update_proposal_status(
    proposal_id: int,
    payload: StatusUpdate,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    proposal = ProposalStore(db).find_by_id(proposal_id)
    return proposal_response(workflow.set_status_by_manager(db, proposal, manager, payload.status))


# ============== Shared Endpoints ==============


@router.get("/{proposal_id}", response_model=ProposalResponse)
async def get_proposal(
    proposal_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    proposal = ProposalStore(db).find_by_id(proposal_id)
    if not workflow.can_view(proposal, current_user):
        raise Forbidden("Not authorized to view this proposal")
    return proposal_response(proposal)

"""
Jobs API endpoints.

Managers post and maintain jobs; everyone signed in can browse them.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, get_manager_profile
from app.core.exceptions import Forbidden
from app.db.session import get_db
from app.models import Job, ManagerProfile, User
from app.models.job import BUDGET_TYPES, EXPERIENCE_LEVELS
from app.services import packages
from app.services.notifier import notifier
from app.stores import JobStore, ProposalStore, SkillStore, commit_or_raise

logger = logging.getLogger("jobs")

router = APIRouter()


# ============== Pydantic Schemas ==============


class JobResponse(BaseModel):
    id: int
    manager_id: int
    company_name: Optional[str] = None
    title: str
    description: str
    budget_type: str
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    currency: str
    status: str
    category: Optional[str] = None
    deadline: Optional[datetime] = None
    experience_level: Optional[str] = None
    featured: bool
    location: Optional[str] = None
    skills: list[str]
    proposal_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class JobFields(BaseModel):
    @field_validator("budget_type", check_fields=False)
    @classmethod
    def validate_budget_type(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in BUDGET_TYPES:
            raise ValueError(f"budget_type must be one of {', '.join(BUDGET_TYPES)}")
        return v

    @field_validator("experience_level", check_fields=False)
    @classmethod
    def validate_experience_level(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in EXPERIENCE_LEVELS:
            raise ValueError(f"experience_level must be one of {', '.join(EXPERIENCE_LEVELS)}")
        return v

    @model_validator(mode="after")
    def validate_budget_range(self):
        low, high = getattr(self, "budget_min", None), getattr(self, "budget_max", None)
        if low is not None and high is not None and low > high:
            raise ValueError("budget_min cannot exceed budget_max")
        return self


class JobCreate(JobFields):
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20)
    budget_type: str
    budget_min: Optional[float] = Field(default=None, ge=0)
    budget_max: Optional[float] = Field(default=None, ge=0)
    currency: str = "USD"
    category: Optional[str] = None
    deadline: Optional[datetime] = None
    experience_level: str = "intermediate"
    location: str = "Remote"
    skills: list[str] = []
    featured: bool = False
    use_package_credit: bool = False


class JobPatch(JobFields):
    """Mutable job fields."""

    title: Optional[str] = Field(default=None, min_length=5, max_length=200)
    description: Optional[str] = Field(default=None, min_length=20)
    budget_type: Optional[str] = None
    budget_min: Optional[float] = Field(default=None, ge=0)
    budget_max: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = None
    category: Optional[str] = None
    deadline: Optional[datetime] = None
    experience_level: Optional[str] = None
    location: Optional[str] = None
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ("open", "in_progress", "completed", "cancelled"):
            raise ValueError("Invalid job status")
        return v


# ============== Helper Functions ==============


def job_response(job: Job) -> JobResponse:
    return JobResponse(
        id=job.id,
        manager_id=job.manager_id,
        company_name=job.manager.company_name if job.manager else None,
        title=job.title,
        description=job.description,
        budget_type=job.budget_type,
        budget_min=job.budget_min,
        budget_max=job.budget_max,
        currency=job.currency or "USD",
        status=job.status,
        category=job.category,
        deadline=job.deadline,
        experience_level=job.experience_level,
        featured=bool(job.featured),
        location=job.location,
        skills=[link.skill.name for link in job.skills],
        proposal_count=len(job.proposals),
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


def get_owned_job(db: Session, job_id: int, manager: ManagerProfile) -> Job:
    job = JobStore(db).find_by_id(job_id)
    if job.manager_id != manager.id:
        raise Forbidden("Not authorized to manage this job")
    return job


# ============== API Endpoints ==============


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreate,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    """
    Post a job.

    With ``use_package_credit`` one post credit is taken from the manager's
    active package; ``featured`` is honoured only when a featured credit is
    taken along with it.
    """
    featured = False
    if payload.use_package_credit:
        _, featured = packages.consume_post_credit(db, manager.user_id, featured=payload.featured)

    store = JobStore(db)
    job = store.create(
        {
            **payload.model_dump(exclude={"skills", "featured", "use_package_credit"}),
            "manager_id": manager.id,
            "status": "open",
            "featured": featured,
        }
    )
    skill_store = SkillStore(db)
    names: dict[str, str] = {}
    for name in payload.skills:
        if name.strip():
            names.setdefault(name.strip().lower(), name.strip())
    store.set_skills(job, [skill_store.get_or_create(name) for name in names.values()])

    commit_or_raise(db, "create_job")
    db.refresh(job)
    logger.info(f"Job {job.id} posted by manager {manager.id}")
    return job_response(job)


@router.get("")
async def list_jobs(
    status: Optional[str] = "open",
    category: Optional[str] = None,
    budget_type: Optional[str] = None,
    experience_level: Optional[str] = None,
    q: Optional[str] = None,
    skill: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Search jobs; open jobs by default, ``status=all`` for every status."""
    result = JobStore(db).search(
        status=None if status == "all" else status,
        category=category,
        budget_type=budget_type,
        experience_level=experience_level,
        text=q,
        skill=skill,
        page=page,
        page_size=limit,
    )
    return {"jobs": [job_response(j) for j in result.items], "pagination": result.meta()}


@router.get("/featured", response_model=list[JobResponse])
async def featured_jobs(limit: int = 10, db: Session = Depends(get_db)):
    return [job_response(j) for j in JobStore(db).featured(min(max(limit, 1), 50))]


@router.get("/mine")
async def my_jobs(
    status: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    result = JobStore(db).search(status=status, manager_id=manager.id, page=page, page_size=limit)
    proposals = ProposalStore(db)
    return {
        "jobs": [
            {**job_response(j).model_dump(), "new_proposals": proposals.count_new(j.id)}
            for j in result.items
        ],
        "pagination": result.meta(),
    }


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return job_response(JobStore(db).find_by_id(job_id))


@router.put("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: int,
    patch: JobPatch,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    job = get_owned_job(db, job_id, manager)
    previous_status = job.status
    JobStore(db).apply(job, patch)
    commit_or_raise(db, "update_job")
    db.refresh(job)

    if job.status != "open" and previous_status == "open":
        for proposal in job.proposals:
            if proposal.status == "pending":
                notifier.emit(
                    proposal.talent.user_id,
                    "job_closed",
                    {"job_id": job.id, "status": job.status},
                )
    return job_response(job)


@router.delete("/{job_id}")
async def delete_job(
    job_id: int,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    job = get_owned_job(db, job_id, manager)
    db.delete(job)
    commit_or_raise(db, "delete_job")
    logger.info(f"Job {job_id} deleted by manager {manager.id}")
    return {"message": "Job deleted", "job_id": job_id}


@router.post("/{job_id}/proposals/viewed")
async def mark_proposals_viewed(
    job_id: int,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    get_owned_job(db, job_id, manager)
    updated = ProposalStore(db).mark_viewed(job_id)
    commit_or_raise(db, "mark_proposals_viewed")
    return {"message": "Proposals marked as viewed", "updated": updated}


@router.get("/{job_id}/proposals/new-count")
async def new_proposal_count(
    job_id: int,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    get_owned_job(db, job_id, manager)
    return {"job_id": job_id, "new_proposals": ProposalStore(db).count_new(job_id)}

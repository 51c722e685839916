"""
Interviews API endpoints.

A manager interviews a talent through an ordered question list. Both sides
can follow its status and rate each other; admins can flag it.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, get_manager_profile, get_talent_profile, require_admin
from app.api.v1.interview_templates import get_usable_template
from app.core.exceptions import Forbidden, NotFound, ValidationError
from app.db.session import get_db
from app.models import Interview, ManagerProfile, TalentProfile, User
from app.models.interview import INTERVIEW_PRIORITIES, INTERVIEW_STATUSES, QUESTION_TYPES
from app.services.admin_audit import log_admin_action
from app.services.notifier import notifier
from app.stores import (
    InterviewStore,
    InterviewTemplateStore,
    JobStore,
    ProposalStore,
    TalentProfileStore,
    commit_or_raise,
)

logger = logging.getLogger("interviews")

router = APIRouter()

# Statuses each side may set
MANAGER_STATUSES = ("sent", "reviewed", "next_steps", "rejected", "hold", "cancelled", "completed")
TALENT_STATUSES = ("in_progress", "completed")


# ============== Pydantic Schemas ==============


class QuestionCreate(BaseModel):
    question_text: str = Field(min_length=1)
    question_type: str = "text"
    is_required: bool = True

    @field_validator("question_type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in QUESTION_TYPES:
            raise ValueError(f"question_type must be one of {', '.join(QUESTION_TYPES)}")
        return v


class InterviewCreate(BaseModel):
    talent_id: int
    title: str = Field(min_length=3)
    description: Optional[str] = None
    job_id: Optional[int] = None
    proposal_id: Optional[int] = None
    template_id: Optional[int] = None
    priority: str = "medium"
    estimated_duration: Optional[int] = Field(default=None, ge=1)
    scheduled_at: Optional[datetime] = None
    questions: list[QuestionCreate] = []

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: str) -> str:
        if v not in INTERVIEW_PRIORITIES:
            raise ValueError(f"priority must be one of {', '.join(INTERVIEW_PRIORITIES)}")
        return v


class StatusUpdate(BaseModel):
    status: str


class AnswerCreate(BaseModel):
    answer_text: str = Field(min_length=1)


class RatingCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    feedback: Optional[str] = None


class FlagCreate(BaseModel):
    reason: str = Field(min_length=1)


class QuestionResponse(BaseModel):
    id: int
    question_text: str
    question_type: str
    question_order: int
    is_required: bool
    answer_text: Optional[str] = None
    answered_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InterviewResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    manager_id: int
    talent_id: int
    job_id: Optional[int] = None
    proposal_id: Optional[int] = None
    template_id: Optional[int] = None
    status: str
    priority: str
    estimated_duration: Optional[int] = None
    scheduled_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    manager_rating: Optional[int] = None
    manager_feedback: Optional[str] = None
    talent_rating: Optional[int] = None
    talent_feedback: Optional[str] = None
    is_flagged: bool = False
    flagged_reason: Optional[str] = None
    questions: list[QuestionResponse] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============== Helper Functions ==============


def _side(interview: Interview, user: User) -> Optional[str]:
    if user.role == "manager" and user.manager_profile and interview.manager_id == user.manager_profile.id:
        return "manager"
    if user.role == "talent" and user.talent_profile and interview.talent_id == user.talent_profile.id:
        return "talent"
    return None


def _load(db: Session, interview_id: int, user: User) -> tuple[Interview, Optional[str]]:
    interview = InterviewStore(db).find_by_id(interview_id)
    side = _side(interview, user)
    if side is None and user.role != "admin":
        raise Forbidden("Not authorized to access this interview")
    return interview, side


def _counterpart(interview: Interview, side: Optional[str]) -> Optional[int]:
    if side == "manager":
        return interview.talent.user_id if interview.talent else None
    return interview.manager.user_id if interview.manager else None


def progress_of(interview: Interview) -> dict:
    total = len(interview.questions)
    answered = sum(1 for q in interview.questions if q.answer_text)
    required = [q for q in interview.questions if q.is_required]
    return {
        "total_questions": total,
        "answered": answered,
        "required_remaining": sum(1 for q in required if not q.answer_text),
        "percent": round(answered / total * 100, 2) if total else 0,
    }


# ============== API Endpoints ==============


@router.post("", response_model=InterviewResponse, status_code=status.HTTP_201_CREATED)
async def create_interview(
    payload: InterviewCreate,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    talent = TalentProfileStore(db).find_by_id(payload.talent_id)
    if payload.job_id is not None:
        job = JobStore(db).find_by_id(payload.job_id)
        if job.manager_id != manager.id:
            raise Forbidden("Not authorized to interview for this job")
    if payload.proposal_id is not None:
        proposal = ProposalStore(db).find_by_id(payload.proposal_id)
        if proposal.talent_id != talent.id:
            raise ValidationError("Proposal does not belong to this talent")

    questions = [q.model_dump() for q in payload.questions]
    fields = payload.model_dump(exclude={"questions"})
    if payload.template_id is not None:
        template = get_usable_template(db, payload.template_id, manager)
        if not questions:
            questions = [
                {"question_text": q["text"], "question_type": q.get("type") or "text", "question_order": q.get("order")}
                for q in template.questions or []
            ]
        if fields["estimated_duration"] is None:
            fields["estimated_duration"] = template.estimated_duration
        InterviewTemplateStore(db).record_use(template)

    store = InterviewStore(db)
    interview = store.create({**fields, "manager_id": manager.id, "status": "created"})
    store.add_questions(interview, questions)
    if payload.proposal_id is not None:
        proposal.status = "interview"

    commit_or_raise(db, "create_interview")
    db.refresh(interview)
    logger.info(f"Interview {interview.id} created by manager {manager.id} for talent {talent.id}")
    notifier.emit(talent.user_id, "interview_created", {"interview_id": interview.id, "title": interview.title})
    return interview


@router.get("/mine")
async def my_interviews(
    status: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = InterviewStore(db)
    if current_user.role == "manager" and current_user.manager_profile:
        result = store.list_for(manager_id=current_user.manager_profile.id, status=status, page=page, page_size=limit)
    elif current_user.role == "talent" and current_user.talent_profile:
        result = store.list_for(talent_id=current_user.talent_profile.id, status=status, page=page, page_size=limit)
    else:
        raise Forbidden("Only managers and talents have interviews")
    return {
        "interviews": [InterviewResponse.model_validate(i) for i in result.items],
        "pagination": result.meta(),
    }


@router.get("/{interview_id}", response_model=InterviewResponse)
async def get_interview(
    interview_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    interview, _ = _load(db, interview_id, current_user)
    return interview


@router.get("/{interview_id}/progress")
async def interview_progress(
    interview_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    interview, _ = _load(db, interview_id, current_user)
    return {"interview_id": interview.id, "status": interview.status, **progress_of(interview)}


@router.put("/{interview_id}/status", response_model=InterviewResponse)
async def update_interview_status(
    interview_id: int,
    payload: StatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    interview, side = _load(db, interview_id, current_user)
    if payload.status not in INTERVIEW_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(INTERVIEW_STATUSES)}")
    allowed = {"manager": MANAGER_STATUSES, "talent": TALENT_STATUSES}.get(side, INTERVIEW_STATUSES)
    if payload.status not in allowed:
        raise Forbidden(f"Cannot set status '{payload.status}'")

    interview.status = payload.status
    if payload.status == "in_progress" and interview.started_at is None:
        interview.started_at = datetime.utcnow()
    if payload.status == "completed" and interview.completed_at is None:
        interview.completed_at = datetime.utcnow()

    commit_or_raise(db, "update_interview_status")
    db.refresh(interview)
    notifier.emit(
        _counterpart(interview, side),
        "interview_status_changed",
        {"interview_id": interview.id, "status": interview.status},
    )
    return interview


@router.post("/{interview_id}/questions/{question_id}/answer", response_model=QuestionResponse)
async def answer_question(
    interview_id: int,
    question_id: int,
    payload: AnswerCreate,
    talent: TalentProfile = Depends(get_talent_profile),
    db: Session = Depends(get_db),
):
    store = InterviewStore(db)
    interview = store.find_by_id(interview_id)
    if interview.talent_id != talent.id:
        raise Forbidden("Not authorized to answer this interview")
    if interview.status in ("cancelled", "rejected", "inappropriate"):
        raise ValidationError(f"Interview is {interview.status}")
    question = store.get_question(interview_id, question_id)
    if question is None:
        raise NotFound("Question not found")

    question.answer_text = payload.answer_text
    question.answered_at = datetime.utcnow()
    if interview.status in ("created", "sent"):
        interview.status = "in_progress"
        interview.started_at = interview.started_at or datetime.utcnow()

    commit_or_raise(db, "answer_interview_question")
    db.refresh(question)
    notifier.emit(
        interview.manager.user_id if interview.manager else None,
        "interview_answer",
        {"interview_id": interview.id, "question_id": question.id},
    )
    return question


@router.post("/{interview_id}/rate", response_model=InterviewResponse)
async def rate_interview(
    interview_id: int,
    payload: RatingCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Each side rates the other once the interview has run."""
    interview, side = _load(db, interview_id, current_user)
    if side is None:
        raise Forbidden("Only interview participants can rate")
    if side == "manager":
        interview.manager_rating = payload.rating
        interview.manager_feedback = payload.feedback
    else:
        interview.talent_rating = payload.rating
        interview.talent_feedback = payload.feedback

    commit_or_raise(db, "rate_interview")
    db.refresh(interview)
    return interview


@router.post("/{interview_id}/flag", response_model=InterviewResponse)
async def flag_interview(
    interview_id: int,
    payload: FlagCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    interview = InterviewStore(db).find_by_id(interview_id)
    interview.is_flagged = True
    interview.flagged_reason = payload.reason
    interview.flagged_by = admin.id
    interview.flagged_at = datetime.utcnow()
    log_admin_action(db, admin.id, "flag_interview", {"interview_id": interview.id, "reason": payload.reason})
    commit_or_raise(db, "flag_interview")
    db.refresh(interview)
    return interview

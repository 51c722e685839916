"""
Admin API endpoints.

User management (including soft delete / restore / purge), the admin action
log, platform analytics and moderation of jobs, proposals, messages and
interviews. Every endpoint requires an admin account on the admin domain.
"""

import logging
import re
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from app.api.v1.auth import EMAIL_PATTERN, require_admin, user_response
from app.api.v1.interviews import InterviewResponse
from app.api.v1.jobs import job_response
from app.api.v1.messages import MessageResponse
from app.api.v1.profiles import manager_response, talent_response
from app.api.v1.proposals import proposal_response
from app.core.exceptions import Conflict, Forbidden, ValidationError
from app.core.security import get_password_hash, is_admin_email
from app.db.session import get_db
from app.models import Job, Message, Proposal, User
from app.models.job import JOB_STATUSES
from app.models.user import USER_ROLES
from app.services import analytics, user_lifecycle
from app.services.admin_audit import log_admin_action
from app.services.notifier import notifier
from app.services.proposals import set_status_by_admin
from app.stores import (
    AdminLogStore,
    DeletedUserStore,
    InterviewStore,
    JobStore,
    ManagerProfileStore,
    MessageStore,
    ProposalStore,
    TalentProfileStore,
    UserStore,
    commit_or_raise,
)

logger = logging.getLogger("admin")

router = APIRouter(dependencies=[Depends(require_admin)])


# ============== Pydantic Schemas ==============


class AdminUserCreate(BaseModel):
    email: str
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not re.match(EMAIL_PATTERN, v.strip()):
            raise ValueError("Invalid email format")
        return v.strip().lower()


class RoleUpdate(BaseModel):
    role: str


class StatusUpdate(BaseModel):
    is_active: Optional[bool] = None
    email_verified: Optional[bool] = None


class UserProfilePatch(BaseModel):
    """Identity fields an admin may change."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    profile_image: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v else v


class BulkUserAction(BaseModel):
    user_ids: list[int] = Field(min_length=1)
    action: str
    role: Optional[str] = None


class SoftDeleteRequest(BaseModel):
    reason: Optional[str] = None


class JobStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in JOB_STATUSES:
            raise ValueError(f"status must be one of {', '.join(JOB_STATUSES)}")
        return v


class BulkJobStatus(BaseModel):
    job_ids: list[int] = Field(min_length=1)
    status: str


class ProposalStatusUpdate(BaseModel):
    status: str


class MessageReview(BaseModel):
    action: str  # 'approved' | 'removed'


class DeletedUserResponse(BaseModel):
    id: int
    original_user_id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    profile_image: Optional[str] = None
    deletion_reason: Optional[str] = None
    deleted_by: Optional[int] = None
    deleted_at: Optional[datetime] = None
    original_created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminLogResponse(BaseModel):
    id: int
    admin_id: Optional[int] = None
    action: str
    details: dict = {}
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============== Helper Functions ==============


def current_admin_id(admin: User = Depends(require_admin)) -> int:
    return admin.id


def user_stats(db: Session, user: User) -> dict:
    stats = {
        "messages_sent": db.query(Message).filter(Message.sender_id == user.id).count(),
        "messages_received": db.query(Message).filter(Message.receiver_id == user.id).count(),
    }
    if user.talent_profile:
        stats["proposals"] = ProposalStore(db).filtered(talent_id=user.talent_profile.id).count()
        stats["accepted_proposals"] = (
            ProposalStore(db).filtered(talent_id=user.talent_profile.id, status="accepted").count()
        )
    if user.manager_profile:
        stats["jobs_posted"] = db.query(Job).filter(Job.manager_id == user.manager_profile.id).count()
    return stats


# ============== User Management ==============


@router.get("/users")
async def list_users(
    role: Optional[str] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    store = UserStore(db)
    result = store.paginate(store.filtered(role, is_active, search), page, limit)
    return {"users": [user_response(u) for u in result.items], "pagination": result.meta()}


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: AdminUserCreate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    if payload.role not in USER_ROLES:
        raise ValidationError(f"role must be one of {', '.join(USER_ROLES)}")
    if payload.role == "admin" and not is_admin_email(payload.email):
        raise Forbidden("Admin accounts must use the admin email domain")

    users = UserStore(db)
    if users.email_taken(payload.email):
        raise Conflict("Email already registered")

    user = users.create(
        {
            "email": payload.email,
            "hashed_password": get_password_hash(payload.password),
            "first_name": payload.first_name.strip(),
            "last_name": payload.last_name.strip(),
            "role": payload.role,
            "email_verified": True,
        }
    )
    if payload.role == "talent":
        TalentProfileStore(db).create_for_user(user.id)
    elif payload.role == "manager":
        ManagerProfileStore(db).create_for_user(user.id)

    log_admin_action(db, admin_id, "create_user", {"user_id": user.id, "email": user.email, "role": user.role})
    commit_or_raise(db, "admin_create_user", "Email already registered")
    db.refresh(user)
    return {"message": "User created", "user": user_response(user)}


@router.post("/users/bulk-action")
async def bulk_user_action(
    payload: BulkUserAction,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    """Apply deactivate / reactivate / change_role to many users, best effort per item."""
    result = user_lifecycle.bulk_action(db, payload.user_ids, payload.action, admin_id, payload.role)
    return {"message": f"Bulk {payload.action} completed", "results": result.as_dict()}


@router.get("/users/{user_id}")
async def get_user_details(user_id: int, db: Session = Depends(get_db)):
    user = UserStore(db).find_by_id(user_id)
    return {
        "user": user_response(user),
        "talent_profile": talent_response(user.talent_profile) if user.talent_profile else None,
        "manager_profile": manager_response(user.manager_profile) if user.manager_profile else None,
        "stats": user_stats(db, user),
    }


@router.put("/users/{user_id}")
async def update_user_profile(
    user_id: int,
    patch: UserProfilePatch,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    users = UserStore(db)
    user = users.find_by_id(user_id)
    if patch.email is not None and users.email_taken(patch.email, exclude_id=user.id):
        raise Conflict("Email already in use")
    if patch.email is not None and user.role == "admin" and not is_admin_email(patch.email):
        raise Forbidden("Admin accounts must use the admin email domain")

    users.apply(user, patch)
    log_admin_action(db, admin_id, "update_user_profile", {"user_id": user.id, **patch.model_dump(exclude_unset=True)})
    commit_or_raise(db, "admin_update_user", "Email already in use")
    db.refresh(user)
    return {"message": "User updated", "user": user_response(user)}


@router.put("/users/{user_id}/role")
async def update_user_role(
    user_id: int,
    payload: RoleUpdate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    user = UserStore(db).find_by_id(user_id)
    previous = user.role
    user_lifecycle.change_role(db, user, payload.role)
    log_admin_action(db, admin_id, "update_user_role", {"user_id": user.id, "from": previous, "to": payload.role})
    commit_or_raise(db, "admin_update_role")
    db.refresh(user)
    return {"message": "User role updated", "user": user_response(user)}


@router.put("/users/{user_id}/status")
async def update_user_status(
    user_id: int,
    payload: StatusUpdate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    user = UserStore(db).find_by_id(user_id)
    if payload.is_active is not None:
        user_lifecycle.set_active(db, user, payload.is_active)
    if payload.email_verified is not None:
        user.email_verified = payload.email_verified
    log_admin_action(db, admin_id, "update_user_status", {"user_id": user.id, **payload.model_dump(exclude_unset=True)})
    commit_or_raise(db, "admin_update_status")
    db.refresh(user)
    return {"message": "User status updated", "user": user_response(user)}


@router.post("/users/{user_id}/deactivate")
async def deactivate_user(
    user_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    user = UserStore(db).find_by_id(user_id)
    user_lifecycle.set_active(db, user, False)
    log_admin_action(db, admin_id, "deactivate_user", {"user_id": user.id})
    commit_or_raise(db, "deactivate_user")
    notifier.emit(user.id, "account_deactivated", {})
    return {"message": "User deactivated", "user_id": user_id}


@router.post("/users/{user_id}/reactivate")
async def reactivate_user(
    user_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    user = UserStore(db).find_by_id(user_id)
    user_lifecycle.set_active(db, user, True)
    log_admin_action(db, admin_id, "reactivate_user", {"user_id": user.id})
    commit_or_raise(db, "reactivate_user")
    return {"message": "User reactivated", "user_id": user_id}


@router.get("/users/{user_id}/activity")
async def user_activity(user_id: int, limit: int = 50, db: Session = Depends(get_db)):
    """Recent proposals, jobs and messages of a user, newest first."""
    user = UserStore(db).find_by_id(user_id)
    limit = min(max(limit, 1), 200)
    events = []
    if user.talent_profile:
        proposals = (
            ProposalStore(db)
            .filtered(talent_id=user.talent_profile.id)
            .order_by(Proposal.created_at.desc())
            .limit(limit)
        )
        for p in proposals:
            events.append(
                {"type": "proposal", "id": p.id, "job_id": p.job_id, "status": p.status, "timestamp": p.created_at}
            )
    if user.manager_profile:
        jobs = (
            db.query(Job)
            .filter(Job.manager_id == user.manager_profile.id)
            .order_by(Job.created_at.desc())
            .limit(limit)
        )
        for j in jobs:
            events.append({"type": "job", "id": j.id, "title": j.title, "status": j.status, "timestamp": j.created_at})
    messages = (
        db.query(Message)
        .filter(Message.sender_id == user.id)
        .order_by(Message.created_at.desc())
        .limit(limit)
    )
    for m in messages:
        events.append({"type": "message", "id": m.id, "conversation_id": m.conversation_id, "timestamp": m.created_at})

    events.sort(key=lambda e: e["timestamp"], reverse=True)
    return {"user_id": user.id, "activity": events[:limit]}


# ============== Soft Delete / Restore ==============


@router.delete("/users/{user_id}")
async def soft_delete_user(
    user_id: int,
    payload: Optional[SoftDeleteRequest] = None,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    """Archive the user (recoverable through restore)."""
    removed = user_lifecycle.soft_delete(db, user_id, admin_id, payload.reason if payload else None)
    return {"message": "User deleted", "deletedUser": removed}


@router.delete("/users/{user_id}/permanent")
async def hard_delete_user(
    user_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    removed = user_lifecycle.hard_delete(db, user_id, admin_id)
    return {"message": "User permanently deleted", "deletedUser": removed}


@router.get("/deleted-users")
async def list_deleted_users(
    role: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    result = DeletedUserStore(db).list_page(role, search, page, limit)
    return {
        "deletedUsers": [DeletedUserResponse.model_validate(d) for d in result.items],
        "pagination": result.meta(),
    }


@router.post("/deleted-users/{archived_id}/restore")
async def restore_user(
    archived_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    restored = user_lifecycle.restore(db, archived_id, admin_id)
    return {"message": "User restored", "restoredUser": restored}


@router.delete("/deleted-users/{archived_id}")
async def purge_deleted_user(
    archived_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    removed = user_lifecycle.purge(db, archived_id, admin_id)
    return {"message": "Deleted user permanently removed", "deletedUser": removed}


# ============== Admin Log ==============


@router.get("/logs")
async def list_admin_logs(
    admin_id: Optional[int] = None,
    action: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    result = AdminLogStore(db).list_page(admin_id, action, page, limit)
    return {
        "logs": [AdminLogResponse.model_validate(entry) for entry in result.items],
        "pagination": result.meta(),
    }


# ============== Analytics ==============


@router.get("/analytics/stats")
async def platform_stats(db: Session = Depends(get_db)):
    return analytics.platform_stats(db)


@router.get("/analytics/reports/{report_type}")
async def generate_report(
    report_type: str,
    format: str = "json",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    if format not in ("json", "csv"):
        raise ValidationError("format must be 'json' or 'csv'")
    report = analytics.build_report(db, report_type, start_date, end_date)
    if format == "csv":
        return Response(
            content=analytics.report_to_csv(report),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{report_type}.csv"'},
        )
    return report


# ============== Jobs & Proposals ==============


@router.get("/jobs")
async def list_all_jobs(
    status: Optional[str] = None,
    q: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    result = JobStore(db).search(status=status, text=q, page=page, page_size=limit)
    return {"jobs": [job_response(j) for j in result.items], "pagination": result.meta()}


@router.post("/jobs/bulk-status")
async def bulk_job_status(
    payload: BulkJobStatus,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    if payload.status not in JOB_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(JOB_STATUSES)}")
    store = JobStore(db)
    success, errors = 0, []
    for job_id in payload.job_ids:
        job = store.get(job_id)
        if job is None:
            errors.append(f"Job {job_id} not found")
            continue
        job.status = payload.status
        success += 1

    log_admin_action(db, admin_id, "bulk_job_status", {"job_ids": payload.job_ids, "status": payload.status})
    commit_or_raise(db, "bulk_job_status")
    return {"results": {"success": success, "failed": len(errors), "errors": errors}}


@router.put("/jobs/{job_id}/status")
async def update_job_status(
    job_id: int,
    payload: JobStatusUpdate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    job = JobStore(db).find_by_id(job_id)
    previous = job.status
    job.status = payload.status
    log_admin_action(db, admin_id, "update_job_status", {"job_id": job.id, "from": previous, "to": payload.status})
    commit_or_raise(db, "admin_update_job_status")
    db.refresh(job)
    return job_response(job)


@router.get("/proposals")
async def list_all_proposals(
    status: Optional[str] = None,
    job_id: Optional[int] = None,
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    store = ProposalStore(db)
    result = store.paginate(store.filtered(job_id=job_id, status=status), page, limit)
    return {"proposals": [proposal_response(p) for p in result.items], "pagination": result.meta()}


@router.get("/proposals/stats")
async def proposal_stats(db: Session = Depends(get_db)):
    return analytics.proposal_stats(db)


@router.get("/proposals/{proposal_id}")
async def get_proposal(proposal_id: int, db: Session = Depends(get_db)):
    return proposal_response(ProposalStore(db).find_by_id(proposal_id))


@router.put("/proposals/{proposal_id}/status")
async def update_proposal_status(
    proposal_id: int,
    payload: ProposalStatusUpdate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    proposal = ProposalStore(db).find_by_id(proposal_id)
    previous = proposal.status
    set_status_by_admin(db, proposal, payload.status)
    log_admin_action(
        db, admin_id, "update_proposal_status", {"proposal_id": proposal.id, "from": previous, "to": payload.status}
    )
    commit_or_raise(db, "admin_update_proposal_status")
    db.refresh(proposal)
    return proposal_response(proposal)


@router.delete("/proposals/{proposal_id}")
async def delete_proposal(
    proposal_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    proposal = ProposalStore(db).find_by_id(proposal_id)
    db.delete(proposal)
    log_admin_action(db, admin_id, "delete_proposal", {"proposal_id": proposal_id})
    commit_or_raise(db, "admin_delete_proposal")
    return {"message": "Proposal deleted", "proposal_id": proposal_id}


# ============== Moderation ==============


@router.get("/messages/flagged")
async def flagged_messages(
    reviewed: Optional[bool] = None,
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    result = MessageStore(db).flagged(reviewed, page, limit)
    return {
        "messages": [
            {
                **MessageResponse.model_validate(m).model_dump(),
                "violations": m.violations or [],
                "review_action": m.review_action,
            }
            for m in result.items
        ],
        "pagination": result.meta(),
    }


@router.put("/messages/{message_id}/review")
async def review_message(
    message_id: int,
    payload: MessageReview,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    if payload.action not in ("approved", "removed"):
        raise ValidationError("action must be 'approved' or 'removed'")
    store = MessageStore(db)
    message = store.review(store.find_by_id(message_id), payload.action)
    log_admin_action(db, admin_id, "review_message", {"message_id": message.id, "action": payload.action})
    commit_or_raise(db, "review_message")
    return {"message": "Message reviewed", "message_id": message_id, "action": payload.action}


@router.get("/interviews")
async def list_interviews(
    status: Optional[str] = None,
    flagged: Optional[bool] = None,
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    result = InterviewStore(db).list_for(status=status, flagged=flagged, page=page, page_size=limit)
    return {
        "interviews": [InterviewResponse.model_validate(i) for i in result.items],
        "pagination": result.meta(),
    }

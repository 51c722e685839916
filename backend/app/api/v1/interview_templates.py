"""
Interview Templates API endpoints.

Managers keep reusable question sets, optionally share them publicly and
start interviews from them. Deleting a template only deactivates it.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, get_manager_profile
from app.core.exceptions import Forbidden
from app.db.session import get_db
from app.models import InterviewTemplate, ManagerProfile, User
from app.models.interview import DIFFICULTY_LEVELS, QUESTION_TYPES, TEMPLATE_CATEGORIES
from app.stores import InterviewTemplateStore, commit_or_raise

logger = logging.getLogger("interview_templates")

router = APIRouter()


# ============== Pydantic Schemas ==============


class TemplateQuestion(BaseModel):
    text: str = Field(min_length=5, max_length=1000)
    type: str = "text"
    order: Optional[int] = Field(default=None, ge=1)

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in QUESTION_TYPES:
            raise ValueError(f"type must be one of {', '.join(QUESTION_TYPES)}")
        return v


class TemplateFields(BaseModel):
    @field_validator("category", check_fields=False)
    @classmethod
    def validate_category(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in TEMPLATE_CATEGORIES:
            raise ValueError(f"category must be one of {', '.join(TEMPLATE_CATEGORIES)}")
        return v

    @field_validator("difficulty_level", check_fields=False)
    @classmethod
    def validate_difficulty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in DIFFICULTY_LEVELS:
            raise ValueError(f"difficulty_level must be one of {', '.join(DIFFICULTY_LEVELS)}")
        return v

    @field_validator("tags", check_fields=False)
    @classmethod
    def validate_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return v
        cleaned: list[str] = []
        for tag in v:
            tag = tag.strip().lower()
            if not 1 <= len(tag) <= 50:
                raise ValueError("Tags must be 1-50 characters")
            if tag not in cleaned:
                cleaned.append(tag)
        return cleaned


class TemplateCreate(TemplateFields):
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    category: str = "general"
    questions: list[TemplateQuestion] = Field(min_length=1, max_length=50)
    estimated_duration: int = Field(default=60, ge=15, le=480)
    difficulty_level: str = "intermediate"
    tags: list[str] = Field(default=[], max_length=10)
    is_public: bool = False


class TemplatePatch(TemplateFields):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    category: Optional[str] = None
    questions: Optional[list[TemplateQuestion]] = Field(default=None, min_length=1, max_length=50)
    estimated_duration: Optional[int] = Field(default=None, ge=15, le=480)
    difficulty_level: Optional[str] = None
    tags: Optional[list[str]] = Field(default=None, max_length=10)
    is_public: Optional[bool] = None


class DuplicateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)


class TemplateResponse(BaseModel):
    id: int
    manager_id: int
    name: str
    description: Optional[str] = None
    category: str
    difficulty_level: str
    estimated_duration: int
    questions: list[dict]
    tags: list[str] = []
    is_public: bool
    usage_count: int
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============== Helper Functions ==============


def ordered_questions(questions: list[TemplateQuestion]) -> list[dict]:
    """Questions sorted by their given order, then renumbered 1..n."""
    indexed = sorted(
        enumerate(questions),
        key=lambda pair: (pair[1].order if pair[1].order is not None else pair[0] + 1, pair[0]),
    )
    return [
        {"text": q.text.strip(), "type": q.type, "order": position}
        for position, (_, q) in enumerate(indexed, start=1)
    ]


def get_owned_template(db: Session, template_id: int, manager: ManagerProfile) -> InterviewTemplate:
    template = InterviewTemplateStore(db).find_active(template_id)
    if template.manager_id != manager.id:
        raise Forbidden("Not authorized to modify this template")
    return template


def get_usable_template(db: Session, template_id: int, manager: ManagerProfile) -> InterviewTemplate:
    """Own templates and public ones may be used or copied."""
    template = InterviewTemplateStore(db).find_active(template_id)
    if template.manager_id != manager.id and not template.is_public:
        raise Forbidden("Not authorized to use this template")
    return template


def split_tags(tags: Optional[str]) -> Optional[list[str]]:
    if not tags:
        return None
    return [t.strip() for t in tags.split(",") if t.strip()]


# ============== API Endpoints ==============


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    payload: TemplateCreate,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    template = InterviewTemplateStore(db).create(
        {
            **payload.model_dump(exclude={"questions"}),
            "questions": ordered_questions(payload.questions),
            "manager_id": manager.id,
            "usage_count": 0,
            "is_active": True,
        }
    )
    commit_or_raise(db, "create_interview_template")
    db.refresh(template)
    logger.info(f"Interview template {template.id} created by manager {manager.id}")
    return template


@router.get("")
async def my_templates(
    category: Optional[str] = None,
    difficulty_level: Optional[str] = None,
    tags: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    """The manager's templates, most recently used first. ``tags`` is comma-separated."""
    result = InterviewTemplateStore(db).list_for_manager(
        manager.id,
        page=page,
        page_size=limit,
        category=category,
        difficulty_level=difficulty_level,
        tags=split_tags(tags),
        search=search,
    )
    return {
        "templates": [TemplateResponse.model_validate(t) for t in result.items],
        "pagination": result.meta(),
    }


@router.get("/public/all")
async def public_templates(
    category: Optional[str] = None,
    difficulty_level: Optional[str] = None,
    tags: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Shared templates, most used first."""
    result = InterviewTemplateStore(db).list_public(
        page=page,
        page_size=limit,
        category=category,
        difficulty_level=difficulty_level,
        tags=split_tags(tags),
        search=search,
    )
    return {
        "templates": [TemplateResponse.model_validate(t) for t in result.items],
        "pagination": result.meta(),
    }


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    template = InterviewTemplateStore(db).find_active(template_id)
    owner = current_user.manager_profile is not None and template.manager_id == current_user.manager_profile.id
    if not (owner or template.is_public or current_user.role == "admin"):
        raise Forbidden("Not authorized to view this template")
    return template


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: int,
    patch: TemplatePatch,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    template = get_owned_template(db, template_id, manager)
    changes = patch.model_dump(exclude_unset=True, exclude={"questions"})
    if patch.questions is not None:
        changes["questions"] = ordered_questions(patch.questions)
    InterviewTemplateStore(db).apply(template, changes)
    commit_or_raise(db, "update_interview_template")
    db.refresh(template)
    return template


@router.delete("/{template_id}")
async def delete_template(
    template_id: int,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    template = get_owned_template(db, template_id, manager)
    template.is_active = False
    commit_or_raise(db, "delete_interview_template")
    logger.info(f"Interview template {template_id} deactivated by manager {manager.id}")
    return {"message": "Template deleted", "template_id": template_id}


@router.post("/{template_id}/duplicate", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def duplicate_template(
    template_id: int,
    payload: Optional[DuplicateRequest] = None,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    """Private copy owned by the caller, named ``<name> (Copy)`` unless a name is given."""
    source = get_usable_template(db, template_id, manager)
    name = payload.name if payload is not None and payload.name else f"{source.name} (Copy)"
    copy = InterviewTemplateStore(db).create(
        {
            "manager_id": manager.id,
            "name": name[:100],
            "description": source.description,
            "category": source.category,
            "difficulty_level": source.difficulty_level,
            "estimated_duration": source.estimated_duration,
            "questions": [dict(q) for q in source.questions or []],
            "tags": list(source.tags or []),
            "is_public": False,
            "usage_count": 0,
            "is_active": True,
        }
    )
    commit_or_raise(db, "duplicate_interview_template")
    db.refresh(copy)
    return copy


@router.post("/{template_id}/use", response_model=TemplateResponse)
async def use_template(
    template_id: int,
    manager: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    store = InterviewTemplateStore(db)
    template = store.record_use(get_usable_template(db, template_id, manager))
    commit_or_raise(db, "use_interview_template")
    db.refresh(template)
    return template

"""
Profile API endpoints.

Talent profiles (rate, availability, skills, portfolio) and manager
profiles (company metadata).
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, get_manager_profile, get_talent_profile
from app.core.exceptions import ValidationError
from app.db.session import get_db
from app.models import ManagerProfile, TalentProfile, User
from app.models.profile import AVAILABILITY_OPTIONS, COMPANY_SIZES
from app.models.skill import PROFICIENCY_LEVELS
from app.stores import ManagerProfileStore, SkillStore, TalentProfileStore, commit_or_raise

router = APIRouter()


# ============== Pydantic Schemas ==============


class SkillEntry(BaseModel):
    skill_id: int
    name: str
    category: Optional[str] = None
    proficiency: str


class TalentProfileResponse(BaseModel):
    id: int
    user_id: int
    first_name: str
    last_name: str
    email: str
    profile_image: Optional[str] = None
    title: str
    bio: str
    hourly_rate: Optional[float] = None
    availability: str
    location: str
    portfolio_description: str
    is_featured: bool
    skills: list[SkillEntry]
    created_at: Optional[datetime] = None


class TalentProfilePatch(BaseModel):
    """Mutable talent profile fields."""

    title: Optional[str] = None
    bio: Optional[str] = None
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    availability: Optional[str] = None
    location: Optional[str] = None
    portfolio_description: Optional[str] = None

    @field_validator("availability")
    @classmethod
    def validate_availability(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in AVAILABILITY_OPTIONS:
            raise ValueError(f"availability must be one of {', '.join(AVAILABILITY_OPTIONS)}")
        return v


class SkillAdd(BaseModel):
    name: str
    category: Optional[str] = None
    proficiency: str = "intermediate"

    @field_validator("proficiency")
    @classmethod
    def validate_proficiency(cls, v: str) -> str:
        if v not in PROFICIENCY_LEVELS:
            raise ValueError(f"proficiency must be one of {', '.join(PROFICIENCY_LEVELS)}")
        return v


class ManagerProfileResponse(BaseModel):
    id: int
    user_id: int
    first_name: str
    last_name: str
    email: str
    company_name: str
    company_description: str
    company_size: Optional[str] = None
    industry: str
    location: str
    active_jobs: int = 0
    created_at: Optional[datetime] = None


class ManagerProfilePatch(BaseModel):
    """Mutable manager profile fields."""

    company_name: Optional[str] = None
    company_description: Optional[str] = None
    company_size: Optional[str] = None
    industry: Optional[str] = None
    location: Optional[str] = None

    @field_validator("company_size")
    @classmethod
    def validate_company_size(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in COMPANY_SIZES:
            raise ValueError(f"company_size must be one of {', '.join(COMPANY_SIZES)}")
        return v


# ============== Helper Functions ==============


def talent_response(profile: TalentProfile) -> TalentProfileResponse:
    user = profile.user
    return TalentProfileResponse(
        id=profile.id,
        user_id=profile.user_id,
        first_name=user.first_name or "",
        last_name=user.last_name or "",
        email=user.email,
        profile_image=user.profile_image,
        title=profile.title or "",
        bio=profile.bio or "",
        hourly_rate=profile.hourly_rate,
        availability=profile.availability or "contract",
        location=profile.location or "",
        portfolio_description=profile.portfolio_description or "",
        is_featured=bool(profile.is_featured),
        skills=[
            SkillEntry(
                skill_id=link.skill_id,
                name=link.skill.name,
                category=link.skill.category,
                proficiency=link.proficiency or "intermediate",
            )
            for link in profile.skills
        ],
        created_at=profile.created_at,
    )


def manager_response(profile: ManagerProfile) -> ManagerProfileResponse:
    user = profile.user
    return ManagerProfileResponse(
        id=profile.id,
        user_id=profile.user_id,
        first_name=user.first_name or "",
        last_name=user.last_name or "",
        email=user.email,
        company_name=profile.company_name or "",
        company_description=profile.company_description or "",
        company_size=profile.company_size,
        industry=profile.industry or "",
        location=profile.location or "",
        active_jobs=sum(1 for job in profile.jobs if job.status == "open"),
        created_at=profile.created_at,
    )


# ============== Talent Endpoints ==============


@router.get("/talent/me", response_model=TalentProfileResponse)
async def get_my_talent_profile(profile: TalentProfile = Depends(get_talent_profile)):
    return talent_response(profile)


@router.put("/talent/me", response_model=TalentProfileResponse)
async def update_my_talent_profile(
    patch: TalentProfilePatch,
    profile: TalentProfile = Depends(get_talent_profile),
    db: Session = Depends(get_db),
):
    TalentProfileStore(db).apply(profile, patch)
    commit_or_raise(db, "update_talent_profile")
    db.refresh(profile)
    return talent_response(profile)


@router.post("/talent/me/skills", response_model=TalentProfileResponse, status_code=status.HTTP_201_CREATED)
async def add_my_skill(
    payload: SkillAdd,
    profile: TalentProfile = Depends(get_talent_profile),
    db: Session = Depends(get_db),
):
    """Attach a skill by name; unknown skills are added to the catalogue."""
    if not payload.name.strip():
        raise ValidationError("Skill name is required")
    skill = SkillStore(db).get_or_create(payload.name, payload.category)
    TalentProfileStore(db).add_skill(profile, skill, payload.proficiency)
    commit_or_raise(db, "add_talent_skill")
    db.refresh(profile)
    return talent_response(profile)


@router.delete("/talent/me/skills/{skill_id}", response_model=TalentProfileResponse)
async def remove_my_skill(
    skill_id: int,
    profile: TalentProfile = Depends(get_talent_profile),
    db: Session = Depends(get_db),
):
    TalentProfileStore(db).remove_skill(profile, skill_id)
    commit_or_raise(db, "remove_talent_skill")
    db.refresh(profile)
    return talent_response(profile)


@router.get("/talent/search")
async def search_talents(
    skills: Optional[str] = Query(default=None, description="Comma separated skill names"),
    min_rate: Optional[float] = None,
    max_rate: Optional[float] = None,
    availability: Optional[str] = None,
    location: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Search talents by skills, hourly rate range, availability and location."""
    result = TalentProfileStore(db).search(
        skills=skills.split(",") if skills else None,
        min_rate=min_rate,
        max_rate=max_rate,
        availability=availability,
        location=location,
        page=page,
        page_size=limit,
    )
    return {"talents": [talent_response(p) for p in result.items], "pagination": result.meta()}


@router.get("/talent/{profile_id}", response_model=TalentProfileResponse)
async def get_talent_profile_by_id(
    profile_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return talent_response(TalentProfileStore(db).find_by_id(profile_id))


# ============== Manager Endpoints ==============


@router.get("/manager/me", response_model=ManagerProfileResponse)
async def get_my_manager_profile(profile: ManagerProfile = Depends(get_manager_profile)):
    return manager_response(profile)


@router.put("/manager/me", response_model=ManagerProfileResponse)
async def update_my_manager_profile(
    patch: ManagerProfilePatch,
    profile: ManagerProfile = Depends(get_manager_profile),
    db: Session = Depends(get_db),
):
    ManagerProfileStore(db).apply(profile, patch)
    commit_or_raise(db, "update_manager_profile")
    db.refresh(profile)
    return manager_response(profile)


@router.get("/manager/{profile_id}", response_model=ManagerProfileResponse)
async def get_manager_profile_by_id(
    profile_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return manager_response(ManagerProfileStore(db).find_by_id(profile_id))

"""
Skills API endpoints.

Shared skill catalogue used by talent profiles and job postings.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.v1.auth import require_admin
from app.core.exceptions import Conflict, ValidationError
from app.db.session import get_db
from app.models import User
from app.services.admin_audit import log_admin_action
from app.stores import SkillStore, commit_or_raise

router = APIRouter()


# ============== Pydantic Schemas ==============


class SkillResponse(BaseModel):
    id: int
    name: str
    category: Optional[str] = None

    class Config:
        from_attributes = True


class SkillCreate(BaseModel):
    name: str
    category: Optional[str] = None


class SkillBulkCreate(BaseModel):
    skills: list[SkillCreate]


# ============== API Endpoints ==============


@router.get("", response_model=list[SkillResponse])
async def list_skills(category: Optional[str] = None, db: Session = Depends(get_db)):
    return SkillStore(db).list_by_category(category)


@router.get("/search", response_model=list[SkillResponse])
async def search_skills(q: str, limit: int = 20, db: Session = Depends(get_db)):
    if not q.strip():
        return []
    return SkillStore(db).search(q, limit=min(max(limit, 1), 100))


@router.get("/categories", response_model=list[str])
async def list_categories(db: Session = Depends(get_db)):
    return SkillStore(db).categories()


@router.post("", response_model=SkillResponse, status_code=status.HTTP_201_CREATED)
async def create_skill(
    payload: SkillCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    store = SkillStore(db)
    if not payload.name.strip():
        raise ValidationError("Skill name is required")
    if store.get_by_name(payload.name):
        raise Conflict("Skill already exists")

    skill = store.create({"name": payload.name.strip(), "category": payload.category})
    log_admin_action(db, admin.id, "create_skill", {"skill_id": skill.id, "name": skill.name})
    commit_or_raise(db, "create_skill", "Skill already exists")
    return skill


@router.post("/bulk")
async def bulk_create_skills(
    payload: SkillBulkCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create many skills at once; existing or blank names are reported, not fatal."""
    store = SkillStore(db)
    created, errors = [], []
    for entry in payload.skills:
        name = entry.name.strip()
        if not name:
            errors.append("Skill name is required")
            continue
        if store.get_by_name(name):
            errors.append(f"Skill '{name}' already exists")
            continue
        created.append(store.create({"name": name, "category": entry.category}))

    log_admin_action(db, admin.id, "bulk_create_skills", {"created": len(created), "failed": len(errors)})
    commit_or_raise(db, "bulk_create_skills")
    return {
        "created": [SkillResponse.model_validate(s) for s in created],
        "results": {"success": len(created), "failed": len(errors), "errors": errors},
    }

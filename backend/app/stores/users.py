"""Stores for users, role profiles, archived users and the admin log."""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query

from app.models import (
    AdminLog,
    DeletedUser,
    ManagerProfile,
    Skill,
    TalentProfile,
    TalentSkill,
    User,
)
from app.stores.base import BaseStore, Page

TALENT_DEFAULTS = {
    "title": "",
    "bio": "",
    "location": "",
    "portfolio_description": "",
    "availability": "contract",
}
MANAGER_DEFAULTS = {
    "company_name": "",
    "company_description": "",
    "industry": "",
    "location": "",
}


class UserStore(BaseStore[User]):
    model = User
    entity_name = "User"

    def get_by_email(self, email: str) -> Optional[User]:
        return self.query().filter(func.lower(User.email) == email.strip().lower()).first()

    def email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        query = self.query().filter(func.lower(User.email) == email.strip().lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def filtered(
        self,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Query:
        query = self.query()
        if role:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(User.email).like(pattern),
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                )
            )
        return query

    def touch_login(self, user: User) -> None:
        user.last_login_at = datetime.utcnow()
        self.db.flush()


class TalentProfileStore(BaseStore[TalentProfile]):
    model = TalentProfile
    entity_name = "Talent profile"

    def create_for_user(self, user_id: int, **fields) -> TalentProfile:
        values = {**TALENT_DEFAULTS, **{k: v for k, v in fields.items() if v is not None}}
        return self.create({"user_id": user_id, **values})

    def add_skill(
        self, profile: TalentProfile, skill: Skill, proficiency: str = "intermediate"
    ) -> TalentSkill:
        link = (
            self.db.query(TalentSkill)
            .filter(TalentSkill.talent_id == profile.id, TalentSkill.skill_id == skill.id)
            .first()
        )
        if link:
            link.proficiency = proficiency
        else:
            link = TalentSkill(talent_id=profile.id, skill_id=skill.id, proficiency=proficiency)
            self.db.add(link)
        self.db.flush()
        return link

    def remove_skill(self, profile: TalentProfile, skill_id: int) -> bool:
        deleted = (
            self.db.query(TalentSkill)
            .filter(TalentSkill.talent_id == profile.id, TalentSkill.skill_id == skill_id)
            .delete(synchronize_session="fetch")
        )
        self.db.flush()
        return bool(deleted)

    def search(
        self,
        skills: Optional[list[str]] = None,
        min_rate: Optional[float] = None,
        max_rate: Optional[float] = None,
        availability: Optional[str] = None,
        location: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Page:
        """Search talents of active users."""
        query = self.query().join(User, User.id == TalentProfile.user_id).filter(User.is_active.is_(True))
        if skills:
            names = [s.strip().lower() for s in skills if s.strip()]
            if names:
                query = query.filter(
                    TalentProfile.id.in_(
                        self.db.query(TalentSkill.talent_id)
                        .join(Skill, Skill.id == TalentSkill.skill_id)
                        .filter(func.lower(Skill.name).in_(names))
                    )
                )
        if min_rate is not None:
            query = query.filter(TalentProfile.hourly_rate >= min_rate)
        if max_rate is not None:
            query = query.filter(TalentProfile.hourly_rate <= max_rate)
        if availability:
            query = query.filter(TalentProfile.availability == availability)
        if location:
            query = query.filter(func.lower(TalentProfile.location).like(f"%{location.lower()}%"))
        return self.paginate(
            query,
            page,
            page_size,
            order_by=(TalentProfile.is_featured.desc(), TalentProfile.created_at.desc()),
        )


class ManagerProfileStore(BaseStore[ManagerProfile]):
    model = ManagerProfile
    entity_name = "Manager profile"

    def create_for_user(self, user_id: int, **fields) -> ManagerProfile:
        values = {**MANAGER_DEFAULTS, **{k: v for k, v in fields.items() if v is not None}}
        return self.create({"user_id": user_id, **values})


class DeletedUserStore(BaseStore[DeletedUser]):
    model = DeletedUser
    entity_name = "Deleted user"

    def filtered(self, role: Optional[str] = None, search: Optional[str] = None) -> Query:
        query = self.query()
        if role:
            query = query.filter(DeletedUser.role == role)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(DeletedUser.email).like(pattern),
                    func.lower(DeletedUser.first_name).like(pattern),
                    func.lower(DeletedUser.last_name).like(pattern),
                )
            )
        return query

    def list_page(self, role=None, search=None, page: int = 1, page_size: Optional[int] = None) -> Page:
        return self.paginate(
            self.filtered(role, search),
            page,
            page_size,
            order_by=(DeletedUser.deleted_at.desc(), DeletedUser.id.desc()),
        )


class AdminLogStore(BaseStore[AdminLog]):
    model = AdminLog
    entity_name = "Admin log"

    def list_page(
        self,
        admin_id: Optional[int] = None,
        action: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Page:
        query = self.query()
        if admin_id is not None:
            query = query.filter(AdminLog.admin_id == admin_id)
        if action:
            query = query.filter(AdminLog.action == action)
        return self.paginate(query, page, page_size)

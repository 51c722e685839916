from typing import Optional

from sqlalchemy import func

from app.models import Skill
from app.stores.base import BaseStore


class SkillStore(BaseStore[Skill]):
    model = Skill
    entity_name = "Skill"

    def get_by_name(self, name: str) -> Optional[Skill]:
        return self.query().filter(func.lower(Skill.name) == name.strip().lower()).first()

    def get_or_create(self, name: str, category: Optional[str] = None) -> Skill:
        """Skills are matched by name case-insensitively and created on first use."""
        skill = self.get_by_name(name)
        if skill is None:
            skill = self.create({"name": name.strip(), "category": category})
        return skill

    def list_by_category(self, category: Optional[str] = None) -> list[Skill]:
        query = self.query()
        if category:
            query = query.filter(Skill.category == category)
        return query.order_by(Skill.name).all()

    def search(self, term: str, limit: int = 20) -> list[Skill]:
        pattern = f"%{term.strip().lower()}%"
        return (
            self.query()
            .filter(func.lower(Skill.name).like(pattern))
            .order_by(Skill.name)
            .limit(limit)
            .all()
        )

    def categories(self) -> list[str]:
        rows = (
            self.db.query(Skill.category)
            .filter(Skill.category.isnot(None))
            .distinct()
            .order_by(Skill.category)
            .all()
        )
        return [row[0] for row in rows]

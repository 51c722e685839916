from datetime import datetime
from typing import Optional

from sqlalchemy import String, cast, func, or_

from app.core.exceptions import NotFound
from app.models import Interview, InterviewQuestion, InterviewTemplate
from app.stores.base import BaseStore, Page


class InterviewStore(BaseStore[Interview]):
    model = Interview
    entity_name = "Interview"

    def add_questions(self, interview: Interview, questions: list[dict]) -> None:
        for order, question in enumerate(questions, start=1):
            self.db.add(
                InterviewQuestion(
                    interview_id=interview.id,
                    question_text=question["question_text"],
                    question_type=question.get("question_type") or "text",
                    question_order=question.get("question_order") or order,
                    is_required=question.get("is_required", True),
                )
            )
        self.db.flush()

    def get_question(self, interview_id: int, question_id: int) -> Optional[InterviewQuestion]:
        return (
            self.db.query(InterviewQuestion)
            .filter(InterviewQuestion.id == question_id, InterviewQuestion.interview_id == interview_id)
            .first()
        )

    def list_for(
        self,
        manager_id: Optional[int] = None,
        talent_id: Optional[int] = None,
        status: Optional[str] = None,
        flagged: Optional[bool] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Page:
        query = self.query()
        if manager_id is not None:
            query = query.filter(Interview.manager_id == manager_id)
        if talent_id is not None:
            query = query.filter(Interview.talent_id == talent_id)
        if status:
            query = query.filter(Interview.status == status)
        if flagged is not None:
            query = query.filter(Interview.is_flagged.is_(flagged))
        return self.paginate(query, page, page_size)


class InterviewTemplateStore(BaseStore[InterviewTemplate]):
    model = InterviewTemplate
    entity_name = "Interview template"

    def find_active(self, template_id: int) -> InterviewTemplate:
        """Deleted templates are kept but behave as missing."""
        template = self.get(template_id)
        if template is None or not template.is_active:
            raise NotFound(f"{self.entity_name} not found")
        return template

    def _filtered(
        self,
        category: Optional[str] = None,
        difficulty_level: Optional[str] = None,
        tags: Optional[list[str]] = None,
        search: Optional[str] = None,
    ):
        query = self.query().filter(InterviewTemplate.is_active.is_(True))
        if category:
            query = query.filter(InterviewTemplate.category == category)
        if difficulty_level:
            query = query.filter(InterviewTemplate.difficulty_level == difficulty_level)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(InterviewTemplate.name).like(pattern),
                    func.lower(InterviewTemplate.description).like(pattern),
                )
            )
        if tags:
            # Tags live in a JSON list; match on the serialized text
            for tag in tags:
                query = query.filter(func.lower(cast(InterviewTemplate.tags, String)).like(f'%"{tag.lower()}"%'))
        return query

    def list_for_manager(self, manager_id: int, page: int = 1, page_size: Optional[int] = None, **filters) -> Page:
        query = self._filtered(**filters).filter(InterviewTemplate.manager_id == manager_id)
        return self.paginate(
            query,
            page,
            page_size,
            order_by=(
                InterviewTemplate.last_used_at.is_(None),
                InterviewTemplate.last_used_at.desc(),
                InterviewTemplate.created_at.desc(),
                InterviewTemplate.id.desc(),
            ),
        )

    def list_public(self, page: int = 1, page_size: Optional[int] = None, **filters) -> Page:
        query = self._filtered(**filters).filter(InterviewTemplate.is_public.is_(True))
        return self.paginate(
            query,
            page,
            page_size,
            order_by=(InterviewTemplate.usage_count.desc(), InterviewTemplate.created_at.desc(), InterviewTemplate.id.desc()),
        )

    def record_use(self, template: InterviewTemplate) -> InterviewTemplate:
        self.query().filter(InterviewTemplate.id == template.id).update(
            {
                InterviewTemplate.usage_count: InterviewTemplate.usage_count + 1,
                InterviewTemplate.last_used_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
        self.db.flush()
        self.db.refresh(template)
        return template

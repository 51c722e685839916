"""Stores for conversations and messages."""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_

from app.models import Conversation, Message
from app.stores.base import BaseStore, Page


class ConversationStore(BaseStore[Conversation]):
    model = Conversation
    entity_name = "Conversation"

    def find_between(
        self, user_a: int, user_b: int, job_id: Optional[int] = None
    ) -> Optional[Conversation]:
        first, second = sorted((user_a, user_b))
        query = self.query().filter(
            Conversation.participant_1_id == first,
            Conversation.participant_2_id == second,
        )
        if job_id is not None:
            query = query.filter(Conversation.job_id == job_id)
        return query.order_by(Conversation.id).first()

    def find_or_create(
        self,
        user_a: int,
        user_b: int,
        conversation_type: str = "direct",
        job_id: Optional[int] = None,
        interview_id: Optional[int] = None,
        title: Optional[str] = None,
    ) -> Conversation:
        conversation = self.find_between(user_a, user_b, job_id)
        if conversation is not None:
            return conversation
        first, second = sorted((user_a, user_b))
        return self.create(
            {
                "participant_1_id": first,
                "participant_2_id": second,
                "type": conversation_type,
                "job_id": job_id,
                "interview_id": interview_id,
                "title": title,
            }
        )

    def for_user(self, user_id: int, status: Optional[str] = None) -> list[Conversation]:
        query = self.query().filter(
            or_(Conversation.participant_1_id == user_id, Conversation.participant_2_id == user_id)
        )
        if status:
            query = query.filter(Conversation.status == status)
        return query.order_by(
            Conversation.last_message_at.desc(), Conversation.created_at.desc()
        ).all()


class MessageStore(BaseStore[Message]):
    model = Message
    entity_name = "Message"

    def for_conversation(
        self, conversation_id: int, page: int = 1, page_size: Optional[int] = None
    ) -> Page:
        query = self.query().filter(
            Message.conversation_id == conversation_id, Message.is_deleted.is_(False)
        )
        return self.paginate(query, page, page_size)

    def unread_count(self, user_id: int, conversation_id: Optional[int] = None) -> int:
        query = self.query().filter(
            Message.receiver_id == user_id,
            Message.is_read.is_(False),
            Message.is_deleted.is_(False),
        )
        if conversation_id is not None:
            query = query.filter(Message.conversation_id == conversation_id)
        return query.count()

    def mark_read(self, conversation_id: int, user_id: int) -> int:
        updated = (
            self.query()
            .filter(
                Message.conversation_id == conversation_id,
                Message.receiver_id == user_id,
                Message.is_read.is_(False),
            )
            .update({Message.is_read: True}, synchronize_session="fetch")
        )
        self.db.flush()
        return updated

    def flagged(self, reviewed: Optional[bool] = None, page: int = 1, page_size: Optional[int] = None) -> Page:
        query = self.query().filter(Message.is_flagged.is_(True))
        if reviewed is True:
            query = query.filter(Message.reviewed_at.isnot(None))
        elif reviewed is False:
            query = query.filter(Message.reviewed_at.is_(None))
        return self.paginate(query, page, page_size)

    def review(self, message: Message, action: str) -> Message:
        message.reviewed_at = datetime.utcnow()
        message.review_action = action
        if action == "removed":
            message.is_deleted = True
        self.db.flush()
        return message

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.db.base import Base

CONVERSATION_TYPES = ("direct", "job", "interview")
CONVERSATION_STATUSES = ("active", "archived", "blocked")
MESSAGE_TYPES = ("text", "file", "image", "system")


class Conversation(Base):
    """Two-party conversation. Participant ids are stored in ascending order."""

    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String, default="direct")
    title = Column(String, nullable=True)

    participant_1_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    participant_2_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    interview_id = Column(Integer, ForeignKey("interviews.id", ondelete="SET NULL"), nullable=True)

    status = Column(String, default="active")
    blocked_by = Column(Integer, nullable=True)
    last_message_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Message.created_at",
    )

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.participant_1_id, self.participant_2_id)

    def other_participant(self, user_id: int) -> int:
        return self.participant_2_id if user_id == self.participant_1_id else self.participant_1_id


class Message(Base):
    """Message inside a conversation."""

    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(
        Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    message = Column(Text, nullable=False)
    message_type = Column(String, default="text")

    is_read = Column(Boolean, default=False, index=True)
    is_edited = Column(Boolean, default=False)
    is_deleted = Column(Boolean, default=False)

    # Content screening
    is_flagged = Column(Boolean, default=False, index=True)
    flag_reason = Column(String, nullable=True)
    violations = Column(JSON, default=list)  # [{"type": "email", "content": "..."}]
    reviewed_at = Column(DateTime, nullable=True)
    review_action = Column(String, nullable=True)  # 'approved' | 'removed'

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    conversation = relationship("Conversation", back_populates="messages")

"""
Conversations & Messages API endpoints.

Two-party conversations with screened messages. Messages carrying e-mail
addresses or phone numbers are stored flagged for admin review.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user
from app.core.exceptions import Forbidden, NotFound, ValidationError
from app.db.session import get_db
from app.models import Conversation, Message, User
from app.models.conversation import CONVERSATION_TYPES, MESSAGE_TYPES
from app.services.content_filter import flag_reason, screen_message
from app.services.notifier import notifier
from app.stores import (
    ConversationStore,
    InterviewStore,
    JobStore,
    MessageStore,
    UserStore,
    commit_or_raise,
)

logger = logging.getLogger("messages")

router = APIRouter()


# ============== Pydantic Schemas ==============


class ConversationCreate(BaseModel):
    participant_id: int
    type: str = "direct"
    job_id: Optional[int] = None
    interview_id: Optional[int] = None
    title: Optional[str] = None


class MessageCreate(BaseModel):
    message: str = Field(min_length=1, max_length=5000)
    conversation_id: Optional[int] = None
    receiver_id: Optional[int] = None
    message_type: str = "text"
    job_id: Optional[int] = None

    @model_validator(mode="after")
    def validate_target(self):
        if self.conversation_id is None and self.receiver_id is None:
            raise ValueError("conversation_id or receiver_id is required")
        if self.message_type not in MESSAGE_TYPES:
            raise ValueError(f"message_type must be one of {', '.join(MESSAGE_TYPES)}")
        return self


class MessageEdit(BaseModel):
    message: str = Field(min_length=1, max_length=5000)


class FlagCreate(BaseModel):
    reason: str = Field(min_length=1)


class MessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    receiver_id: int
    message: str
    message_type: str
    is_read: bool
    is_edited: bool
    is_flagged: bool
    flag_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConversationResponse(BaseModel):
    id: int
    type: str
    title: Optional[str] = None
    participant_1_id: int
    participant_2_id: int
    other_participant: Optional[dict] = None
    job_id: Optional[int] = None
    interview_id: Optional[int] = None
    status: str
    last_message: Optional[MessageResponse] = None
    last_message_at: Optional[datetime] = None
    unread_count: int = 0
    created_at: Optional[datetime] = None


# ============== Helper Functions ==============


def _participant_conversation(db: Session, conversation_id: int, user: User) -> Conversation:
    conversation = ConversationStore(db).find_by_id(conversation_id)
    if not conversation.has_participant(user.id):
        raise Forbidden("Not a participant in this conversation")
    return conversation


def conversation_response(db: Session, conversation: Conversation, user: User) -> ConversationResponse:
    other = db.get(User, conversation.other_participant(user.id))
    visible = [m for m in conversation.messages if not m.is_deleted]
    return ConversationResponse(
        id=conversation.id,
        type=conversation.type,
        title=conversation.title,
        participant_1_id=conversation.participant_1_id,
        participant_2_id=conversation.participant_2_id,
        other_participant=(
            {"id": other.id, "name": other.full_name, "role": other.role, "profile_image": other.profile_image}
            if other
            else None
        ),
        job_id=conversation.job_id,
        interview_id=conversation.interview_id,
        status=conversation.status,
        last_message=MessageResponse.model_validate(visible[-1]) if visible else None,
        last_message_at=conversation.last_message_at,
        unread_count=MessageStore(db).unread_count(user.id, conversation.id),
        created_at=conversation.created_at,
    )


def check_context(db: Session, job_id: Optional[int], interview_id: Optional[int] = None) -> None:
    """A conversation may only point at a job or interview that exists."""
    if job_id is not None:
        JobStore(db).find_by_id(job_id)
    if interview_id is not None:
        InterviewStore(db).find_by_id(interview_id)


# ============== Conversation Endpoints ==============


@router.post("/conversations", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def start_conversation(
    payload: ConversationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Find or create the conversation with another user."""
    if payload.participant_id == current_user.id:
        raise ValidationError("Cannot start a conversation with yourself")
    if payload.type not in CONVERSATION_TYPES:
        raise ValidationError(f"type must be one of {', '.join(CONVERSATION_TYPES)}")
    UserStore(db).find_by_id(payload.participant_id)
    check_context(db, payload.job_id, payload.interview_id)

    conversation = ConversationStore(db).find_or_create(
        current_user.id,
        payload.participant_id,
        conversation_type=payload.type,
        job_id=payload.job_id,
        interview_id=payload.interview_id,
        title=payload.title,
    )
    commit_or_raise(db, "start_conversation")
    db.refresh(conversation)
    return conversation_response(db, conversation, current_user)


@router.get("/conversations")
async def my_conversations(
    status: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversations = ConversationStore(db).for_user(current_user.id, status)
    return {"conversations": [conversation_response(db, c, current_user) for c in conversations]}


@router.get("/conversations/{conversation_id}/messages")
async def conversation_messages(
    conversation_id: int,
    page: int = 1,
    limit: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _participant_conversation(db, conversation_id, current_user)
    result = MessageStore(db).for_conversation(conversation_id, page, limit)
    return {
        "messages": [MessageResponse.model_validate(m) for m in result.items],
        "pagination": result.meta(),
    }


@router.post("/conversations/{conversation_id}/read")
async def mark_conversation_read(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _participant_conversation(db, conversation_id, current_user)
    updated = MessageStore(db).mark_read(conversation_id, current_user.id)
    commit_or_raise(db, "mark_conversation_read")
    return {"message": "Messages marked as read", "updated": updated}


@router.put("/conversations/{conversation_id}/archive")
async def archive_conversation(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversation = _participant_conversation(db, conversation_id, current_user)
    conversation.status = "archived"
    commit_or_raise(db, "archive_conversation")
    return {"message": "Conversation archived", "conversation_id": conversation_id}


@router.put("/conversations/{conversation_id}/block")
async def block_conversation(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversation = _participant_conversation(db, conversation_id, current_user)
    conversation.status = "blocked"
    conversation.blocked_by = current_user.id
    commit_or_raise(db, "block_conversation")
    return {"message": "Conversation blocked", "conversation_id": conversation_id}


# ============== Message Endpoints ==============


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    payload: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversations = ConversationStore(db)
    if payload.conversation_id is not None:
        conversation = _participant_conversation(db, payload.conversation_id, current_user)
    else:
        if payload.receiver_id == current_user.id:
            raise ValidationError("Cannot message yourself")
        receiver = UserStore(db).find_by_id(payload.receiver_id)
        if not receiver.is_active:
            raise ValidationError("Recipient account is inactive")
        check_context(db, payload.job_id)
        conversation = conversations.find_or_create(
            current_user.id,
            receiver.id,
            conversation_type="job" if payload.job_id else "direct",
            job_id=payload.job_id,
        )

    if conversation.status == "blocked":
        raise Forbidden("This conversation is blocked")

    violations = screen_message(payload.message)
    message = MessageStore(db).create(
        {
            "conversation_id": conversation.id,
            "sender_id": current_user.id,
            "receiver_id": conversation.other_participant(current_user.id),
            "message": payload.message,
            "message_type": payload.message_type,
            "is_flagged": bool(violations),
            "flag_reason": flag_reason(violations) if violations else None,
            "violations": violations,
        }
    )
    conversation.last_message_at = datetime.utcnow()
    if conversation.status == "archived":
        conversation.status = "active"

    commit_or_raise(db, "send_message")
    db.refresh(message)
    if violations:
        logger.warning(f"Message {message.id} from user {current_user.id} flagged: {message.flag_reason}")
    notifier.emit(
        message.receiver_id,
        "new_message",
        {"conversation_id": conversation.id, "message_id": message.id, "sender_id": current_user.id},
    )
    return message


@router.get("/unread-count")
async def unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"unread_count": MessageStore(db).unread_count(current_user.id)}


@router.put("/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: int,
    payload: MessageEdit,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = MessageStore(db).find_by_id(message_id)
    if message.sender_id != current_user.id:
        raise Forbidden("Can only edit your own messages")
    if message.is_deleted:
        raise NotFound("Message not found")

    violations = screen_message(payload.message)
    message.message = payload.message
    message.is_edited = True
    if violations:
        message.is_flagged = True
        message.flag_reason = flag_reason(violations)
        message.violations = list(message.violations or []) + violations
    commit_or_raise(db, "edit_message")
    db.refresh(message)
    return message


@router.delete("/{message_id}")
async def delete_message(
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = MessageStore(db).find_by_id(message_id)
    if message.sender_id != current_user.id:
        raise Forbidden("Can only delete your own messages")
    message.is_deleted = True
    commit_or_raise(db, "delete_message")
    return {"message": "Message deleted", "message_id": message_id}


@router.post("/{message_id}/flag", response_model=MessageResponse)
async def flag_message(
    message_id: int,
    payload: FlagCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Report a received message for admin review."""
    message = MessageStore(db).find_by_id(message_id)
    conversation = ConversationStore(db).find_by_id(message.conversation_id)
    if not conversation.has_participant(current_user.id):
        raise Forbidden("Not a participant in this conversation")
    message.is_flagged = True
    message.flag_reason = payload.reason
    message.violations = list(message.violations or []) + [
        {"type": "reported", "content": payload.reason, "reported_by": current_user.id}
    ]
    commit_or_raise(db, "flag_message")
    db.refresh(message)
    return message

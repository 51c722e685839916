from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String

from app.db.base import Base


class DeletedUser(Base):
    """
    Archived snapshot of a soft-deleted user.

    The column set is an export format: restore rebuilds the live user from
    ``user_data`` and the role profile from ``profile_data``.
    """

    __tablename__ = "deleted_users"

    id = Column(Integer, primary_key=True, index=True)
    original_user_id = Column(Integer, nullable=False, index=True)
    email = Column(String, nullable=False, index=True)
    first_name = Column(String)
    last_name = Column(String)
    role = Column(String, nullable=False)
    profile_image = Column(String, nullable=True)

    user_data = Column(JSON, nullable=False)
    profile_data = Column(JSON, nullable=True)

    deletion_reason = Column(String, nullable=True)
    deleted_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    deleted_at = Column(DateTime, default=datetime.utcnow, index=True)
    original_created_at = Column(DateTime, nullable=True)

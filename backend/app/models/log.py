from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base


class AdminLog(Base):
    """One row per admin mutation, written by ``log_admin_action``."""

    __tablename__ = "admin_logs"

    id = Column(Integer, primary_key=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    action = Column(String, nullable=False, index=True)  # "soft_delete_user", "create_discount", ...
    details = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    admin = relationship("User")

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base

USER_ROLES = ("talent", "manager", "admin")


class User(Base):
    """User account for authentication and authorization."""

    __tablename__ = "users"
    # Ids of deleted accounts are never handed out again
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)  # stored lower-cased
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, index=True)  # 'talent' | 'manager' | 'admin'
    first_name = Column(String, default="")
    last_name = Column(String, default="")
    profile_image = Column(String, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships (one-to-one role extensions)
    talent_profile = relationship(
        "TalentProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    manager_profile = relationship(
        "ManagerProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

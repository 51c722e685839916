from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.base import Base

USER_PACKAGE_STATUSES = ("active", "expired", "cancelled", "pending")
DISCOUNT_TYPES = ("percentage", "fixed_amount", "free_posts")
DISCOUNT_STATUSES = ("valid", "expired", "suspended", "gift")
INVOICE_STATUSES = ("draft", "sent", "paid", "overdue", "cancelled")


class PricingPackage(Base):
    """Job-posting credit package sold to managers."""

    __tablename__ = "pricing_packages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0)
    currency = Column(String, default="USD")
    post_credits = Column(Integer, nullable=False, default=0)
    featured_credits = Column(Integer, nullable=False, default=0)
    duration_days = Column(Integer, nullable=False, default=30)
    features = Column(JSON, default=list)
    is_popular = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UserPackage(Base):
    """A user's purchased package with its remaining credits."""

    __tablename__ = "user_packages"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    package_id = Column(
        Integer, ForeignKey("pricing_packages.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(String, default="active", index=True)
    credits_remaining = Column(Integer, default=0)
    featured_credits_remaining = Column(Integer, default=0)
    amount_paid = Column(Float, default=0)
    expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    package = relationship("PricingPackage")


class Discount(Base):
    """Discount code with lifecycle (valid / expired / suspended / gift) and archive state."""

    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)  # stored upper-cased
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False)  # one of DISCOUNT_TYPES
    value = Column(Float, nullable=False)
    min_purchase_amount = Column(Float, nullable=True)
    max_uses = Column(Integer, nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    applicable_to = Column(JSON, default=lambda: ["all"])  # package names or "all"
    user_restrictions = Column(JSON, default=dict)
    status = Column(String, default="valid", nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    archived_at = Column(DateTime, nullable=True)
    archived_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UserDiscount(Base):
    """Discount assigned to a specific user by an admin."""

    __tablename__ = "user_discounts"
    __table_args__ = (UniqueConstraint("user_id", "discount_id", name="uq_user_discount"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False)
    assigned_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status = Column(String, default="available")  # 'available' | 'used'
    used_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    discount = relationship("Discount")


class DiscountUsage(Base):
    """One redemption of a discount code."""

    __tablename__ = "discount_usage_log"

    id = Column(Integer, primary_key=True)
    discount_id = Column(
        Integer, ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    package_id = Column(
        Integer, ForeignKey("pricing_packages.id", ondelete="SET NULL"), nullable=True
    )
    original_amount = Column(Float, nullable=False)
    discount_amount = Column(Float, nullable=False)
    final_amount = Column(Float, nullable=False)
    used_at = Column(DateTime, default=datetime.utcnow)


class Invoice(Base):
    """Invoice issued to a user. Numbers are sequential: INV-000001, INV-000002, ..."""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice_number = Column(String, unique=True, index=True, nullable=False)
    amount = Column(Float, nullable=False)
    tax_amount = Column(Float, default=0)
    total_amount = Column(Float, nullable=False)
    currency = Column(String, default="USD")
    status = Column(String, default="draft", index=True)
    due_date = Column(Date, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    items = Column(JSON, default=list)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User")

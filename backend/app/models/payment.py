from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text

from app.db.base import Base

TRANSACTION_TYPES = (
    "job_payment",
    "escrow_deposit",
    "escrow_release",
    "escrow_refund",
    "commission_collection",
    "package_purchase",
    "subscription_payment",
    "refund_issued",
    "chargeback",
    "dispute_resolution",
    "manual_adjustment",
    "penalty_fee",
    "bonus_payment",
)
RELATED_ENTITY_TYPES = (
    "job",
    "contract",
    "milestone",
    "package",
    "subscription",
    "user",
    "escrow",
    "system",
)
TRANSACTION_STATUSES = (
    "initiated",
    "pending",
    "processing",
    "completed",
    "failed",
    "cancelled",
    "disputed",
    "refunded",
    "partially_refunded",
    "chargeback",
    "under_review",
)
ADMIN_ACTION_TYPES = (
    "status_change",
    "refund_issued",
    "dispute_resolved",
    "manual_adjustment",
    "fraud_investigation",
    "account_suspension",
    "note_added",
    "priority_changed",
)
RISK_LEVELS = ("low", "medium", "high", "critical")
COMMISSION_TYPES = ("percentage", "flat_fee", "tiered", "hybrid")
COMMISSION_USER_TYPES = ("talent", "manager", "both")


class TransactionLog(Base):
    """
    Ledger entry for a money movement.

    Amounts live in ``payment_details`` (cents). ``status_history`` and
    ``admin_actions`` are append-only lists; entries are never rewritten.
    Gateway identifiers (payment intent, transfer, refund) are opaque strings.
    """

    __tablename__ = "transaction_logs"

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(String, unique=True, index=True, nullable=False)
    transaction_type = Column(String, nullable=False, index=True)
    related_entity_type = Column(String, nullable=False)
    related_entity_id = Column(Integer, nullable=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # {original_amount, processed_amount, fee_amount, commission_amount, net_amount,
    #  currency, payment_intent_id, transfer_id, refund_id}
    payment_details = Column(JSON, nullable=False, default=dict)

    status = Column(String, default="initiated", index=True)
    status_history = Column(JSON, default=list)
    details = Column(JSON, default=dict)  # description, notes, fraud_score, risk_level, ...
    reconciliation = Column(JSON, default=lambda: {"reconciled": False})
    admin_actions = Column(JSON, default=list)
    error_logs = Column(JSON, default=list)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CommissionSettings(Base):
    """Commission rule applied to transactions of a user type."""

    __tablename__ = "commission_settings"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    user_type = Column(String, nullable=False)  # 'talent' | 'manager' | 'both'
    commission_type = Column(String, nullable=False)  # one of COMMISSION_TYPES
    base_commission_rate = Column(Float, nullable=False, default=0)  # percent
    flat_fee_amount = Column(Float, default=0)
    minimum_commission = Column(Float, default=0)
    maximum_commission = Column(Float, nullable=True)
    currency = Column(String, default="usd")

    # [{"tier_name", "min_volume", "max_volume", "commission_rate", "flat_fee"}]
    tiers = Column(JSON, default=list)
    # [{"min_amount", "max_amount", "commission_adjustment"}]
    payment_ranges = Column(JSON, default=list)
    transaction_types = Column(JSON, default=list)

    priority = Column(Integer, default=1)
    is_active = Column(Boolean, default=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    last_updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

"""
Transaction Ledger.

Each money movement is one ``TransactionLog`` row. Its amounts are fixed at
creation; everything that happens afterwards is appended to
``status_history``, ``admin_actions`` or ``error_logs`` and never rewritten.
Amounts are integer cents.
"""

import logging
import random
import time
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.models import TransactionLog
from app.models.payment import (
    ADMIN_ACTION_TYPES,
    RELATED_ENTITY_TYPES,
    TRANSACTION_STATUSES,
    TRANSACTION_TYPES,
)

logger = logging.getLogger("ledger")

FRAUD_SCORE_THRESHOLD = 75
FRAUD_RISK_LEVELS = ("high", "critical")
FRAUD_STATUSES = ("disputed", "chargeback")


def generate_transaction_id() -> str:
    """TXN_<epoch ms>_<random suffix>."""
    suffix = "".join(random.choices("abcdefghijklmnopqrstuvwxyz0123456789", k=9))
    return f"TXN_{int(time.time() * 1000)}_{suffix}"


def _now() -> str:
    return datetime.utcnow().isoformat()


def to_cents(amount: float) -> int:
    return int(round(float(amount) * 100))


def create_transaction(
    db: Session,
    transaction_type: str,
    related_entity_type: str,
    amount_cents: int,
    user_id: Optional[int] = None,
    recipient_id: Optional[int] = None,
    related_entity_id: Optional[int] = None,
    fee_cents: int = 0,
    commission_cents: int = 0,
    currency: str = "usd",
    status: str = "initiated",
    details: Optional[dict] = None,
    gateway_ids: Optional[dict] = None,
) -> TransactionLog:
    """Insert a ledger entry with its initial status recorded in the history."""
    if transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(f"Invalid transaction type: {transaction_type}")
    if related_entity_type not in RELATED_ENTITY_TYPES:
        raise ValidationError(f"Invalid related entity type: {related_entity_type}")
    if status not in TRANSACTION_STATUSES:
        raise ValidationError(f"Invalid status: {status}")
    if amount_cents < 0:
        raise ValidationError("Amount must be non-negative")

    gateway_ids = gateway_ids or {}
    transaction = TransactionLog(
        transaction_id=generate_transaction_id(),
        transaction_type=transaction_type,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        user_id=user_id,
        recipient_id=recipient_id,
        payment_details={
            "original_amount": amount_cents,
            "processed_amount": amount_cents,
            "fee_amount": fee_cents,
            "commission_amount": commission_cents,
            "net_amount": amount_cents - fee_cents - commission_cents,
            "currency": currency,
            "payment_intent_id": gateway_ids.get("payment_intent_id"),
            "transfer_id": gateway_ids.get("transfer_id"),
            "refund_id": gateway_ids.get("refund_id"),
        },
        status=status,
        status_history=[
            {
                "status": status,
                "timestamp": _now(),
                "reason": "Transaction created",
                "updated_by": user_id,
                "system_generated": True,
            }
        ],
        details=details or {},
        reconciliation={"reconciled": False},
        admin_actions=[],
        error_logs=[],
    )
    db.add(transaction)
    db.flush()
    logger.info(f"{transaction.transaction_id} {transaction_type} {amount_cents} {currency} status={status}")
    return transaction


def update_status(
    db: Session,
    transaction: TransactionLog,
    status: str,
    reason: Optional[str] = None,
    updated_by: Optional[int] = None,
    system_generated: bool = False,
) -> TransactionLog:
    if status not in TRANSACTION_STATUSES:
        raise ValidationError(f"Invalid status: {status}")
    previous = transaction.status
    transaction.status = status
    # JSON columns track reassignment, not in-place mutation
    transaction.status_history = list(transaction.status_history or []) + [
        {
            "status": status,
            "previous_status": previous,
            "timestamp": _now(),
            "reason": reason,
            "updated_by": updated_by,
            "system_generated": system_generated,
        }
    ]
    db.flush()
    logger.info(f"{transaction.transaction_id} {previous} -> {status}")
    return transaction


def add_admin_action(
    db: Session,
    transaction: TransactionLog,
    admin_id: int,
    action_type: str,
    description: str,
    previous_value: Any = None,
    new_value: Any = None,
) -> TransactionLog:
    if action_type not in ADMIN_ACTION_TYPES:
        raise ValidationError(f"Invalid admin action type: {action_type}")
    transaction.admin_actions = list(transaction.admin_actions or []) + [
        {
            "admin_id": admin_id,
            "action_type": action_type,
            "description": description,
            "previous_value": previous_value,
            "new_value": new_value,
            "timestamp": _now(),
        }
    ]
    db.flush()
    return transaction


def add_error(
    db: Session,
    transaction: TransactionLog,
    error_code: str,
    error_message: str,
    source: str = "system",
) -> TransactionLog:
    transaction.error_logs = list(transaction.error_logs or []) + [
        {
            "error_code": error_code,
            "error_message": error_message,
            "source": source,
            "timestamp": _now(),
        }
    ]
    db.flush()
    logger.warning(f"{transaction.transaction_id} error {error_code}: {error_message}")
    return transaction


def reconcile(
    db: Session,
    transaction: TransactionLog,
    admin_id: int,
    reconciled: bool = True,
    notes: Optional[str] = None,
    discrepancy_cents: int = 0,
) -> TransactionLog:
    """Manual reconciliation entered by an admin."""
    transaction.reconciliation = {
        "reconciled": reconciled,
        "reconciled_by": admin_id,
        "reconciled_at": _now(),
        "notes": notes,
        "discrepancy_amount": discrepancy_cents,
    }
    add_admin_action(
        db,
        transaction,
        admin_id,
        "note_added",
        notes or ("Marked reconciled" if reconciled else "Marked unreconciled"),
        new_value={"reconciled": reconciled},
    )
    return transaction


def analytics(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    transaction_type: Optional[str] = None,
) -> dict:
    query = db.query(TransactionLog)
    if start_date:
        query = query.filter(TransactionLog.created_at >= start_date)
    if end_date:
        query = query.filter(TransactionLog.created_at <= end_date)
    if transaction_type:
        query = query.filter(TransactionLog.transaction_type == transaction_type)

    transactions = query.all()
    total = len(transactions)
    completed = [t for t in transactions if t.status == "completed"]
    failed = sum(1 for t in transactions if t.status == "failed")

    def _sum(key: str) -> int:
        return sum(int((t.payment_details or {}).get(key) or 0) for t in transactions)

    processed = _sum("processed_amount")
    by_type: dict[str, int] = {}
    for t in transactions:
        by_type[t.transaction_type] = by_type.get(t.transaction_type, 0) + 1

    return {
        "total_transactions": total,
        "total_processed_amount": processed,
        "total_fees": _sum("fee_amount"),
        "total_commission": _sum("commission_amount"),
        "average_amount": round(processed / total, 2) if total else 0,
        "successful_transactions": len(completed),
        "failed_transactions": failed,
        "success_rate": round(len(completed) / total * 100, 2) if total else 0,
        "by_type": by_type,
    }


def unreconciled(db: Session, limit: int = 100) -> list[TransactionLog]:
    completed = (
        db.query(TransactionLog)
        .filter(TransactionLog.status == "completed")
        .order_by(TransactionLog.created_at.asc())
        .all()
    )
    return [t for t in completed if not (t.reconciliation or {}).get("reconciled")][:limit]


def fraud_alerts(db: Session, limit: int = 100) -> list[TransactionLog]:
    """Disputes, chargebacks and entries scored high-risk."""
    candidates = db.query(TransactionLog).order_by(TransactionLog.created_at.desc()).all()
    alerts = []
    for t in candidates:
        details = t.details or {}
        if (
            t.status in FRAUD_STATUSES
            or (details.get("fraud_score") or 0) >= FRAUD_SCORE_THRESHOLD
            or details.get("risk_level") in FRAUD_RISK_LEVELS
        ):
            alerts.append(t)
    return alerts[:limit]


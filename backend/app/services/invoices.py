"""Invoice issuing and status changes."""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, ValidationError
from app.models import Invoice, User
from app.models.billing import INVOICE_STATUSES
from app.stores.billing import InvoiceStore

logger = logging.getLogger("invoices")


def create_invoice(
    db: Session,
    user_id: int,
    amount: float,
    tax_amount: float = 0,
    currency: str = "USD",
    due_date: Optional[date] = None,
    items: Optional[list] = None,
    notes: Optional[str] = None,
    status: str = "draft",
) -> Invoice:
    if db.get(User, user_id) is None:
        raise NotFound("User not found")
    if amount < 0 or tax_amount < 0:
        raise ValidationError("Amounts must be non-negative")
    if status not in INVOICE_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(INVOICE_STATUSES)}")

    store = InvoiceStore(db)
    invoice = store.create(
        {
            "user_id": user_id,
            "invoice_number": store.next_number(),
            "amount": round(amount, 2),
            "tax_amount": round(tax_amount, 2),
            "total_amount": round(amount + tax_amount, 2),
            "currency": currency,
            "status": status,
            "due_date": due_date,
            "items": items or [],
            "notes": notes,
            "paid_at": datetime.utcnow() if status == "paid" else None,
        }
    )
    logger.info(f"Invoice {invoice.invoice_number} issued to user {user_id} ({invoice.total_amount:.2f})")
    return invoice


def set_status(db: Session, invoice: Invoice, status: str) -> Invoice:
    if status not in INVOICE_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(INVOICE_STATUSES)}")
    invoice.status = status
    if status == "paid" and invoice.paid_at is None:
        invoice.paid_at = datetime.utcnow()
    db.flush()
    return invoice


def totals(db: Session) -> dict:
    store = InvoiceStore(db)
    return {
        "paid_amount": store.sum_by_status("paid"),
        "overdue_amount": store.sum_by_status("overdue"),
        "pending_amount": store.sum_by_status("sent", "overdue"),
    }

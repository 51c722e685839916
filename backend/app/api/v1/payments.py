"""
Payments API endpoints (user side).

Transaction history for the signed-in user and commission quotes.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user
from app.core.exceptions import Forbidden, NotFound, ValidationError
from app.db.session import get_db
from app.models import TransactionLog, User
from app.models.payment import COMMISSION_USER_TYPES
from app.services.commission import calculate_commission
from app.stores import CommissionSettingsStore, TransactionLogStore

router = APIRouter()


# ============== Pydantic Schemas ==============


class TransactionResponse(BaseModel):
    id: int
    transaction_id: str
    transaction_type: str
    related_entity_type: str
    related_entity_id: Optional[int] = None
    user_id: Optional[int] = None
    recipient_id: Optional[int] = None
    payment_details: dict
    status: str
    status_history: list = []
    details: dict = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminTransactionResponse(TransactionResponse):
    reconciliation: dict = {}
    admin_actions: list = []
    error_logs: list = []


# ============== API Endpoints ==============


@router.get("/transactions")
async def my_transactions(
    transaction_type: Optional[str] = Query(default=None, alias="type"),
    status: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = 1,
    limit: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Transactions where the user paid or received."""
    result = TransactionLogStore(db).list_page(
        page=page,
        page_size=limit,
        user_id=current_user.id,
        transaction_type=transaction_type,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    return {
        "transactions": [TransactionResponse.model_validate(t) for t in result.items],
        "pagination": result.meta(),
    }


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_my_transaction(
    transaction_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    transaction: TransactionLog = TransactionLogStore(db).find_by_transaction_id(transaction_id)
    if current_user.id not in (transaction.user_id, transaction.recipient_id):
        raise Forbidden("Not authorized to view this transaction")
    return transaction


@router.get("/commission/quote")
async def commission_quote(
    amount: float,
    user_type: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Quote the platform commission on an amount under the active rule."""
    user_type = user_type or current_user.role
    if user_type not in COMMISSION_USER_TYPES:
        raise ValidationError(f"user_type must be one of {', '.join(COMMISSION_USER_TYPES)}")
    rule = CommissionSettingsStore(db).for_user_type(user_type)
    if rule is None:
        raise NotFound("No active commission settings")
    return calculate_commission(rule, amount).as_dict()

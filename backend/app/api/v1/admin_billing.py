"""
Admin Billing API endpoints.

Pricing packages, discount codes, invoices, the transaction ledger and
commission settings. Every mutation is written to the admin log.
"""

import logging
from datetime import date, datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from app.api.v1.admin import current_admin_id
from app.api.v1.auth import require_admin
from app.api.v1.packages import PackageResponse
from app.api.v1.payments import AdminTransactionResponse
from app.core.exceptions import Conflict, NotFound, ValidationError
from app.db.session import get_db
from app.models.billing import DISCOUNT_STATUSES, DISCOUNT_TYPES
from app.models.payment import COMMISSION_TYPES, COMMISSION_USER_TYPES, TRANSACTION_STATUSES
from app.services import invoices, ledger
from app.services.admin_audit import log_admin_action
from app.services.commission import calculate_commission
from app.services.notifier import notifier
from app.stores import (
    CommissionSettingsStore,
    DiscountStore,
    InvoiceStore,
    PackageStore,
    TransactionLogStore,
    UserStore,
    commit_or_raise,
)

logger = logging.getLogger("admin_billing")

router = APIRouter(dependencies=[Depends(require_admin)])


# ============== Pydantic Schemas ==============


class PackageCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(ge=0)
    currency: str = "USD"
    post_credits: int = Field(ge=0)
    featured_credits: int = Field(default=0, ge=0)
    duration_days: int = Field(default=30, ge=1)
    features: list[str] = []
    is_popular: bool = False


class PackagePatch(BaseModel):
    """Mutable package fields."""

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = None
    post_credits: Optional[int] = Field(default=None, ge=0)
    featured_credits: Optional[int] = Field(default=None, ge=0)
    duration_days: Optional[int] = Field(default=None, ge=1)
    features: Optional[list[str]] = None
    is_popular: Optional[bool] = None


class DiscountFields(BaseModel):
    @field_validator("type", check_fields=False)
    @classmethod
    def validate_type(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in DISCOUNT_TYPES:
            raise ValueError(f"type must be one of {', '.join(DISCOUNT_TYPES)}")
        return v

    @field_validator("status", check_fields=False)
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in DISCOUNT_STATUSES:
            raise ValueError(f"status must be one of {', '.join(DISCOUNT_STATUSES)}")
        return v

    @field_validator("code", check_fields=False)
    @classmethod
    def normalize_code(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v


class DiscountCreate(DiscountFields):
    code: str = Field(min_length=3, max_length=50)
    name: str = Field(min_length=1)
    description: Optional[str] = None
    type: str
    value: float = Field(gt=0)
    min_purchase_amount: Optional[float] = Field(default=None, ge=0)
    max_uses: Optional[int] = Field(default=None, ge=1)
    expires_at: Optional[datetime] = None
    applicable_to: list[str] = ["all"]
    user_restrictions: dict = {}
    status: str = "valid"


class DiscountPatch(DiscountFields):
    """Mutable discount fields."""

    code: Optional[str] = Field(default=None, min_length=3, max_length=50)
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    value: Optional[float] = Field(default=None, gt=0)
    min_purchase_amount: Optional[float] = Field(default=None, ge=0)
    max_uses: Optional[int] = Field(default=None, ge=1)
    expires_at: Optional[datetime] = None
    applicable_to: Optional[list[str]] = None
    user_restrictions: Optional[dict] = None
    status: Optional[str] = None
    is_active: Optional[bool] = None


class DiscountAssign(BaseModel):
    user_id: int
    notes: Optional[str] = None


class DiscountResponse(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    type: str
    value: float
    min_purchase_amount: Optional[float] = None
    max_uses: Optional[int] = None
    usage_count: int = 0
    expires_at: Optional[datetime] = None
    applicable_to: list = []
    status: str
    is_active: bool
    archived_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceCreate(BaseModel):
    user_id: int
    amount: float = Field(ge=0)
    tax_amount: float = Field(default=0, ge=0)
    currency: str = "USD"
    due_date: Optional[date] = None
    items: list[dict] = []
    notes: Optional[str] = None
    status: str = "draft"


class InvoiceStatusUpdate(BaseModel):
    status: str


class InvoiceResponse(BaseModel):
    id: int
    user_id: int
    invoice_number: str
    amount: float
    tax_amount: float
    total_amount: float
    currency: str
    status: str
    due_date: Optional[date] = None
    paid_at: Optional[datetime] = None
    items: list = []
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransactionCreate(BaseModel):
    transaction_type: str
    related_entity_type: str
    related_entity_id: Optional[int] = None
    amount: int = Field(ge=0, description="Amount in cents")
    fee_amount: int = Field(default=0, ge=0)
    commission_amount: int = Field(default=0, ge=0)
    currency: str = "usd"
    user_id: Optional[int] = None
    recipient_id: Optional[int] = None
    status: str = "initiated"
    description: Optional[str] = None
    payment_intent_id: Optional[str] = None
    transfer_id: Optional[str] = None


class TransactionStatusUpdate(BaseModel):
    status: str
    reason: Optional[str] = None


class AdminActionCreate(BaseModel):
    action_type: str
    description: str = Field(min_length=1)
    previous_value: Any = None
    new_value: Any = None


class ErrorLogCreate(BaseModel):
    error_code: str
    error_message: str
    source: str = "system"


class ReconcileRequest(BaseModel):
    reconciled: bool = True
    notes: Optional[str] = None
    discrepancy_amount: int = 0


class CommissionSettingsFields(BaseModel):
    @field_validator("user_type", check_fields=False)
    @classmethod
    def validate_user_type(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in COMMISSION_USER_TYPES:
            raise ValueError(f"user_type must be one of {', '.join(COMMISSION_USER_TYPES)}")
        return v

    @field_validator("commission_type", check_fields=False)
    @classmethod
    def validate_commission_type(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in COMMISSION_TYPES:
            raise ValueError(f"commission_type must be one of {', '.join(COMMISSION_TYPES)}")
        return v


class CommissionSettingsCreate(CommissionSettingsFields):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    user_type: str
    commission_type: str
    base_commission_rate: float = Field(default=0, ge=0, le=100)
    flat_fee_amount: float = Field(default=0, ge=0)
    minimum_commission: float = Field(default=0, ge=0)
    maximum_commission: Optional[float] = Field(default=None, ge=0)
    currency: str = "usd"
    tiers: list[dict] = []
    payment_ranges: list[dict] = []
    transaction_types: list[str] = []
    priority: int = 1


class CommissionSettingsPatch(CommissionSettingsFields):
    """Mutable commission settings fields."""

    name: Optional[str] = None
    description: Optional[str] = None
    user_type: Optional[str] = None
    commission_type: Optional[str] = None
    base_commission_rate: Optional[float] = Field(default=None, ge=0, le=100)
    flat_fee_amount: Optional[float] = Field(default=None, ge=0)
    minimum_commission: Optional[float] = Field(default=None, ge=0)
    maximum_commission: Optional[float] = Field(default=None, ge=0)
    tiers: Optional[list[dict]] = None
    payment_ranges: Optional[list[dict]] = None
    transaction_types: Optional[list[str]] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class CommissionSettingsResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    user_type: str
    commission_type: str
    base_commission_rate: float
    flat_fee_amount: Optional[float] = 0
    minimum_commission: Optional[float] = 0
    maximum_commission: Optional[float] = None
    currency: Optional[str] = None
    tiers: list = []
    payment_ranges: list = []
    priority: int = 1
    is_active: bool

    class Config:
        from_attributes = True


# ============== Packages ==============


@router.get("/packages", response_model=list[PackageResponse])
async def list_all_packages(include_archived: bool = True, db: Session = Depends(get_db)):
    store = PackageStore(db)
    if not include_archived:
        return store.active()
    return store.query().order_by(store.model.id).all()


@router.post("/packages", response_model=PackageResponse, status_code=status.HTTP_201_CREATED)
async def create_package(
    payload: PackageCreate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    package = PackageStore(db).create({**payload.model_dump(), "is_active": True})
    log_admin_action(db, admin_id, "create_package", {"package_id": package.id, "name": package.name})
    commit_or_raise(db, "create_package")
    db.refresh(package)
    return package


@router.put("/packages/{package_id}", response_model=PackageResponse)
async def update_package(
    package_id: int,
    patch: PackagePatch,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    store = PackageStore(db)
    package = store.apply(store.find_by_id(package_id), patch)
    log_admin_action(db, admin_id, "update_package", {"package_id": package.id, **patch.model_dump(exclude_unset=True)})
    commit_or_raise(db, "update_package")
    db.refresh(package)
    return package


@router.post("/packages/{package_id}/archive", response_model=PackageResponse)
async def archive_package(
    package_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    package = PackageStore(db).find_by_id(package_id)
    package.is_active = False
    log_admin_action(db, admin_id, "archive_package", {"package_id": package.id})
    commit_or_raise(db, "archive_package")
    db.refresh(package)
    return package


@router.post("/packages/{package_id}/unarchive", response_model=PackageResponse)
async def unarchive_package(
    package_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    package = PackageStore(db).find_by_id(package_id)
    package.is_active = True
    log_admin_action(db, admin_id, "unarchive_package", {"package_id": package.id})
    commit_or_raise(db, "unarchive_package")
    db.refresh(package)
    return package


@router.delete("/packages/{package_id}")
async def delete_package(
    package_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    """Packages with active subscriptions can only be archived."""
    store = PackageStore(db)
    package = store.find_by_id(package_id)
    active = store.subscriptions(package.id, status="active")
    if active:
        raise ValidationError(f"Cannot delete package with {active} active subscriptions. Archive it instead.")
    db.delete(package)
    log_admin_action(db, admin_id, "delete_package", {"package_id": package_id, "name": package.name})
    commit_or_raise(db, "delete_package")
    return {"message": "Package deleted", "package_id": package_id}


# ============== Discounts ==============


@router.get("/discounts")
async def list_discounts(
    status: Optional[str] = None,
    archived: Optional[bool] = False,
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    result = DiscountStore(db).list_page(status, archived, page, limit)
    return {
        "discounts": [DiscountResponse.model_validate(d) for d in result.items],
        "pagination": result.meta(),
    }


@router.get("/discounts/{discount_id}")
async def get_discount(discount_id: int, db: Session = Depends(get_db)):
    store = DiscountStore(db)
    discount = store.find_by_id(discount_id)
    return {
        **DiscountResponse.model_validate(discount).model_dump(),
        "actual_usage_count": store.usage_count(discount.id),
    }


@router.post("/discounts", response_model=DiscountResponse, status_code=status.HTTP_201_CREATED)
async def create_discount(
    payload: DiscountCreate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    store = DiscountStore(db)
    if store.code_taken(payload.code):
        raise Conflict("Discount code already exists")
    if payload.type == "percentage" and payload.value > 100:
        raise ValidationError("Percentage discount cannot exceed 100")

    discount = store.create({**payload.model_dump(), "created_by": admin_id, "usage_count": 0})
    log_admin_action(db, admin_id, "create_discount", {"discount_id": discount.id, "code": discount.code})
    commit_or_raise(db, "create_discount", "Discount code already exists")
    db.refresh(discount)
    return discount


@router.put("/discounts/{discount_id}", response_model=DiscountResponse)
async def update_discount(
    discount_id: int,
    patch: DiscountPatch,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    store = DiscountStore(db)
    discount = store.find_by_id(discount_id)
    if patch.code is not None and store.code_taken(patch.code, exclude_id=discount.id):
        raise Conflict("Discount code already exists")
    new_type = patch.type or discount.type
    new_value = patch.value if patch.value is not None else discount.value
    if new_type == "percentage" and new_value > 100:
        raise ValidationError("Percentage discount cannot exceed 100")

    store.apply(discount, patch)
    log_admin_action(
        db, admin_id, "update_discount", {"discount_id": discount.id, **patch.model_dump(exclude_unset=True, mode="json")}
    )
    commit_or_raise(db, "update_discount", "Discount code already exists")
    db.refresh(discount)
    return discount


@router.post("/discounts/{discount_id}/archive", response_model=DiscountResponse)
async def archive_discount(
    discount_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    discount = DiscountStore(db).find_by_id(discount_id)
    discount.archived_at = datetime.utcnow()
    discount.archived_by = admin_id
    discount.is_active = False
    log_admin_action(db, admin_id, "archive_discount", {"discount_id": discount.id})
    commit_or_raise(db, "archive_discount")
    db.refresh(discount)
    return discount


@router.post("/discounts/{discount_id}/unarchive", response_model=DiscountResponse)
async def unarchive_discount(
    discount_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    discount = DiscountStore(db).find_by_id(discount_id)
    discount.archived_at = None
    discount.archived_by = None
    discount.is_active = True
    log_admin_action(db, admin_id, "unarchive_discount", {"discount_id": discount.id})
    commit_or_raise(db, "unarchive_discount")
    db.refresh(discount)
    return discount


@router.delete("/discounts/{discount_id}")
async def delete_discount(
    discount_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    """Used discounts are kept for the audit trail; archive them instead."""
    store = DiscountStore(db)
    discount = store.find_by_id(discount_id)
    if (discount.usage_count or 0) > 0 or store.usage_count(discount.id) > 0:
        raise ValidationError("Cannot delete a discount that has been used. Archive it instead.")
    db.delete(discount)
    log_admin_action(db, admin_id, "delete_discount", {"discount_id": discount_id, "code": discount.code})
    commit_or_raise(db, "delete_discount")
    return {"message": "Discount deleted", "discount_id": discount_id}


@router.post("/discounts/{discount_id}/assign", status_code=status.HTTP_201_CREATED)
async def assign_discount(
    discount_id: int,
    payload: DiscountAssign,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    store = DiscountStore(db)
    discount = store.find_by_id(discount_id)
    user = UserStore(db).find_by_id(payload.user_id)
    if store.get_assignment(user.id, discount.id) is not None:
        raise Conflict("Discount already assigned to this user")

    assignment = store.assign(user.id, discount.id, admin_id, payload.notes)
    log_admin_action(db, admin_id, "assign_discount", {"discount_id": discount.id, "user_id": user.id})
    commit_or_raise(db, "assign_discount", "Discount already assigned to this user")
    notifier.emit(user.id, "discount_assigned", {"code": discount.code, "name": discount.name})
    return {"message": "Discount assigned", "assignment_id": assignment.id, "user_id": user.id, "code": discount.code}


# ============== Invoices ==============


@router.get("/invoices")
async def list_invoices(
    status: Optional[str] = None,
    user_id: Optional[int] = None,
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    result = InvoiceStore(db).list_page(status, user_id, page, limit)
    return {
        "invoices": [InvoiceResponse.model_validate(i) for i in result.items],
        "pagination": result.meta(),
        "totals": invoices.totals(db),
    }


@router.post("/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoiceCreate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    UserStore(db).find_by_id(payload.user_id)
    invoice = invoices.create_invoice(db, **payload.model_dump())
    log_admin_action(
        db, admin_id, "create_invoice", {"invoice_id": invoice.id, "invoice_number": invoice.invoice_number}
    )
    commit_or_raise(db, "create_invoice", "Invoice number already exists")
    db.refresh(invoice)
    return invoice


@router.put("/invoices/{invoice_id}/status", response_model=InvoiceResponse)
async def update_invoice_status(
    invoice_id: int,
    payload: InvoiceStatusUpdate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    invoice = InvoiceStore(db).find_by_id(invoice_id)
    previous = invoice.status
    invoices.set_status(db, invoice, payload.status)
    log_admin_action(
        db, admin_id, "update_invoice_status", {"invoice_id": invoice.id, "from": previous, "to": payload.status}
    )
    commit_or_raise(db, "update_invoice_status")
    db.refresh(invoice)
    return invoice


# ============== Transactions ==============


@router.get("/transactions")
async def list_transactions(
    transaction_type: Optional[str] = Query(default=None, alias="type"),
    status: Optional[str] = None,
    user_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    result = TransactionLogStore(db).list_page(
        page=page,
        page_size=limit,
        user_id=user_id,
        transaction_type=transaction_type,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    return {
        "transactions": [AdminTransactionResponse.model_validate(t) for t in result.items],
        "pagination": result.meta(),
    }


@router.post("/transactions", response_model=AdminTransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    """Manual ledger entry (adjustments, bonuses, penalties)."""
    users = UserStore(db)
    for user_id in (payload.user_id, payload.recipient_id):
        if user_id is not None:
            users.find_by_id(user_id)
    transaction = ledger.create_transaction(
        db,
        transaction_type=payload.transaction_type,
        related_entity_type=payload.related_entity_type,
        related_entity_id=payload.related_entity_id,
        amount_cents=payload.amount,
        fee_cents=payload.fee_amount,
        commission_cents=payload.commission_amount,
        currency=payload.currency,
        user_id=payload.user_id,
        recipient_id=payload.recipient_id,
        status=payload.status,
        details={"description": payload.description, "created_by_admin": admin_id},
        gateway_ids={"payment_intent_id": payload.payment_intent_id, "transfer_id": payload.transfer_id},
    )
    log_admin_action(db, admin_id, "create_transaction", {"transaction_id": transaction.transaction_id})
    commit_or_raise(db, "create_transaction")
    db.refresh(transaction)
    return transaction


@router.get("/transactions/analytics")
async def transaction_analytics(
    transaction_type: Optional[str] = Query(default=None, alias="type"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    return ledger.analytics(db, start_date, end_date, transaction_type)


@router.get("/transactions/unreconciled")
async def unreconciled_transactions(limit: int = 100, db: Session = Depends(get_db)):
    items = ledger.unreconciled(db, min(max(limit, 1), 500))
    return {"transactions": [AdminTransactionResponse.model_validate(t) for t in items], "count": len(items)}


@router.get("/transactions/fraud-alerts")
async def fraud_alerts(limit: int = 100, db: Session = Depends(get_db)):
    items = ledger.fraud_alerts(db, min(max(limit, 1), 500))
    return {"transactions": [AdminTransactionResponse.model_validate(t) for t in items], "count": len(items)}


@router.get("/transactions/{transaction_id}", response_model=AdminTransactionResponse)
async def get_transaction(transaction_id: str, db: Session = Depends(get_db)):
    return TransactionLogStore(db).find_by_transaction_id(transaction_id)


@router.put("/transactions/{transaction_id}/status", response_model=AdminTransactionResponse)
async def update_transaction_status(
    transaction_id: str,
    payload: TransactionStatusUpdate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    if payload.status not in TRANSACTION_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(TRANSACTION_STATUSES)}")
    transaction = TransactionLogStore(db).find_by_transaction_id(transaction_id)
    previous = transaction.status
    ledger.update_status(db, transaction, payload.status, payload.reason, updated_by=admin_id)
    ledger.add_admin_action(
        db,
        transaction,
        admin_id,
        "status_change",
        payload.reason or f"Status changed to {payload.status}",
        previous_value=previous,
        new_value=payload.status,
    )
    log_admin_action(
        db, admin_id, "update_transaction_status", {"transaction_id": transaction_id, "from": previous, "to": payload.status}
    )
    commit_or_raise(db, "update_transaction_status")
    db.refresh(transaction)
    return transaction


@router.post("/transactions/{transaction_id}/actions", response_model=AdminTransactionResponse)
async def add_transaction_action(
    transaction_id: str,
    payload: AdminActionCreate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    transaction = TransactionLogStore(db).find_by_transaction_id(transaction_id)
    ledger.add_admin_action(
        db, transaction, admin_id, payload.action_type, payload.description, payload.previous_value, payload.new_value
    )
    commit_or_raise(db, "add_transaction_action")
    db.refresh(transaction)
    return transaction


@router.post("/transactions/{transaction_id}/errors", response_model=AdminTransactionResponse)
async def add_transaction_error(
    transaction_id: str,
    payload: ErrorLogCreate,
    db: Session = Depends(get_db),
):
    transaction = TransactionLogStore(db).find_by_transaction_id(transaction_id)
    ledger.add_error(db, transaction, payload.error_code, payload.error_message, payload.source)
    commit_or_raise(db, "add_transaction_error")
    db.refresh(transaction)
    return transaction


@router.post("/transactions/{transaction_id}/reconcile", response_model=AdminTransactionResponse)
async def reconcile_transaction(
    transaction_id: str,
    payload: ReconcileRequest,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    transaction = TransactionLogStore(db).find_by_transaction_id(transaction_id)
    ledger.reconcile(db, transaction, admin_id, payload.reconciled, payload.notes, payload.discrepancy_amount)
    log_admin_action(db, admin_id, "reconcile_transaction", {"transaction_id": transaction_id})
    commit_or_raise(db, "reconcile_transaction")
    db.refresh(transaction)
    return transaction


# ============== Commission Settings ==============


@router.get("/commission-settings", response_model=list[CommissionSettingsResponse])
async def list_commission_settings(active_only: bool = False, db: Session = Depends(get_db)):
    return CommissionSettingsStore(db).list_all(active_only)


@router.post(
    "/commission-settings", response_model=CommissionSettingsResponse, status_code=status.HTTP_201_CREATED
)
async def create_commission_settings(
    payload: CommissionSettingsCreate,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    if payload.maximum_commission is not None and payload.maximum_commission < payload.minimum_commission:
        raise ValidationError("maximum_commission cannot be below minimum_commission")
    rule = CommissionSettingsStore(db).create(
        {**payload.model_dump(), "created_by": admin_id, "last_updated_by": admin_id, "is_active": True}
    )
    log_admin_action(db, admin_id, "create_commission_settings", {"settings_id": rule.id, "name": rule.name})
    commit_or_raise(db, "create_commission_settings")
    db.refresh(rule)
    return rule


@router.put("/commission-settings/{settings_id}", response_model=CommissionSettingsResponse)
async def update_commission_settings(
    settings_id: int,
    patch: CommissionSettingsPatch,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    store = CommissionSettingsStore(db)
    rule = store.apply(store.find_by_id(settings_id), patch)
    rule.last_updated_by = admin_id
    log_admin_action(
        db, admin_id, "update_commission_settings", {"settings_id": rule.id, **patch.model_dump(exclude_unset=True)}
    )
    commit_or_raise(db, "update_commission_settings")
    db.refresh(rule)
    return rule


@router.delete("/commission-settings/{settings_id}")
async def deactivate_commission_settings(
    settings_id: int,
    admin_id: int = Depends(current_admin_id),
    db: Session = Depends(get_db),
):
    rule = CommissionSettingsStore(db).find_by_id(settings_id)
    rule.is_active = False
    rule.last_updated_by = admin_id
    log_admin_action(db, admin_id, "deactivate_commission_settings", {"settings_id": rule.id})
    commit_or_raise(db, "deactivate_commission_settings")
    return {"message": "Commission settings deactivated", "settings_id": settings_id}


@router.get("/commission-settings/{settings_id}/quote")
async def quote_commission(settings_id: int, amount: float, db: Session = Depends(get_db)):
    rule = CommissionSettingsStore(db).get(settings_id)
    if rule is None:
        raise NotFound("Commission settings not found")
    return calculate_commission(rule, amount).as_dict()

"""
Packages & Discounts API endpoints (user side).

Browse active packages, buy one (optionally with a discount code), follow
remaining credits and check discount codes.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user
from app.db.session import get_db
from app.models import User
from app.services import discounts, packages
from app.stores import DiscountStore, PackageStore, commit_or_raise

router = APIRouter()


# ============== Pydantic Schemas ==============


class PackageResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    currency: str
    post_credits: int
    featured_credits: int
    duration_days: int
    features: list = []
    is_popular: bool = False
    is_active: bool

    class Config:
        from_attributes = True


class UserPackageResponse(BaseModel):
    id: int
    package_id: int
    package_name: Optional[str] = None
    status: str
    credits_remaining: int
    featured_credits_remaining: int
    amount_paid: float
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class PurchaseRequest(BaseModel):
    package_id: int
    discount_code: Optional[str] = None


class DiscountValidateRequest(BaseModel):
    code: str = Field(min_length=1)
    amount: float = Field(ge=0)
    package_name: Optional[str] = None


# ============== Helper Functions ==============


def user_package_response(subscription) -> UserPackageResponse:
    return UserPackageResponse(
        id=subscription.id,
        package_id=subscription.package_id,
        package_name=subscription.package.name if subscription.package else None,
        status=subscription.status,
        credits_remaining=subscription.credits_remaining or 0,
        featured_credits_remaining=subscription.featured_credits_remaining or 0,
        amount_paid=subscription.amount_paid or 0,
        expires_at=subscription.expires_at,
        created_at=subscription.created_at,
    )


# ============== Package Endpoints ==============


@router.get("", response_model=list[PackageResponse])
async def list_packages(db: Session = Depends(get_db)):
    """Active packages, cheapest first."""
    return PackageStore(db).active()


@router.post("/purchase", status_code=status.HTTP_201_CREATED)
async def purchase_package(
    payload: PurchaseRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = packages.purchase(db, current_user.id, payload.package_id, payload.discount_code)
    return {
        "message": "Package purchased",
        "subscription": user_package_response(result["subscription"]),
        "transaction_id": result["transaction_id"],
        "amount_paid": result["amount_paid"],
        "discount": result["discount"],
    }


@router.get("/mine")
async def my_packages(
    status: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    subscriptions = PackageStore(db).user_packages(current_user.id, status)
    commit_or_raise(db, "refresh_package_status")
    return {
        "packages": [user_package_response(s) for s in subscriptions],
        "summary": packages.credit_summary(db, current_user.id),
    }


@router.get("/credits")
async def my_credits(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    summary = packages.credit_summary(db, current_user.id)
    commit_or_raise(db, "refresh_package_status")
    return summary


# ============== Discount Endpoints ==============


@router.get("/discounts/mine")
async def my_discounts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {
        "discounts": [
            {
                "id": assignment.id,
                "discount_id": assignment.discount_id,
                "code": assignment.discount.code,
                "name": assignment.discount.name,
                "type": assignment.discount.type,
                "value": assignment.discount.value,
                "expires_at": assignment.discount.expires_at,
                "status": assignment.status,
                "used_at": assignment.used_at,
                "notes": assignment.notes,
            }
            for assignment in DiscountStore(db).for_user(current_user.id)
        ]
    }


@router.post("/discounts/validate")
async def validate_discount(
    payload: DiscountValidateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    quote = discounts.validate_code(db, payload.code, payload.amount, payload.package_name)
    return {"valid": True, **quote.as_dict()}

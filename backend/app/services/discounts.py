"""
Discount validation and redemption.

A code applies when it is valid (or a gift), active, unarchived, not
expired, under its usage cap, above the minimum purchase and applicable to
the package being bought.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, ValidationError
from app.models import Discount
from app.stores.billing import DiscountStore

logger = logging.getLogger("discounts")

REDEEMABLE_STATUSES = ("valid", "gift")


@dataclass
class DiscountQuote:
    discount: Discount
    original_amount: float
    discount_amount: float
    final_amount: float
    free_posts: int = 0

    def as_dict(self) -> dict:
        return {
            "discount_id": self.discount.id,
            "code": self.discount.code,
            "type": self.discount.type,
            "value": self.discount.value,
            "original_amount": self.original_amount,
            "discount_amount": self.discount_amount,
            "final_amount": self.final_amount,
            "free_posts": self.free_posts,
        }


def _applicable(discount: Discount, package_name: Optional[str]) -> bool:
    targets = discount.applicable_to or ["all"]
    if "all" in targets or package_name is None:
        return True
    return package_name.lower() in {str(t).lower() for t in targets}


def compute_discount(discount: Discount, amount: float) -> DiscountQuote:
    if discount.type == "percentage":
        discount_amount = amount * float(discount.value) / 100
    elif discount.type == "fixed_amount":
        discount_amount = float(discount.value)
    else:
        # free_posts grants credits and leaves the price untouched
        discount_amount = 0.0

    discount_amount = round(min(max(discount_amount, 0), amount), 2)
    return DiscountQuote(
        discount=discount,
        original_amount=round(amount, 2),
        discount_amount=discount_amount,
        final_amount=round(max(amount - discount_amount, 0), 2),
        free_posts=int(discount.value) if discount.type == "free_posts" else 0,
    )


def validate_code(
    db: Session, code: str, amount: float, package_name: Optional[str] = None
) -> DiscountQuote:
    """Check a code against an amount and quote the discounted price."""
    if amount is None or amount < 0:
        raise ValidationError("Amount must be a non-negative number")

    store = DiscountStore(db)
    discount = store.get_by_code(code)
    if discount is None:
        raise NotFound("Invalid discount code")
    if discount.status not in REDEEMABLE_STATUSES or not discount.is_active or discount.archived_at:
        raise ValidationError("Discount code is not active")
    if discount.expires_at and discount.expires_at < datetime.utcnow():
        raise ValidationError("Discount code has expired")
    if discount.max_uses is not None and (discount.usage_count or 0) >= discount.max_uses:
        raise ValidationError("Discount code usage limit reached")
    if discount.min_purchase_amount and amount < discount.min_purchase_amount:
        raise ValidationError(f"Minimum purchase amount is {discount.min_purchase_amount:.2f}")
    if not _applicable(discount, package_name):
        raise ValidationError("Discount code does not apply to this package")

    return compute_discount(discount, amount)


def redeem(db: Session, quote: DiscountQuote, user_id: int, package_id: Optional[int] = None) -> None:
    """Record a redemption in the current transaction."""
    store = DiscountStore(db)
    discount = quote.discount
    if not store.claim_use(discount):
        raise ValidationError("Discount code usage limit reached")
    store.record_usage(
        {
            "discount_id": discount.id,
            "user_id": user_id,
            "package_id": package_id,
            "original_amount": quote.original_amount,
            "discount_amount": quote.discount_amount,
            "final_amount": quote.final_amount,
        }
    )
    assignment = store.get_assignment(user_id, discount.id)
    if assignment is not None and assignment.status == "available":
        assignment.status = "used"
        assignment.used_at = datetime.utcnow()
    db.flush()
    logger.info(f"Discount {discount.code} redeemed by user {user_id} ({quote.discount_amount:.2f} off)")

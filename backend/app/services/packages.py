"""
Package purchases and post credits.

Buying a package opens a ``user_packages`` subscription and writes a
``package_purchase`` ledger entry. No payment gateway is called here.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, ValidationError
from app.models import UserPackage
from app.services import discounts, ledger
from app.services.notifier import notifier
from app.stores.base import commit_or_raise
from app.stores.billing import PackageStore

logger = logging.getLogger("packages")


def purchase(db: Session, user_id: int, package_id: int, discount_code: Optional[str] = None) -> dict:
    store = PackageStore(db)
    package = store.get(package_id)
    if package is None or not package.is_active:
        raise NotFound("Package not found")

    price = float(package.price or 0)
    quote = None
    if discount_code:
        quote = discounts.validate_code(db, discount_code, price, package.name)
        price = quote.final_amount

    extra_posts = quote.free_posts if quote else 0
    subscription = store.add_subscription(
        {
            "user_id": user_id,
            "package_id": package.id,
            "status": "active",
            "credits_remaining": package.post_credits + extra_posts,
            "featured_credits_remaining": package.featured_credits,
            "amount_paid": price,
            "expires_at": datetime.utcnow() + timedelta(days=package.duration_days or 30),
        }
    )
    if quote is not None:
        discounts.redeem(db, quote, user_id, package.id)

    transaction = ledger.create_transaction(
        db,
        transaction_type="package_purchase",
        related_entity_type="package",
        related_entity_id=package.id,
        amount_cents=ledger.to_cents(price),
        user_id=user_id,
        currency=(package.currency or "USD").lower(),
        status="completed",
        details={
            "description": f"Purchase of {package.name}",
            "subscription_id": subscription.id,
            "discount_code": quote.discount.code if quote else None,
        },
    )
    commit_or_raise(db, "purchase_package")
    db.refresh(subscription)

    logger.info(f"User {user_id} bought package {package.id} ({price:.2f})")
    notifier.emit(user_id, "package_purchased", {"package_id": package.id, "subscription_id": subscription.id})
    return {
        "subscription": subscription,
        "transaction_id": transaction.transaction_id,
        "amount_paid": price,
        "discount": quote.as_dict() if quote else None,
    }


def consume_post_credit(db: Session, user_id: int, featured: bool = False) -> tuple[UserPackage, bool]:
    """
    Take one post credit from the user's soonest-expiring active subscription.

    When ``featured`` is asked for, a featured credit is taken too if one is
    left; the second element of the result says whether it was.
    """
    subscription = PackageStore(db).usable_subscription(user_id)
    if subscription is None:
        raise ValidationError("No job post credits available. Please purchase a package.")
    subscription.credits_remaining -= 1
    featured_granted = bool(featured and (subscription.featured_credits_remaining or 0) > 0)
    if featured_granted:
        subscription.featured_credits_remaining -= 1
    db.flush()
    return subscription, featured_granted


def credit_summary(db: Session, user_id: int) -> dict:
    active = PackageStore(db).user_packages(user_id, status="active")
    return {
        "active_packages": len(active),
        "post_credits": sum(s.credits_remaining or 0 for s in active),
        "featured_credits": sum(s.featured_credits_remaining or 0 for s in active),
    }

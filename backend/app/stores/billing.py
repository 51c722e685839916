"""Stores for pricing packages, discounts and invoices."""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_, update

from app.core.config import settings
from app.models import (
    Discount,
    DiscountUsage,
    Invoice,
    PricingPackage,
    UserDiscount,
    UserPackage,
)
from app.stores.base import BaseStore, Page


class PackageStore(BaseStore[PricingPackage]):
    model = PricingPackage
    entity_name = "Package"

    def active(self) -> list[PricingPackage]:
        return (
            self.query()
            .filter(PricingPackage.is_active.is_(True))
            .order_by(PricingPackage.price.asc(), PricingPackage.id.asc())
            .all()
        )

    def subscriptions(self, package_id: int, status: Optional[str] = None) -> int:
        query = self.db.query(UserPackage).filter(UserPackage.package_id == package_id)
        if status:
            query = query.filter(UserPackage.status == status)
        return query.count()

    def add_subscription(self, fields: dict) -> UserPackage:
        subscription = UserPackage(**fields)
        self.db.add(subscription)
        self.db.flush()
        return subscription

    def user_packages(self, user_id: int, status: Optional[str] = None) -> list[UserPackage]:
        """A user's subscriptions; active ones past their expiry are marked expired on read."""
        subscriptions = (
            self.db.query(UserPackage)
            .filter(UserPackage.user_id == user_id)
            .order_by(UserPackage.created_at.desc(), UserPackage.id.desc())
            .all()
        )
        now = datetime.utcnow()
        for subscription in subscriptions:
            if subscription.status == "active" and subscription.expires_at and subscription.expires_at < now:
                subscription.status = "expired"
        self.db.flush()
        if status:
            subscriptions = [s for s in subscriptions if s.status == status]
        return subscriptions

    def usable_subscription(self, user_id: int) -> Optional[UserPackage]:
        """Oldest-expiring active subscription with post credits left."""
        now = datetime.utcnow()
        candidates = [
            s
            for s in self.user_packages(user_id, status="active")
            if s.credits_remaining > 0 and (s.expires_at is None or s.expires_at >= now)
        ]
        candidates.sort(key=lambda s: s.expires_at or datetime.max)
        return candidates[0] if candidates else None


class DiscountStore(BaseStore[Discount]):
    model = Discount
    entity_name = "Discount"

    def get_by_code(self, code: str) -> Optional[Discount]:
        return self.query().filter(Discount.code == code.strip().upper()).first()

    def code_taken(self, code: str, exclude_id: Optional[int] = None) -> bool:
        query = self.query().filter(Discount.code == code.strip().upper())
        if exclude_id is not None:
            query = query.filter(Discount.id != exclude_id)
        return query.first() is not None

    def list_page(
        self,
        status: Optional[str] = None,
        archived: Optional[bool] = False,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Page:
        query = self.query()
        if status:
            query = query.filter(Discount.status == status)
        if archived is True:
            query = query.filter(Discount.archived_at.isnot(None))
        elif archived is False:
            query = query.filter(Discount.archived_at.is_(None))
        return self.paginate(query, page, page_size)

    def usage_count(self, discount_id: int) -> int:
        return self.db.query(DiscountUsage).filter(DiscountUsage.discount_id == discount_id).count()

    def claim_use(self, discount: Discount) -> bool:
        """
        Count one redemption with a single guarded UPDATE.

        Returns False, changing nothing, once ``max_uses`` is reached.
        """
        used = func.coalesce(Discount.usage_count, 0)
        result = self.db.execute(
            update(Discount)
            .where(Discount.id == discount.id)
            .where(or_(Discount.max_uses.is_(None), used < Discount.max_uses))
            .values(usage_count=used + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        self.db.refresh(discount, ["usage_count"])
        return True

    def record_usage(self, fields: dict) -> DiscountUsage:
        usage = DiscountUsage(**fields)
        self.db.add(usage)
        self.db.flush()
        return usage

    def get_assignment(self, user_id: int, discount_id: int) -> Optional[UserDiscount]:
        return (
            self.db.query(UserDiscount)
            .filter(UserDiscount.user_id == user_id, UserDiscount.discount_id == discount_id)
            .first()
        )

    def assign(self, user_id: int, discount_id: int, assigned_by: int, notes: Optional[str] = None) -> UserDiscount:
        assignment = UserDiscount(
            user_id=user_id, discount_id=discount_id, assigned_by=assigned_by, notes=notes
        )
        self.db.add(assignment)
        self.db.flush()
        return assignment

    def for_user(self, user_id: int) -> list[UserDiscount]:
        return (
            self.db.query(UserDiscount)
            .filter(UserDiscount.user_id == user_id)
            .order_by(UserDiscount.created_at.desc(), UserDiscount.id.desc())
            .all()
        )


class InvoiceStore(BaseStore[Invoice]):
    model = Invoice
    entity_name = "Invoice"

    def next_number(self) -> str:
        """Sequential numbers: INV-000001, INV-000002, ..."""
        prefix = f"{settings.INVOICE_PREFIX}-"
        last = (
            self.db.query(Invoice.invoice_number)
            .filter(Invoice.invoice_number.like(f"{prefix}%"))
            .order_by(Invoice.id.desc())
            .first()
        )
        sequence = 1
        if last:
            try:
                sequence = int(last[0][len(prefix):]) + 1
            except ValueError:
                sequence = self.query().count() + 1
        return f"{prefix}{sequence:06d}"

    def list_page(
        self,
        status: Optional[str] = None,
        user_id: Optional[int] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Page:
        query = self.query()
        if status:
            query = query.filter(Invoice.status == status)
        if user_id is not None:
            query = query.filter(Invoice.user_id == user_id)
        return self.paginate(query, page, page_size)

    def sum_by_status(self, *statuses: str) -> float:
        total = (
            self.db.query(func.coalesce(func.sum(Invoice.total_amount), 0))
            .filter(Invoice.status.in_(statuses))
            .scalar()
        )
        return round(float(total or 0), 2)

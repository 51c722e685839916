"""Tests for discounts, package purchases, post credits and invoices."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import update

from app.core.exceptions import NotFound, ValidationError
from app.models import Discount, DiscountUsage, Invoice, PricingPackage, TransactionLog, UserPackage
from app.services import discounts, invoices, packages

from conftest import auth_headers


def make_package(db, name="Growth", price=100.0, post_credits=5, featured_credits=1, is_active=True):
    package = PricingPackage(
        name=name,
        price=price,
        post_credits=post_credits,
        featured_credits=featured_credits,
        duration_days=30,
        is_active=is_active,
    )
    db.add(package)
    db.commit()
    db.refresh(package)
    return package


def make_discount(db, code="SAVE20", kind="percentage", value=20, **fields):
    discount = Discount(code=code, name=code.title(), type=kind, value=value, **fields)
    db.add(discount)
    db.commit()
    db.refresh(discount)
    return discount


# ============== Discounts ==============


def test_percentage_and_fixed_quotes(db):
    make_discount(db)
    make_discount(db, code="TENOFF", kind="fixed_amount", value=10)

    percent = discounts.validate_code(db, "save20", 80)
    fixed = discounts.validate_code(db, "TENOFF", 8)

    assert (percent.discount_amount, percent.final_amount) == (16.0, 64.0)
    assert (fixed.discount_amount, fixed.final_amount) == (8.0, 0.0)


def test_free_posts_keep_price(db):
    make_discount(db, code="POSTS3", kind="free_posts", value=3)

    quote = discounts.validate_code(db, "POSTS3", 50)

    assert quote.final_amount == 50
    assert quote.free_posts == 3


@pytest.mark.parametrize(
    "fields, message",
    [
        ({"status": "suspended"}, "not active"),
        ({"is_active": False}, "not active"),
        ({"expires_at": datetime.utcnow() - timedelta(days=1)}, "expired"),
        ({"max_uses": 1, "usage_count": 1}, "usage limit"),
        ({"min_purchase_amount": 500}, "Minimum purchase"),
        ({"applicable_to": ["Scale"]}, "does not apply"),
    ],
)
def test_unusable_codes(db, fields, message):
    make_discount(db, **fields)

    with pytest.raises(ValidationError, match=message):
        discounts.validate_code(db, "SAVE20", 100, "Growth")


def test_unknown_code(db):
    with pytest.raises(NotFound):
        discounts.validate_code(db, "NOPE", 10)


def test_validate_endpoint(client, db, talent):
    make_discount(db)

    ok = client.post(
        "/api/v1/packages/discounts/validate", json={"code": "save20", "amount": 50}, headers=auth_headers(talent)
    )
    missing = client.post(
        "/api/v1/packages/discounts/validate", json={"code": "ZZZ", "amount": 50}, headers=auth_headers(talent)
    )

    assert ok.json()["valid"] is True
    assert ok.json()["final_amount"] == 40.0
    assert missing.status_code == 404


# ============== Packages ==============


def test_purchase_with_discount_records_usage_and_ledger(client, db, manager):
    package = make_package(db)
    make_discount(db)

    response = client.post(
        "/api/v1/packages/purchase",
        json={"package_id": package.id, "discount_code": "SAVE20"},
        headers=auth_headers(manager),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["amount_paid"] == 80.0
    assert body["subscription"]["credits_remaining"] == 5
    assert body["transaction_id"].startswith("TXN_")

    db.expire_all()
    assert db.query(Discount).one().usage_count == 1
    assert db.query(DiscountUsage).one().final_amount == 80.0
    transaction = db.query(TransactionLog).one()
    assert transaction.transaction_type == "package_purchase"
    assert transaction.status == "completed"
    assert transaction.payment_details["processed_amount"] == 8000


def test_redeem_refuses_once_limit_is_reached_elsewhere(db, manager):
    make_discount(db, max_uses=1)
    quote = discounts.validate_code(db, "SAVE20", 100, "Growth")
    # Another checkout takes the last use after the quote was issued
    db.execute(update(Discount).values(usage_count=1).execution_options(synchronize_session=False))

    with pytest.raises(ValidationError, match="usage limit"):
        discounts.redeem(db, quote, manager.id)

    db.expire_all()
    assert db.query(Discount).one().usage_count == 1
    assert db.query(DiscountUsage).count() == 0


def test_redeem_counts_each_use_up_to_limit(db, manager):
    make_discount(db, max_uses=2)

    for _ in range(2):
        discounts.redeem(db, discounts.validate_code(db, "SAVE20", 100, "Growth"), manager.id)
    db.commit()

    assert db.query(Discount).one().usage_count == 2
    assert db.query(DiscountUsage).count() == 2
    with pytest.raises(ValidationError, match="usage limit"):
        discounts.validate_code(db, "SAVE20", 100, "Growth")


def test_purchase_inactive_package(db, manager):
    package = make_package(db, is_active=False)

    with pytest.raises(NotFound):
        packages.purchase(db, manager.id, package.id)


def test_job_post_consumes_credit(client, db, manager):
    package = make_package(db, post_credits=1, featured_credits=1)
    packages.purchase(db, manager.id, package.id)
    job = {
        "title": "Write integration tests",
        "description": "Cover the payments module with integration tests.",
        "budget_type": "fixed",
        "use_package_credit": True,
        "featured": True,
    }

    first = client.post("/api/v1/jobs", json=job, headers=auth_headers(manager))
    second = client.post("/api/v1/jobs", json=job, headers=auth_headers(manager))

    assert first.status_code == 201
    assert first.json()["featured"] is True
    assert second.status_code == 400
    db.expire_all()
    subscription = db.query(UserPackage).one()
    assert (subscription.credits_remaining, subscription.featured_credits_remaining) == (0, 0)


def test_credit_summary(db, manager):
    packages.purchase(db, manager.id, make_package(db, post_credits=3).id)
    packages.purchase(db, manager.id, make_package(db, name="Starter", post_credits=2, featured_credits=0).id)

    assert packages.credit_summary(db, manager.id) == {
        "active_packages": 2,
        "post_credits": 5,
        "featured_credits": 1,
    }


# ============== Invoices ==============


def test_invoice_numbers_are_sequential(db, manager):
    first = invoices.create_invoice(db, manager.id, 100, tax_amount=20)
    second = invoices.create_invoice(db, manager.id, 50)
    db.commit()

    assert first.invoice_number == "INV-000001"
    assert second.invoice_number == "INV-000002"
    assert first.total_amount == 120


def test_invoice_totals(db, manager):
    paid = invoices.create_invoice(db, manager.id, 100)
    invoices.set_status(db, paid, "paid")
    invoices.create_invoice(db, manager.id, 40, status="sent")
    invoices.create_invoice(db, manager.id, 60, status="overdue")
    db.commit()

    assert paid.paid_at is not None
    assert invoices.totals(db) == {"paid_amount": 100.0, "overdue_amount": 60.0, "pending_amount": 100.0}


def test_invoice_validation(db, manager):
    with pytest.raises(ValidationError):
        invoices.create_invoice(db, manager.id, 10, status="lost")
    with pytest.raises(NotFound):
        invoices.create_invoice(db, 424242, 10)
    assert db.query(Invoice).count() == 0

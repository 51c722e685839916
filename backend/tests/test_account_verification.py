"""Tests for e-mail verification codes and password resets."""

from datetime import datetime, timedelta

import pytest

from app.models import EmailVerificationCode, PasswordResetToken, User
from app.services.notifier import EmailResult, email_sender

from conftest import auth_headers, make_user


@pytest.fixture()
def outbox(monkeypatch):
    """Collects every e-mail handed to the sender."""
    sent = []

    def fake_send(template_or_content, recipient, variables=None):
        sent.append({"template": template_or_content, "to": recipient, "vars": variables or {}})
        return EmailResult(success=True)

    monkeypatch.setattr(email_sender, "send", fake_send)
    return sent


def register(client, email="fresh@example.com"):
    return client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": "hunter22", "first_name": "Fresh", "last_name": "Face"},
    )


def age_codes(db, seconds):
    for entry in db.query(EmailVerificationCode).all():
        entry.created_at = entry.created_at - timedelta(seconds=seconds)
    db.commit()


# ============== E-mail Verification ==============


def test_register_mails_a_four_digit_code(client, db, outbox):
    response = register(client)

    assert response.status_code == 201
    assert response.json()["user"]["email_verified"] is False
    assert len(outbox) == 1
    assert outbox[0]["template"] == "email_verification"
    assert outbox[0]["to"] == "fresh@example.com"
    code = outbox[0]["vars"]["code"]
    assert len(code) == 4 and 1000 <= int(code) <= 9999
    stored = db.query(EmailVerificationCode).one()
    assert stored.verification_code == code
    assert timedelta(minutes=14) < stored.expires_at - stored.created_at <= timedelta(minutes=15, seconds=1)


def test_verify_email_with_mailed_code(client, db, outbox):
    token = register(client).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}
    code = outbox[0]["vars"]["code"]

    verified = client.post("/api/v1/auth/verify-email", json={"verification_code": code}, headers=headers)
    again = client.post("/api/v1/auth/verify-email", json={"verification_code": code}, headers=headers)

    assert verified.status_code == 200
    assert verified.json()["email_verified"] is True
    assert again.status_code == 400
    assert again.json() == {"error": "Email is already verified"}
    db.expire_all()
    assert db.query(EmailVerificationCode).one().used_at is not None


def test_wrong_or_expired_code_is_rejected(client, db, outbox):
    token = register(client).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}
    code = outbox[0]["vars"]["code"]
    wrong = "1000" if code != "1000" else "1001"

    mismatch = client.post("/api/v1/auth/verify-email", json={"verification_code": wrong}, headers=headers)
    entry = db.query(EmailVerificationCode).one()
    entry.expires_at = datetime.utcnow() - timedelta(seconds=1)
    db.commit()
    expired = client.post("/api/v1/auth/verify-email", json={"verification_code": code}, headers=headers)
    malformed = client.post("/api/v1/auth/verify-email", json={"verification_code": "12ab"}, headers=headers)

    assert mismatch.status_code == 400
    assert mismatch.json() == {"error": "Invalid or expired verification code"}
    assert expired.json() == {"error": "Invalid or expired verification code"}
    assert malformed.status_code == 400
    db.expire_all()
    assert db.query(User).filter(User.email == "fresh@example.com").one().email_verified is False


def test_verify_email_requires_token(client):
    response = client.post("/api/v1/auth/verify-email", json={"verification_code": "1234"})

    assert response.status_code == 401


def test_resend_is_rate_limited(client, db, outbox):
    register(client)

    too_soon = client.post("/api/v1/auth/resend-verification", json={"email": "fresh@example.com"})
    age_codes(db, 61)
    later = client.post("/api/v1/auth/resend-verification", json={"email": "Fresh@Example.com"})

    assert too_soon.status_code == 429
    assert too_soon.json()["error"] == "Please wait before requesting a new code"
    assert 0 < too_soon.json()["retry_after"] <= 60
    assert later.status_code == 200
    assert later.json()["email_sent"] is True
    assert len(outbox) == 2
    assert db.query(EmailVerificationCode).count() == 2


def test_resend_unknown_or_verified_address(client, db, outbox, talent):
    talent.email_verified = True
    db.commit()

    unknown = client.post("/api/v1/auth/resend-verification", json={"email": "ghost@example.com"})
    verified = client.post("/api/v1/auth/resend-verification", json={"email": "talent@example.com"})

    assert unknown.status_code == 404
    assert verified.status_code == 400
    assert verified.json() == {"error": "Email is already verified"}
    assert outbox == []


def test_send_failure_is_reported(client, db, monkeypatch, talent):
    monkeypatch.setattr(email_sender, "send", lambda *args, **kwargs: EmailResult(success=False, error="down"))

    response = client.post("/api/v1/auth/resend-verification", json={"email": "talent@example.com"})

    assert response.status_code == 200
    assert response.json()["email_sent"] is False
    assert db.query(EmailVerificationCode).count() == 1


# ============== Password Reset ==============


def test_forgot_password_mails_reset_link(client, db, outbox, talent):
    response = client.post("/api/v1/auth/forgot-password", json={"email": "talent@example.com"})

    assert response.status_code == 200
    reset = db.query(PasswordResetToken).one()
    assert len(reset.token) == 64
    assert timedelta(minutes=59) < reset.expires_at - reset.created_at <= timedelta(minutes=60, seconds=1)
    assert outbox[0]["template"] == "password_reset"
    assert outbox[0]["vars"]["reset_url"].endswith(f"token={reset.token}")


def test_forgot_password_answers_alike_for_unknown_address(client, db, outbox, talent):
    known = client.post("/api/v1/auth/forgot-password", json={"email": "talent@example.com"})
    unknown = client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})

    assert known.json() == unknown.json()
    assert unknown.status_code == 200
    assert len(outbox) == 1


def test_new_request_replaces_outstanding_token(client, db, outbox, talent):
    client.post("/api/v1/auth/forgot-password", json={"email": "talent@example.com"})
    first_token = db.query(PasswordResetToken).one().token
    client.post("/api/v1/auth/forgot-password", json={"email": "talent@example.com"})

    db.expire_all()
    tokens = [r.token for r in db.query(PasswordResetToken).all()]
    assert len(tokens) == 1
    assert tokens[0] != first_token


def test_reset_password_is_single_use(client, db, outbox, talent):
    client.post("/api/v1/auth/forgot-password", json={"email": "talent@example.com"})
    token = db.query(PasswordResetToken).one().token

    reset = client.post("/api/v1/auth/reset-password", json={"token": token, "new_password": "brand-new-pass"})
    reused = client.post("/api/v1/auth/reset-password", json={"token": token, "new_password": "another-pass"})
    old_login = client.post("/api/v1/auth/login/json", json={"email": "talent@example.com", "password": "secret123"})
    new_login = client.post(
        "/api/v1/auth/login/json", json={"email": "talent@example.com", "password": "brand-new-pass"}
    )

    assert reset.status_code == 200
    assert reused.status_code == 400
    assert reused.json() == {"error": "Invalid or expired reset token"}
    assert old_login.status_code == 401
    assert new_login.status_code == 200
    assert outbox[-1]["template"] == "password_changed"


def test_expired_or_unknown_reset_token(client, db, outbox, talent):
    client.post("/api/v1/auth/forgot-password", json={"email": "talent@example.com"})
    reset = db.query(PasswordResetToken).one()
    reset.expires_at = datetime.utcnow() - timedelta(seconds=1)
    db.commit()

    expired = client.post("/api/v1/auth/reset-password", json={"token": reset.token, "new_password": "whatever1"})
    unknown = client.post("/api/v1/auth/reset-password", json={"token": "nope", "new_password": "whatever1"})
    short = client.post("/api/v1/auth/reset-password", json={"token": reset.token, "new_password": "123"})

    assert expired.status_code == 400
    assert unknown.status_code == 400
    assert short.status_code == 400
    assert short.json()["error"] == "Validation Error"


def test_deleting_account_drops_its_codes(client, db, admin_headers, outbox):
    user = make_user(db, "leaving@example.com")
    headers = auth_headers(user)
    user_id = user.id
    client.post("/api/v1/auth/resend-verification", json={"email": "leaving@example.com"})
    client.post("/api/v1/auth/forgot-password", json={"email": "leaving@example.com"})

    response = client.request("DELETE", f"/api/v1/admin/users/{user_id}", headers=admin_headers)

    assert response.status_code == 200
    db.expire_all()
    assert db.query(EmailVerificationCode).count() == 0
    assert db.query(PasswordResetToken).count() == 0
    assert client.get("/api/v1/auth/me", headers=headers).status_code == 401

"""Tests for registration, login and the role guards."""

from datetime import datetime, timedelta, timezone

import jwt

from app.core.config import settings
from app.core.security import decode_access_token, is_admin_email
from app.models import User

from conftest import PASSWORD, auth_headers, make_user


def register(client, email="new@example.com", role="talent", password="hunter22"):
    return client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password, "first_name": "New", "last_name": "Person", "role": role},
    )


def test_register_talent_creates_profile_and_token(client, db):
    response = register(client, email="New@Example.com")

    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "new@example.com"
    assert body["user"]["role"] == "talent"
    assert body["user"]["talent_profile_id"] is not None
    assert decode_access_token(body["access_token"])["sub"] == str(body["user"]["id"])


def test_register_manager_creates_manager_profile(client):
    response = register(client, role="manager")

    assert response.status_code == 201
    assert response.json()["user"]["manager_profile_id"] is not None


def test_register_duplicate_email_is_rejected(client, talent):
    response = register(client, email="talent@example.com")

    assert response.status_code == 400
    assert response.json() == {"error": "Email already registered"}


def test_register_cannot_self_assign_admin(client):
    response = register(client, email="boss@yellowgenie.io", role="admin")

    assert response.status_code == 400
    assert "error" in response.json()


def test_register_short_password_is_validation_error(client):
    response = register(client, password="123")

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Error"
    assert any(d["field"] == "password" for d in body["details"])


def test_login_json_and_form(client, db, talent):
    json_login = client.post("/api/v1/auth/login/json", json={"email": "talent@example.com", "password": PASSWORD})
    form_login = client.post("/api/v1/auth/login", data={"username": "talent@example.com", "password": PASSWORD})

    assert json_login.status_code == 200
    assert form_login.status_code == 200
    db.expire_all()
    assert db.get(User, talent.id).last_login_at is not None


def test_login_wrong_password(client, talent):
    response = client.post("/api/v1/auth/login/json", json={"email": "talent@example.com", "password": "nope-nope"})

    assert response.status_code == 401
    assert response.json() == {"error": "Incorrect email or password"}


def test_login_inactive_user(client, db):
    make_user(db, "sleepy@example.com", is_active=False)

    response = client.post("/api/v1/auth/login/json", json={"email": "sleepy@example.com", "password": PASSWORD})

    assert response.status_code == 401


def test_me_requires_token(client):
    assert client.get("/api/v1/auth/me").status_code == 401
    assert client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_me_returns_current_user(client, manager):
    response = client.get("/api/v1/auth/me", headers=auth_headers(manager))

    assert response.status_code == 200
    assert response.json()["email"] == "manager@example.com"
    assert response.json()["manager_profile_id"] == manager.manager_profile.id


def test_token_of_deactivated_user_is_refused(client, db, talent):
    headers = auth_headers(talent)
    talent.is_active = False
    db.commit()

    assert client.get("/api/v1/auth/me", headers=headers).status_code == 401


def test_token_of_deleted_user_does_not_reach_new_account(client, db, admin_headers, talent):
    stale = auth_headers(talent)
    deleted = client.request("DELETE", f"/api/v1/admin/users/{talent.id}", headers=admin_headers)
    assert deleted.status_code == 200

    newcomer = register(client, email="newcomer@example.com")
    assert newcomer.status_code == 201
    assert newcomer.json()["user"]["id"] != talent.id

    assert client.get("/api/v1/auth/me", headers=stale).status_code == 401


def test_token_is_refused_after_email_change(client, db, admin_headers, talent):
    stale = auth_headers(talent)
    changed = client.put(
        f"/api/v1/admin/users/{talent.id}", json={"email": "renamed@example.com"}, headers=admin_headers
    )
    assert changed.status_code == 200

    assert client.get("/api/v1/auth/me", headers=stale).status_code == 401
    db.expire_all()
    assert client.get("/api/v1/auth/me", headers=auth_headers(db.get(User, talent.id))).status_code == 200


def test_token_without_email_claim_is_refused(client, talent):
    token = jwt.encode(
        {"sub": str(talent.id), "role": talent.role, "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )

    assert client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_admin_guard_requires_role_and_domain(client, db, talent):
    outsider = make_user(db, "admin@gmail.com", role="admin")

    assert client.get("/api/v1/admin/users", headers=auth_headers(talent)).status_code == 403
    assert client.get("/api/v1/admin/users", headers=auth_headers(outsider)).status_code == 403


def test_admin_email_domain():
    assert is_admin_email("ops@yellowgenie.io")
    assert is_admin_email("OPS@YellowGenie.io")
    assert not is_admin_email("ops@yellowgenie.io.evil.com")
    assert not is_admin_email("ops@example.com")


def test_health_reports_database(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "ok"}

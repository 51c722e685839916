"""Tests for soft delete, restore, purge and bulk user actions."""

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import Conflict, Forbidden, NotFound
from app.models import AdminLog, DeletedUser, Job, Proposal, Skill, TalentProfile, TalentSkill, User
from app.services import user_lifecycle
from app.stores import SkillStore, TalentProfileStore

from conftest import PASSWORD, auth_headers, make_job, make_proposal, make_user


def soft_delete(client, headers, user_id, reason=None):
    body = {"reason": reason} if reason else None
    return client.request("DELETE", f"/api/v1/admin/users/{user_id}", json=body, headers=headers)


def add_skills(db, talent_user, *names):
    skills = SkillStore(db)
    profiles = TalentProfileStore(db)
    for name in names:
        profiles.add_skill(talent_user.talent_profile, skills.get_or_create(name, "Development"), "expert")
    db.commit()


# ============== Soft Delete ==============


def test_soft_delete_archives_user_and_profile(client, db, admin, admin_headers, talent):
    original_hash = talent.hashed_password
    response = soft_delete(client, admin_headers, talent.id, reason="Requested by user")

    assert response.status_code == 200
    removed = response.json()["deletedUser"]
    assert removed["email"] == "talent@example.com"
    assert removed["role"] == "talent"

    db.expire_all()
    assert db.get(User, talent.id) is None
    archive = db.query(DeletedUser).one()
    assert archive.original_user_id == talent.id
    assert archive.deletion_reason == "Requested by user"
    assert archive.deleted_by == admin.id
    assert archive.user_data["hashed_password"] == original_hash
    assert archive.profile_data["title"] == "Developer"
    assert db.query(AdminLog).filter(AdminLog.action == "soft_delete_user").count() == 1


def test_soft_delete_without_body(client, admin_headers, manager):
    response = client.delete(f"/api/v1/admin/users/{manager.id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["deletedUser"]["role"] == "manager"


def test_soft_delete_admin_is_forbidden(client, db, admin_headers):
    other_admin = make_user(db, "second@yellowgenie.io", role="admin")

    response = soft_delete(client, admin_headers, other_admin.id)

    assert response.status_code == 403
    db.expire_all()
    assert db.get(User, other_admin.id) is not None
    assert db.query(DeletedUser).count() == 0


def test_soft_delete_unknown_user(client, admin_headers):
    response = soft_delete(client, admin_headers, 9999)

    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_soft_delete_requires_admin(client, manager, talent):
    response = soft_delete(client, auth_headers(manager), talent.id)

    assert response.status_code == 403


# ============== Restore ==============


def test_round_trip_preserves_identity_skills_and_proposals(client, db, admin_headers, manager, talent):
    add_skills(db, talent, "Python", "FastAPI")
    job = make_job(db, manager)
    make_proposal(db, job, talent, bid_amount=420)
    original_hash = talent.hashed_password
    original_created = talent.created_at

    deleted = soft_delete(client, admin_headers, talent.id)
    assert deleted.status_code == 200
    db.expire_all()
    assert db.query(Proposal).count() == 0
    archive_id = db.query(DeletedUser).one().id

    response = client.post(f"/api/v1/admin/deleted-users/{archive_id}/restore", headers=admin_headers)

    assert response.status_code == 200
    restored = response.json()["restoredUser"]
    assert restored["email"] == "talent@example.com"
    assert restored["role"] == "talent"

    db.expire_all()
    user = db.get(User, restored["id"])
    assert user.hashed_password == original_hash
    assert user.created_at == original_created
    profile = db.query(TalentProfile).filter(TalentProfile.user_id == user.id).one()
    assert profile.title == "Developer"
    skill_names = {link.skill.name for link in db.query(TalentSkill).filter(TalentSkill.talent_id == profile.id)}
    assert skill_names == {"Python", "FastAPI"}
    proposal = db.query(Proposal).filter(Proposal.talent_id == profile.id).one()
    assert proposal.job_id == job.id
    assert proposal.bid_amount == 420
    assert db.query(DeletedUser).count() == 0

    login = client.post("/api/v1/auth/login/json", json={"email": "talent@example.com", "password": PASSWORD})
    assert login.status_code == 200


def test_restore_conflicts_when_email_reused(client, db, admin_headers, talent):
    soft_delete(client, admin_headers, talent.id)
    make_user(db, "talent@example.com", role="manager")
    archive_id = db.query(DeletedUser).one().id

    response = client.post(f"/api/v1/admin/deleted-users/{archive_id}/restore", headers=admin_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "A user with this email already exists"}
    db.expire_all()
    assert db.get(DeletedUser, archive_id) is not None
    assert db.query(User).filter(User.email == "talent@example.com").count() == 1


def test_restore_unknown_archive(client, admin_headers):
    response = client.post("/api/v1/admin/deleted-users/4242/restore", headers=admin_headers)

    assert response.status_code == 404


def test_restore_skips_proposals_whose_job_is_gone(db, admin, manager, talent):
    job = make_job(db, manager)
    make_proposal(db, job, talent)
    user_lifecycle.soft_delete(db, talent.id, admin.id)
    db.delete(db.get(Job, job.id))
    db.commit()
    archive = db.query(DeletedUser).one()

    restored = user_lifecycle.restore(db, archive.id, admin.id)

    profile = db.query(TalentProfile).filter(TalentProfile.user_id == restored["id"]).one()
    assert db.query(Proposal).filter(Proposal.talent_id == profile.id).count() == 0


def test_restore_without_profile_snapshot_creates_default_profile(db, admin, talent):
    db.delete(talent.talent_profile)
    db.commit()
    db.expire_all()
    user_lifecycle.soft_delete(db, talent.id, admin.id)
    archive = db.query(DeletedUser).one()
    assert archive.profile_data is None

    restored = user_lifecycle.restore(db, archive.id, admin.id)

    profile = db.query(TalentProfile).filter(TalentProfile.user_id == restored["id"]).one()
    assert profile.availability == "contract"
    assert profile.bio == ""


def test_restore_recreates_missing_skill_by_name(db, admin, talent):
    add_skills(db, talent, "Rust")
    user_lifecycle.soft_delete(db, talent.id, admin.id)
    db.query(Skill).delete()
    db.commit()
    archive = db.query(DeletedUser).one()

    restored = user_lifecycle.restore(db, archive.id, admin.id)

    profile = db.query(TalentProfile).filter(TalentProfile.user_id == restored["id"]).one()
    assert [link.skill.name for link in profile.skills] == ["Rust"]


def test_service_errors_leave_no_writes(db, admin):
    with pytest.raises(Forbidden):
        user_lifecycle.soft_delete(db, admin.id, admin.id)
    with pytest.raises(NotFound):
        user_lifecycle.restore(db, 1, admin.id)
    assert db.query(DeletedUser).count() == 0
    assert db.query(AdminLog).count() == 0


def test_restore_conflict_at_service_level(db, admin, talent):
    user_lifecycle.soft_delete(db, talent.id, admin.id)
    make_user(db, "talent@example.com")
    archive = db.query(DeletedUser).one()

    with pytest.raises(Conflict):
        user_lifecycle.restore(db, archive.id, admin.id)


def test_soft_delete_storage_failure_rolls_back(client, db, monkeypatch, admin_headers, talent):
    def failing_delete(self, instance):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(Session, "delete", failing_delete)

    response = soft_delete(client, admin_headers, talent.id)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to delete user"}
    db.expire_all()
    assert db.get(User, talent.id) is not None
    assert db.query(TalentProfile).filter(TalentProfile.user_id == talent.id).count() == 1
    assert db.query(DeletedUser).count() == 0
    assert db.query(AdminLog).count() == 0


def test_restore_storage_failure_keeps_archive(client, db, monkeypatch, admin, admin_headers, talent):
    user_lifecycle.soft_delete(db, talent.id, admin.id)
    archive_id = db.query(DeletedUser).one().id
    users_before = db.query(User).count()

    def failing_profile(db, user, data):
        raise SQLAlchemyError("constraint check failed")

    monkeypatch.setattr(user_lifecycle, "_restore_talent", failing_profile)

    response = client.post(f"/api/v1/admin/deleted-users/{archive_id}/restore", headers=admin_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to restore user"}
    db.expire_all()
    assert db.query(User).count() == users_before
    assert db.query(User).filter(User.email == "talent@example.com").count() == 0
    assert db.get(DeletedUser, archive_id) is not None
    assert db.query(AdminLog).filter(AdminLog.action == "restore_user").count() == 0


# ============== Listing / Purge ==============


def test_deleted_users_pagination(client, db, admin, admin_headers):
    for i in range(25):
        db.add(
            DeletedUser(
                original_user_id=1000 + i,
                email=f"gone{i}@example.com",
                first_name="Gone",
                last_name=str(i),
                role="talent",
                user_data={"hashed_password": "x"},
                deleted_by=admin.id,
            )
        )
    db.commit()

    response = client.get("/api/v1/admin/deleted-users?page=1&limit=10", headers=admin_headers)
    last_page = client.get("/api/v1/admin/deleted-users?page=3&limit=10", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert len(body["deletedUsers"]) == 10
    assert body["pagination"] == {"total": 25, "page": 1, "limit": 10, "total_pages": 3}
    assert len(last_page.json()["deletedUsers"]) == 5


def test_deleted_users_search_and_role_filter(client, db, admin_headers, talent, manager):
    soft_delete(client, admin_headers, talent.id)
    soft_delete(client, admin_headers, manager.id)

    by_role = client.get("/api/v1/admin/deleted-users?role=manager", headers=admin_headers).json()
    by_search = client.get("/api/v1/admin/deleted-users?search=okafor", headers=admin_headers).json()

    assert [d["email"] for d in by_role["deletedUsers"]] == ["manager@example.com"]
    assert [d["email"] for d in by_search["deletedUsers"]] == ["talent@example.com"]


def test_purge_removes_archive(client, db, admin_headers, talent):
    soft_delete(client, admin_headers, talent.id)
    archive_id = db.query(DeletedUser).one().id

    response = client.delete(f"/api/v1/admin/deleted-users/{archive_id}", headers=admin_headers)

    assert response.status_code == 200
    db.expire_all()
    assert db.query(DeletedUser).count() == 0
    assert db.query(AdminLog).filter(AdminLog.action == "permanent_delete_user").count() == 1


def test_hard_delete_skips_archive(client, db, admin_headers, talent):
    response = client.delete(f"/api/v1/admin/users/{talent.id}/permanent", headers=admin_headers)

    assert response.status_code == 200
    db.expire_all()
    assert db.get(User, talent.id) is None
    assert db.query(DeletedUser).count() == 0


# ============== Bulk Actions ==============


def test_bulk_deactivate_reports_missing_users(client, db, admin_headers, talent, manager):
    response = client.post(
        "/api/v1/admin/users/bulk-action",
        json={"user_ids": [talent.id, manager.id, 99999], "action": "deactivate"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["results"] == {"success": 2, "failed": 1, "errors": ["User 99999 not found"]}
    db.expire_all()
    assert db.get(User, talent.id).is_active is False
    assert db.get(User, manager.id).is_active is False


def test_bulk_deactivate_refuses_admins(client, db, admin, admin_headers, talent):
    response = client.post(
        "/api/v1/admin/users/bulk-action",
        json={"user_ids": [admin.id, talent.id], "action": "deactivate"},
        headers=admin_headers,
    )

    results = response.json()["results"]
    assert results["success"] == 1
    assert results["failed"] == 1
    assert results["errors"] == [f"Cannot deactivate admin user {admin.id}"]


def test_bulk_change_role_creates_profile(db, admin, talent):
    result = user_lifecycle.bulk_action(db, [talent.id], "change_role", admin.id, role="manager")

    assert result.as_dict() == {"success": 1, "failed": 0, "errors": []}
    db.expire_all()
    user = db.get(User, talent.id)
    assert user.role == "manager"
    assert user.manager_profile is not None


def test_bulk_invalid_action(client, admin_headers, talent):
    response = client.post(
        "/api/v1/admin/users/bulk-action",
        json={"user_ids": [talent.id], "action": "explode"},
        headers=admin_headers,
    )

    assert response.status_code == 400


def test_change_role_to_admin_requires_admin_domain(db, talent):
    with pytest.raises(Forbidden):
        user_lifecycle.change_role(db, talent, "admin")

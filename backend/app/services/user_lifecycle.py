"""
User Lifecycle Service.

Moves users between live and archived storage:
- soft_delete: snapshot user + role profile into ``deleted_users``, drop the live rows
- restore: rebuild the user (original password hash and creation time) from the snapshot
- purge: drop an archived snapshot for good
- hard_delete: drop a live user without archiving
- bulk_action: best-effort status / role changes over many users

soft_delete and restore run in a single transaction; any storage failure
rolls the whole operation back and surfaces as ``StorageError``.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import Conflict, Forbidden, NotFound, StorageError, ValidationError
from app.core.security import is_admin_email
from app.models import (
    DeletedUser,
    Job,
    ManagerProfile,
    Proposal,
    Skill,
    TalentProfile,
    TalentSkill,
    User,
)
from app.models.user import USER_ROLES
from app.services.admin_audit import log_admin_action
from app.stores.users import (
    MANAGER_DEFAULTS,
    TALENT_DEFAULTS,
    ManagerProfileStore,
    TalentProfileStore,
    UserStore,
)

logger = logging.getLogger("user_lifecycle")

BULK_ACTIONS = ("deactivate", "reactivate", "change_role")

# Columns never copied back onto a rebuilt row
_IDENTITY_COLUMNS = {"id", "user_id", "talent_id"}


# ============== Snapshot Helpers ==============


def _to_json(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def snapshot(entity) -> dict:
    """Serialize every column of a row into a JSON-safe dict."""
    return {column.name: _to_json(getattr(entity, column.name)) for column in entity.__table__.columns}


def _columns_from_snapshot(model, data: dict) -> dict:
    """Pick the model's columns out of a snapshot, parsing timestamps back."""
    values = {}
    for column in model.__table__.columns:
        if column.name in _IDENTITY_COLUMNS or column.name not in data:
            continue
        value = data[column.name]
        if column.name.endswith("_at") or column.name == "deadline":
            value = _parse_datetime(value)
        values[column.name] = value
    return values


def _with_defaults(values: dict, defaults: dict) -> dict:
    """Empty or null snapshot fields fall back to profile-creation defaults."""
    for key, default in defaults.items():
        if values.get(key) in (None, ""):
            values[key] = default
    return values


def _talent_snapshot(profile: TalentProfile) -> dict:
    data = snapshot(profile)
    data["skills"] = [
        {
            "skill_id": link.skill_id,
            "name": link.skill.name if link.skill else None,
            "proficiency": link.proficiency,
        }
        for link in profile.skills
    ]
    data["proposals"] = [snapshot(proposal) for proposal in profile.proposals]
    return data


# ============== Result Types ==============


@dataclass
class BulkResult:
    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def fail(self, message: str) -> None:
        self.failed += 1
        self.errors.append(message)

    def as_dict(self) -> dict:
        return {"success": self.success, "failed": self.failed, "errors": self.errors}


# ============== Soft Delete / Restore ==============


def soft_delete(
    db: Session,
    user_id: int,
    performed_by: Optional[int],
    reason: Optional[str] = None,
) -> dict:
    """
    Archive a user and its role profile, then remove the live rows.

    Raises NotFound for unknown users and Forbidden for admins (no writes
    happen in either case).
    """
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    if user.role == "admin":
        raise Forbidden("Cannot delete admin users")

    removed = {
        "id": user.id,
        "email": user.email,
        "name": user.full_name,
        "role": user.role,
    }

    try:
        profile_data = None
        if user.role == "talent" and user.talent_profile is not None:
            profile_data = _talent_snapshot(user.talent_profile)
        elif user.role == "manager" and user.manager_profile is not None:
            profile_data = snapshot(user.manager_profile)

        archive = DeletedUser(
            original_user_id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            profile_image=user.profile_image,
            user_data=snapshot(user),
            profile_data=profile_data,
            deletion_reason=reason,
            deleted_by=performed_by,
            original_created_at=user.created_at,
        )
        db.add(archive)
        db.flush()

        log_admin_action(
            db,
            performed_by,
            "soft_delete_user",
            {"user_id": user.id, "email": user.email, "reason": reason, "archive_id": archive.id},
        )

        db.delete(user)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Soft delete failed for user {user_id}")
        raise StorageError("Failed to delete user")

    removed["archive_id"] = archive.id
    logger.info(f"User {user_id} archived as deleted_user {archive.id} by {performed_by}")
    return removed


def _restore_talent(db: Session, user: User, data: dict) -> TalentProfile:
    values = _with_defaults(_columns_from_snapshot(TalentProfile, data), TALENT_DEFAULTS)
    values["is_featured"] = bool(values.get("is_featured"))
    if values.get("created_at") is None:
        values.pop("created_at", None)
    profile = TalentProfile(user_id=user.id, **values)
    db.add(profile)
    db.flush()

    for entry in data.get("skills") or []:
        skill = db.get(Skill, entry.get("skill_id")) if entry.get("skill_id") else None
        if skill is None and entry.get("name"):
            skill = db.query(Skill).filter(Skill.name == entry["name"]).first()
            if skill is None:
                skill = Skill(name=entry["name"])
                db.add(skill)
                db.flush()
        if skill is None:
            continue
        db.add(
            TalentSkill(
                talent_id=profile.id,
                skill_id=skill.id,
                proficiency=entry.get("proficiency") or "intermediate",
            )
        )

    for entry in data.get("proposals") or []:
        job_id = entry.get("job_id")
        if job_id is None or db.get(Job, job_id) is None:
            logger.warning(f"Skipping proposal {entry.get('id')} on restore: job {job_id} no longer exists")
            continue
        duplicate = (
            db.query(Proposal)
            .filter(Proposal.job_id == job_id, Proposal.talent_id == profile.id)
            .first()
        )
        if duplicate is not None:
            logger.warning(f"Skipping proposal {entry.get('id')} on restore: duplicate for job {job_id}")
            continue
        proposal_values = _columns_from_snapshot(Proposal, entry)
        proposal_values["job_id"] = job_id
        db.add(Proposal(talent_id=profile.id, **proposal_values))

    db.flush()
    return profile


def _restore_manager(db: Session, user: User, data: dict) -> ManagerProfile:
    values = _with_defaults(_columns_from_snapshot(ManagerProfile, data), MANAGER_DEFAULTS)
    if values.get("created_at") is None:
        values.pop("created_at", None)
    profile = ManagerProfile(user_id=user.id, **values)
    db.add(profile)
    db.flush()
    return profile


def restore(db: Session, archived_id: int, performed_by: Optional[int]) -> dict:
    """
    Rebuild a live user from its archive.

    The password hash and creation time come from the snapshot. Aborts with
    Conflict, before any write, when the e-mail is held by a live user.
    """
    archive = db.get(DeletedUser, archived_id)
    if archive is None:
        raise NotFound("Deleted user not found")
    if UserStore(db).email_taken(archive.email):
        raise Conflict("A user with this email already exists")

    data = archive.user_data or {}
    try:
        user = User(
            email=archive.email,
            hashed_password=data["hashed_password"],
            role=archive.role,
            first_name=archive.first_name or data.get("first_name") or "",
            last_name=archive.last_name or data.get("last_name") or "",
            profile_image=archive.profile_image,
            is_active=data.get("is_active", True),
            email_verified=data.get("email_verified", False),
            last_login_at=_parse_datetime(data.get("last_login_at")),
            created_at=_parse_datetime(data.get("created_at")) or archive.original_created_at,
        )
        db.add(user)
        db.flush()

        if archive.profile_data:
            if archive.role == "talent":
                _restore_talent(db, user, archive.profile_data)
            elif archive.role == "manager":
                _restore_manager(db, user, archive.profile_data)
        elif archive.role == "talent":
            TalentProfileStore(db).create_for_user(user.id)
        elif archive.role == "manager":
            ManagerProfileStore(db).create_for_user(user.id)

        log_admin_action(
            db,
            performed_by,
            "restore_user",
            {"archive_id": archive.id, "original_user_id": archive.original_user_id, "user_id": user.id},
        )
        db.delete(archive)
        db.commit()
    except (SQLAlchemyError, KeyError):
        db.rollback()
        logger.exception(f"Restore failed for deleted_user {archived_id}")
        raise StorageError("Failed to restore user")

    logger.info(f"deleted_user {archived_id} restored as user {user.id} by {performed_by}")
    return {
        "id": user.id,
        "email": user.email,
        "name": user.full_name,
        "role": user.role,
    }


def purge(db: Session, archived_id: int, performed_by: Optional[int]) -> dict:
    """Permanently remove an archived user. Irreversible."""
    archive = db.get(DeletedUser, archived_id)
    if archive is None:
        raise NotFound("Deleted user not found")

    removed = {"id": archive.id, "email": archive.email, "original_user_id": archive.original_user_id}
    try:
        db.delete(archive)
        log_admin_action(db, performed_by, "permanent_delete_user", removed)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Purge failed for deleted_user {archived_id}")
        raise StorageError("Failed to permanently delete user")
    return removed


def hard_delete(db: Session, user_id: int, performed_by: Optional[int]) -> dict:
    """Delete a live user and everything owned by it, without archiving."""
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    if user.role == "admin":
        raise Forbidden("Cannot delete admin users")

    removed = {"id": user.id, "email": user.email, "name": user.full_name, "role": user.role}
    try:
        db.delete(user)
        log_admin_action(db, performed_by, "hard_delete_user", removed)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Hard delete failed for user {user_id}")
        raise StorageError("Failed to delete user")
    return removed


# ============== Status / Role Changes ==============


def set_active(db: Session, user: User, active: bool) -> User:
    """Flip the active flag. Admin accounts cannot be deactivated."""
    if not active and user.role == "admin":
        raise Forbidden(f"Cannot deactivate admin user {user.id}")
    user.is_active = active
    db.flush()
    return user


def change_role(db: Session, user: User, role: str) -> User:
    """Move a user to another role, creating the role profile if missing."""
    if role not in USER_ROLES:
        raise ValidationError(f"Invalid role: {role}")
    if role == "admin" and not is_admin_email(user.email):
        raise Forbidden("Admin role is restricted to the admin email domain")
    if user.role == "admin" and role != "admin":
        raise Forbidden(f"Cannot change role of admin user {user.id}")

    user.role = role
    if role == "talent" and user.talent_profile is None:
        TalentProfileStore(db).create_for_user(user.id)
    elif role == "manager" and user.manager_profile is None:
        ManagerProfileStore(db).create_for_user(user.id)
    db.flush()
    return user


def bulk_action(
    db: Session,
    user_ids: list[int],
    action: str,
    performed_by: Optional[int],
    role: Optional[str] = None,
) -> BulkResult:
    """
    Apply one action to many users, best effort per item.

    Failing items are counted and described in ``errors``; the rest are
    committed together.
    """
    if action not in BULK_ACTIONS:
        raise ValidationError(f"Invalid action. Must be one of: {', '.join(BULK_ACTIONS)}")
    if action == "change_role" and role not in USER_ROLES:
        raise ValidationError("A valid role is required for change_role")

    result = BulkResult()
    for user_id in user_ids:
        user = db.get(User, user_id)
        if user is None:
            result.fail(f"User {user_id} not found")
            continue
        try:
            if action == "deactivate":
                set_active(db, user, False)
            elif action == "reactivate":
                set_active(db, user, True)
            else:
                change_role(db, user, role)
        except (Forbidden, ValidationError) as e:
            result.fail(e.message)
            continue
        result.success += 1

    log_admin_action(
        db,
        performed_by,
        f"bulk_{action}",
        {"user_ids": list(user_ids), "role": role, **result.as_dict()},
    )
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Bulk {action} failed to commit")
        raise StorageError("Failed to apply bulk action")
    return result

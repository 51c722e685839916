"""Tests for the shared store helpers and commit error mapping."""

from typing import Optional

import pytest
from pydantic import BaseModel

from app.core.exceptions import Conflict, NotFound, StorageError
from app.models import Skill, TalentSkill
from app.stores import SkillStore, commit_or_raise


class SkillPatch(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None


def test_update_writes_only_set_fields(db):
    store = SkillStore(db)
    skill = store.create({"name": "Python", "category": "Development"})
    db.commit()

    assert store.update(skill.id, SkillPatch(name="Python 3")) is True
    db.commit()
    db.expire_all()

    stored = db.get(Skill, skill.id)
    assert stored.name == "Python 3"
    assert stored.category == "Development"


def test_update_accepts_plain_dict(db):
    store = SkillStore(db)
    skill = store.create({"name": "Go"})

    assert store.update(skill.id, {"category": "Backend"}) is True
    assert store.get(skill.id).category == "Backend"


def test_update_missing_row_returns_false(db):
    assert SkillStore(db).update(4242, {"name": "Nothing"}) is False
    assert db.query(Skill).count() == 0


def test_delete_removes_row(db):
    store = SkillStore(db)
    skill = store.create({"name": "Rust"})
    db.commit()

    assert store.delete(skill.id) is True
    db.commit()

    assert store.get(skill.id) is None
    with pytest.raises(NotFound):
        store.find_by_id(skill.id)


def test_delete_missing_row_returns_false(db):
    assert SkillStore(db).delete(4242) is False


def test_duplicate_value_is_conflict(db):
    SkillStore(db).create({"name": "Docker"})
    db.commit()
    db.add(Skill(name="Docker"))

    with pytest.raises(Conflict) as exc_info:
        commit_or_raise(db, "add_skill", "Skill already exists")

    assert exc_info.value.message == "Skill already exists"
    assert db.query(Skill).count() == 1


def test_dangling_foreign_key_is_storage_error(db):
    skill = SkillStore(db).create({"name": "Kotlin"})
    db.commit()
    db.add(TalentSkill(talent_id=9999, skill_id=skill.id))

    with pytest.raises(StorageError):
        commit_or_raise(db, "link_skill", "Skill already linked")

    assert db.query(TalentSkill).count() == 0

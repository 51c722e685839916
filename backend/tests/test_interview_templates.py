"""Tests for interview templates and interviews started from them."""

from datetime import datetime, timedelta

from app.models import InterviewTemplate

from conftest import auth_headers, make_user

BASE = "/api/v1/interview-templates"


def create_template(client, manager, **overrides):
    payload = {
        "name": "Backend screen",
        "description": "Standard questions for API developers",
        "category": "technical",
        "questions": [
            {"text": "Explain database indexing.", "type": "text", "order": 2},
            {"text": "Write a function that merges intervals.", "type": "coding", "order": 1},
        ],
        "estimated_duration": 45,
        "tags": ["Python", " api ", "python"],
    }
    payload.update(overrides)
    return client.post(BASE, json=payload, headers=auth_headers(manager))


def test_create_orders_questions_and_cleans_tags(client, manager):
    response = create_template(client, manager)

    assert response.status_code == 201
    body = response.json()
    assert [q["text"] for q in body["questions"]] == [
        "Write a function that merges intervals.",
        "Explain database indexing.",
    ]
    assert [q["order"] for q in body["questions"]] == [1, 2]
    assert body["tags"] == ["python", "api"]
    assert body["difficulty_level"] == "intermediate"
    assert body["usage_count"] == 0
    assert body["is_public"] is False


def test_create_validates_fields(client, manager):
    no_questions = create_template(client, manager, questions=[])
    bad_category = create_template(client, manager, category="trivia")
    too_short = create_template(client, manager, estimated_duration=5)
    short_question = create_template(client, manager, questions=[{"text": "Why?"}])

    for response in (no_questions, bad_category, too_short, short_question):
        assert response.status_code == 400
        assert response.json()["error"] == "Validation Error"


def test_talent_cannot_create_template(client, talent):
    assert create_template(client, talent).status_code == 403


def test_private_template_visibility(client, db, admin_headers, manager, talent):
    template_id = create_template(client, manager).json()["id"]
    other = make_user(db, "other@example.com", role="manager")

    assert client.get(f"{BASE}/{template_id}", headers=auth_headers(manager)).status_code == 200
    assert client.get(f"{BASE}/{template_id}", headers=admin_headers).status_code == 200
    assert client.get(f"{BASE}/{template_id}", headers=auth_headers(other)).status_code == 403
    assert client.get(f"{BASE}/{template_id}", headers=auth_headers(talent)).status_code == 403

    client.put(f"{BASE}/{template_id}", json={"is_public": True}, headers=auth_headers(manager))
    assert client.get(f"{BASE}/{template_id}", headers=auth_headers(talent)).status_code == 200


def test_only_owner_updates_or_deletes(client, db, manager):
    template_id = create_template(client, manager).json()["id"]
    other = make_user(db, "other@example.com", role="manager")

    foreign_update = client.put(f"{BASE}/{template_id}", json={"name": "Hijacked"}, headers=auth_headers(other))
    foreign_delete = client.delete(f"{BASE}/{template_id}", headers=auth_headers(other))
    update = client.put(
        f"{BASE}/{template_id}",
        json={"name": "Backend screen v2", "questions": [{"text": "Describe your last project."}]},
        headers=auth_headers(manager),
    )

    assert foreign_update.status_code == 403
    assert foreign_delete.status_code == 403
    assert update.json()["name"] == "Backend screen v2"
    assert update.json()["questions"] == [{"text": "Describe your last project.", "type": "text", "order": 1}]


def test_delete_deactivates(client, db, manager):
    template_id = create_template(client, manager).json()["id"]

    deleted = client.delete(f"{BASE}/{template_id}", headers=auth_headers(manager))
    fetched = client.get(f"{BASE}/{template_id}", headers=auth_headers(manager))
    listing = client.get(BASE, headers=auth_headers(manager)).json()

    assert deleted.status_code == 200
    assert fetched.status_code == 404
    assert listing["templates"] == []
    db.expire_all()
    assert db.get(InterviewTemplate, template_id).is_active is False


def test_my_templates_filters_and_recent_use_first(client, db, manager):
    first = create_template(client, manager, name="Culture chat", category="cultural_fit", tags=["values"]).json()
    second = create_template(client, manager, name="System design", tags=["architecture"]).json()
    create_template(client, make_user(db, "other@example.com", role="manager"), name="Not mine")
    client.post(f"{BASE}/{first['id']}/use", headers=auth_headers(manager))

    everything = client.get(BASE, headers=auth_headers(manager)).json()
    by_category = client.get(f"{BASE}?category=cultural_fit", headers=auth_headers(manager)).json()
    by_tag = client.get(f"{BASE}?tags=architecture", headers=auth_headers(manager)).json()
    by_search = client.get(f"{BASE}?search=design", headers=auth_headers(manager)).json()

    assert [t["id"] for t in everything["templates"]] == [first["id"], second["id"]]
    assert [t["id"] for t in by_category["templates"]] == [first["id"]]
    assert [t["id"] for t in by_tag["templates"]] == [second["id"]]
    assert [t["id"] for t in by_search["templates"]] == [second["id"]]


def test_public_listing_sorted_by_usage(client, db, manager, talent):
    quiet = create_template(client, manager, name="Quiet one", is_public=True).json()
    popular = create_template(client, manager, name="Popular one", is_public=True).json()
    create_template(client, manager, name="Private one")
    template = db.get(InterviewTemplate, popular["id"])
    template.usage_count = 7
    db.commit()

    listing = client.get(f"{BASE}/public/all", headers=auth_headers(talent)).json()

    assert [t["id"] for t in listing["templates"]] == [popular["id"], quiet["id"]]
    assert listing["pagination"]["total"] == 2


def test_duplicate_public_template(client, db, manager):
    source = create_template(client, manager, is_public=True).json()
    other = make_user(db, "other@example.com", role="manager")

    default_copy = client.post(f"{BASE}/{source['id']}/duplicate", headers=auth_headers(other))
    named_copy = client.post(
        f"{BASE}/{source['id']}/duplicate", json={"name": "My screen"}, headers=auth_headers(other)
    )

    assert default_copy.status_code == 201
    assert default_copy.json()["name"] == "Backend screen (Copy)"
    assert default_copy.json()["manager_id"] == other.manager_profile.id
    assert default_copy.json()["is_public"] is False
    assert default_copy.json()["questions"] == source["questions"]
    assert named_copy.json()["name"] == "My screen"


def test_private_template_cannot_be_duplicated_by_others(client, db, manager):
    source = create_template(client, manager).json()
    other = make_user(db, "other@example.com", role="manager")

    response = client.post(f"{BASE}/{source['id']}/duplicate", headers=auth_headers(other))

    assert response.status_code == 403
    assert db.query(InterviewTemplate).count() == 1


def test_use_counts_and_stamps(client, manager):
    template_id = create_template(client, manager).json()["id"]

    client.post(f"{BASE}/{template_id}/use", headers=auth_headers(manager))
    used = client.post(f"{BASE}/{template_id}/use", headers=auth_headers(manager)).json()

    assert used["usage_count"] == 2
    last_used = datetime.fromisoformat(used["last_used_at"])
    assert datetime.utcnow() - last_used < timedelta(minutes=1)


def test_interview_from_template_copies_questions(client, db, manager, talent):
    template = create_template(client, manager).json()

    response = client.post(
        "/api/v1/interviews",
        json={"talent_id": talent.talent_profile.id, "title": "Screen for Tom", "template_id": template["id"]},
        headers=auth_headers(manager),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["template_id"] == template["id"]
    assert body["estimated_duration"] == 45
    assert [q["question_text"] for q in body["questions"]] == [q["text"] for q in template["questions"]]
    assert body["questions"][1]["question_type"] == "text"
    db.expire_all()
    assert db.get(InterviewTemplate, template["id"]).usage_count == 1


def test_interview_questions_override_template(client, manager, talent):
    template = create_template(client, manager).json()

    response = client.post(
        "/api/v1/interviews",
        json={
            "talent_id": talent.talent_profile.id,
            "title": "Custom screen",
            "template_id": template["id"],
            "estimated_duration": 20,
            "questions": [{"question_text": "Only this one."}],
        },
        headers=auth_headers(manager),
    )

    assert [q["question_text"] for q in response.json()["questions"]] == ["Only this one."]
    assert response.json()["estimated_duration"] == 20


def test_interview_from_missing_template(client, manager, talent):
    response = client.post(
        "/api/v1/interviews",
        json={"talent_id": talent.talent_profile.id, "title": "Screen", "template_id": 999},
        headers=auth_headers(manager),
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Interview template not found"}

"""Tests for interviews."""

from app.models import Proposal

from conftest import auth_headers, make_job, make_proposal, make_user


def create_interview(client, manager, talent, **extra):
    payload = {
        "talent_id": talent.talent_profile.id,
        "title": "Technical screen",
        "questions": [
            {"question_text": "Describe a system you designed."},
            {"question_text": "Favourite testing tool?", "is_required": False},
        ],
    }
    payload.update(extra)
    return client.post("/api/v1/interviews", json=payload, headers=auth_headers(manager))


def test_create_interview_moves_proposal(client, db, manager, talent):
    job = make_job(db, manager)
    proposal = make_proposal(db, job, talent)

    response = create_interview(client, manager, talent, job_id=job.id, proposal_id=proposal.id)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "created"
    assert [q["question_order"] for q in body["questions"]] == [1, 2]
    db.expire_all()
    assert db.get(Proposal, proposal.id).status == "interview"


def test_answering_tracks_progress(client, manager, talent):
    interview = create_interview(client, manager, talent).json()
    question_id = interview["questions"][0]["id"]

    answer = client.post(
        f"/api/v1/interviews/{interview['id']}/questions/{question_id}/answer",
        json={"answer_text": "A booking platform on FastAPI."},
        headers=auth_headers(talent),
    )
    progress = client.get(f"/api/v1/interviews/{interview['id']}/progress", headers=auth_headers(manager)).json()

    assert answer.status_code == 200
    assert progress["status"] == "in_progress"
    assert progress["answered"] == 1
    assert progress["required_remaining"] == 0
    assert progress["percent"] == 50.0


def test_status_rules_per_side(client, manager, talent):
    interview_id = create_interview(client, manager, talent).json()["id"]
    url = f"/api/v1/interviews/{interview_id}/status"

    talent_rejects = client.put(url, json={"status": "rejected"}, headers=auth_headers(talent))
    manager_sends = client.put(url, json={"status": "sent"}, headers=auth_headers(manager))

    assert talent_rejects.status_code == 403
    assert manager_sends.json()["status"] == "sent"


def test_outsiders_and_ratings(client, db, manager, talent):
    interview_id = create_interview(client, manager, talent).json()["id"]
    outsider = make_user(db, "nosy@example.com", role="manager")

    hidden = client.get(f"/api/v1/interviews/{interview_id}", headers=auth_headers(outsider))
    rated = client.post(
        f"/api/v1/interviews/{interview_id}/rate", json={"rating": 5, "feedback": "Sharp"}, headers=auth_headers(manager)
    )
    bad_rating = client.post(
        f"/api/v1/interviews/{interview_id}/rate", json={"rating": 9}, headers=auth_headers(talent)
    )

    assert hidden.status_code == 403
    assert rated.json()["manager_rating"] == 5
    assert bad_rating.status_code == 400


def test_admin_flags_interview(client, admin_headers, manager, talent):
    interview_id = create_interview(client, manager, talent).json()["id"]

    flagged = client.post(
        f"/api/v1/interviews/{interview_id}/flag", json={"reason": "Off-platform payment request"}, headers=admin_headers
    )
    listing = client.get("/api/v1/admin/interviews?flagged=true", headers=admin_headers).json()

    assert flagged.json()["is_flagged"] is True
    assert [i["id"] for i in listing["interviews"]] == [interview_id]

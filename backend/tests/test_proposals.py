"""Tests for the proposal workflow."""

import pytest

from app.core.exceptions import Forbidden, ValidationError
from app.models import Proposal
from app.services import proposals as workflow

from conftest import auth_headers, make_job, make_proposal, make_user

COVER_LETTER = "I have built several similar systems and can deliver this quickly and cleanly."


def submit(client, talent_user, job_id, **overrides):
    payload = {"job_id": job_id, "cover_letter": COVER_LETTER, "bid_amount": 300, "timeline_days": 14}
    payload.update(overrides)
    return client.post("/api/v1/proposals", json=payload, headers=auth_headers(talent_user))


def test_submit_proposal(client, manager, talent, db):
    job = make_job(db, manager)

    response = submit(client, talent, job.id)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["job_title"] == job.title
    assert body["talent_name"] == "Tom Okafor"


def test_duplicate_proposal_is_conflict(client, manager, talent, db):
    job = make_job(db, manager)
    submit(client, talent, job.id)

    response = submit(client, talent, job.id, bid_amount=200)

    assert response.status_code == 400
    assert response.json() == {"error": "You have already submitted a proposal for this job"}
    assert db.query(Proposal).count() == 1


def test_cannot_bid_on_closed_job(client, manager, talent, db):
    job = make_job(db, manager, status="completed")

    response = submit(client, talent, job.id)

    assert response.status_code == 400


def test_short_cover_letter_rejected(client, manager, talent, db):
    job = make_job(db, manager)

    response = submit(client, talent, job.id, cover_letter="too short")

    assert response.status_code == 400
    assert response.json()["error"] == "Validation Error"


def test_managers_cannot_submit(client, manager, db):
    job = make_job(db, manager)

    assert submit(client, manager, job.id).status_code == 403


def test_withdraw_only_while_pending(client, manager, talent, db):
    job = make_job(db, manager)
    proposal = make_proposal(db, job, talent)

    first = client.post(f"/api/v1/proposals/{proposal.id}/withdraw", headers=auth_headers(talent))
    second = client.post(f"/api/v1/proposals/{proposal.id}/withdraw", headers=auth_headers(talent))

    assert first.status_code == 200
    assert first.json()["status"] == "withdrawn"
    assert second.status_code == 400


def test_update_after_acceptance_is_refused(client, manager, talent, db):
    job = make_job(db, manager)
    proposal = make_proposal(db, job, talent, status="accepted")

    response = client.put(
        f"/api/v1/proposals/{proposal.id}", json={"bid_amount": 999}, headers=auth_headers(talent)
    )

    assert response.status_code == 400


def test_talent_edits_and_deletes_pending_proposal(client, manager, talent, db):
    job = make_job(db, manager)
    proposal = make_proposal(db, job, talent)

    edited = client.put(f"/api/v1/proposals/{proposal.id}", json={"bid_amount": 275}, headers=auth_headers(talent))
    deleted = client.delete(f"/api/v1/proposals/{proposal.id}", headers=auth_headers(talent))

    assert edited.json()["bid_amount"] == 275
    assert deleted.status_code == 200
    db.expire_all()
    assert db.get(Proposal, proposal.id) is None


def test_other_talent_cannot_touch_proposal(client, manager, talent, db):
    job = make_job(db, manager)
    proposal = make_proposal(db, job, talent)
    intruder = make_user(db, "intruder@example.com", role="talent")

    response = client.post(f"/api/v1/proposals/{proposal.id}/withdraw", headers=auth_headers(intruder))

    assert response.status_code == 403


def test_job_owner_accepts(client, manager, talent, db):
    job = make_job(db, manager)
    proposal = make_proposal(db, job, talent)

    response = client.post(f"/api/v1/proposals/{proposal.id}/accept", headers=auth_headers(manager))

    assert response.status_code == 200
    assert response.json()["status"] == "accepted"
    assert response.json()["is_viewed"] is True


def test_non_owner_manager_is_forbidden(client, manager, talent, db):
    job = make_job(db, manager)
    proposal = make_proposal(db, job, talent)
    rival = make_user(db, "rival@example.com", role="manager")

    accept = client.post(f"/api/v1/proposals/{proposal.id}/accept", headers=auth_headers(rival))
    listing = client.get(f"/api/v1/proposals/job/{job.id}", headers=auth_headers(rival))

    assert accept.status_code == 403
    assert listing.status_code == 403
    db.expire_all()
    assert db.get(Proposal, proposal.id).status == "pending"


def test_manager_status_must_be_known(client, manager, talent, db):
    job = make_job(db, manager)
    proposal = make_proposal(db, job, talent)

    response = client.put(
        f"/api/v1/proposals/{proposal.id}/status", json={"status": "withdrawn"}, headers=auth_headers(manager)
    )

    assert response.status_code == 400


def test_non_owner_with_invalid_status_is_forbidden(client, manager, talent, db):
    job = make_job(db, manager)
    proposal = make_proposal(db, job, talent)
    rival = make_user(db, "rival@example.com", role="manager")

    response = client.put(
        f"/api/v1/proposals/{proposal.id}/status", json={"status": "bogus"}, headers=auth_headers(rival)
    )

    assert response.status_code == 403
    with pytest.raises(Forbidden):
        workflow.set_status_by_manager(db, proposal, rival.manager_profile, "bogus")


def test_withdrawn_proposal_cannot_be_accepted(db, manager, talent):
    job = make_job(db, manager)
    proposal = make_proposal(db, job, talent, status="withdrawn")

    with pytest.raises(ValidationError):
        workflow.set_status_by_manager(db, proposal, manager.manager_profile, "accepted")


def test_ownership_compares_profile_ids(db, manager, talent):
    job = make_job(db, manager)
    proposal = make_proposal(db, job, talent)

    with pytest.raises(Forbidden):
        workflow.set_status_by_manager(db, proposal, None, "rejected")


def test_visibility(client, db, manager, talent, admin):
    job = make_job(db, manager)
    proposal = make_proposal(db, job, talent)
    stranger = make_user(db, "stranger@example.com", role="talent")

    for user, expected in ((talent, 200), (manager, 200), (admin, 200), (stranger, 403)):
        response = client.get(f"/api/v1/proposals/{proposal.id}", headers=auth_headers(user))
        assert response.status_code == expected


def test_new_proposal_count_and_mark_viewed(client, db, manager, talent):
    job = make_job(db, manager)
    make_proposal(db, job, talent)
    headers = auth_headers(manager)

    before = client.get(f"/api/v1/jobs/{job.id}/proposals/new-count", headers=headers).json()
    client.post(f"/api/v1/jobs/{job.id}/proposals/viewed", headers=headers)
    after = client.get(f"/api/v1/jobs/{job.id}/proposals/new-count", headers=headers).json()

    assert before["new_proposals"] == 1
    assert after["new_proposals"] == 0

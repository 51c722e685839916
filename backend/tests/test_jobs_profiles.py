"""Tests for jobs, talent profiles and the skill catalogue."""

from conftest import auth_headers, make_job, make_user

JOB = {
    "title": "Build a data pipeline",
    "description": "Ingest CSV exports nightly and load them into Postgres.",
    "budget_type": "fixed",
    "budget_min": 200,
    "budget_max": 800,
    "skills": ["Python", "python", "Airflow"],
}


def test_manager_posts_job_with_skills(client, manager):
    response = client.post("/api/v1/jobs", json=JOB, headers=auth_headers(manager))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "open"
    assert body["featured"] is False
    assert sorted(body["skills"]) == ["Airflow", "Python"]


def test_job_budget_range_validated(client, manager):
    response = client.post(
        "/api/v1/jobs", json={**JOB, "budget_min": 900, "budget_max": 100}, headers=auth_headers(manager)
    )

    assert response.status_code == 400


def test_talent_cannot_post_job(client, talent):
    assert client.post("/api/v1/jobs", json=JOB, headers=auth_headers(talent)).status_code == 403


def test_job_search_filters(client, db, manager, talent):
    make_job(db, manager, title="Design a logo")
    make_job(db, manager, title="Old finished job", status="completed")
    client.post("/api/v1/jobs", json=JOB, headers=auth_headers(manager))
    headers = auth_headers(talent)

    open_jobs = client.get("/api/v1/jobs", headers=headers).json()
    every_job = client.get("/api/v1/jobs?status=all", headers=headers).json()
    by_text = client.get("/api/v1/jobs?q=logo", headers=headers).json()
    by_skill = client.get("/api/v1/jobs?skill=airflow", headers=headers).json()

    assert open_jobs["pagination"]["total"] == 2
    assert every_job["pagination"]["total"] == 3
    assert [j["title"] for j in by_text["jobs"]] == ["Design a logo"]
    assert [j["title"] for j in by_skill["jobs"]] == [JOB["title"]]


def test_only_owner_updates_job(client, db, manager):
    job = make_job(db, manager)
    rival = make_user(db, "rival@example.com", role="manager")

    denied = client.put(f"/api/v1/jobs/{job.id}", json={"status": "cancelled"}, headers=auth_headers(rival))
    allowed = client.put(f"/api/v1/jobs/{job.id}", json={"status": "cancelled"}, headers=auth_headers(manager))

    assert denied.status_code == 403
    assert allowed.json()["status"] == "cancelled"


def test_my_jobs_include_new_proposal_count(client, db, manager):
    make_job(db, manager)

    body = client.get("/api/v1/jobs/mine", headers=auth_headers(manager)).json()

    assert body["jobs"][0]["new_proposals"] == 0


def test_talent_profile_update_and_skills(client, talent):
    headers = auth_headers(talent)

    updated = client.put(
        "/api/v1/profiles/talent/me", json={"title": "Data Engineer", "hourly_rate": 60}, headers=headers
    )
    with_skill = client.post(
        "/api/v1/profiles/talent/me/skills", json={"name": "Spark", "proficiency": "expert"}, headers=headers
    )
    skill_id = with_skill.json()["skills"][0]["skill_id"]
    without_skill = client.delete(f"/api/v1/profiles/talent/me/skills/{skill_id}", headers=headers)

    assert updated.json()["title"] == "Data Engineer"
    assert with_skill.json()["skills"][0]["name"] == "Spark"
    assert without_skill.json()["skills"] == []


def test_talent_search_skips_inactive_users(client, db, manager, talent):
    make_user(db, "gone@example.com", role="talent", is_active=False)

    body = client.get("/api/v1/profiles/talent/search", headers=auth_headers(manager)).json()

    assert [t["email"] for t in body["talents"]] == ["talent@example.com"]


def test_manager_has_no_talent_profile(client, manager):
    assert client.get("/api/v1/profiles/talent/me", headers=auth_headers(manager)).status_code == 403


def test_skill_catalogue(client, admin_headers):
    created = client.post("/api/v1/skills", json={"name": "Kotlin", "category": "Mobile"}, headers=admin_headers)
    duplicate = client.post("/api/v1/skills", json={"name": "kotlin"}, headers=admin_headers)
    bulk = client.post(
        "/api/v1/skills/bulk",
        json={"skills": [{"name": "Swift", "category": "Mobile"}, {"name": "Kotlin"}, {"name": " "}]},
        headers=admin_headers,
    )

    assert created.status_code == 201
    assert duplicate.status_code == 400
    assert bulk.json()["results"]["success"] == 1
    assert bulk.json()["results"]["failed"] == 2
    assert client.get("/api/v1/skills/categories").json() == ["Mobile"]
    assert [s["name"] for s in client.get("/api/v1/skills/search?q=swi").json()] == ["Swift"]

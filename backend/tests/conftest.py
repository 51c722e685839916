"""
Shared fixtures: an in-memory database per test, a TestClient wired to it
and small factories for users, jobs and proposals.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token, get_password_hash
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models import Job, ManagerProfile, Proposal, TalentProfile, User

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "secret123"
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, email, role="talent", first_name="Test", last_name="User", is_active=True):
    """Create a committed user together with its role profile."""
    user = User(
        email=email,
        hashed_password=PASSWORD_HASH,
        role=role,
        first_name=first_name,
        last_name=last_name,
        is_active=is_active,
    )
    db.add(user)
    db.flush()
    if role == "talent":
        db.add(TalentProfile(user_id=user.id, title="Developer", bio="", location="", portfolio_description=""))
    elif role == "manager":
        db.add(ManagerProfile(user_id=user.id, company_name="Acme", company_description="", industry="", location=""))
    db.commit()
    db.refresh(user)
    return user


def make_job(db, manager_user, title="Build an API backend", status="open"):
    job = Job(
        manager_id=manager_user.manager_profile.id,
        title=title,
        description="A reasonably detailed description of the work to be done.",
        budget_type="fixed",
        budget_min=100,
        budget_max=500,
        status=status,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def make_proposal(db, job, talent_user, status="pending", bid_amount=250):
    proposal = Proposal(
        job_id=job.id,
        talent_id=talent_user.talent_profile.id,
        cover_letter="I am a great fit for this job. " * 3,
        bid_amount=bid_amount,
        timeline_days=10,
        status=status,
    )
    db.add(proposal)
    db.commit()
    db.refresh(proposal)
    return proposal


def auth_headers(user) -> dict:
    token = create_access_token(user.id, user.role, user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin(db):
    return make_user(db, "root@yellowgenie.io", role="admin", first_name="Ada", last_name="Admin")


@pytest.fixture()
def manager(db):
    return make_user(db, "manager@example.com", role="manager", first_name="Maria", last_name="Lopez")


@pytest.fixture()
def talent(db):
    return make_user(db, "talent@example.com", role="talent", first_name="Tom", last_name="Okafor")


@pytest.fixture()
def admin_headers(admin):
    return auth_headers(admin)

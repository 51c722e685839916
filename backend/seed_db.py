"""
YellowGenie Database Seeder

Creates demo accounts and marketplace data:
- Admin, manager and talent users with profiles
- A skill catalogue
- Two open jobs with one pending proposal
- Pricing packages and a default commission rule
"""

import sys
sys.path.insert(0, ".")

from app.db.session import SessionLocal, engine
from app.db.base import Base
from app import models  # noqa: F401
from app.core.security import get_password_hash
from app.stores import (
    CommissionSettingsStore,
    JobStore,
    ManagerProfileStore,
    PackageStore,
    ProposalStore,
    SkillStore,
    TalentProfileStore,
    UserStore,
)

SKILLS = {
    "Development": ["Python", "FastAPI", "React", "PostgreSQL", "Docker"],
    "Design": ["Figma", "UI Design"],
    "Marketing": ["SEO", "Copywriting"],
}

PACKAGES = [
    {"name": "Starter", "price": 29.0, "post_credits": 3, "featured_credits": 0, "duration_days": 30,
     "features": ["3 job posts"]},
    {"name": "Growth", "price": 79.0, "post_credits": 10, "featured_credits": 2, "duration_days": 60,
     "features": ["10 job posts", "2 featured posts"], "is_popular": True},
    {"name": "Scale", "price": 199.0, "post_credits": 30, "featured_credits": 10, "duration_days": 90,
     "features": ["30 job posts", "10 featured posts", "Priority support"]},
]


def seed_database():
    """Seed the database with demo data."""

    # Create all tables
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()

    try:
        users = UserStore(db)
        if users.get_by_email("admin@yellowgenie.io"):
            print("Database already seeded. Skipping...")
            return

        print("Seeding database...")

        # 1. Users
        admin = users.create({
            "email": "admin@yellowgenie.io",
            "hashed_password": get_password_hash("admin123"),
            "first_name": "Ada",
            "last_name": "Admin",
            "role": "admin",
            "email_verified": True,
        })
        manager = users.create({
            "email": "maria.manager@example.com",
            "hashed_password": get_password_hash("manager123"),
            "first_name": "Maria",
            "last_name": "Lopez",
            "role": "manager",
        })
        talent = users.create({
            "email": "tom.talent@example.com",
            "hashed_password": get_password_hash("talent123"),
            "first_name": "Tom",
            "last_name": "Okafor",
            "role": "talent",
        })

        # 2. Profiles
        manager_profile = ManagerProfileStore(db).create_for_user(
            manager.id,
            company_name="Brightline Studio",
            company_description="Product studio building web apps for startups.",
            company_size="11-50",
            industry="Software",
            location="Lisbon",
        )
        talents = TalentProfileStore(db)
        talent_profile = talents.create_for_user(
            talent.id,
            title="Backend Engineer",
            bio="Python developer focused on APIs and data pipelines.",
            hourly_rate=55.0,
            availability="part-time",
            location="Lagos",
        )

        # 3. Skills
        skills = SkillStore(db)
        for category, names in SKILLS.items():
            for name in names:
                skills.get_or_create(name, category)
        for name in ("Python", "FastAPI", "PostgreSQL"):
            talents.add_skill(talent_profile, skills.get_by_name(name), "expert")

        # 4. Jobs and a proposal
        jobs = JobStore(db)
        api_job = jobs.create({
            "manager_id": manager_profile.id,
            "title": "Build a booking API",
            "description": "REST API for a salon booking app with auth, payments and admin reports.",
            "budget_type": "fixed",
            "budget_min": 1500,
            "budget_max": 3000,
            "category": "Development",
            "experience_level": "intermediate",
        })
        jobs.set_skills(api_job, [skills.get_by_name("Python"), skills.get_by_name("FastAPI")])
        design_job = jobs.create({
            "manager_id": manager_profile.id,
            "title": "Landing page redesign",
            "description": "Refresh the marketing site with a new hero section and pricing page.",
            "budget_type": "hourly",
            "budget_min": 30,
            "budget_max": 60,
            "category": "Design",
            "experience_level": "entry",
            "featured": True,
        })
        jobs.set_skills(design_job, [skills.get_by_name("Figma")])

        ProposalStore(db).create({
            "job_id": api_job.id,
            "talent_id": talent_profile.id,
            "cover_letter": "I have shipped three booking systems on FastAPI and can start next week. "
                            "Happy to share the architecture I would use.",
            "bid_amount": 2400,
            "timeline_days": 21,
            "status": "pending",
        })

        # 5. Billing
        packages = PackageStore(db)
        for package in PACKAGES:
            packages.create({"currency": "USD", "is_active": True, **package})

        CommissionSettingsStore(db).create({
            "name": "Standard talent commission",
            "description": "10% on earnings, minimum $1",
            "user_type": "talent",
            "commission_type": "percentage",
            "base_commission_rate": 10,
            "minimum_commission": 1,
            "created_by": admin.id,
            "last_updated_by": admin.id,
        })

        # Commit all changes
        db.commit()

        print("Database seeded successfully!")
        print("\nCreated Users:")
        print("   - admin@yellowgenie.io (password: admin123)")
        print("   - maria.manager@example.com (password: manager123)")
        print("   - tom.talent@example.com (password: talent123)")
        print(f"\nJobs: 2 | Packages: {len(PACKAGES)} | Skills: {sum(len(v) for v in SKILLS.values())}")

    except Exception as e:
        db.rollback()
        print(f"Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()

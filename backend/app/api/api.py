"""
API Router Aggregator.

Combines all v1 API routers into a single router for the main app.
"""

from fastapi import APIRouter

from app.api.v1 import (
    admin,
    admin_billing,
    auth,
    interview_templates,
    interviews,
    jobs,
    messages,
    packages,
    payments,
    profiles,
    proposals,
    skills,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["Profiles"])
api_router.include_router(skills.router, prefix="/skills", tags=["Skills"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["Jobs"])
api_router.include_router(proposals.router, prefix="/proposals", tags=["Proposals"])
api_router.include_router(interviews.router, prefix="/interviews", tags=["Interviews"])
api_router.include_router(
    interview_templates.router, prefix="/interview-templates", tags=["Interview Templates"]
)
api_router.include_router(messages.router, prefix="/messages", tags=["Messages"])
api_router.include_router(packages.router, prefix="/packages", tags=["Packages"])
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])

api_router.include_router(admin_billing.router, prefix="/admin/billing", tags=["Admin Billing"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])

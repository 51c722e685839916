from app.models.user import User
from app.models.profile import TalentProfile, ManagerProfile
from app.models.skill import Skill, TalentSkill, JobSkill
from app.models.job import Job
from app.models.proposal import Proposal
from app.models.interview import Interview, InterviewQuestion, InterviewTemplate
from app.models.conversation import Conversation, Message
from app.models.billing import (
    PricingPackage,
    UserPackage,
    Discount,
    UserDiscount,
    DiscountUsage,
    Invoice,
)
from app.models.payment import TransactionLog, CommissionSettings
from app.models.deleted_user import DeletedUser
from app.models.log import AdminLog
from app.models.verification import EmailVerificationCode, PasswordResetToken

__all__ = [
    "User",
    "TalentProfile",
    "ManagerProfile",
    "Skill",
    "TalentSkill",
    "JobSkill",
    "Job",
    "Proposal",
    "Interview",
    "InterviewQuestion",
    "InterviewTemplate",
    "Conversation",
    "Message",
    "PricingPackage",
    "UserPackage",
    "Discount",
    "UserDiscount",
    "DiscountUsage",
    "Invoice",
    "TransactionLog",
    "CommissionSettings",
    "DeletedUser",
    "AdminLog",
    "EmailVerificationCode",
    "PasswordResetToken",
]

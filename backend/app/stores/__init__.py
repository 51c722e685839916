from app.stores.base import BaseStore, Page, clamp_pagination, commit_or_raise
from app.stores.users import (
    UserStore,
    TalentProfileStore,
    ManagerProfileStore,
    DeletedUserStore,
    AdminLogStore,
)
from app.stores.skills import SkillStore
from app.stores.jobs import JobStore, ProposalStore
from app.stores.interviews import InterviewStore, InterviewTemplateStore
from app.stores.messaging import ConversationStore, MessageStore
from app.stores.billing import PackageStore, DiscountStore, InvoiceStore
from app.stores.payments import TransactionLogStore, CommissionSettingsStore
from app.stores.verification import EmailVerificationStore, PasswordResetStore

__all__ = [
    "BaseStore",
    "Page",
    "clamp_pagination",
    "commit_or_raise",
    "UserStore",
    "TalentProfileStore",
    "ManagerProfileStore",
    "DeletedUserStore",
    "AdminLogStore",
    "SkillStore",
    "JobStore",
    "ProposalStore",
    "InterviewStore",
    "InterviewTemplateStore",
    "ConversationStore",
    "MessageStore",
    "PackageStore",
    "DiscountStore",
    "InvoiceStore",
    "TransactionLogStore",
    "CommissionSettingsStore",
    "EmailVerificationStore",
    "PasswordResetStore",
]

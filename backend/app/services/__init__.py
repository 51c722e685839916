from app.services.notifier import notifier, email_sender, Notifier, EmailSender, EmailResult
from app.services.admin_audit import log_admin_action
from app.services.content_filter import screen_message
from app.services.commission import calculate_commission
from app.services.user_lifecycle import soft_delete, restore, purge, hard_delete, bulk_action

__all__ = [
    "notifier",
    "email_sender",
    "Notifier",
    "EmailSender",
    "EmailResult",
    "log_admin_action",
    "screen_message",
    "calculate_commission",
    "soft_delete",
    "restore",
    "purge",
    "hard_delete",
    "bulk_action",
]

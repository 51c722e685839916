"""
Outbound collaborators.

Push notifications and e-mail are delivered by external systems. These
defaults record what would be sent and never raise into the caller.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from app.core.config import settings

logger = logging.getLogger("notifier")


@dataclass
class EmailResult:
    success: bool
    error: Optional[str] = None


class Notifier:
    """Fire-and-forget push channel: (target user, event name, payload)."""

    def emit(self, target_user_id: Optional[int], event_name: str, payload: Optional[dict] = None) -> None:
        if not settings.NOTIFICATIONS_ENABLED or target_user_id is None:
            return
        logger.info(f"emit user={target_user_id} event={event_name} payload={payload or {}}")


class EmailSender:
    """E-mail collaborator accepting a template id or raw content."""

    def send(
        self,
        template_or_content: str,
        recipient: str,
        variables: Optional[dict[str, Any]] = None,
    ) -> EmailResult:
        if not recipient:
            return EmailResult(success=False, error="Recipient is required")
        logger.info(f"email to={recipient} template={template_or_content} vars={sorted((variables or {}).keys())}")
        return EmailResult(success=True)


notifier = Notifier()
email_sender = EmailSender()

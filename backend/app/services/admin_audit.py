"""
Admin audit trail.

Every admin mutation is persisted to ``admin_logs`` and echoed to the
``admin`` logger.
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.models import AdminLog

logger = logging.getLogger("admin")


def log_admin_action(
    db: Session,
    admin_id: Optional[int],
    action: str,
    details: Optional[dict[str, Any]] = None,
) -> AdminLog:
    """
    Record an admin action in the current transaction.

    The row is flushed, not committed: it lands together with the change it
    describes, or not at all.
    """
    entry = AdminLog(admin_id=admin_id, action=action, details=details or {})
    db.add(entry)
    db.flush()
    logger.info(f"admin={admin_id} action={action} details={details or {}}")
    return entry

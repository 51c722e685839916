"""
E-mail verification codes and password resets.

Verification codes are four digits, valid for ``VERIFICATION_CODE_TTL_MINUTES``
and may be re-requested once every ``VERIFICATION_RESEND_SECONDS``. Reset
tokens are 32 random bytes in hex, single use, valid for
``PASSWORD_RESET_TTL_MINUTES``. Every message goes out through ``email_sender``.
"""

import logging
import math
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFound, TooManyRequests, ValidationError
from app.core.security import get_password_hash
from app.models import EmailVerificationCode, PasswordResetToken, User
from app.services.notifier import EmailResult, email_sender
from app.stores import EmailVerificationStore, PasswordResetStore, UserStore, commit_or_raise

logger = logging.getLogger("account_verification")


def generate_verification_code() -> str:
    return str(1000 + secrets.randbelow(9000))


def generate_reset_token() -> str:
    return secrets.token_hex(32)


def _deliver(template: str, user: User, variables: dict) -> EmailResult:
    result = email_sender.send(template, user.email, {"first_name": user.first_name, **variables})
    if not result.success:
        logger.warning(f"Could not send {template} e-mail to user {user.id}: {result.error}")
    return result


# ============== E-mail Verification ==============


def send_verification_code(db: Session, user: User) -> EmailResult:
    """Store a fresh code for the user and mail it."""
    code = EmailVerificationStore(db).create(
        {
            "user_id": user.id,
            "email": user.email,
            "verification_code": generate_verification_code(),
            "expires_at": datetime.utcnow() + timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES),
        }
    )
    commit_or_raise(db, "issue_verification_code")
    logger.info(f"Verification code issued to user {user.id}")
    return _deliver(
        "email_verification",
        user,
        {"code": code.verification_code, "expires_in_minutes": settings.VERIFICATION_CODE_TTL_MINUTES},
    )


def verify_email(db: Session, user: User, code: str) -> User:
    if user.email_verified:
        raise ValidationError("Email is already verified")

    entry: Optional[EmailVerificationCode] = EmailVerificationStore(db).find_valid(user.id, code)
    if entry is None or entry.email.lower() != user.email.lower():
        raise ValidationError("Invalid or expired verification code")

    entry.used_at = datetime.utcnow()
    user.email_verified = True
    commit_or_raise(db, "verify_email")
    db.refresh(user)
    logger.info(f"User {user.id} verified {user.email}")
    return user


def resend_verification(db: Session, email: str) -> EmailResult:
    """
    Issue a new code for an unverified account.

    Raises:
        NotFound: no account uses the address
        ValidationError: the address is already verified
        TooManyRequests: the previous code is younger than the resend interval
    """
    user = UserStore(db).get_by_email(email)
    if user is None:
        raise NotFound("User not found")
    if user.email_verified:
        raise ValidationError("Email is already verified")

    latest = EmailVerificationStore(db).latest_for(user.id)
    if latest is not None and latest.created_at is not None:
        elapsed = (datetime.utcnow() - latest.created_at).total_seconds()
        if elapsed < settings.VERIFICATION_RESEND_SECONDS:
            raise TooManyRequests(
                "Please wait before requesting a new code",
                retry_after=math.ceil(settings.VERIFICATION_RESEND_SECONDS - elapsed),
            )

    return send_verification_code(db, user)


# ============== Password Reset ==============


def request_password_reset(db: Session, email: str) -> Optional[PasswordResetToken]:
    """
    Replace any outstanding reset token for the address and mail a new one.

    Unknown or deactivated addresses are ignored so callers can answer the
    same way whether or not the account exists.
    """
    user = UserStore(db).get_by_email(email)
    if user is None or not user.is_active:
        logger.info("Password reset requested for an unknown or inactive address")
        return None

    store = PasswordResetStore(db)
    store.delete_for_user(user.id)
    reset = store.create(
        {
            "user_id": user.id,
            "email": user.email,
            "token": generate_reset_token(),
            "expires_at": datetime.utcnow() + timedelta(minutes=settings.PASSWORD_RESET_TTL_MINUTES),
        }
    )
    commit_or_raise(db, "request_password_reset")
    db.refresh(reset)

    _deliver(
        "password_reset",
        user,
        {
            "reset_url": f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={reset.token}",
            "expires_in_minutes": settings.PASSWORD_RESET_TTL_MINUTES,
        },
    )
    return reset


def reset_password(db: Session, token: str, new_password: str) -> User:
    store = PasswordResetStore(db)
    reset = store.find_valid(token)
    user = db.get(User, reset.user_id) if reset is not None else None
    if reset is None or user is None or not user.is_active or user.email.lower() != reset.email.lower():
        raise ValidationError("Invalid or expired reset token")

    user.hashed_password = get_password_hash(new_password)
    reset.used_at = datetime.utcnow()
    commit_or_raise(db, "reset_password")
    db.refresh(user)
    logger.info(f"Password reset completed for user {user.id}")

    _deliver("password_changed", user, {"changed_at": reset.used_at.isoformat()})
    return user

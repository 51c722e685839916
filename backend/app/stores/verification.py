from datetime import datetime
from typing import Optional

from app.models import EmailVerificationCode, PasswordResetToken
from app.stores.base import BaseStore


class EmailVerificationStore(BaseStore[EmailVerificationCode]):
    model = EmailVerificationCode
    entity_name = "Verification code"

    def latest_for(self, user_id: int) -> Optional[EmailVerificationCode]:
        return (
            self.query()
            .filter(EmailVerificationCode.user_id == user_id)
            .order_by(EmailVerificationCode.created_at.desc(), EmailVerificationCode.id.desc())
            .first()
        )

    def find_valid(self, user_id: int, code: str) -> Optional[EmailVerificationCode]:
        """An unused, unexpired code issued to the user."""
        return (
            self.query()
            .filter(
                EmailVerificationCode.user_id == user_id,
                EmailVerificationCode.verification_code == code,
                EmailVerificationCode.used_at.is_(None),
                EmailVerificationCode.expires_at > datetime.utcnow(),
            )
            .first()
        )


class PasswordResetStore(BaseStore[PasswordResetToken]):
    model = PasswordResetToken
    entity_name = "Password reset token"

    def find_valid(self, token: str) -> Optional[PasswordResetToken]:
        return (
            self.query()
            .filter(
                PasswordResetToken.token == token,
                PasswordResetToken.used_at.is_(None),
                PasswordResetToken.expires_at > datetime.utcnow(),
            )
            .first()
        )

    def delete_for_user(self, user_id: int) -> int:
        removed = self.query().filter(PasswordResetToken.user_id == user_id).delete(synchronize_session=False)
        self.db.flush()
        return removed

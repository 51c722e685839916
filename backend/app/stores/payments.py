"""Stores for the transaction ledger and commission settings."""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query

from app.core.exceptions import NotFound
from app.models import CommissionSettings, TransactionLog
from app.stores.base import BaseStore, Page


class TransactionLogStore(BaseStore[TransactionLog]):
    model = TransactionLog
    entity_name = "Transaction"

    def get_by_transaction_id(self, transaction_id: str) -> Optional[TransactionLog]:
        return self.query().filter(TransactionLog.transaction_id == transaction_id).first()

    def find_by_transaction_id(self, transaction_id: str) -> TransactionLog:
        transaction = self.get_by_transaction_id(transaction_id)
        if transaction is None:
            raise NotFound("Transaction not found")
        return transaction

    def filtered(
        self,
        user_id: Optional[int] = None,
        transaction_type: Optional[str] = None,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Query:
        query = self.query()
        if user_id is not None:
            query = query.filter(
                or_(TransactionLog.user_id == user_id, TransactionLog.recipient_id == user_id)
            )
        if transaction_type:
            query = query.filter(TransactionLog.transaction_type == transaction_type)
        if status:
            query = query.filter(TransactionLog.status == status)
        if start_date:
            query = query.filter(TransactionLog.created_at >= start_date)
        if end_date:
            query = query.filter(TransactionLog.created_at <= end_date)
        return query

    def list_page(self, page: int = 1, page_size: Optional[int] = None, **filters) -> Page:
        return self.paginate(self.filtered(**filters), page, page_size)


class CommissionSettingsStore(BaseStore[CommissionSettings]):
    model = CommissionSettings
    entity_name = "Commission settings"

    def list_all(self, active_only: bool = False) -> list[CommissionSettings]:
        query = self.query()
        if active_only:
            query = query.filter(CommissionSettings.is_active.is_(True))
        return query.order_by(CommissionSettings.priority.desc(), CommissionSettings.id).all()

    def for_user_type(self, user_type: str) -> Optional[CommissionSettings]:
        """Highest-priority active rule for a user type (rules for 'both' also match)."""
        return (
            self.query()
            .filter(
                CommissionSettings.is_active.is_(True),
                CommissionSettings.user_type.in_((user_type, "both")),
            )
            .order_by(CommissionSettings.priority.desc(), CommissionSettings.id)
            .first()
        )

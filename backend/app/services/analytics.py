"""
Admin Analytics.

Read-only rollups over users, jobs, proposals, messages and revenue, plus
day-grouped reports rendered as JSON rows or CSV.
"""

import csv
import io
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.models import Conversation, Invoice, Job, Message, Proposal, TransactionLog, User
from app.services import invoices

REPORT_TYPES = ("user_activity", "job_statistics", "revenue_report")


def _growth_rate(current: int, previous: int) -> float:
    if previous == 0:
        return 100.0 if current else 0.0
    return round((current - previous) / previous * 100, 2)


def _count_by(db: Session, column) -> dict:
    return {key: count for key, count in db.query(column, func.count()).group_by(column).all()}


def platform_stats(db: Session, now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    last_30 = now - timedelta(days=30)
    last_60 = now - timedelta(days=60)

    new_users = db.query(User).filter(User.created_at >= last_30).count()
    previous_users = db.query(User).filter(User.created_at >= last_60, User.created_at < last_30).count()

    avg_budget = db.query(func.avg((Job.budget_min + Job.budget_max) / 2)).scalar()
    avg_bid = db.query(func.avg(Proposal.bid_amount)).scalar()

    return {
        "users": {
            "total": db.query(User).count(),
            "by_role": _count_by(db, User.role),
            "active": db.query(User).filter(User.is_active.is_(True)).count(),
            "verified": db.query(User).filter(User.email_verified.is_(True)).count(),
            "new_last_30_days": new_users,
            "growth_rate": _growth_rate(new_users, previous_users),
        },
        "jobs": {
            "total": db.query(Job).count(),
            "by_status": _count_by(db, Job.status),
            "new_last_30_days": db.query(Job).filter(Job.created_at >= last_30).count(),
            "average_budget": round(float(avg_budget), 2) if avg_budget is not None else 0,
        },
        "proposals": {
            "total": db.query(Proposal).count(),
            "by_status": _count_by(db, Proposal.status),
            "average_bid": round(float(avg_bid), 2) if avg_bid is not None else 0,
        },
        "messages": {
            "total": db.query(Message).count(),
            "unread": db.query(Message).filter(Message.is_read.is_(False)).count(),
            "flagged": db.query(Message).filter(Message.is_flagged.is_(True)).count(),
            "active_conversations": db.query(Conversation).filter(Conversation.status == "active").count(),
        },
        "revenue": invoices.totals(db),
    }


def proposal_stats(db: Session) -> dict:
    by_status = _count_by(db, Proposal.status)
    total = sum(by_status.values())
    accepted = by_status.get("accepted", 0) + by_status.get("approved", 0)
    avg_bid = db.query(func.avg(Proposal.bid_amount)).scalar()
    return {
        "total": total,
        "by_status": by_status,
        "acceptance_rate": round(accepted / total * 100, 2) if total else 0,
        "average_bid": round(float(avg_bid), 2) if avg_bid is not None else 0,
    }


# ============== Reports ==============


def _day(value: datetime) -> str:
    return value.date().isoformat() if isinstance(value, datetime) else str(value)


def _window(start: Optional[date], end: Optional[date]) -> tuple[datetime, datetime]:
    end_dt = datetime.combine(end, datetime.max.time()) if end else datetime.utcnow()
    start_dt = datetime.combine(start, datetime.min.time()) if start else end_dt - timedelta(days=30)
    if start_dt > end_dt:
        raise ValidationError("start_date must be before end_date")
    return start_dt, end_dt


def _user_activity(db: Session, start: datetime, end: datetime) -> list[dict]:
    rows: dict[str, dict] = defaultdict(lambda: {"new_users": 0, "talents": 0, "managers": 0, "admins": 0})
    for created_at, role in db.query(User.created_at, User.role).filter(User.created_at.between(start, end)):
        bucket = rows[_day(created_at)]
        bucket["new_users"] += 1
        bucket[f"{role}s"] = bucket.get(f"{role}s", 0) + 1
    return [{"date": day, **values} for day, values in sorted(rows.items())]


def _job_statistics(db: Session, start: datetime, end: datetime) -> list[dict]:
    rows: dict[str, dict] = defaultdict(lambda: {"jobs_posted": 0, "proposals_submitted": 0, "proposals_accepted": 0})
    for (created_at,) in db.query(Job.created_at).filter(Job.created_at.between(start, end)):
        rows[_day(created_at)]["jobs_posted"] += 1
    for created_at, status in db.query(Proposal.created_at, Proposal.status).filter(
        Proposal.created_at.between(start, end)
    ):
        bucket = rows[_day(created_at)]
        bucket["proposals_submitted"] += 1
        if status == "accepted":
            bucket["proposals_accepted"] += 1
    return [{"date": day, **values} for day, values in sorted(rows.items())]


def _revenue_report(db: Session, start: datetime, end: datetime) -> list[dict]:
    rows: dict[str, dict] = defaultdict(lambda: {"invoices_paid": 0, "invoice_revenue": 0.0, "transaction_volume": 0.0})
    for paid_at, total in db.query(Invoice.paid_at, Invoice.total_amount).filter(
        Invoice.status == "paid", Invoice.paid_at.between(start, end)
    ):
        bucket = rows[_day(paid_at)]
        bucket["invoices_paid"] += 1
        bucket["invoice_revenue"] = round(bucket["invoice_revenue"] + float(total or 0), 2)
    for created_at, details in db.query(TransactionLog.created_at, TransactionLog.payment_details).filter(
        TransactionLog.status == "completed", TransactionLog.created_at.between(start, end)
    ):
        cents = int((details or {}).get("processed_amount") or 0)
        bucket = rows[_day(created_at)]
        bucket["transaction_volume"] = round(bucket["transaction_volume"] + cents / 100, 2)
    return [{"date": day, **values} for day, values in sorted(rows.items())]


_REPORTS = {
    "user_activity": _user_activity,
    "job_statistics": _job_statistics,
    "revenue_report": _revenue_report,
}


def build_report(
    db: Session,
    report_type: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> dict:
    if report_type not in REPORT_TYPES:
        raise ValidationError(f"Invalid report type. Must be one of: {', '.join(REPORT_TYPES)}")
    start, end = _window(start_date, end_date)
    return {
        "report_type": report_type,
        "start_date": start.date().isoformat(),
        "end_date": end.date().isoformat(),
        "rows": _REPORTS[report_type](db, start, end),
        "generated_at": datetime.utcnow().isoformat(),
    }


def report_to_csv(report: dict) -> str:
    rows = report["rows"]
    buffer = io.StringIO()
    if not rows:
        buffer.write("date\n")
        return buffer.getvalue()
    columns = ["date"] + sorted({key for row in rows for key in row if key != "date"})
    writer = csv.DictWriter(buffer, fieldnames=columns, restval=0)
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()

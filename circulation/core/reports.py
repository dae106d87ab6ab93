"""Read-only dashboard projections. Nothing here writes."""

import datetime
from sqlalchemy import func
from circulation.core import fines
from circulation.core.models import Book


def _day_bounds(as_of):
    day = as_of.date() if isinstance(as_of, datetime.datetime) else as_of
    start = datetime.datetime.combine(day, datetime.time.min)
    return day, start, start + datetime.timedelta(days=1)


def dashboard(uow, as_of):
    day, start, end = _day_bounds(as_of)
    titles, total, available = uow.session.query(
        func.count(Book.book_id),
        func.coalesce(func.sum(Book.total_copies), 0),
        func.coalesce(func.sum(Book.available_copies), 0),
    ).one()
    return {
        "as_of": day,
        "total_titles": titles,
        "total_copies": int(total),
        "available_copies": int(available),
        "borrowed_copies": int(total) - int(available),
        "pending_requests": uow.requests.count_pending(),
        "overdue_loans": uow.loans.count_overdue(day),
        "issued_today": uow.loans.count_issued_between(start, end),
        "low_stock_book_ids": [
            b.book_id for b in uow.session.query(Book).order_by(Book.available_copies)
            if b.is_low_stock
        ],
    }


def member_summary(uow, member_id, as_of, per_day_rate):
    day, _, _ = _day_bounds(as_of)
    active = uow.loans.find_active_by_member(member_id)
    overdue = [loan for loan in active if fines.is_overdue(loan, day)]
    return {
        "member_id": member_id,
        "as_of": day,
        "active_loans": len(active),
        "overdue_loans": len(overdue),
        "accrued_late_fees": sum(
            (fines.compute_late_fee(loan.due_date, day, per_day_rate) for loan in overdue),
            fines.to_money(0)),
        "pending_requests": sum(
            1 for r in uow.requests.list_by_member(member_id) if r.is_pending),
    }

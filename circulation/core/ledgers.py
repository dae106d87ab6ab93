#!/usr/bin/env python

"""
    Storage ports for Circulation: the catalog, the member/staff
    directory, the request ledger and the loan ledger.

    Each ledger is bound to one session, so every call made through
    ledgers sharing a session lands in the same transaction. Status and
    availability writes are conditional updates; a False return means
    the row was not in the expected state when the write ran.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import datetime
import logging
from sqlalchemy import update as update_rows, func
from sqlalchemy.exc import IntegrityError
from circulation.core.models import (
    Book, User, BorrowRequest, Loan,
    RequestStatus, LoanStatus, UserStatus
)
from circulation.core.exceptions import (
    BookNotFoundError,
    UserNotFoundError,
    RequestNotFoundError,
    LoanNotFoundError,
    DuplicateRequestError,
    InvalidStateError,
)

logger = logging.getLogger(__name__)


class Ledger:

    def __init__(self, session):
        self.session = session

    def _conditional_update(self, model, where, values):
        self.session.flush()
        result = self.session.execute(
            update_rows(model).where(*where).values(**values)
            .execution_options(synchronize_session=False)
        )
        # loaded rows of this model may now be stale
        for obj in list(self.session.identity_map.values()):
            if isinstance(obj, model):
                self.session.expire(obj)
        return result.rowcount == 1


class CatalogStore(Ledger):

    def get_book(self, book_id, for_update=False):
        query = self.session.query(Book).filter(Book.book_id == book_id)
        if for_update:
            query = query.with_for_update()
        if book := query.first():
            return book
        raise BookNotFoundError(f"Book {book_id} not found.", book_id=book_id)

    def find_by_isbn(self, isbn):
        return self.session.query(Book).filter(Book.isbn == isbn).first()

    def list_books(self, offset=None, limit=None):
        return Book.get_many(self.session, offset=offset, limit=limit)

    def add_book(self, isbn, title, total_copies=1, **attrs):
        if total_copies < 0:
            raise InvalidStateError("Total copies cannot be negative.",
                                    isbn=isbn, total_copies=total_copies)
        book = Book(isbn=isbn, title=title, total_copies=total_copies,
                    available_copies=total_copies, **attrs)
        self.session.add(book)
        self.session.flush()
        return book

    def adjust_availability(self, book_id, delta):
        """Moves available_copies by `delta` inside its bounds.

        Returns False, changing nothing, if the result would leave
        0 <= available_copies <= total_copies.
        """
        where = [Book.book_id == book_id]
        if delta < 0:
            where.append(Book.available_copies + delta >= 0)
        else:
            where.append(Book.available_copies + delta <= Book.total_copies)
        return self._conditional_update(
            Book, where, {"available_copies": Book.available_copies + delta})

    def set_stock(self, book_id, total, available, expected_available=None):
        if total < 0 or not 0 <= available <= total:
            raise InvalidStateError(
                "Stock would break 0 <= available <= total.",
                book_id=book_id, total_copies=total, available_copies=available)
        where = [Book.book_id == book_id]
        if expected_available is not None:
            where.append(Book.available_copies == expected_available)
        return self._conditional_update(
            Book, where,
            {"total_copies": total, "available_copies": available})

    def delete(self, book):
        self.session.delete(book)
        self.session.flush()


class Directory(Ledger):

    def get_user(self, user_id):
        if user := self.session.get(User, user_id):
            return user
        raise UserNotFoundError(f"User {user_id} not found.", user_id=user_id)

    def has_permission(self, user_id, capability):
        user = self.session.get(User, user_id)
        return bool(user and user.is_active and user.can(capability))

    def add_user(self, username, **attrs):
        user = User(username=username, **attrs)
        self.session.add(user)
        self.session.flush()
        return user

    def set_status(self, user_id, status: UserStatus):
        return self._conditional_update(
            User, [User.user_id == user_id], {"status": status})


class RequestLedger(Ledger):

    def insert(self, request):
        self.session.add(request)
        try:
            self.session.flush()
        except IntegrityError as e:
            if "unique" not in str(e.orig).lower() and "duplicate" not in str(e.orig).lower():
                raise
            raise DuplicateRequestError(
                "A pending request already exists for this member and book.",
                member_id=request.member_id, book_id=request.book_id) from e
        return request

    def find(self, request_id):
        if request := self.session.get(BorrowRequest, request_id):
            return request
        raise RequestNotFoundError(
            f"Request {request_id} not found.", request_id=request_id)

    def find_pending_by_member_and_book(self, member_id, book_id):
        return self.session.query(BorrowRequest).filter(
            BorrowRequest.member_id == member_id,
            BorrowRequest.book_id == book_id,
            BorrowRequest.status == RequestStatus.PENDING,
        ).first()

    def update(self, request_id, expected: RequestStatus, **values):
        return self._conditional_update(
            BorrowRequest,
            [BorrowRequest.request_id == request_id,
             BorrowRequest.status == expected],
            values)

    def list_pending(self):
        return self.session.query(BorrowRequest).filter(
            BorrowRequest.status == RequestStatus.PENDING
        ).order_by(BorrowRequest.request_date.desc()).all()

    def list_by_member(self, member_id):
        return self.session.query(BorrowRequest).filter(
            BorrowRequest.member_id == member_id
        ).order_by(BorrowRequest.request_date.desc()).all()

    def count_pending(self):
        return self.session.query(BorrowRequest).filter(
            BorrowRequest.status == RequestStatus.PENDING).count()


class LoanLedger(Ledger):

    def insert(self, loan):
        self.session.add(loan)
        self.session.flush()
        return loan

    def find(self, borrow_id):
        if loan := self.session.get(Loan, borrow_id):
            return loan
        raise LoanNotFoundError(f"Loan {borrow_id} not found.", borrow_id=borrow_id)

    def update(self, borrow_id, expected: LoanStatus, *conditions, **values):
        return self._conditional_update(
            Loan,
            [Loan.borrow_id == borrow_id, Loan.status == expected, *conditions],
            values)

    def find_by_member(self, member_id):
        return self.session.query(Loan).filter(
            Loan.member_id == member_id
        ).order_by(Loan.issue_date.desc()).all()

    def find_active_by_member(self, member_id):
        return self.session.query(Loan).filter(
            Loan.member_id == member_id,
            Loan.status == LoanStatus.ISSUED,
        ).order_by(Loan.due_date).all()

    def find_overdue(self, as_of: datetime.date):
        return self.session.query(Loan).filter(
            Loan.status == LoanStatus.ISSUED,
            Loan.due_date < as_of,
        ).order_by(Loan.due_date).all()

    def count_issued_for_book(self, book_id):
        return self.session.query(Loan).filter(
            Loan.book_id == book_id,
            Loan.status == LoanStatus.ISSUED).count()

    def count_active_by_member(self, member_id):
        return self.session.query(Loan).filter(
            Loan.member_id == member_id,
            Loan.status == LoanStatus.ISSUED).count()

    def count_overdue(self, as_of: datetime.date, member_id=None):
        query = self.session.query(Loan).filter(
            Loan.status == LoanStatus.ISSUED, Loan.due_date < as_of)
        if member_id is not None:
            query = query.filter(Loan.member_id == member_id)
        return query.count()

    def count_issued_between(self, start: datetime.datetime, end: datetime.datetime):
        return self.session.query(func.count(Loan.borrow_id)).filter(
            Loan.issue_date >= start, Loan.issue_date < end).scalar()

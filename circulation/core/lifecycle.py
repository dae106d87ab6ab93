#!/usr/bin/env python

"""
    The borrowing lifecycle engine for Circulation.

    LifecycleEngine is the only writer of Book.available_copies,
    BorrowRequest.status and Loan.status. Every write path runs inside a
    single transaction: request status, loan row and availability count
    commit together or not at all. Availability is never cached; each
    decision re-reads the row inside its own transaction and the
    decrement itself is conditional on a copy still being free.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import datetime
import logging
from contextlib import contextmanager
from decimal import Decimal
from circulation.configs import DEFAULT_LOAN_DAYS, LATE_FEE_PER_DAY
from circulation.core import db, fines, reports
from circulation.core.events import (
    Event, EventBus,
    REQUEST_SUBMITTED, REQUEST_APPROVED, REQUEST_REJECTED, REQUEST_CANCELLED,
    LOAN_ISSUED, LOAN_RENEWED, LOAN_RETURNED,
)
from circulation.core.ledgers import CatalogStore, Directory, RequestLedger, LoanLedger
from circulation.core.models import (
    BorrowRequest, Loan, Capability, RequestStatus, LoanStatus,
    UserStatus, BookCondition, Role
)
from circulation.core.exceptions import (
    InvalidStateError,
    AlreadyReturnedError,
    BookUnavailableError,
    MemberNotActiveError,
    DuplicateRequestError,
    RenewalNotAllowedError,
    PermissionDeniedError,
    PersistenceConflictError,
)

logger = logging.getLogger(__name__)


class UnitOfWork:
    """The four ledgers bound to one session."""

    def __init__(self, session):
        self.session = session
        self.catalog = CatalogStore(session)
        self.directory = Directory(session)
        self.requests = RequestLedger(session)
        self.loans = LoanLedger(session)
        self.events = []

    def emit(self, name, **payload):
        self.events.append(Event(name=name, payload=payload))

    def refresh(self, *objs):
        for obj in objs:
            self.session.refresh(obj)


class LifecycleEngine:

    def __init__(self, session_factory=None, events=None, clock=None,
                 late_fee_per_day=LATE_FEE_PER_DAY):
        self.session_factory = session_factory or db.SessionLocal
        self.events = events or EventBus()
        self.clock = clock or datetime.datetime.now
        self.late_fee_per_day = fines.to_money(late_fee_per_day)

    @contextmanager
    def unit_of_work(self):
        """Yields ledgers sharing one transaction; events go out after commit."""
        with db.transaction(self.session_factory) as session:
            uow = UnitOfWork(session)
            yield uow
        for event in uow.events:
            self.events.publish(event)

    # ---- guards

    @staticmethod
    def _require_active_member(uow, member_id):
        member = uow.directory.get_user(member_id)
        if not member.is_active:
            raise MemberNotActiveError(
                f"Member {member_id} is not active.",
                member_id=member_id, status=member.status.value)
        return member

    @staticmethod
    def _require_staff(uow, user_id, capability):
        staff = uow.directory.get_user(user_id)
        if not uow.directory.has_permission(user_id, capability):
            raise PermissionDeniedError(
                f"User {user_id} may not {capability.value.replace('_', ' ')}.",
                user_id=user_id, role=staff.role.value,
                status=staff.status.value, capability=capability.value)
        return staff

    def _evaluated(self, loan, as_of=None):
        loan.evaluated_on = fines.as_date(as_of or self.clock())
        return loan

    def _evaluated_all(self, loans):
        as_of = self.clock()
        return [self._evaluated(loan, as_of) for loan in loans]

    # ---- requests

    def submit_request(self, member_id, book_id, notes=None):
        now = self.clock()
        with self.unit_of_work() as uow:
            self._require_active_member(uow, member_id)
            uow.catalog.get_book(book_id)
            if existing := uow.requests.find_pending_by_member_and_book(member_id, book_id):
                raise DuplicateRequestError(
                    "A pending request already exists for this member and book.",
                    member_id=member_id, book_id=book_id,
                    request_id=existing.request_id)
            request = uow.requests.insert(BorrowRequest(
                member_id=member_id, book_id=book_id, request_date=now,
                status=RequestStatus.PENDING, notes=notes))
            uow.emit(REQUEST_SUBMITTED, request_id=request.request_id,
                     member_id=member_id, book_id=book_id)
        logger.info(f"Request {request.request_id} submitted: member={member_id} book={book_id}")
        return request

    def cancel_request(self, request_id, member_id):
        with self.unit_of_work() as uow:
            request = uow.requests.find(request_id)
            if request.member_id != member_id:
                raise InvalidStateError(
                    "Only the requesting member may cancel a request.",
                    request_id=request_id, member_id=member_id,
                    requested_by=request.member_id)
            self._leave_pending(uow, request, RequestStatus.CANCELLED)
            uow.refresh(request)
            uow.emit(REQUEST_CANCELLED, request_id=request_id,
                     member_id=request.member_id, book_id=request.book_id)
        logger.info(f"Request {request_id} cancelled by member {member_id}")
        return request

    def reject_request(self, request_id, reason, librarian_id=None):
        with self.unit_of_work() as uow:
            if librarian_id is not None:
                self._require_staff(uow, librarian_id, Capability.APPROVE_REQUESTS)
            request = uow.requests.find(request_id)
            self._leave_pending(uow, request, RequestStatus.REJECTED, notes=reason)
            uow.refresh(request)
            uow.emit(REQUEST_REJECTED, request_id=request_id,
                     member_id=request.member_id, book_id=request.book_id,
                     reason=reason)
        logger.info(f"Request {request_id} rejected: {reason}")
        return request

    def _leave_pending(self, uow, request, target, **values):
        if not request.is_pending:
            raise InvalidStateError(
                f"Request {request.request_id} is {request.status.value}, not PENDING.",
                request_id=request.request_id, status=request.status.value,
                attempted=target.value)
        if not uow.requests.update(request.request_id, RequestStatus.PENDING,
                                       status=target, **values):
            raise InvalidStateError(
                f"Request {request.request_id} changed state concurrently.",
                request_id=request.request_id, attempted=target.value)

    def approve_request(self, request_id, librarian_id, duration_days=DEFAULT_LOAN_DAYS,
                        notes=None, allow_renewal=True):
        """Approves a pending request and issues the copy in one transaction.

        Raises BookUnavailableError, with nothing committed, when no copy
        is free at the moment of approval.
        """
        fines.validate_duration(duration_days)
        now = self.clock()
        with self.unit_of_work() as uow:
            request = uow.requests.find(request_id)
            if not request.is_pending:
                raise InvalidStateError(
                    f"Request {request_id} is {request.status.value}, not PENDING.",
                    request_id=request_id, status=request.status.value,
                    attempted=RequestStatus.APPROVED.value)
            member_id, book_id = request.member_id, request.book_id
            self._require_staff(uow, librarian_id, Capability.APPROVE_REQUESTS)
            self._require_active_member(uow, member_id)
            if not uow.requests.update(
                    request_id, RequestStatus.PENDING,
                    status=RequestStatus.APPROVED, approved_by=librarian_id,
                    approved_date=now, borrow_duration_days=duration_days,
                    notes=notes if notes is not None else request.notes):
                raise InvalidStateError(
                    f"Request {request_id} changed state concurrently.",
                    request_id=request_id, attempted=RequestStatus.APPROVED.value)
            loan = self._issue(uow, request_id, member_id, book_id, librarian_id,
                               duration_days, notes, allow_renewal, now)
            uow.emit(REQUEST_APPROVED, request_id=request_id, member_id=member_id,
                     book_id=book_id, approved_by=librarian_id)
        logger.info(f"Request {request_id} approved by {librarian_id}; loan {loan.borrow_id} due {loan.due_date}")
        return loan

    # ---- loans

    def issue_directly(self, member_id, book_id, librarian_id,
                       duration_days=DEFAULT_LOAN_DAYS, notes=None, allow_renewal=True):
        """In-person issue: records an APPROVED request and its loan together."""
        fines.validate_duration(duration_days)
        now = self.clock()
        with self.unit_of_work() as uow:
            self._require_staff(uow, librarian_id, Capability.ISSUE_RETURNS)
            self._require_active_member(uow, member_id)
            uow.catalog.get_book(book_id)
            request = uow.requests.insert(BorrowRequest(
                member_id=member_id, book_id=book_id, request_date=now,
                status=RequestStatus.APPROVED, approved_by=librarian_id,
                approved_date=now, borrow_duration_days=duration_days,
                notes=notes))
            loan = self._issue(uow, request.request_id, member_id, book_id,
                               librarian_id, duration_days, notes, allow_renewal, now)
        logger.info(f"Loan {loan.borrow_id} issued directly by {librarian_id}: member={member_id} book={book_id}")
        return loan

    def _issue(self, uow, request_id, member_id, book_id, librarian_id,
               duration_days, notes, allow_renewal, now):
        book = uow.catalog.get_book(book_id, for_update=True)
        title = book.title
        if not uow.catalog.adjust_availability(book_id, -1):
            logger.warning(f"Issue refused, no copies of book {book_id} free")
            raise BookUnavailableError(
                f"No copies of '{title}' are available.",
                book_id=book_id, request_id=request_id, available_copies=0)
        loan = uow.loans.insert(Loan(
            request_id=request_id, member_id=member_id, book_id=book_id,
            issued_by=librarian_id, issue_date=now,
            due_date=fines.due_date_for(now, duration_days),
            status=LoanStatus.ISSUED, allow_renewal=allow_renewal,
            renewal_count=0, fine_amount=Decimal("0.00"), notes=notes))
        uow.emit(LOAN_ISSUED, borrow_id=loan.borrow_id, request_id=request_id,
                 member_id=member_id, book_id=book_id, due_date=loan.due_date)
        return self._evaluated(loan, now)

    def return_loan(self, borrow_id, returned_to, condition=BookCondition.GOOD,
                    damage_fee=None, notes=None):
        """Closes an issued loan, charging late and damage fees, and frees the copy.

        Damaged or lost copies default to a damage fee of the book's price.
        """
        condition = BookCondition(condition)
        now = self.clock()
        with self.unit_of_work() as uow:
            loan = uow.loans.find(borrow_id)
            if not loan.is_issued:
                raise AlreadyReturnedError(
                    f"Loan {borrow_id} was already returned.",
                    borrow_id=borrow_id, status=loan.status.value,
                    return_date=loan.return_date)
            self._require_staff(uow, returned_to, Capability.ISSUE_RETURNS)
            book_id, due_date = loan.book_id, loan.due_date
            book = uow.catalog.get_book(book_id, for_update=True)
            if damage_fee is None:
                damaged = condition in (BookCondition.DAMAGED, BookCondition.LOST)
                damage_fee = book.price if damaged and book.price is not None else 0
            damage_fee = fines.to_money(damage_fee)
            if damage_fee < 0:
                raise InvalidStateError("Damage fee cannot be negative.",
                                        borrow_id=borrow_id, damage_fee=damage_fee)
            late_fee = fines.compute_late_fee(due_date, now, self.late_fee_per_day)
            values = dict(status=LoanStatus.RETURNED, return_date=now,
                          returned_to=returned_to, fine_amount=late_fee + damage_fee,
                          return_condition=condition)
            if notes is not None:
                values["notes"] = notes
            if not uow.loans.update(borrow_id, LoanStatus.ISSUED, **values):
                raise AlreadyReturnedError(
                    f"Loan {borrow_id} was returned concurrently.", borrow_id=borrow_id)
            if not uow.catalog.adjust_availability(book_id, +1):
                raise PersistenceConflictError(
                    f"Book {book_id} already has every copy on the shelf.",
                    book_id=book_id, borrow_id=borrow_id)
            uow.refresh(loan)
            uow.emit(LOAN_RETURNED, borrow_id=borrow_id, member_id=loan.member_id,
                     book_id=book_id, fine_amount=loan.fine_amount,
                     condition=condition.value)
        logger.info(f"Loan {borrow_id} returned to {returned_to}; fine {loan.fine_amount}")
        return self._evaluated(loan, now)

    def renew_loan(self, borrow_id, extra_days):
        fines.validate_duration(extra_days)
        with self.unit_of_work() as uow:
            loan = uow.loans.find(borrow_id)
            if not loan.is_issued:
                raise AlreadyReturnedError(
                    f"Loan {borrow_id} is {loan.status.value}; only issued loans renew.",
                    borrow_id=borrow_id, status=loan.status.value)
            if not loan.allow_renewal:
                raise RenewalNotAllowedError(
                    f"Loan {borrow_id} does not allow renewal.",
                    borrow_id=borrow_id, renewal_count=loan.renewal_count)
            observed = loan.renewal_count
            new_due = loan.due_date + datetime.timedelta(days=extra_days)
            if not uow.loans.update(
                    borrow_id, LoanStatus.ISSUED,
                    Loan.renewal_count == observed, Loan.allow_renewal.is_(True),
                    due_date=new_due, renewal_count=observed + 1):
                raise PersistenceConflictError(
                    f"Loan {borrow_id} changed while renewing.", borrow_id=borrow_id)
            uow.refresh(loan)
            uow.emit(LOAN_RENEWED, borrow_id=borrow_id, member_id=loan.member_id,
                     due_date=loan.due_date, renewal_count=loan.renewal_count)
        logger.info(f"Loan {borrow_id} renewed to {loan.due_date}")
        return self._evaluated(loan)

    # ---- inventory and membership

    def add_book(self, isbn, title, total_copies=1, **attrs):
        with self.unit_of_work() as uow:
            if uow.catalog.find_by_isbn(isbn):
                raise InvalidStateError(f"ISBN {isbn} already exists.", isbn=isbn)
            book = uow.catalog.add_book(isbn, title, total_copies, **attrs)
        return book

    def update_stock(self, book_id, total_copies):
        """Sets total copies; available becomes total minus copies on loan."""
        with self.unit_of_work() as uow:
            book = uow.catalog.get_book(book_id, for_update=True)
            observed = book.available_copies
            on_loan = uow.loans.count_issued_for_book(book_id)
            if book.total_copies - observed != on_loan:
                logger.warning(f"Book {book_id} count drift: {book.total_copies - observed} out, {on_loan} issued loans")
            available = total_copies - on_loan
            if available < 0:
                raise InvalidStateError(
                    f"Cannot reduce to {total_copies}; {on_loan} copies are on loan.",
                    book_id=book_id, total_copies=total_copies, on_loan=on_loan)
            if not uow.catalog.set_stock(book_id, total_copies, available,
                                         expected_available=observed):
                raise PersistenceConflictError(
                    f"Book {book_id} changed while updating stock.", book_id=book_id)
            uow.refresh(book)
        logger.info(f"Book {book_id} stock set to {total_copies} ({available} available)")
        return book

    def delete_book(self, book_id):
        with self.unit_of_work() as uow:
            book = uow.catalog.get_book(book_id, for_update=True)
            if on_loan := uow.loans.count_issued_for_book(book_id):
                raise InvalidStateError(
                    f"Book {book_id} has {on_loan} copies on loan.",
                    book_id=book_id, on_loan=on_loan)
            if uow.session.query(BorrowRequest).filter(
                    BorrowRequest.book_id == book_id).first():
                raise InvalidStateError(
                    f"Book {book_id} has circulation history and cannot be deleted.",
                    book_id=book_id)
            uow.catalog.delete(book)
        logger.info(f"Book {book_id} deleted")

    def add_user(self, username, role=Role.MEMBER, status=UserStatus.ACTIVE, **attrs):
        with self.unit_of_work() as uow:
            user = uow.directory.add_user(username, role=role, status=status, **attrs)
        return user

    def deactivate_member(self, user_id, acting_user_id):
        with self.unit_of_work() as uow:
            self._require_staff(uow, acting_user_id, Capability.REVOKE_MEMBERSHIP)
            user = uow.directory.get_user(user_id)
            if active := uow.loans.count_active_by_member(user_id):
                raise InvalidStateError(
                    f"User {user_id} still holds {active} issued loans.",
                    user_id=user_id, active_loans=active)
            uow.directory.set_status(user_id, UserStatus.INACTIVE)
            uow.refresh(user)
        logger.info(f"User {user_id} deactivated by {acting_user_id}")
        return user

    # ---- read-only projections

    def get_book(self, book_id):
        with self.unit_of_work() as uow:
            return uow.catalog.get_book(book_id)

    def list_books(self, offset=None, limit=None):
        with self.unit_of_work() as uow:
            return uow.catalog.list_books(offset=offset, limit=limit)

    def get_request(self, request_id):
        with self.unit_of_work() as uow:
            return uow.requests.find(request_id)

    def get_loan(self, borrow_id):
        with self.unit_of_work() as uow:
            return self._evaluated(uow.loans.find(borrow_id))

    def list_pending_requests(self):
        with self.unit_of_work() as uow:
            return uow.requests.list_pending()

    def list_member_requests(self, member_id):
        with self.unit_of_work() as uow:
            return uow.requests.list_by_member(member_id)

    def list_member_loans(self, member_id, active_only=False):
        with self.unit_of_work() as uow:
            if active_only:
                return self._evaluated_all(uow.loans.find_active_by_member(member_id))
            return self._evaluated_all(uow.loans.find_by_member(member_id))

    def list_overdue(self, as_of=None):
        as_of = fines.as_date(as_of or self.clock())
        with self.unit_of_work() as uow:
            return [self._evaluated(loan, as_of) for loan in uow.loans.find_overdue(as_of)
                    if fines.is_overdue(loan, as_of)]

    def statistics(self, as_of=None):
        with self.unit_of_work() as uow:
            return reports.dashboard(uow, as_of or self.clock())

    def member_summary(self, member_id, as_of=None):
        with self.unit_of_work() as uow:
            uow.directory.get_user(member_id)
            return reports.member_summary(uow, member_id, as_of or self.clock(),
                                          self.late_fee_per_day)

    def compute_late_fee(self, due_date, as_of, per_day_rate=None):
        rate = self.late_fee_per_day if per_day_rate is None else per_day_rate
        return fines.compute_late_fee(due_date, as_of, rate)

    is_overdue = staticmethod(fines.is_overdue)

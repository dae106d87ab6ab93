#!/usr/bin/env python

"""
    Circulation Models,
    including the books, users, borrow requests and loans tables.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from sqlalchemy import (
    Column, String, Boolean, Integer, Date, DateTime, Numeric, Text,
    ForeignKey, CheckConstraint, Index, Enum as SQLAlchemyEnum, text
)
from sqlalchemy.sql import func
from sqlalchemy.ext.hybrid import hybrid_property
from decimal import Decimal
from circulation.core.db import Base
from circulation.core import fines
from circulation.configs import LOW_STOCK_COPIES, LOW_STOCK_PERCENT
import enum
import datetime


class Role(enum.Enum):
    MEMBER = "MEMBER"
    LIBRARIAN = "LIBRARIAN"
    ADMIN = "ADMIN"

class UserStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"

class Capability(enum.Enum):
    APPROVE_REQUESTS = "approve_requests"
    ISSUE_RETURNS = "issue_returns"
    REVOKE_MEMBERSHIP = "revoke_membership"

class RequestStatus(enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

class LoanStatus(enum.Enum):
    ISSUED = "ISSUED"
    RETURNED = "RETURNED"
    # Never stored; see Loan.display_status
    OVERDUE = "OVERDUE"

class BookCondition(enum.Enum):
    GOOD = "GOOD"
    DAMAGED = "DAMAGED"
    LOST = "LOST"


class Book(Base):
    __tablename__ = 'books'
    __table_args__ = (
        CheckConstraint('total_copies >= 0', name='ck_books_total_nonneg'),
        CheckConstraint('available_copies >= 0', name='ck_books_available_nonneg'),
        CheckConstraint('available_copies <= total_copies', name='ck_books_available_le_total'),
    )

    book_id = Column(Integer, primary_key=True, autoincrement=True)
    isbn = Column(String(20), unique=True, nullable=False)
    title = Column(String(255), nullable=False)
    author = Column(String(255))
    category = Column(String(100))
    publisher = Column(String(255))
    total_copies = Column(Integer, nullable=False, default=0)
    available_copies = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2))
    shelf_location = Column(String(50))
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    @hybrid_property
    def borrowed_copies(self):
        """Copies currently out on loan."""
        return self.total_copies - self.available_copies

    @hybrid_property
    def is_available(self):
        return self.available_copies > 0

    @property
    def availability_percentage(self):
        if not self.total_copies:
            return 0.0
        return self.available_copies * 100.0 / self.total_copies

    @property
    def is_low_stock(self):
        """Dashboard hint only, not an inventory rule."""
        return (self.available_copies < LOW_STOCK_COPIES
                or self.availability_percentage < LOW_STOCK_PERCENT)


class User(Base):
    __tablename__ = 'users'

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False)
    full_name = Column(String(255))
    email = Column(String(255))
    role = Column(SQLAlchemyEnum(Role), nullable=False, default=Role.MEMBER)
    status = Column(SQLAlchemyEnum(UserStatus), nullable=False, default=UserStatus.PENDING)
    can_approve_requests = Column(Boolean, nullable=False, default=False)
    can_issue_returns = Column(Boolean, nullable=False, default=False)
    can_revoke_membership = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=func.now())

    @property
    def is_active(self):
        return self.status == UserStatus.ACTIVE

    def can(self, capability):
        """Admins hold every capability; librarians hold their flagged ones."""
        if self.role == Role.ADMIN:
            return True
        if self.role != Role.LIBRARIAN:
            return False
        return bool(getattr(self, f"can_{Capability(capability).value}"))


class BorrowRequest(Base):
    __tablename__ = 'borrow_requests'
    __table_args__ = (
        Index(
            'uq_borrow_requests_pending_pair', 'member_id', 'book_id',
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
    )

    request_id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Integer, ForeignKey('users.user_id'), nullable=False)
    book_id = Column(Integer, ForeignKey('books.book_id'), nullable=False)
    request_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(SQLAlchemyEnum(RequestStatus), nullable=False, default=RequestStatus.PENDING)
    approved_by = Column(Integer, ForeignKey('users.user_id'), nullable=True)
    approved_date = Column(DateTime(timezone=True), nullable=True)
    borrow_duration_days = Column(Integer, nullable=True)
    notes = Column(Text)

    @property
    def is_pending(self):
        return self.status == RequestStatus.PENDING


class Loan(Base):
    __tablename__ = 'loans'

    borrow_id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(Integer, ForeignKey('borrow_requests.request_id'), nullable=False)
    member_id = Column(Integer, ForeignKey('users.user_id'), nullable=False)
    book_id = Column(Integer, ForeignKey('books.book_id'), nullable=False)
    issued_by = Column(Integer, ForeignKey('users.user_id'), nullable=False)
    issue_date = Column(DateTime(timezone=True), nullable=False)
    due_date = Column(Date, nullable=False)
    return_date = Column(DateTime(timezone=True), nullable=True)
    returned_to = Column(Integer, ForeignKey('users.user_id'), nullable=True)
    status = Column(SQLAlchemyEnum(LoanStatus), nullable=False, default=LoanStatus.ISSUED)
    allow_renewal = Column(Boolean, nullable=False, default=True)
    renewal_count = Column(Integer, nullable=False, default=0)
    fine_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    return_condition = Column(SQLAlchemyEnum(BookCondition), nullable=True)
    notes = Column(Text)

    # Not persisted; set by the engine to its clock's date on the loans it returns.
    evaluated_on = None

    @property
    def is_issued(self):
        return self.status == LoanStatus.ISSUED

    def is_overdue(self, as_of=None):
        return fines.is_overdue(
            self, as_of or self.evaluated_on or datetime.date.today())

    def status_as_of(self, as_of):
        return LoanStatus.OVERDUE if self.is_overdue(as_of) else self.status

    @property
    def display_status(self):
        """ISSUED loans past their due date read as OVERDUE."""
        return self.status_as_of(self.evaluated_on)

import os

# Must be set before circulation.configs is first imported
os.environ.setdefault("TESTING", "true")

import datetime
import pytest
from decimal import Decimal
from sqlalchemy import func
from circulation.core import db
from circulation.core.lifecycle import LifecycleEngine
from circulation.core.events import EventBus
from circulation.core.models import Book, Loan, LoanStatus, Role


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, days=0, **kwargs):
        self.now += datetime.timedelta(days=days, **kwargs)


@pytest.fixture
def engine_db():
    engine = db.make_engine("sqlite://", echo=False)
    db.init(engine)
    yield engine
    db.Base.metadata.drop_all(engine)
    engine.dispose()

@pytest.fixture
def session_factory(engine_db):
    return db.make_session_factory(engine_db)

@pytest.fixture
def clock():
    return FakeClock(datetime.datetime(2024, 1, 1, 10, 0))

@pytest.fixture
def bus():
    return EventBus()

@pytest.fixture
def lifecycle(session_factory, clock, bus):
    return LifecycleEngine(session_factory=session_factory, events=bus, clock=clock)

@pytest.fixture
def librarian(lifecycle):
    return lifecycle.add_user(
        "librarian", role=Role.LIBRARIAN,
        can_approve_requests=True, can_issue_returns=True)

@pytest.fixture
def admin(lifecycle):
    return lifecycle.add_user("admin", role=Role.ADMIN)

@pytest.fixture
def member(lifecycle):
    return lifecycle.add_user("alice", full_name="Alice Reader")

@pytest.fixture
def book(lifecycle):
    return lifecycle.add_book("9780441172719", "Dune", total_copies=2,
                              author="Frank Herbert", price=Decimal("9.99"))

@pytest.fixture
def check_inventory(session_factory):
    """Asserts available == total - issued loans, within bounds, for every book."""
    def check():
        session = session_factory()
        try:
            for b in session.query(Book).all():
                issued = session.query(func.count(Loan.borrow_id)).filter(
                    Loan.book_id == b.book_id, Loan.status == LoanStatus.ISSUED).scalar()
                assert 0 <= b.available_copies <= b.total_copies
                assert b.available_copies == b.total_copies - issued
        finally:
            session.close()
    return check

#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.test_db
    ~~~~~~~~~~~~~

    Unit of work boundaries: commit, rollback and how storage failures
    are reported to callers.

    :copyright: (c) 2025 by Authors.
    :license: see LICENSE for more details.
"""

import datetime
import pytest
from unittest import mock
from sqlalchemy.exc import IntegrityError, OperationalError
from circulation.core import db
from circulation.core.lifecycle import LifecycleEngine
from circulation.core.models import Loan
from circulation.core.exceptions import (
    BookUnavailableError,
    PersistenceConflictError,
    UnavailableError,
)


@pytest.fixture
def session():
    return mock.MagicMock()

def run(session):
    with db.transaction(lambda: session):
        pass


def test_commit_and_close(session):
    run(session)
    session.commit.assert_called_once()
    session.rollback.assert_not_called()
    session.close.assert_called_once()

def test_domain_error_rolls_back(session):
    with pytest.raises(BookUnavailableError):
        with db.transaction(lambda: session):
            raise BookUnavailableError("none left", book_id=1)
    session.rollback.assert_called_once()
    session.commit.assert_not_called()
    session.close.assert_called_once()

def test_integrity_error_is_conflict(session):
    session.commit.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
    with pytest.raises(PersistenceConflictError):
        run(session)
    session.rollback.assert_called_once()

def test_lock_timeout_is_conflict(session):
    session.commit.side_effect = OperationalError("UPDATE", {}, Exception("database is locked"))
    with pytest.raises(PersistenceConflictError):
        run(session)

def test_lost_connection_is_unavailable(session):
    session.commit.side_effect = OperationalError(
        "SELECT 1", {}, Exception("server closed the connection"),
        connection_invalidated=True)
    with pytest.raises(UnavailableError):
        run(session)
    session.close.assert_called_once()

def test_other_errors_propagate(session):
    with pytest.raises(KeyError):
        with db.transaction(lambda: session):
            raise KeyError("x")
    session.rollback.assert_called_once()

def test_sqlite_foreign_keys_enforced(session_factory):
    with pytest.raises(PersistenceConflictError):
        with db.transaction(session_factory) as s:
            s.add(Loan(request_id=1, member_id=1, book_id=1, issued_by=1,
                       issue_date=datetime.datetime(2024, 1, 1),
                       due_date=datetime.date(2024, 1, 15)))

def test_failed_connect_is_unavailable(session):
    session.connection.side_effect = OperationalError(
        "connect", {}, Exception("could not connect to server"))
    with pytest.raises(UnavailableError):
        run(session)
    session.commit.assert_not_called()
    session.close.assert_called_once()

def test_unreachable_database_file(tmp_path, clock):
    engine = db.make_engine(f"sqlite:///{tmp_path / 'missing' / 'nope.db'}", echo=False)
    lifecycle = LifecycleEngine(session_factory=db.make_session_factory(engine), clock=clock)
    try:
        with pytest.raises(UnavailableError):
            lifecycle.get_book(1)
    finally:
        engine.dispose()

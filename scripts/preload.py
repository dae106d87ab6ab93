"""
Preload README

Seeds a fresh database with a handful of staff, members and books so the
API can be exercised by hand:

1. Creates an admin, a librarian allowed to approve and issue, and two members
2. Adds a few books with several copies each
3. Files one pending request and issues one loan directly
"""

import argparse
import logging
from circulation.core import db
from circulation.core.lifecycle import LifecycleEngine
from circulation.core.models import Role, UserStatus

logger = logging.getLogger(__name__)

BOOKS = [
    ("9780441172719", "Dune", "Frank Herbert", "Science Fiction", 2),
    ("9780132350884", "Clean Code", "Robert C. Martin", "Software", 3),
    ("9780590353427", "Harry Potter and the Sorcerer's Stone", "J.K. Rowling", "Fantasy", 1),
]


def preload(engine: LifecycleEngine):
    admin = engine.add_user("admin", role=Role.ADMIN, full_name="Ava Admin")
    librarian = engine.add_user(
        "librarian", role=Role.LIBRARIAN, full_name="Bob Librarian",
        can_approve_requests=True, can_issue_returns=True)
    alice = engine.add_user("alice", full_name="Alice Reader")
    carol = engine.add_user("carol", full_name="Carol Pending", status=UserStatus.PENDING)

    books = [
        engine.add_book(isbn, title, total_copies=copies, author=author, category=category)
        for isbn, title, author, category, copies in BOOKS
    ]

    request = engine.submit_request(alice.user_id, books[0].book_id)
    loan = engine.issue_directly(alice.user_id, books[1].book_id, librarian.user_id)
    logger.info(f"Preloaded users {[u.username for u in (admin, librarian, alice, carol)]}, "
                f"{len(books)} books, request {request.request_id}, loan {loan.borrow_id}")


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Seed a Circulation database with demo data.")
    parser.add_argument("--verbose", action="store_true", help="Log at INFO level")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    db.init()
    preload(LifecycleEngine())

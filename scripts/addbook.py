#!/usr/bin/env python3
"""
Script to add a book, with its copies, to the Circulation catalog.
"""
import argparse
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from circulation.core import db
from circulation.core.lifecycle import LifecycleEngine
from circulation.core.exceptions import CirculationError


def main():
    parser = argparse.ArgumentParser(
        description="Add a book to the Circulation catalog"
    )
    parser.add_argument("--isbn", type=str, required=True, help="ISBN-10 or ISBN-13")
    parser.add_argument("--title", type=str, required=True, help="Book title")
    parser.add_argument("--author", type=str, default=None, help="Author name")
    parser.add_argument("--category", type=str, default=None, help="Catalog category")
    parser.add_argument("--copies", type=int, default=1, help="Number of copies (default 1)")
    parser.add_argument("--price", type=str, default=None, help="Replacement price, e.g. 12.50")
    parser.add_argument("--shelf", type=str, default=None, help="Shelf location")

    args = parser.parse_args()

    isbn = args.isbn.replace("-", "").strip()
    if not isbn.isdigit() and not (isbn[:-1].isdigit() and isbn[-1] in "Xx"):
        print(f"Error: Invalid ISBN format: {args.isbn}")
        sys.exit(1)

    price = None
    if args.price is not None:
        try:
            price = Decimal(args.price)
        except InvalidOperation:
            print(f"Error: Invalid price: {args.price}")
            sys.exit(1)

    db.init()
    try:
        book = LifecycleEngine().add_book(
            isbn, args.title, total_copies=args.copies, author=args.author,
            category=args.category, price=price, shelf_location=args.shelf)
    except CirculationError as e:
        print(f"✗ Could not add book: {e.message}")
        sys.exit(1)

    print(f"✓ Added book {book.book_id}: {book.title} ({book.total_copies} copies)")


if __name__ == "__main__":
    main()

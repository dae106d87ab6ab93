#!/usr/bin/env python
"""
    Book Schema for Circulation.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from pydantic import BaseModel
from typing import Optional
from decimal import Decimal

class Book(BaseModel):
    book_id: int
    isbn: str
    title: str
    author: Optional[str] = None
    category: Optional[str] = None
    total_copies: int
    available_copies: int
    borrowed_copies: int
    price: Optional[Decimal] = None
    shelf_location: Optional[str] = None
    is_low_stock: bool

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "book_id": 1,
                "isbn": "9780441172719",
                "title": "Dune",
                "author": "Frank Herbert",
                "category": "Science Fiction",
                "total_copies": 2,
                "available_copies": 1,
                "borrowed_copies": 1,
                "price": "9.99",
                "shelf_location": "SF-A3",
                "is_low_stock": True
            }
        }

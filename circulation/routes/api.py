#!/usr/bin/env python

"""
    API routes for Circulation: requests, loans, stock and reports.

    Acting users are passed explicitly in each request body; this
    router performs no authentication of its own.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import datetime
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from circulation.core import fines
from circulation.core.lifecycle import LifecycleEngine
from circulation.core.exceptions import (
    CirculationError,
    NotFoundError,
    PermissionDeniedError,
    InvalidDurationError,
    UnavailableError,
)
from circulation.routes.schemas import (
    SubmitRequest, ApproveRequest, RejectRequest, CancelRequest,
    IssueRequest, ReturnRequest, RenewRequest, StockRequest, DeactivateRequest,
)
from circulation.schemas.book import Book
from circulation.schemas.loan import Loan
from circulation.schemas.request import BorrowRequest
from circulation.schemas.user import User

router = APIRouter()
lifecycle = LifecycleEngine()


def get_engine() -> LifecycleEngine:
    return lifecycle


def http_error(e: CirculationError) -> HTTPException:
    if isinstance(e, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, PermissionDeniedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(e, InvalidDurationError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(e, UnavailableError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_409_CONFLICT
    return HTTPException(status_code=code, detail=e.to_dict())


@router.get("/books", response_model=List[Book])
async def list_books(offset: Optional[int] = None, limit: Optional[int] = None,
                     engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.list_books(offset=offset, limit=limit)
    except CirculationError as e:
        raise http_error(e)

@router.get("/books/{book_id}", response_model=Book)
async def get_book(book_id: int, engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.get_book(book_id)
    except CirculationError as e:
        raise http_error(e)

@router.put("/books/{book_id}/stock", response_model=Book)
async def update_stock(book_id: int, body: StockRequest,
                       engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.update_stock(book_id, body.total_copies)
    except CirculationError as e:
        raise http_error(e)

@router.delete("/books/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_book(book_id: int, engine: LifecycleEngine = Depends(get_engine)):
    try:
        engine.delete_book(book_id)
    except CirculationError as e:
        raise http_error(e)


@router.post("/requests", response_model=BorrowRequest, status_code=status.HTTP_201_CREATED)
async def submit_request(body: SubmitRequest, engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.submit_request(body.member_id, body.book_id, notes=body.notes)
    except CirculationError as e:
        raise http_error(e)

@router.get("/requests/pending", response_model=List[BorrowRequest])
async def pending_requests(engine: LifecycleEngine = Depends(get_engine)):
    return engine.list_pending_requests()

@router.post("/requests/{request_id}/approve", response_model=Loan)
async def approve_request(request_id: int, body: ApproveRequest,
                          engine: LifecycleEngine = Depends(get_engine)):
    """Approves a pending request and issues the copy, or fails with nothing changed."""
    try:
        return engine.approve_request(
            request_id, body.librarian_id, duration_days=body.duration_days,
            notes=body.notes, allow_renewal=body.allow_renewal)
    except CirculationError as e:
        raise http_error(e)

@router.post("/requests/{request_id}/reject", response_model=BorrowRequest)
async def reject_request(request_id: int, body: RejectRequest,
                         engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.reject_request(request_id, body.reason, librarian_id=body.librarian_id)
    except CirculationError as e:
        raise http_error(e)

@router.post("/requests/{request_id}/cancel", response_model=BorrowRequest)
async def cancel_request(request_id: int, body: CancelRequest,
                         engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.cancel_request(request_id, body.member_id)
    except CirculationError as e:
        raise http_error(e)


@router.post("/loans", response_model=Loan, status_code=status.HTTP_201_CREATED)
async def issue_loan(body: IssueRequest, engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.issue_directly(
            body.member_id, body.book_id, body.librarian_id,
            duration_days=body.duration_days, notes=body.notes,
            allow_renewal=body.allow_renewal)
    except CirculationError as e:
        raise http_error(e)

# Declared before /loans/{borrow_id} so "overdue" is not read as an id
@router.get("/loans/overdue", response_model=List[Loan])
async def overdue_loans(as_of: Optional[datetime.date] = None,
                        engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.list_overdue(as_of)
    except CirculationError as e:
        raise http_error(e)

@router.get("/loans/{borrow_id}", response_model=Loan)
async def get_loan(borrow_id: int, engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.get_loan(borrow_id)
    except CirculationError as e:
        raise http_error(e)

@router.post("/loans/{borrow_id}/return", response_model=Loan)
async def return_loan(borrow_id: int, body: ReturnRequest,
                      engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.return_loan(
            borrow_id, body.returned_to, condition=body.condition,
            damage_fee=body.damage_fee, notes=body.notes)
    except CirculationError as e:
        raise http_error(e)

@router.post("/loans/{borrow_id}/renew", response_model=Loan)
async def renew_loan(borrow_id: int, body: RenewRequest,
                     engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.renew_loan(borrow_id, body.extra_days)
    except CirculationError as e:
        raise http_error(e)


@router.get("/members/{member_id}/loans", response_model=List[Loan])
async def member_loans(member_id: int, active: bool = False,
                       engine: LifecycleEngine = Depends(get_engine)):
    return engine.list_member_loans(member_id, active_only=active)

@router.get("/members/{member_id}/summary")
async def member_summary(member_id: int, engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.member_summary(member_id)
    except CirculationError as e:
        raise http_error(e)

@router.post("/members/{member_id}/deactivate", response_model=User)
async def deactivate_member(member_id: int, body: DeactivateRequest,
                            engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.deactivate_member(member_id, body.acting_user_id)
    except CirculationError as e:
        raise http_error(e)


@router.get("/stats")
async def stats(engine: LifecycleEngine = Depends(get_engine)):
    try:
        return engine.statistics()
    except CirculationError as e:
        raise http_error(e)

@router.get("/fees/late")
async def late_fee(due_date: datetime.date, as_of: Optional[datetime.date] = None,
                   rate: Optional[Decimal] = Query(default=None, ge=0),
                   engine: LifecycleEngine = Depends(get_engine)):
    as_of = fines.as_date(as_of or engine.clock())
    return {
        "due_date": due_date,
        "as_of": as_of,
        "late_fee": engine.compute_late_fee(due_date, as_of, rate),
    }

from pydantic import BaseModel
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from circulation.core.models import LoanStatus, BookCondition

class Loan(BaseModel):
    borrow_id: int
    request_id: int
    member_id: int
    book_id: int
    issued_by: int
    issue_date: datetime
    due_date: date
    return_date: Optional[datetime] = None
    returned_to: Optional[int] = None
    status: LoanStatus
    display_status: LoanStatus
    allow_renewal: bool
    renewal_count: int
    fine_amount: Decimal
    return_condition: Optional[BookCondition] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True

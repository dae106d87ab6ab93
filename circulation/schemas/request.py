from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from circulation.core.models import RequestStatus

class BorrowRequest(BaseModel):
    request_id: int
    member_id: int
    book_id: int
    request_date: datetime
    status: RequestStatus
    approved_by: Optional[int] = None
    approved_date: Optional[datetime] = None
    borrow_duration_days: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True

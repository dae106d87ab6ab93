from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal
from circulation.configs import DEFAULT_LOAN_DAYS
from circulation.core.models import BookCondition

class SubmitRequest(BaseModel):
    member_id: int
    book_id: int
    notes: Optional[str] = None

class ApproveRequest(BaseModel):
    librarian_id: int
    duration_days: int = DEFAULT_LOAN_DAYS
    notes: Optional[str] = None
    allow_renewal: bool = True

class RejectRequest(BaseModel):
    reason: str
    librarian_id: Optional[int] = None

class CancelRequest(BaseModel):
    member_id: int

class IssueRequest(BaseModel):
    member_id: int
    book_id: int
    librarian_id: int
    duration_days: int = DEFAULT_LOAN_DAYS
    notes: Optional[str] = None
    allow_renewal: bool = True

class ReturnRequest(BaseModel):
    returned_to: int
    condition: BookCondition = BookCondition.GOOD
    damage_fee: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None

class RenewRequest(BaseModel):
    extra_days: int

class StockRequest(BaseModel):
    total_copies: int = Field(..., ge=0)

class DeactivateRequest(BaseModel):
    acting_user_id: int

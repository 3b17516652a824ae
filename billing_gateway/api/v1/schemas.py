"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class TotalsSchema(BaseModel):
    subtotal: Decimal
    discount_total: Decimal
    tax: Decimal
    shipping_fee: Decimal
    grand_total_excl_fee: Decimal
    grand_total: Decimal


class BalanceResponse(BaseModel):
    """Response for GET /v1/orders/{order_id}/balance"""

    order_id: int
    totals: TotalsSchema
    applied_total: Decimal
    balance: Decimal
    payable: bool


class TermSchema(BaseModel):
    """Single installment term in the equalized view"""

    term_no: int
    due_date: date
    amount_due: Decimal
    amount_paid: Decimal
    remaining: Decimal
    status: str
    catch_up: bool = False


class NextTermSchema(BaseModel):
    term_no: int
    due_date: date
    overdue: bool


class ScheduleResponse(BaseModel):
    """Response for GET /v1/orders/{order_id}/schedule"""

    order_id: int
    balance: Decimal
    catch_up: bool
    terms: List[TermSchema]
    scheduled_due: Decimal
    scheduled_paid: Decimal
    scheduled_remaining: Decimal
    next_unpaid: Optional[NextTermSchema] = None


class PaymentOptionsResponse(BaseModel):
    """Response for GET /v1/orders/{order_id}/payment-options"""

    order_id: int
    payable: bool
    mode: str
    balance: Decimal
    allowed_amounts: List[Decimal]
    max_multiplier: int
    pay_in_full: Decimal
    pay_in_half: Decimal
    catch_up: bool


class PaymentRequest(BaseModel):
    """Request body for POST /v1/orders/{order_id}/payments"""

    amount: Decimal = Field(..., description="Amount to pay, 2 decimal places")
    method: Literal["cash", "cheque"]
    cheque_number: Optional[str] = None
    bank_name: Optional[str] = None
    cheque_date: Optional[date] = None
    image_url: Optional[str] = Field(None, description="Reference to uploaded proof of payment")


class ReviewRequest(BaseModel):
    """Request body for confirm/reject"""

    reviewer: str = Field(..., min_length=1, description="Reviewer identity")


class PaymentResponse(BaseModel):
    payment_id: str
    order_id: int
    customer_id: int
    amount: Decimal
    method: str
    status: str
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class LedgerRowSchema(BaseModel):
    posted_at: datetime
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal
    remarks: str


class LedgerResponse(BaseModel):
    """Response for GET /v1/orders/{order_id}/ledger"""

    order_id: int
    rows: List[LedgerRowSchema]
    total_credits: Decimal
    current_balance: Decimal

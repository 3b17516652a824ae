"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from billing_gateway.domain.money import ZERO

# Payment status
PAYMENT_PENDING = "pending"
PAYMENT_RECEIVED = "received"
PAYMENT_REJECTED = "rejected"

# Payment method
METHOD_CASH = "cash"
METHOD_CHEQUE = "cheque"

# Customer payment mode
MODE_CASH = "cash"
MODE_CREDIT = "credit"

# Installment term status
TERM_PENDING = "pending"
TERM_PAID = "paid"


@dataclass(frozen=True)
class LineItem:
    """Single order line"""

    quantity: Decimal
    unit_price: Decimal
    discount_percent: Decimal = ZERO


@dataclass(frozen=True)
class Order:
    """Customer order as seen by the billing core"""

    order_id: int
    customer_id: int
    items: Tuple[LineItem, ...] = ()
    tax: Decimal = ZERO
    shipping_fee: Optional[Decimal] = None
    grand_total_override: Optional[Decimal] = None  # interest-bearing total, excludes shipping
    per_term_amount: Optional[Decimal] = None
    terms: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class OrderTotals:
    """Output of the order ledger"""

    subtotal: Decimal
    discount_total: Decimal
    tax: Decimal
    shipping_fee: Decimal
    grand_total_excl_fee: Decimal
    grand_total: Decimal


@dataclass(frozen=True)
class InstallmentTerm:
    """Stored (or synthesized) installment term"""

    term_no: int
    due_date: date
    amount_due: Decimal
    amount_paid: Decimal = ZERO
    status: str = TERM_PENDING
    virtual: bool = False  # True for a synthesized catch-up term


@dataclass(frozen=True)
class EqualizedTerm:
    """Installment term re-interpreted against the current balance"""

    term: InstallmentTerm
    remaining: Decimal

    @property
    def term_no(self) -> int:
        return self.term.term_no

    @property
    def amount_due(self) -> Decimal:
        return self.term.amount_due


@dataclass(frozen=True)
class EqualizedSchedule:
    """Derived installment view; never written back to storage"""

    balance: Decimal
    paid_terms: Tuple[InstallmentTerm, ...] = ()
    unpaid_terms: Tuple[EqualizedTerm, ...] = ()
    catch_up: bool = False

    @property
    def remaining_amounts(self) -> List[Decimal]:
        return [t.remaining for t in self.unpaid_terms]


@dataclass(frozen=True)
class Payment:
    """Payment attempt against an order"""

    payment_id: str
    order_id: int
    customer_id: int
    amount: Decimal
    method: str
    status: str = PAYMENT_PENDING
    created_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    attachment_ref: Optional[str] = None


@dataclass(frozen=True)
class Customer:
    """Customer with an optional explicit payment mode flag"""

    customer_id: int
    name: str
    payment_type: Optional[str] = None


@dataclass(frozen=True)
class AmountOptions:
    """What a payer may submit for one order"""

    payable: bool
    mode: str
    balance: Decimal
    prefix_sums: Tuple[Decimal, ...] = ()
    max_multiplier: int = 0
    catch_up: bool = False


@dataclass(frozen=True)
class ScheduleSummary:
    """Totals over the stored schedule rows"""

    due: Decimal
    paid: Decimal
    remaining: Decimal


@dataclass(frozen=True)
class NextTerm:
    term: InstallmentTerm
    overdue: bool


@dataclass(frozen=True)
class LedgerRow:
    """Single line of an order's running statement"""

    posted_at: datetime
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal
    remarks: str = ""


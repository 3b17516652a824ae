"""Outstanding balance of an order"""

from decimal import Decimal
from typing import Iterable

from billing_gateway.domain.models import Payment, PAYMENT_PENDING, PAYMENT_RECEIVED, METHOD_CASH
from billing_gateway.domain.money import ZERO, round2


def counts_as_applied(payment: Payment) -> bool:
    """
    Received payments always count. A pending cash payment counts too, so the
    payer cannot stack submissions while it awaits review; pending cheques do not.
    """
    status = (payment.status or "").lower()
    method = (payment.method or "").lower()
    return status == PAYMENT_RECEIVED or (status == PAYMENT_PENDING and method == METHOD_CASH)


def applied_total(payments: Iterable[Payment]) -> Decimal:
    return round2(sum((round2(p.amount) for p in payments if counts_as_applied(p)), ZERO))


def compute_balance(grand_total: Decimal, payments: Iterable[Payment]) -> Decimal:
    """balance = max(grand_total - applied, 0), rounded to the cent"""
    return max(round2(round2(grand_total) - applied_total(payments)), ZERO)

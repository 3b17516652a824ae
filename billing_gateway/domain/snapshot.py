"""Full billing pipeline for one order: ledger -> balance -> equalizer -> validator"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from billing_gateway.domain.balance import applied_total, compute_balance
from billing_gateway.domain.installments import equalize_schedule
from billing_gateway.domain.ledger import compute_order_totals
from billing_gateway.domain.models import (
    AmountOptions,
    Customer,
    EqualizedSchedule,
    InstallmentTerm,
    Order,
    OrderTotals,
    Payment,
)
from billing_gateway.domain.validation import build_amount_options, resolve_payment_mode


@dataclass(frozen=True)
class BillingSnapshot:
    totals: OrderTotals
    applied: Decimal
    balance: Decimal
    mode: str
    schedule: EqualizedSchedule
    options: AmountOptions
    # inputs the figures above were computed from
    terms: Tuple[InstallmentTerm, ...] = ()
    payments: Tuple[Payment, ...] = ()


def build_billing_snapshot(
    order: Order,
    shipping_fee: Decimal,
    payments: Iterable[Payment],
    terms: Iterable[InstallmentTerm],
    customer: Optional[Customer] = None,
    today: Optional[date] = None,
) -> BillingSnapshot:
    """
    Recompute everything from current inputs.

    Nothing is cached: a late shipping fee or a new payment changes the
    balance, and the schedule and allowed amounts follow from it.
    """
    payments = tuple(payments)
    terms = tuple(terms)
    totals = compute_order_totals(order, shipping_fee)
    balance = compute_balance(totals.grand_total, payments)
    mode = resolve_payment_mode(
        customer.payment_type if customer else None,
        order.per_term_amount,
        order.terms,
    )
    schedule = equalize_schedule(terms, balance, today=today)
    options = build_amount_options(schedule, balance, mode, totals.shipping_fee)

    return BillingSnapshot(
        totals=totals,
        applied=applied_total(payments),
        balance=balance,
        mode=mode,
        schedule=schedule,
        options=options,
        terms=terms,
        payments=payments,
    )

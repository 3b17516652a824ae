"""Order ledger - grand total derivation and running statement"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from billing_gateway.domain.models import (
    LineItem,
    LedgerRow,
    Order,
    OrderTotals,
    Payment,
    PAYMENT_RECEIVED,
)
from billing_gateway.domain.money import ZERO, round2, to_money

HUNDRED = Decimal("100")


def _clamp_non_negative(value: Decimal) -> Decimal:
    return value if value > 0 else ZERO


def _line_gross(item: LineItem) -> Decimal:
    quantity = _clamp_non_negative(Decimal(str(item.quantity or 0)))
    unit_price = _clamp_non_negative(Decimal(str(item.unit_price or 0)))
    return quantity * unit_price


def _line_discount(item: LineItem) -> Decimal:
    percent = min(_clamp_non_negative(Decimal(str(item.discount_percent or 0))), HUNDRED)
    return _line_gross(item) * percent / HUNDRED


def compute_order_totals(order: Order, shipping_fee: Optional[Decimal] = None) -> OrderTotals:
    """
    Derive an order's grand total.

    grand_total = max(subtotal - discount_total, 0) + tax + shipping_fee

    An explicit grand_total_override (interest-bearing orders) replaces the
    items/discount/tax part; shipping is still added on top. Negative
    quantities and prices count as zero rather than raising.

    Args:
        order: Order with its line items
        shipping_fee: Fee from the logistics record; falls back to order.shipping_fee
    """
    subtotal = round2(sum((_line_gross(it) for it in order.items), ZERO))
    discount_total = round2(sum((_line_discount(it) for it in order.items), ZERO))
    tax = _clamp_non_negative(to_money(order.tax))

    if order.grand_total_override is not None:
        grand_total_excl_fee = round2(order.grand_total_override)
    else:
        grand_total_excl_fee = round2(max(subtotal - discount_total, ZERO) + tax)

    fee = to_money(shipping_fee if shipping_fee is not None else order.shipping_fee)
    fee = _clamp_non_negative(fee)

    return OrderTotals(
        subtotal=subtotal,
        discount_total=discount_total,
        tax=tax,
        shipping_fee=fee,
        grand_total_excl_fee=grand_total_excl_fee,
        grand_total=round2(grand_total_excl_fee + fee),
    )


def _as_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def _payment_description(payment: Payment) -> str:
    method = (payment.method or "payment").capitalize()
    if payment.attachment_ref:
        return f"{method} Payment (Ref: {payment.attachment_ref})"
    return f"{method} Payment"


def build_ledger_statement(
    order: Order,
    grand_total: Decimal,
    payments: Iterable[Payment],
    order_label: str | None = None,
) -> List[LedgerRow]:
    """
    Build a running debit/credit statement for one order.

    One debit row for the grand total at order creation, one credit row per
    received payment, sorted by date with the running balance on each row.
    """
    opened_at = order.created_at or datetime.min
    label = order_label or f"Order #{order.order_id}"

    entries = [(opened_at, f"Order Charge ({label})", round2(grand_total), ZERO, "CHARGE")]
    for payment in payments:
        if payment.order_id != order.order_id or payment.status != PAYMENT_RECEIVED:
            continue
        entries.append(
            (
                payment.created_at or opened_at,
                _payment_description(payment),
                ZERO,
                round2(payment.amount),
                "RECEIVED",
            )
        )

    # Stable sort keeps the charge ahead of same-timestamp payments
    entries.sort(key=lambda e: _as_naive_utc(e[0]))

    rows = []
    running = ZERO
    for posted_at, description, debit, credit, remarks in entries:
        running = round2(running + debit - credit)
        rows.append(
            LedgerRow(
                posted_at=posted_at,
                description=description,
                debit=debit,
                credit=credit,
                balance=running,
                remarks=remarks,
            )
        )
    return rows

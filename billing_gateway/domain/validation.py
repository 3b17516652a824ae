"""Allowed payment amounts per order and the stepper controls that drive them"""

import re
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from billing_gateway.config import settings
from billing_gateway.domain.exceptions import OrderNotPayableError, PaymentValidationError
from billing_gateway.domain.models import AmountOptions, EqualizedSchedule, MODE_CASH, MODE_CREDIT
from billing_gateway.domain.money import EPSILON, ZERO, money_equal, round2, to_decimal, to_money

INSTALLMENT_TERMS_PATTERN = re.compile(r"credit|net|month|term|install", re.IGNORECASE)


def resolve_payment_mode(
    payment_type: Optional[str],
    per_term_amount: Any = None,
    terms_text: Optional[str] = None,
) -> str:
    """
    Pick the validator branch for a customer.

    An explicit "cash"/"credit" flag wins. Without one, a positive per-term
    amount or installment-like contract terms ("Net 30", "3 months") mean
    credit; anything else is cash.
    """
    flag = (payment_type or "").strip().lower()
    if flag in (MODE_CASH, MODE_CREDIT):
        return flag
    if to_money(per_term_amount) > ZERO:
        return MODE_CREDIT
    if terms_text and INSTALLMENT_TERMS_PATTERN.search(terms_text):
        return MODE_CREDIT
    return MODE_CASH


def _prefix_sums(amounts: List[Decimal]) -> Tuple[Decimal, ...]:
    sums = []
    running = ZERO
    for amount in amounts:
        running = round2(running + amount)
        sums.append(running)
    return tuple(sums)


def build_amount_options(
    schedule: EqualizedSchedule,
    balance: Decimal,
    mode: str,
    shipping_fee: Decimal,
) -> AmountOptions:
    """
    Work out what the payer may submit.

    Orders without a shipping fee are not payable at all. In credit mode the
    valid amounts are the prefix sums of the equalized remaining amounts, and
    max_multiplier is the largest k whose prefix sum stays within balance.
    """
    balance = max(round2(balance), ZERO)
    payable = to_money(shipping_fee) > ZERO and balance > ZERO

    if not payable:
        return AmountOptions(payable=False, mode=mode, balance=balance)

    if mode == MODE_CASH:
        return AmountOptions(payable=True, mode=mode, balance=balance)

    prefix_sums = _prefix_sums(schedule.remaining_amounts)
    max_multiplier = 0
    for k, total in enumerate(prefix_sums, start=1):
        if total <= balance + EPSILON:
            max_multiplier = k

    return AmountOptions(
        payable=True,
        mode=mode,
        balance=balance,
        prefix_sums=prefix_sums,
        max_multiplier=max_multiplier,
        catch_up=schedule.catch_up,
    )


def allowed_amounts(options: AmountOptions) -> List[Decimal]:
    """
    Every exact amount accepted in credit mode, ascending.

    Once only a catch-up term is left the full balance is the one valid amount.
    """
    if not options.payable or options.mode != MODE_CREDIT:
        return []
    amounts = {options.balance}
    if not options.catch_up:
        amounts.update(options.prefix_sums[: options.max_multiplier])
    return sorted(a for a in amounts if a > ZERO)


def validate_amount(options: AmountOptions, amount: Any) -> Decimal:
    """
    Check a payer-entered amount before anything is written.

    Range and schedule checks run on the amount as entered; it is rounded
    to the cent only once accepted, so 500.004 does not pass for 500.00.

    Returns:
        The amount rounded to the cent

    Raises:
        OrderNotPayableError: Shipping fee not set yet, or nothing is owed
        PaymentValidationError: Amount is non-positive, too large, or off-schedule
    """
    if not options.payable:
        raise OrderNotPayableError("Order is not payable: shipping fee not set or nothing is owed")

    raw = to_decimal(amount)
    if raw <= ZERO:
        raise PaymentValidationError("Payment amount must be greater than 0")
    if abs(raw - round2(raw)) > EPSILON:
        raise PaymentValidationError(f"Payment amount {raw} has fractions of a cent")
    if raw > options.balance + EPSILON:
        raise PaymentValidationError(f"Payment amount {raw} exceeds balance {options.balance}")

    if options.mode == MODE_CASH:
        return round2(raw)

    if any(money_equal(raw, candidate) for candidate in allowed_amounts(options)):
        return round2(raw)

    raise PaymentValidationError(
        f"Payment amount {raw} must cover a whole number of installment terms or the full balance"
    )


def pay_in_full(options: AmountOptions) -> Decimal:
    return options.balance if options.payable else ZERO


def pay_in_half(options: AmountOptions) -> Decimal:
    """
    Half the obligation: floor(n/2) terms (at least one) in credit mode, half
    the balance in cash mode or when only a catch-up term is left.
    """
    if not options.payable:
        return ZERO
    if options.mode == MODE_CASH or options.catch_up or not options.prefix_sums:
        return max(round2(options.balance / 2), settings.min_cash)
    k = max(1, len(options.prefix_sums) // 2)
    return options.prefix_sums[min(k, options.max_multiplier or 1) - 1]


def step_multiplier(options: AmountOptions, current: int, delta: int) -> Tuple[int, Decimal]:
    """Move the credit term multiplier by delta, clamped to 1..max_multiplier"""
    if not options.payable or not options.prefix_sums:
        return 0, ZERO
    upper = max(options.max_multiplier, 1)
    k = max(1, min(current + delta, upper))
    return k, options.prefix_sums[k - 1]


def step_cash(options: AmountOptions, current: Any, increase: bool, step: Optional[Decimal] = None) -> Decimal:
    """Bump a cash amount by one quantum, clamped to [min_cash, balance]"""
    if not options.payable:
        return ZERO
    step = step if step is not None else settings.cash_step
    current = to_money(current)
    if increase:
        return min(round2(current + step), options.balance)
    return max(round2(current - step), settings.min_cash)


def validate_cheque_details(
    cheque_number: Optional[str],
    bank_name: Optional[str],
    cheque_date: Optional[date],
    attachment_ref: Optional[str],
    today: Optional[date] = None,
) -> None:
    """
    Cheque submissions need a number, bank, a cheque date that is not in the
    past, and a reference to the uploaded proof.

    Raises:
        PaymentValidationError: Any detail missing or the date already passed
    """
    missing = [
        name
        for name, value in (
            ("cheque_number", cheque_number),
            ("bank_name", bank_name),
            ("image_url", attachment_ref),
        )
        if not (value or "").strip()
    ]
    if cheque_date is None:
        missing.append("cheque_date")
    if missing:
        raise PaymentValidationError(f"Cheque payment is missing: {', '.join(missing)}")

    if cheque_date < (today or date.today()):
        raise PaymentValidationError("Cheque date cannot be in the past")

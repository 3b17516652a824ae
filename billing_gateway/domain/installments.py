"""Installment schedule equalization against the current balance"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from billing_gateway.domain.models import (
    EqualizedSchedule,
    EqualizedTerm,
    InstallmentTerm,
    NextTerm,
    ScheduleSummary,
    TERM_PAID,
)
from billing_gateway.domain.money import EPSILON, ZERO, floor2, round2


def is_term_paid(term: InstallmentTerm) -> bool:
    """A term is paid once amount_paid reaches amount_due (within epsilon)"""
    if (term.status or "").lower() == TERM_PAID:
        return True
    return round2(term.amount_paid) + EPSILON >= round2(term.amount_due)


def _split_evenly(balance: Decimal, n: int) -> List[Decimal]:
    """
    Split balance into n cent amounts that sum back to balance exactly.

    The first n-1 shares are round2(balance / n); the last absorbs the
    remainder. When half-up rounding would push the last share below zero
    (tiny balance over many terms) the shares are truncated instead.

    Example:
        100.00 over 3 -> [33.33, 33.33, 33.34]
    """
    share = round2(balance / n)
    if share * (n - 1) > balance:
        share = floor2(balance / n)
    last = round2(balance - share * (n - 1))
    return [share] * (n - 1) + [last]


def equalize_schedule(
    terms: Iterable[InstallmentTerm],
    balance: Decimal,
    today: Optional[date] = None,
) -> EqualizedSchedule:
    """
    Re-derive what is still owed per unpaid term from the current balance.

    Stored due amounts go stale as shipping fees and payments land, so they
    are only used to decide which terms are paid; the remaining balance is
    spread evenly over the unpaid ones in term order. When every stored term
    is paid but money is still owed, one catch-up term is synthesized.

    Returns a view only; nothing here writes back to storage.

    Args:
        terms: Stored installment rows for one order
        balance: Current outstanding balance (negative is treated as 0)
        today: Due date for a synthesized catch-up term (default: date.today())

    Returns:
        EqualizedSchedule whose unpaid remaining amounts sum to round2(balance)
    """
    balance = max(round2(balance), ZERO)
    ordered = sorted(terms, key=lambda t: t.term_no)

    paid = [t for t in ordered if is_term_paid(t)]
    unpaid = [t for t in ordered if not is_term_paid(t)]

    if not unpaid:
        if balance <= ZERO:
            return EqualizedSchedule(balance=balance, paid_terms=tuple(paid))

        last_no = ordered[-1].term_no if ordered else 0
        catch_up = InstallmentTerm(
            term_no=last_no + 1,
            due_date=today or date.today(),
            amount_due=balance,
            amount_paid=ZERO,
            virtual=True,
        )
        return EqualizedSchedule(
            balance=balance,
            paid_terms=tuple(paid),
            unpaid_terms=(EqualizedTerm(term=catch_up, remaining=balance),),
            catch_up=True,
        )

    shares = _split_evenly(balance, len(unpaid))
    equalized = []
    for term, remaining in zip(unpaid, shares):
        amount_paid = round2(term.amount_paid)
        equalized.append(
            EqualizedTerm(
                term=replace(term, amount_paid=amount_paid, amount_due=round2(amount_paid + remaining)),
                remaining=remaining,
            )
        )

    return EqualizedSchedule(balance=balance, paid_terms=tuple(paid), unpaid_terms=tuple(equalized))


def summarize_schedule(terms: Iterable[InstallmentTerm]) -> ScheduleSummary:
    """Totals over stored rows: due, paid, remaining (never negative)"""
    terms = list(terms)
    due = round2(sum((round2(t.amount_due) for t in terms), ZERO))
    paid = round2(sum((round2(t.amount_paid) for t in terms), ZERO))
    return ScheduleSummary(due=due, paid=paid, remaining=max(round2(due - paid), ZERO))


def next_unpaid_term(terms: Iterable[InstallmentTerm], today: Optional[date] = None) -> Optional[NextTerm]:
    """First unpaid term in term order, flagged overdue if its due date has passed"""
    today = today or date.today()
    for term in sorted(terms, key=lambda t: t.term_no):
        if not is_term_paid(term):
            return NextTerm(term=term, overdue=term.due_date < today)
    return None

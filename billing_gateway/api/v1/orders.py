"""Order billing endpoints: balance, schedule, payment options, ledger, submit payment"""

import logging
from typing import Tuple
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from billing_gateway.api.v1.schemas import (
    BalanceResponse,
    LedgerResponse,
    LedgerRowSchema,
    NextTermSchema,
    PaymentOptionsResponse,
    PaymentRequest,
    PaymentResponse,
    ScheduleResponse,
    TermSchema,
    TotalsSchema,
)
from billing_gateway.api.dependencies import get_notification_client, get_request_id
from billing_gateway.infrastructure.database.session import get_db
from billing_gateway.infrastructure.database.repositories import OrderRepository, PaymentRepository
from billing_gateway.infrastructure.clients.notifications import NotificationClient
from billing_gateway.domain.exceptions import (
    OrderNotFoundError,
    OrderNotPayableError,
    PaymentValidationError,
    StorageUnavailableError,
)
from billing_gateway.domain.installments import next_unpaid_term, summarize_schedule
from billing_gateway.domain.ledger import build_ledger_statement
from billing_gateway.domain.models import METHOD_CHEQUE, Order
from billing_gateway.domain.payment_view import PaymentStoreView
from billing_gateway.domain.money import ZERO, round2
from billing_gateway.domain.reconciliation import EVENT_SUBMITTED, build_payment_notification
from billing_gateway.domain.snapshot import BillingSnapshot, build_billing_snapshot
from billing_gateway.domain.validation import (
    allowed_amounts,
    pay_in_full,
    pay_in_half,
    validate_amount,
    validate_cheque_details,
)
from billing_gateway.infrastructure.observability.logging import log_payment_submitted
from billing_gateway.infrastructure.observability.metrics import (
    amount_rejected_counter,
    record_submission,
    storage_failures_counter,
)

router = APIRouter()


def _load_snapshot(db: Session, order_id: int) -> Tuple[Order, BillingSnapshot]:
    """
    Read current order, fee, payments and schedule and run the billing pipeline.

    Payments go through a PaymentStoreView so a payment id is counted at
    most once; the snapshot keeps the terms and payments it was built from.
    """
    orders = OrderRepository(db)
    order = orders.get_order(order_id)
    view = PaymentStoreView(PaymentRepository(db).list_for_order(order_id))
    return order, build_billing_snapshot(
        order=order,
        shipping_fee=orders.get_shipping_fee(order_id),
        payments=view.payments_for(order_id),
        terms=orders.list_installments(order_id),
        customer=orders.get_customer(order.customer_id),
    )


def _not_found_or_unavailable(e: Exception) -> HTTPException:
    if isinstance(e, OrderNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    storage_failures_counter.inc()
    logging.error(f"Storage error: {e}")
    return HTTPException(status_code=503, detail="Billing store unavailable")


@router.get("/orders/{order_id}/balance", response_model=BalanceResponse)
def get_balance(order_id: int, db: Session = Depends(get_db)):
    """Grand total breakdown and outstanding balance, recomputed on every read"""
    try:
        _, snapshot = _load_snapshot(db, order_id)
    except (OrderNotFoundError, StorageUnavailableError) as e:
        raise _not_found_or_unavailable(e)

    totals = snapshot.totals
    return BalanceResponse(
        order_id=order_id,
        totals=TotalsSchema(
            subtotal=totals.subtotal,
            discount_total=totals.discount_total,
            tax=totals.tax,
            shipping_fee=totals.shipping_fee,
            grand_total_excl_fee=totals.grand_total_excl_fee,
            grand_total=totals.grand_total,
        ),
        applied_total=snapshot.applied,
        balance=snapshot.balance,
        payable=snapshot.options.payable,
    )


@router.get("/orders/{order_id}/schedule", response_model=ScheduleResponse)
def get_schedule(order_id: int, db: Session = Depends(get_db)):
    """
    Equalized installment view.

    Paid terms pass through unchanged; unpaid terms show what is still owed
    against the current balance, or a single catch-up term once the stored
    schedule is exhausted.
    """
    try:
        _, snapshot = _load_snapshot(db, order_id)
    except (OrderNotFoundError, StorageUnavailableError) as e:
        raise _not_found_or_unavailable(e)

    schedule = snapshot.schedule
    terms = [
        TermSchema(
            term_no=t.term_no,
            due_date=t.due_date,
            amount_due=t.amount_due,
            amount_paid=t.amount_paid,
            remaining=ZERO,
            status="paid",
        )
        for t in schedule.paid_terms
    ]
    terms.extend(
        TermSchema(
            term_no=eq.term_no,
            due_date=eq.term.due_date,
            amount_due=eq.amount_due,
            amount_paid=eq.term.amount_paid,
            remaining=eq.remaining,
            status="pending",
            catch_up=eq.term.virtual,
        )
        for eq in schedule.unpaid_terms
    )
    terms.sort(key=lambda t: t.term_no)

    summary = summarize_schedule(snapshot.terms)
    upcoming = next_unpaid_term(snapshot.terms)

    return ScheduleResponse(
        order_id=order_id,
        balance=schedule.balance,
        catch_up=schedule.catch_up,
        terms=terms,
        scheduled_due=summary.due,
        scheduled_paid=summary.paid,
        scheduled_remaining=summary.remaining,
        next_unpaid=(
            NextTermSchema(term_no=upcoming.term.term_no, due_date=upcoming.term.due_date, overdue=upcoming.overdue)
            if upcoming
            else None
        ),
    )


@router.get("/orders/{order_id}/payment-options", response_model=PaymentOptionsResponse)
def get_payment_options(order_id: int, db: Session = Depends(get_db)):
    """Amounts the payer may submit; empty and not payable until shipping is set"""
    try:
        _, snapshot = _load_snapshot(db, order_id)
    except (OrderNotFoundError, StorageUnavailableError) as e:
        raise _not_found_or_unavailable(e)

    options = snapshot.options
    return PaymentOptionsResponse(
        order_id=order_id,
        payable=options.payable,
        mode=options.mode,
        balance=options.balance,
        allowed_amounts=allowed_amounts(options),
        max_multiplier=options.max_multiplier,
        pay_in_full=pay_in_full(options),
        pay_in_half=pay_in_half(options),
        catch_up=options.catch_up,
    )


@router.post("/orders/{order_id}/payments", response_model=PaymentResponse, status_code=201)
def submit_payment(
    order_id: int,
    request_body: PaymentRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    notification_client: NotificationClient = Depends(get_notification_client),
):
    """
    Record a payer's payment as pending.

    Flow:
    1. Recompute balance, schedule and allowed amounts from current data
    2. Reject off-schedule or out-of-range amounts before any write
    3. Insert the payment as pending and commit
    4. Notify reviewers in the background
    """
    request_id = get_request_id(request)

    try:
        order, snapshot = _load_snapshot(db, order_id)
        amount = validate_amount(snapshot.options, request_body.amount)
        if request_body.method == METHOD_CHEQUE:
            validate_cheque_details(
                request_body.cheque_number,
                request_body.bank_name,
                request_body.cheque_date,
                request_body.image_url,
            )

        payment = PaymentRepository(db).create_pending(
            order_id=order_id,
            customer_id=order.customer_id,
            amount=round2(amount),
            method=request_body.method,
            cheque_number=request_body.cheque_number,
            bank_name=request_body.bank_name,
            cheque_date=request_body.cheque_date,
            image_url=request_body.image_url,
        )
        db.commit()

    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except OrderNotPayableError as e:
        db.rollback()
        amount_rejected_counter.labels(reason="not_payable").inc()
        logging.warning(f"Order not payable: {e}", extra={"request_id": request_id, "order_id": order_id})
        raise HTTPException(status_code=409, detail=str(e))

    except PaymentValidationError as e:
        db.rollback()
        amount_rejected_counter.labels(reason="invalid_amount").inc()
        logging.warning(f"Invalid payment amount: {e}", extra={"request_id": request_id, "order_id": order_id})
        raise HTTPException(status_code=422, detail=str(e))

    except (StorageUnavailableError, SQLAlchemyError) as e:
        db.rollback()
        raise _not_found_or_unavailable(e)

    record_submission(payment.method)
    log_payment_submitted(request_id, payment.payment_id, order_id, payment.method, payment.amount)
    background_tasks.add_task(
        notification_client.notify,
        build_payment_notification(payment, EVENT_SUBMITTED),
    )

    return PaymentResponse(
        payment_id=payment.payment_id,
        order_id=payment.order_id,
        customer_id=payment.customer_id,
        amount=payment.amount,
        method=payment.method,
        status=payment.status,
        created_at=payment.created_at,
    )


@router.get("/orders/{order_id}/ledger", response_model=LedgerResponse)
def get_ledger(order_id: int, db: Session = Depends(get_db)):
    """Running debit/credit statement: the order charge, then received payments"""
    try:
        order, snapshot = _load_snapshot(db, order_id)
    except (OrderNotFoundError, StorageUnavailableError) as e:
        raise _not_found_or_unavailable(e)

    rows = build_ledger_statement(order, snapshot.totals.grand_total, snapshot.payments)

    return LedgerResponse(
        order_id=order_id,
        rows=[
            LedgerRowSchema(
                posted_at=r.posted_at,
                description=r.description,
                debit=r.debit,
                credit=r.credit,
                balance=r.balance,
                remarks=r.remarks,
            )
            for r in rows
        ],
        total_credits=round2(sum((r.credit for r in rows), ZERO)),
        current_balance=rows[-1].balance if rows else ZERO,
    )

"""Reviewer endpoints: confirm or reject a pending payment, exactly once"""

import time
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from billing_gateway.api.v1.schemas import PaymentResponse, ReviewRequest
from billing_gateway.api.dependencies import get_notification_client, get_request_id
from billing_gateway.infrastructure.database.session import get_db
from billing_gateway.infrastructure.database.repositories import PaymentRepository
from billing_gateway.infrastructure.clients.notifications import NotificationClient
from billing_gateway.domain.exceptions import (
    InvalidTransitionError,
    PaymentAlreadyProcessedError,
    PaymentNotFoundError,
    StorageUnavailableError,
)
from billing_gateway.domain.models import Payment, PAYMENT_RECEIVED
from billing_gateway.domain.reconciliation import (
    DECISION_CONFIRM,
    DECISION_REJECT,
    EVENT_RECEIVED,
    EVENT_REJECTED,
    build_payment_notification,
    target_status,
)
from billing_gateway.infrastructure.observability.metrics import record_reconciliation, storage_failures_counter
from billing_gateway.infrastructure.observability.logging import log_reconciliation

router = APIRouter()

OUTCOME_ALREADY_PROCESSED = "already_processed"


def _to_response(payment: Payment) -> PaymentResponse:
    return PaymentResponse(
        payment_id=payment.payment_id,
        order_id=payment.order_id,
        customer_id=payment.customer_id,
        amount=payment.amount,
        method=payment.method,
        status=payment.status,
        reviewed_by=payment.reviewed_by,
        reviewed_at=payment.reviewed_at,
        created_at=payment.created_at,
    )


def _reconcile(
    payment_id: str,
    decision: str,
    review: ReviewRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session,
    notification_client: NotificationClient,
):
    """
    Apply one reviewer decision.

    Flow:
    1. Conditional update pending -> received/rejected plus payment_event row
    2. Commit both together; on any failure roll back both
    3. Zero rows matched: report the current state with 409, change nothing
    4. Notify the payer in the background

    Storage failures return 503 and are never retried here: replaying a
    confirm whose commit outcome is unknown could count the money twice, so
    the caller re-fetches the payment instead.
    """
    start_time = time.time()
    request_id = get_request_id(request)
    repo = PaymentRepository(db)

    try:
        payment = repo.apply_decision(payment_id, target_status(decision), review.reviewer)
        db.commit()

    except PaymentNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except PaymentAlreadyProcessedError as e:
        db.rollback()
        record_reconciliation(OUTCOME_ALREADY_PROCESSED)
        log_reconciliation(
            request_id, payment_id, review.reviewer, OUTCOME_ALREADY_PROCESSED, (time.time() - start_time) * 1000
        )
        try:
            current = repo.get_payment(payment_id)
        except StorageUnavailableError:
            storage_failures_counter.inc()
            raise HTTPException(status_code=503, detail="Billing store unavailable; re-fetch the payment before retrying")
        return JSONResponse(
            status_code=409,
            content={
                "detail": str(e),
                "payment": _to_response(current).model_dump(mode="json"),
            },
        )

    except InvalidTransitionError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    except (StorageUnavailableError, SQLAlchemyError) as e:
        db.rollback()
        storage_failures_counter.inc()
        logging.error(f"Reconciliation storage error: {e}", extra={"request_id": request_id, "payment_id": payment_id})
        raise HTTPException(status_code=503, detail="Billing store unavailable; re-fetch the payment before retrying")

    record_reconciliation(payment.status)
    log_reconciliation(request_id, payment_id, review.reviewer, payment.status, (time.time() - start_time) * 1000)

    event = EVENT_RECEIVED if payment.status == PAYMENT_RECEIVED else EVENT_REJECTED
    background_tasks.add_task(notification_client.notify, build_payment_notification(payment, event))

    return _to_response(payment)


@router.post("/payments/{payment_id}/confirm", response_model=PaymentResponse)
def confirm_payment(
    payment_id: str,
    review: ReviewRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    notification_client: NotificationClient = Depends(get_notification_client),
):
    """Mark a pending payment received; the order's applied total grows by its amount"""
    return _reconcile(payment_id, DECISION_CONFIRM, review, background_tasks, request, db, notification_client)


@router.post("/payments/{payment_id}/reject", response_model=PaymentResponse)
def reject_payment(
    payment_id: str,
    review: ReviewRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    notification_client: NotificationClient = Depends(get_notification_client),
):
    """Mark a pending payment rejected; the balance is unaffected"""
    return _reconcile(payment_id, DECISION_REJECT, review, background_tasks, request, db, notification_client)


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: str, db: Session = Depends(get_db)):
    """Current state of one payment; what a reviewer re-fetches after a 409 or 503"""
    try:
        payment = PaymentRepository(db).get_payment(payment_id)
    except PaymentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageUnavailableError:
        storage_failures_counter.inc()
        raise HTTPException(status_code=503, detail="Billing store unavailable")
    return _to_response(payment)

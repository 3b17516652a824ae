"""Payment lifecycle: pending -> received | rejected, both terminal"""

from typing import Any, Dict

from billing_gateway.domain.exceptions import InvalidTransitionError
from billing_gateway.domain.models import Payment, PAYMENT_PENDING, PAYMENT_RECEIVED, PAYMENT_REJECTED

DECISION_CONFIRM = "confirm"
DECISION_REJECT = "reject"

EVENT_SUBMITTED = "payment_submitted"
EVENT_RECEIVED = "payment_received"
EVENT_REJECTED = "payment_rejected"

TRANSITIONS = {
    PAYMENT_PENDING: {PAYMENT_RECEIVED, PAYMENT_REJECTED},
    PAYMENT_RECEIVED: set(),
    PAYMENT_REJECTED: set(),
}

DECISION_TARGETS = {
    DECISION_CONFIRM: PAYMENT_RECEIVED,
    DECISION_REJECT: PAYMENT_REJECTED,
}


def is_terminal(status: str) -> bool:
    return not TRANSITIONS.get(status, set())


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, set())


def target_status(decision: str) -> str:
    """Map a reviewer decision to the status it writes"""
    try:
        return DECISION_TARGETS[decision]
    except KeyError:
        raise InvalidTransitionError(f"Unknown reconciliation decision: {decision}") from None


def ensure_transition(current: str, target: str) -> None:
    """
    Raises:
        InvalidTransitionError: target is not reachable from current
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(f"Cannot move payment from {current} to {target}")


def build_payment_notification(payment: Payment, event: str) -> Dict[str, Any]:
    """Facts a notification service needs to tell reviewers or the payer"""
    payload: Dict[str, Any] = {
        "event": event,
        "payment_id": payment.payment_id,
        "order_id": payment.order_id,
        "customer_id": payment.customer_id,
        "amount": str(payment.amount),
        "method": payment.method,
        "status": payment.status,
    }
    if event != EVENT_SUBMITTED:
        payload["outcome"] = payment.status
        payload["reviewed_by"] = payment.reviewed_by
    return payload

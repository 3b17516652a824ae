"""Unit tests for payment lifecycle rules and notification facts"""

import pytest
from dataclasses import replace
from billing_gateway.domain.exceptions import InvalidTransitionError
from billing_gateway.domain.reconciliation import (
    EVENT_RECEIVED,
    EVENT_SUBMITTED,
    build_payment_notification,
    can_transition,
    ensure_transition,
    is_terminal,
    target_status,
)
from conftest import make_payment


def test_pending_moves_to_either_terminal_state():
    """Test pending -> received and pending -> rejected are the only moves"""
    assert can_transition("pending", "received")
    assert can_transition("pending", "rejected")
    assert not can_transition("pending", "pending")


@pytest.mark.parametrize("terminal", ["received", "rejected"])
def test_terminal_states_never_move(terminal):
    """Test received/rejected are permanent"""
    assert is_terminal(terminal)
    for target in ("pending", "received", "rejected"):
        assert not can_transition(terminal, target)
        with pytest.raises(InvalidTransitionError):
            ensure_transition(terminal, target)


def test_target_status_for_decisions():
    """Test confirm -> received, reject -> rejected, anything else refused"""
    assert target_status("confirm") == "received"
    assert target_status("reject") == "rejected"
    with pytest.raises(InvalidTransitionError):
        target_status("cancel")


def test_notification_facts():
    """Test submitted carries no outcome; reviewed events do"""
    payment = make_payment("1500.00", method="cheque", payment_id="pay-9", order_id=42)

    submitted = build_payment_notification(payment, EVENT_SUBMITTED)
    assert submitted == {
        "event": "payment_submitted",
        "payment_id": "pay-9",
        "order_id": 42,
        "customer_id": 1,
        "amount": "1500.00",
        "method": "cheque",
        "status": "pending",
    }

    received = build_payment_notification(replace(payment, status="received", reviewed_by="admin@x"), EVENT_RECEIVED)
    assert received["outcome"] == "received"
    assert received["reviewed_by"] == "admin@x"

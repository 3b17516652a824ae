"""Integration tests for API endpoints"""

import inspect
import pytest
from datetime import date, timedelta
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from billing_gateway.api.v1.orders import submit_payment
from billing_gateway.api.v1.payments import confirm_payment, reject_payment
from billing_gateway.domain.exceptions import PaymentAlreadyProcessedError, StorageUnavailableError
from billing_gateway.infrastructure.database.repositories import PaymentRepository
from conftest import make_payment


pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def mock_notifications():
    """Keep background notifications off the network"""
    with patch(
        "billing_gateway.infrastructure.clients.notifications.NotificationClient.send_event",
        new_callable=AsyncMock,
    ) as mock_send:
        yield mock_send


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "billing_reconciliation_total" in response.text


def test_balance_endpoint(client: TestClient, seed_order):
    """Test GET /v1/orders/{id}/balance breakdown"""
    order_id = seed_order(items=[("10", "100.00", "10")], shipping_fee="500.00", sales_tax="60.00")

    response = client.get(f"/v1/orders/{order_id}/balance")

    assert response.status_code == 200
    data = response.json()
    assert data["totals"]["subtotal"] == "1000.00"
    assert data["totals"]["discount_total"] == "100.00"
    assert data["totals"]["grand_total"] == "1460.00"
    assert data["balance"] == "1460.00"
    assert data["payable"] is True


def test_balance_unknown_order(client: TestClient):
    """Test 404 for a missing order"""
    response = client.get("/v1/orders/9999/balance")
    assert response.status_code == 404


def test_schedule_endpoint_equalizes_terms(client: TestClient, seed_order):
    """Test stale stored amounts are replaced by an even split of the balance"""
    order_id = seed_order(
        items=[("1", "900.00", "0")],
        shipping_fee="100.00",
        terms=[("300.00", "300.00"), ("300.00", "0"), ("300.00", "0")],
    )
    submitted = client.post(f"/v1/orders/{order_id}/payments", json={"amount": "500.00", "method": "cash"})
    assert submitted.status_code == 201

    response = client.get(f"/v1/orders/{order_id}/schedule")

    assert response.status_code == 200
    data = response.json()
    assert data["balance"] == "500.00"
    assert data["catch_up"] is False
    remaining = [t["remaining"] for t in data["terms"] if t["status"] == "pending"]
    assert remaining == ["250.00", "250.00"]
    assert data["next_unpaid"]["term_no"] == 2
    assert data["scheduled_due"] == "900.00"


def test_payment_options_not_payable_without_shipping(client: TestClient, seed_order):
    """Test orders with no delivery fee expose nothing to pay"""
    order_id = seed_order(shipping_fee=None, terms=[("500.00", "0"), ("500.00", "0")])

    data = client.get(f"/v1/orders/{order_id}/payment-options").json()

    assert data["payable"] is False
    assert data["allowed_amounts"] == []

    response = client.post(f"/v1/orders/{order_id}/payments", json={"amount": "500.00", "method": "cash"})
    assert response.status_code == 409


def test_credit_submission_must_match_terms(client: TestClient, seed_order):
    """Test credit payer may only pay whole terms or the full balance"""
    order_id = seed_order(
        items=[("1", "1000.00", "0")],
        shipping_fee="500.00",
        terms=[("333.00", "0"), ("333.00", "0"), ("334.00", "0")],
    )

    options = client.get(f"/v1/orders/{order_id}/payment-options").json()
    assert options["mode"] == "credit"
    assert options["allowed_amounts"] == ["500.00", "1000.00", "1500.00"]
    assert options["max_multiplier"] == 3
    assert options["pay_in_half"] == "500.00"

    bad = client.post(f"/v1/orders/{order_id}/payments", json={"amount": "750.00", "method": "cash"})
    assert bad.status_code == 422

    good = client.post(f"/v1/orders/{order_id}/payments", json={"amount": "1000.00", "method": "cash"})
    assert good.status_code == 201
    assert good.json()["status"] == "pending"


def test_cheque_submission_requires_details(client: TestClient, seed_order):
    """Test cheque payments need number, bank, date and proof reference"""
    order_id = seed_order(payment_type="cash")

    missing = client.post(f"/v1/orders/{order_id}/payments", json={"amount": "100.00", "method": "cheque"})
    assert missing.status_code == 422

    complete = client.post(
        f"/v1/orders/{order_id}/payments",
        json={
            "amount": "100.00",
            "method": "cheque",
            "cheque_number": "000451",
            "bank_name": "BPI",
            "cheque_date": (date.today() + timedelta(days=3)).isoformat(),
            "image_url": "cheques/1/000451.jpg",
        },
    )
    assert complete.status_code == 201


def test_pending_cash_blocks_stacking_but_cheque_does_not(client: TestClient, seed_order):
    """Test pending cash reduces balance immediately; pending cheque does not"""
    order_id = seed_order(items=[("1", "1000.00", "0")], shipping_fee="200.00", payment_type="cash")

    client.post(f"/v1/orders/{order_id}/payments", json={"amount": "1000.00", "method": "cash"})
    assert client.get(f"/v1/orders/{order_id}/balance").json()["balance"] == "200.00"

    over = client.post(f"/v1/orders/{order_id}/payments", json={"amount": "300.00", "method": "cash"})
    assert over.status_code == 422

    client.post(
        f"/v1/orders/{order_id}/payments",
        json={
            "amount": "200.00",
            "method": "cheque",
            "cheque_number": "1",
            "bank_name": "BDO",
            "cheque_date": date.today().isoformat(),
            "image_url": "cheques/1.jpg",
        },
    )
    assert client.get(f"/v1/orders/{order_id}/balance").json()["balance"] == "200.00"


def test_confirm_then_confirm_again_is_already_processed(client: TestClient, seed_order, mock_notifications):
    """Test the second confirm reports 409 and the amount counts once"""
    order_id = seed_order(items=[("1", "1000.00", "0")], shipping_fee="0.01", payment_type="cash")
    payment = client.post(
        f"/v1/orders/{order_id}/payments",
        json={
            "amount": "400.00",
            "method": "cheque",
            "cheque_number": "77",
            "bank_name": "BDO",
            "cheque_date": date.today().isoformat(),
            "image_url": "cheques/77.jpg",
        },
    ).json()
    assert client.get(f"/v1/orders/{order_id}/balance").json()["balance"] == "1000.01"

    first = client.post(f"/v1/payments/{payment['payment_id']}/confirm", json={"reviewer": "alice"})
    second = client.post(f"/v1/payments/{payment['payment_id']}/confirm", json={"reviewer": "bob"})

    assert first.status_code == 200
    assert first.json()["status"] == "received"
    assert first.json()["reviewed_by"] == "alice"
    assert second.status_code == 409
    assert second.json()["payment"]["status"] == "received"
    assert second.json()["payment"]["reviewed_by"] == "alice"
    assert client.get(f"/v1/orders/{order_id}/balance").json()["balance"] == "600.01"

    events = [call.args[0]["event"] for call in mock_notifications.await_args_list]
    assert events == ["payment_submitted", "payment_received"]


def test_reject_after_confirm_is_refused(client: TestClient, seed_order):
    """Test a rejected payment cannot be confirmed and leaves balance untouched"""
    order_id = seed_order(items=[("1", "500.00", "0")], shipping_fee="100.00", payment_type="cash")
    payment_id = client.post(
        f"/v1/orders/{order_id}/payments", json={"amount": "600.00", "method": "cash"}
    ).json()["payment_id"]

    rejected = client.post(f"/v1/payments/{payment_id}/reject", json={"reviewer": "alice"})
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "rejected"
    assert client.get(f"/v1/orders/{order_id}/balance").json()["balance"] == "600.00"

    late_confirm = client.post(f"/v1/payments/{payment_id}/confirm", json={"reviewer": "bob"})
    assert late_confirm.status_code == 409
    assert client.get(f"/v1/payments/{payment_id}").json()["status"] == "rejected"


def test_confirm_unknown_payment(client: TestClient):
    """Test 404 for a missing payment"""
    response = client.post("/v1/payments/does-not-exist/confirm", json={"reviewer": "alice"})
    assert response.status_code == 404


def test_ledger_endpoint(client: TestClient, seed_order):
    """Test statement shows the charge and received payments with running balance"""
    order_id = seed_order(items=[("1", "800.00", "0")], shipping_fee="200.00", payment_type="cash")
    payment_id = client.post(
        f"/v1/orders/{order_id}/payments", json={"amount": "300.00", "method": "cash"}
    ).json()["payment_id"]
    client.post(f"/v1/orders/{order_id}/payments", json={"amount": "100.00", "method": "cash"})
    client.post(f"/v1/payments/{payment_id}/confirm", json={"reviewer": "alice"})

    data = client.get(f"/v1/orders/{order_id}/ledger").json()

    assert [row["remarks"] for row in data["rows"]] == ["CHARGE", "RECEIVED"]
    assert data["total_credits"] == "300.00"
    assert data["current_balance"] == "700.00"


def test_sub_cent_amount_rejected(client: TestClient, seed_order):
    """Test 500.004 is not taken as the 500.00 term"""
    order_id = seed_order(
        items=[("1", "1000.00", "0")],
        shipping_fee="500.00",
        terms=[("500.00", "0"), ("500.00", "0"), ("500.00", "0")],
    )

    response = client.post(f"/v1/orders/{order_id}/payments", json={"amount": "500.004", "method": "cash"})

    assert response.status_code == 422
    assert client.get(f"/v1/orders/{order_id}/balance").json()["balance"] == "1500.00"


def test_duplicate_payment_rows_counted_once(client: TestClient, seed_order):
    """Test the same payment id delivered twice reduces the balance once"""
    order_id = seed_order(items=[("1", "1000.00", "0")], shipping_fee="200.00", payment_type="cash")
    received = make_payment("300.00", status="received", payment_id="dup-1", order_id=order_id)

    with patch.object(PaymentRepository, "list_for_order", return_value=[received, received]):
        balance = client.get(f"/v1/orders/{order_id}/balance").json()
        ledger = client.get(f"/v1/orders/{order_id}/ledger").json()

    assert balance["applied_total"] == "300.00"
    assert balance["balance"] == "900.00"
    assert ledger["total_credits"] == "300.00"
    assert ledger["current_balance"] == "900.00"


def test_already_processed_with_store_down_is_503(client: TestClient):
    """Test re-reading the current state after a lost race maps storage failure to 503"""
    with patch.object(
        PaymentRepository, "apply_decision", side_effect=PaymentAlreadyProcessedError("pay-1", "received")
    ), patch.object(PaymentRepository, "get_payment", side_effect=StorageUnavailableError("store down")):
        response = client.post("/v1/payments/pay-1/confirm", json={"reviewer": "alice"})

    assert response.status_code == 503


@pytest.mark.parametrize("endpoint", [submit_payment, confirm_payment, reject_payment])
def test_database_endpoints_run_in_threadpool(endpoint):
    """Test endpoints doing blocking database work are plain functions"""
    assert not inspect.iscoroutinefunction(endpoint)

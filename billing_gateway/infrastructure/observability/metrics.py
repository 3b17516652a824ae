"""Prometheus metrics for payment submissions, reconciliation and notifications"""

from prometheus_client import Counter, Histogram

# Payment metrics
payment_submitted_counter = Counter(
    "billing_payment_submitted_total",
    "Payments submitted for review",
    ["method"],  # cash | cheque
)

amount_rejected_counter = Counter(
    "billing_amount_rejected_total",
    "Submissions refused before any write",
    ["reason"],  # not_payable | invalid_amount
)

reconciliation_counter = Counter(
    "billing_reconciliation_total",
    "Reviewer decisions by outcome",
    ["outcome"],  # received | rejected | already_processed
)

# Notification metrics
notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

notification_failure_counter = Counter(
    "notification_failures_total",
    "Failed notification deliveries",
)

# Storage
storage_failures_counter = Counter(
    "billing_storage_failures_total",
    "Failed reads/writes against the billing store",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_reconciliation(outcome: str) -> None:
    reconciliation_counter.labels(outcome=outcome).inc()


def record_submission(method: str) -> None:
    payment_submitted_counter.labels(method=method).inc()

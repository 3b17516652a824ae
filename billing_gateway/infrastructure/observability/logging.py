"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from billing_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_payment_submitted(
    request_id: str,
    payment_id: str,
    order_id: int,
    method: str,
    amount: Decimal,
) -> None:
    logging.info(
        "Payment submitted",
        extra={
            "request_id": request_id,
            "payment_id": payment_id,
            "order_id": order_id,
            "step": "payment_submitted",
            "method": method,
            "amount": str(amount),
        },
    )


def log_reconciliation(
    request_id: str,
    payment_id: str,
    reviewer: str,
    outcome: str,
    duration_ms: float,
) -> None:
    """Log one reviewer decision, including lost races (already_processed)"""
    logging.info(
        "Reconciliation completed",
        extra={
            "request_id": request_id,
            "payment_id": payment_id,
            "reviewer": reviewer,
            "step": "reconciliation",
            "outcome": outcome,
            "duration_ms": duration_ms,
        },
    )

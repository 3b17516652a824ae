"""Notification webhook client with exponential backoff retry logic"""

import httpx
import asyncio
import logging
from typing import Dict, Any
from billing_gateway.config import settings
from billing_gateway.domain.exceptions import NotificationError
from billing_gateway.infrastructure.observability.metrics import (
    notification_latency_histogram,
    notification_failure_counter,
)

logger = logging.getLogger(__name__)


class NotificationClient:
    """Client for handing payment events to the notification service"""

    def __init__(self, webhook_url: str | None = None, timeout: float | None = None):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Deliver one payment event (submitted / received / rejected).

        Notifications are idempotent on the receiving side (keyed by
        payment_id + event), so 5xx and network errors are retried with
        backoff base * 2^(attempt-1). 4xx responses are not retried.

        Raises:
            NotificationError: Delivery failed after all retries
        """
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while attempt < self.max_retries:
                try:
                    with notification_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return

                except httpx.HTTPStatusError as e:
                    notification_failure_counter.inc()
                    if e.response.status_code < 500:
                        raise NotificationError(
                            f"Notification rejected: {e.response.status_code}"
                        ) from e
                    attempt += 1
                    last_error: Exception = e

                except httpx.RequestError as e:
                    notification_failure_counter.inc()
                    attempt += 1
                    last_error = e

                if attempt >= self.max_retries:
                    raise NotificationError(
                        f"Notification failed after {attempt} attempts: {last_error}"
                    ) from last_error

                await asyncio.sleep(self.backoff_base * (2 ** (attempt - 1)))

    async def notify(self, payload: Dict[str, Any]) -> None:
        """Background-task entry point: delivery failure never affects the payment"""
        try:
            await self.send_event(payload)
        except NotificationError as e:
            logger.error(
                f"Notification delivery failed: {e}",
                extra={"event": payload.get("event"), "payment_id": payload.get("payment_id")},
            )

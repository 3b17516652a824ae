"""In-memory payment view per order, fed by a snapshot plus change events"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from billing_gateway.domain.models import Payment

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"
EVENT_DELETE = "DELETE"


class PaymentStoreView:
    """
    Materialized set of payment attempts keyed by order.

    Holds at most one entry per payment id. Every change bumps the owning
    order's version so callers holding derived balances know to recompute.
    """

    def __init__(self, payments: Iterable[Payment] = ()):
        self._by_order: Dict[int, Dict[str, Payment]] = defaultdict(dict)
        self._order_of: Dict[str, int] = {}
        self._versions: Dict[int, int] = defaultdict(int)
        self.load(payments)

    def load(self, payments: Iterable[Payment]) -> None:
        """Replace the view with a fresh snapshot"""
        touched = set(self._by_order)
        self._by_order.clear()
        self._order_of.clear()
        for payment in payments:
            self._put(payment)
            touched.add(payment.order_id)
        for order_id in touched:
            self._versions[order_id] += 1

    def _put(self, payment: Payment) -> None:
        previous_order = self._order_of.get(payment.payment_id)
        if previous_order is not None and previous_order != payment.order_id:
            self._by_order[previous_order].pop(payment.payment_id, None)
            self._versions[previous_order] += 1
        self._by_order[payment.order_id][payment.payment_id] = payment
        self._order_of[payment.payment_id] = payment.order_id

    def apply(self, event_type: str, new: Optional[Payment] = None, old: Optional[Payment] = None) -> None:
        """
        Apply one change-notification event.

        INSERT/UPDATE upsert the new row, DELETE removes the old one.
        Unknown event types are ignored.
        """
        event_type = (event_type or "").upper()
        if event_type in (EVENT_INSERT, EVENT_UPDATE) and new is not None:
            self._put(new)
            self._versions[new.order_id] += 1
        elif event_type == EVENT_DELETE and old is not None:
            order_id = self._order_of.pop(old.payment_id, old.order_id)
            self._by_order[order_id].pop(old.payment_id, None)
            self._versions[order_id] += 1

    def payments_for(self, order_id: int) -> List[Payment]:
        return list(self._by_order.get(order_id, {}).values())

    def get(self, payment_id: str) -> Optional[Payment]:
        order_id = self._order_of.get(payment_id)
        if order_id is None:
            return None
        return self._by_order[order_id].get(payment_id)

    def version(self, order_id: int) -> int:
        return self._versions.get(order_id, 0)

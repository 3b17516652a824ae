"""Data access layer for orders, installment terms and payments"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from billing_gateway.infrastructure.database.models import (
    CustomerRecord,
    InstallmentRecord,
    OrderRecord,
    PaymentEvent,
    PaymentRecord,
    TruckDelivery,
)
from billing_gateway.domain.exceptions import (
    OrderNotFoundError,
    PaymentAlreadyProcessedError,
    PaymentNotFoundError,
    StorageUnavailableError,
)
from billing_gateway.domain.models import (
    Customer,
    InstallmentTerm,
    LineItem,
    Order,
    Payment,
    PAYMENT_PENDING,
)
from billing_gateway.domain.money import ZERO, to_money
from billing_gateway.domain.reconciliation import ensure_transition


def to_domain_order(record: OrderRecord) -> Order:
    items = tuple(
        LineItem(
            quantity=Decimal(str(item.quantity or 0)),
            unit_price=to_money(item.price),
            discount_percent=Decimal(str(item.discount_percent or 0)),
        )
        for item in record.items
    )
    return Order(
        order_id=record.id,
        customer_id=record.customer_id,
        items=items,
        tax=to_money(record.sales_tax),
        grand_total_override=(
            to_money(record.grand_total_with_interest) if record.grand_total_with_interest is not None else None
        ),
        per_term_amount=to_money(record.per_term_amount) if record.per_term_amount is not None else None,
        terms=record.terms,
        created_at=record.created_at,
    )


def to_domain_payment(record: PaymentRecord) -> Payment:
    return Payment(
        payment_id=record.id,
        order_id=record.order_id,
        customer_id=record.customer_id,
        amount=to_money(record.amount),
        method=(record.method or "").lower(),
        status=(record.status or "").lower(),
        created_at=record.created_at,
        reviewed_by=record.reviewed_by,
        reviewed_at=record.reviewed_at,
        attachment_ref=record.cheque_number or record.image_url,
    )


def to_domain_term(record: InstallmentRecord) -> InstallmentTerm:
    return InstallmentTerm(
        term_no=record.term_no,
        due_date=record.due_date,
        amount_due=to_money(record.amount_due),
        amount_paid=to_money(record.amount_paid),
        status=(record.status or "pending").lower(),
    )


class OrderRepository:
    """Read access to orders, their schedule and shipping fee"""

    def __init__(self, db: Session):
        self.db = db

    def get_order(self, order_id: int) -> Order:
        """
        Raises:
            OrderNotFoundError: No such order
            StorageUnavailableError: Query failed
        """
        try:
            record = self.db.execute(
                select(OrderRecord).options(selectinload(OrderRecord.items)).where(OrderRecord.id == order_id)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to load order {order_id}") from e

        if record is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return to_domain_order(record)

    def get_customer(self, customer_id: int) -> Optional[Customer]:
        try:
            record = self.db.get(CustomerRecord, customer_id)
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to load customer {customer_id}") from e
        if record is None:
            return None
        return Customer(customer_id=record.id, name=record.name, payment_type=record.payment_type)

    def get_shipping_fee(self, order_id: int) -> Decimal:
        """Fee from the truck delivery carrying the order; 0.00 while unassigned"""
        try:
            fee = self.db.execute(
                select(TruckDelivery.shipping_fee)
                .join(OrderRecord, OrderRecord.truck_delivery_id == TruckDelivery.id)
                .where(OrderRecord.id == order_id)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to load shipping fee for order {order_id}") from e
        return to_money(fee) if fee is not None else ZERO

    def list_installments(self, order_id: int) -> List[InstallmentTerm]:
        try:
            records = self.db.execute(
                select(InstallmentRecord)
                .where(InstallmentRecord.order_id == order_id)
                .order_by(InstallmentRecord.term_no.asc())
            ).scalars().all()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to load installments for order {order_id}") from e
        return [to_domain_term(r) for r in records]


class PaymentRepository:
    """Payment rows: insert as pending, move to a terminal state by conditional update"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_order(self, order_id: int) -> List[Payment]:
        try:
            records = self.db.execute(
                select(PaymentRecord)
                .where(PaymentRecord.order_id == order_id)
                .order_by(PaymentRecord.created_at.asc())
            ).scalars().all()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to load payments for order {order_id}") from e
        return [to_domain_payment(r) for r in records]

    def get_payment(self, payment_id: str) -> Payment:
        """
        Raises:
            PaymentNotFoundError: No such payment
        """
        try:
            # populate_existing: a conditional update may have changed the row under the identity map
            record = self.db.get(PaymentRecord, payment_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to load payment {payment_id}") from e
        if record is None:
            raise PaymentNotFoundError(f"Payment {payment_id} not found")
        return to_domain_payment(record)

    def create_pending(
        self,
        order_id: int,
        customer_id: int,
        amount: Decimal,
        method: str,
        cheque_number: Optional[str] = None,
        bank_name: Optional[str] = None,
        cheque_date: Optional[date] = None,
        image_url: Optional[str] = None,
    ) -> Payment:
        """Insert a pending payment; flushed, not committed"""
        record = PaymentRecord(
            order_id=order_id,
            customer_id=customer_id,
            amount=amount,
            method=method,
            status=PAYMENT_PENDING,
            cheque_number=cheque_number,
            bank_name=bank_name,
            cheque_date=cheque_date,
            image_url=image_url,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self.db.add(record)
            self.db.flush()
        except SQLAlchemyError as e:
            raise StorageUnavailableError("Failed to record payment") from e
        return to_domain_payment(record)

    def apply_decision(self, payment_id: str, target: str, reviewer: str) -> Payment:
        """
        Move a pending payment to received/rejected exactly once.

        A single UPDATE ... WHERE status = 'pending' does the check and the
        write together; a zero row count means someone else already acted.
        The payment_event row is written in the same transaction, so the
        caller's commit (or rollback) covers both.

        Raises:
            InvalidTransitionError: target is not a terminal status
            PaymentNotFoundError: No such payment
            PaymentAlreadyProcessedError: Row was no longer pending
            StorageUnavailableError: Update failed; caller must re-fetch
        """
        ensure_transition(PAYMENT_PENDING, target)
        reviewed_at = datetime.now(timezone.utc)

        try:
            result = self.db.execute(
                update(PaymentRecord)
                .where(PaymentRecord.id == payment_id, PaymentRecord.status == PAYMENT_PENDING)
                .values(status=target, reviewed_by=reviewer, reviewed_at=reviewed_at)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to update payment {payment_id}") from e

        if result.rowcount == 0:
            current = self.get_payment(payment_id)
            raise PaymentAlreadyProcessedError(payment_id, current.status)

        payment = self.get_payment(payment_id)
        try:
            self.db.add(
                PaymentEvent(
                    payment_id=payment_id,
                    order_id=payment.order_id,
                    event_type=target,
                    amount=payment.amount,
                    actor=reviewer,
                    created_at=reviewed_at,
                )
            )
            self.db.flush()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to record event for payment {payment_id}") from e
        return payment

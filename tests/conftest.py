"""Pytest fixtures for testing"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Generator, Iterable, Optional, Tuple
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from billing_gateway.api.main import create_app
from billing_gateway.infrastructure.database.models import (
    Base,
    CustomerRecord,
    InstallmentRecord,
    OrderItemRecord,
    OrderRecord,
    TruckDelivery,
)
from billing_gateway.infrastructure.database.session import get_db, make_engine
from billing_gateway.domain.models import InstallmentTerm, LineItem, Order, Payment


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = make_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def seed_order(db: Session) -> Callable[..., int]:
    """
    Insert a customer, order, line items, optional delivery and schedule.

    Returns a factory: seed_order(items=[(qty, price, discount%)], shipping_fee=...,
    terms=[(due_amount, paid_amount)], payment_type=...) -> order id
    """

    def _seed(
        items: Iterable[Tuple[str, str, str]] = (("10", "100.00", "0"),),
        shipping_fee: Optional[str] = "500.00",
        sales_tax: str = "0",
        terms: Iterable[Tuple[str, str]] = (),
        payment_type: Optional[str] = "credit",
        grand_total_with_interest: Optional[str] = None,
    ) -> int:
        customer = CustomerRecord(name="Acme Hardware", code="TXN-001", payment_type=payment_type)
        db.add(customer)
        db.flush()

        delivery_id = None
        if shipping_fee is not None:
            delivery = TruckDelivery(shipping_fee=Decimal(shipping_fee))
            db.add(delivery)
            db.flush()
            delivery_id = delivery.id

        order = OrderRecord(
            customer_id=customer.id,
            truck_delivery_id=delivery_id,
            status="completed",
            sales_tax=Decimal(sales_tax),
            grand_total_with_interest=(
                Decimal(grand_total_with_interest) if grand_total_with_interest is not None else None
            ),
        )
        db.add(order)
        db.flush()

        for qty, price, discount in items:
            db.add(
                OrderItemRecord(
                    order_id=order.id,
                    quantity=Decimal(qty),
                    price=Decimal(price),
                    discount_percent=Decimal(discount),
                )
            )

        first_due = date.today() + timedelta(days=30)
        for i, (due, paid) in enumerate(terms, start=1):
            db.add(
                InstallmentRecord(
                    order_id=order.id,
                    term_no=i,
                    due_date=first_due + timedelta(days=30 * (i - 1)),
                    amount_due=Decimal(due),
                    amount_paid=Decimal(paid),
                    status="paid" if Decimal(paid) >= Decimal(due) else "pending",
                )
            )

        db.commit()
        return order.id

    return _seed


def make_term(term_no: int, due: str, paid: str = "0", days_out: int = 30) -> InstallmentTerm:
    return InstallmentTerm(
        term_no=term_no,
        due_date=date.today() + timedelta(days=days_out * term_no),
        amount_due=Decimal(due),
        amount_paid=Decimal(paid),
    )


def make_payment(
    amount: str,
    method: str = "cash",
    status: str = "pending",
    payment_id: str = "p-1",
    order_id: int = 1,
) -> Payment:
    return Payment(
        payment_id=payment_id,
        order_id=order_id,
        customer_id=1,
        amount=Decimal(amount),
        method=method,
        status=status,
    )


def make_order(items=(), tax="0", shipping_fee=None, override=None, order_id: int = 1) -> Order:
    return Order(
        order_id=order_id,
        customer_id=1,
        items=tuple(LineItem(Decimal(q), Decimal(p), Decimal(d)) for q, p, d in items),
        tax=Decimal(tax),
        shipping_fee=Decimal(shipping_fee) if shipping_fee is not None else None,
        grand_total_override=Decimal(override) if override is not None else None,
    )

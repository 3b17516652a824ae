"""SQLAlchemy ORM models for orders, installment terms and payments"""

import uuid
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Date, ForeignKey, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(12, 2)


class CustomerRecord(Base):
    """Customer account"""

    __tablename__ = "customer"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    code = Column(Text, nullable=True)
    payment_type = Column(Text, nullable=True)  # cash | credit | NULL

    orders = relationship("OrderRecord", back_populates="customer")


class TruckDelivery(Base):
    """Logistics record; owns the shipping fee for the orders it carries"""

    __tablename__ = "truck_delivery"

    id = Column(Integer, primary_key=True, autoincrement=True)
    shipping_fee = Column(MONEY, nullable=True)


class OrderRecord(Base):
    """Customer order"""

    __tablename__ = "customer_order"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("customer.id"), nullable=False, index=True)
    truck_delivery_id = Column(Integer, ForeignKey("truck_delivery.id"), nullable=True)
    status = Column(Text, nullable=False, default="pending")
    sales_tax = Column(MONEY, nullable=False, default=0)
    grand_total_with_interest = Column(MONEY, nullable=True)
    per_term_amount = Column(MONEY, nullable=True)
    terms = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    customer = relationship("CustomerRecord", back_populates="orders")
    delivery = relationship("TruckDelivery")
    items = relationship("OrderItemRecord", back_populates="order", cascade="all, delete-orphan")
    installments = relationship(
        "InstallmentRecord",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="InstallmentRecord.term_no",
    )


class OrderItemRecord(Base):
    """Order line item"""

    __tablename__ = "order_item"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("customer_order.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    price = Column(MONEY, nullable=False)
    discount_percent = Column(Numeric(5, 2), nullable=True)

    order = relationship("OrderRecord", back_populates="items")


class InstallmentRecord(Base):
    """Stored installment term; written by the scheduling process, read here"""

    __tablename__ = "order_installment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("customer_order.id", ondelete="CASCADE"), nullable=False, index=True)
    term_no = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount_due = Column(MONEY, nullable=False)
    amount_paid = Column(MONEY, nullable=False, default=0)
    status = Column(Text, nullable=False, default="pending")

    order = relationship("OrderRecord", back_populates="installments")


class PaymentRecord(Base):
    """Payment attempt; status moves only through conditional updates"""

    __tablename__ = "payment"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    customer_id = Column(Integer, ForeignKey("customer.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("customer_order.id"), nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    method = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    cheque_number = Column(Text, nullable=True)
    bank_name = Column(Text, nullable=True)
    cheque_date = Column(Date, nullable=True)
    image_url = Column(Text, nullable=True)
    reviewed_by = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class PaymentEvent(Base):
    """Append-only record of each terminal transition"""

    __tablename__ = "payment_event"

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_id = Column(String(36), ForeignKey("payment.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("customer_order.id"), nullable=False, index=True)
    event_type = Column(Text, nullable=False)
    amount = Column(MONEY, nullable=False)
    actor = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

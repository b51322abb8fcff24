"""
SQLAlchemy Database Models

Owners, their menus, and the orders customers place from table QR codes.
Order lines are snapshots of the cart at checkout, so later menu edits
never rewrite history.

Author: Khalil Bannouri
Version: 1.0.0
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from menumagi.database import Base
from menumagi.services.order_status import OrderStatus, PaymentStatus


def _new_id() -> str:
    return str(uuid.uuid4())


class Owner(Base):
    """Restaurant account holder. One row per authenticated user."""
    __tablename__ = "owners"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)

    restaurant_name = Column(String(150), nullable=False)
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    menu_items = relationship("MenuItem", back_populates="owner", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="owner", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Owner {self.email} - {self.restaurant_name}>"


class MenuItem(Base):
    """A dish on an owner's menu. Customers only see available items."""
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner_id = Column(String(36), ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String(500), nullable=True)
    category = Column(String(50), nullable=True, index=True)
    is_available = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("Owner", back_populates="menu_items")

    def __repr__(self):
        return f"<MenuItem {self.name} - ₹{self.price}>"


class Order(Base):
    """
    A table order.

    Status moves only through the transitions in
    ``menumagi.services.order_status``; lines are fixed at creation.
    """
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("owner_id", "invoice_number", name="uq_orders_owner_invoice"),
        UniqueConstraint("owner_id", "client_reference", name="uq_orders_owner_client_ref"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    owner_id = Column(String(36), ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True)

    # =========================================================================
    # CUSTOMER
    # =========================================================================
    table_number = Column(Integer, nullable=False)
    customer_name = Column(String(100), nullable=True)
    customer_phone = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)

    # =========================================================================
    # STATUS
    # =========================================================================
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.WAITING, index=True)

    # =========================================================================
    # PAYMENT
    # =========================================================================
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    payment_method = Column(String(20), nullable=True)  # cash, online
    payment_reference = Column(String(255), nullable=True)

    # =========================================================================
    # PRICING (GST)
    # =========================================================================
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    gst_rate = Column(Numeric(5, 2), nullable=False)
    cgst = Column(Numeric(10, 2), nullable=False, default=0)
    sgst = Column(Numeric(10, 2), nullable=False, default=0)
    igst = Column(Numeric(10, 2), nullable=False, default=0)
    invoice_number = Column(String(30), nullable=False)

    # Offline background-sync idempotency key
    client_reference = Column(String(64), nullable=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    owner = relationship("Owner", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )

    def __repr__(self):
        return f"<Order {self.invoice_number} - table {self.table_number} - {self.status.value}>"


class OrderItem(Base):
    """Snapshot of one cart line at order time."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True)

    name = Column(String(150), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.quantity}x {self.name}>"

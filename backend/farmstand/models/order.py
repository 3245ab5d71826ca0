"""Orders created by the Stripe webhook (status paid); staff move them to ready / collected / canceled."""
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, false
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from farmstand.db.base import Base


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    READY = "ready"
    COLLECTED = "collected"
    CANCELED = "canceled"


# Forward order of the happy path; canceled sits outside it.
STATUS_RANK = {
    OrderStatus.PENDING: 0,
    OrderStatus.PAID: 1,
    OrderStatus.READY: 2,
    OrderStatus.COLLECTED: 3,
}
TERMINAL_STATUSES = frozenset({OrderStatus.COLLECTED, OrderStatus.CANCELED})


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    stripe_session_id = Column(String(255), nullable=False, unique=True, index=True)
    status = Column(
        SQLEnum(OrderStatus, name="order_status", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    pickup_slot_id = Column(Integer, ForeignKey("pickup_slots.id"), nullable=True, index=True)
    pickup_qty = Column(Integer, nullable=True)
    # False when payment landed after the slot filled up: the order is paid but took no capacity.
    capacity_reserved = Column(Boolean, nullable=False, default=False, server_default=false())
    customer_email = Column(String(255), nullable=True)
    customer_name = Column(String(255), nullable=True)
    total_cents = Column(Integer, nullable=False, default=0)
    notes = Column(String(1000), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    collected_at = Column(DateTime(timezone=True), nullable=True)

    pickup_slot = relationship("PickupSlot")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Order(id={self.id}, status={self.status}, slot={self.pickup_slot_id})>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    product_name = Column(String(255), nullable=False)
    stripe_price_id = Column(String(255), nullable=True)
    qty = Column(Integer, nullable=False, default=1)
    unit_price_cents = Column(Integer, nullable=False, default=0)

    order = relationship("Order", back_populates="items")

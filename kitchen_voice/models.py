"""
SQLAlchemy Database Models

Orders and menu items as seen by the kitchen command layer:
- Orders move between pending, done and cancelled
- Menu items carry an availability flag and a popularity counter

Version: 4.0.0
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, Enum, Boolean
from sqlalchemy.sql import func
from kitchen_voice.database import Base
import enum


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    DONE = "done"
    CANCELLED = "cancelled"


class Order(Base):
    """
    Main Order table.

    `order_number` is the sequential number staff read out loud; `order_id`
    is the internal key used for writes.
    """
    __tablename__ = "orders"

    order_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_number = Column(Integer, nullable=False, unique=True, index=True)

    total_amount = Column(Float, nullable=False, default=0.0)
    customer_note = Column(Text, nullable=True)

    status = Column(
        Enum(OrderStatus, values_callable=lambda e: [m.value for m in e]),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Order #{self.order_number} - {self.status.value}>"


class MenuItem(Base):
    """
    Menu table. Read-only from the command layer's point of view.
    """
    __tablename__ = "menu_item"

    menu_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)
    availability = Column(Boolean, default=True, nullable=False)
    total_ordered = Column(Integer, default=0, nullable=False)

    def __repr__(self):
        return f"<MenuItem {self.name} - ordered {self.total_ordered}x>"
